"""Downstream impact analysis for a single node."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import IntEnum

from .types import LineageGraph, NodeData, NodeIndex, NodeType


class ImpactSeverity(IntEnum):
    LOW = 0
    MEDIUM = 1
    HIGH = 2
    CRITICAL = 3

    @property
    def label(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class ImpactedNode:
    node: NodeIndex
    unique_id: str
    label: str
    node_type: NodeType
    severity: ImpactSeverity
    distance: int


@dataclass(frozen=True)
class ImpactReport:
    source_model: str
    overall_severity: ImpactSeverity
    affected_models: int
    affected_tests: int
    affected_exposures: int
    longest_path: tuple[str, ...]
    impacted_nodes: tuple[ImpactedNode, ...]

    @property
    def longest_path_length(self) -> int:
        return max(0, len(self.longest_path) - 1)


def classify_severity(node: NodeData) -> ImpactSeverity:
    """Exposures are critical, tests low, mart-like models high."""
    if node.node_type is NodeType.EXPOSURE:
        return ImpactSeverity.CRITICAL
    if node.node_type is NodeType.TEST:
        return ImpactSeverity.LOW
    if node.node_type is NodeType.MODEL:
        is_mart = node.materialization in {"table", "incremental"} or (
            node.file_path is not None and "mart" in str(node.file_path)
        )
        return ImpactSeverity.HIGH if is_mart else ImpactSeverity.MEDIUM
    return ImpactSeverity.MEDIUM


def find_longest_path(graph: LineageGraph, start: NodeIndex) -> list[str]:
    """Labels along the longest downstream path starting at ``start``."""
    # Longest path to a sink, memoized over the DAG.
    best_next: dict[NodeIndex, NodeIndex | None] = {}
    depth: dict[NodeIndex, int] = {}
    for idx in reversed(graph.toposort()):
        best_len = 0
        best_succ: NodeIndex | None = None
        for succ in graph.successors(idx):
            if depth[succ] + 1 > best_len:
                best_len = depth[succ] + 1
                best_succ = succ
        depth[idx] = best_len
        best_next[idx] = best_succ

    labels: list[str] = []
    current: NodeIndex | None = start
    while current is not None:
        labels.append(graph[current].label)
        current = best_next[current]
    return labels


def compute_impact(graph: LineageGraph, source: NodeIndex) -> ImpactReport:
    """Breadth-first downstream walk ranked by severity, then distance."""
    visited = {source}
    queue: deque[tuple[NodeIndex, int]] = deque([(source, 0)])
    impacted: list[ImpactedNode] = []
    counts = {NodeType.MODEL: 0, NodeType.TEST: 0, NodeType.EXPOSURE: 0}

    while queue:
        current, distance = queue.popleft()
        for succ in graph.successors(current):
            if succ in visited:
                continue
            visited.add(succ)
            node = graph[succ]
            if node.node_type in counts:
                counts[node.node_type] += 1
            impacted.append(
                ImpactedNode(
                    node=succ,
                    unique_id=node.unique_id,
                    label=node.label,
                    node_type=node.node_type,
                    severity=classify_severity(node),
                    distance=distance + 1,
                )
            )
            queue.append((succ, distance + 1))

    impacted.sort(key=lambda item: (-item.severity, item.distance))
    overall = max((item.severity for item in impacted), default=ImpactSeverity.LOW)
    return ImpactReport(
        source_model=graph[source].label,
        overall_severity=overall,
        affected_models=counts[NodeType.MODEL],
        affected_tests=counts[NodeType.TEST],
        affected_exposures=counts[NodeType.EXPOSURE],
        longest_path=tuple(find_longest_path(graph, source)),
        impacted_nodes=tuple(impacted),
    )
