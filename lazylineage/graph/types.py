"""Arena-indexed lineage graph types.

Nodes and edges live in flat tables owned by ``LineageGraph``. Everything
else refers to nodes by their integer index, which stays valid for the
lifetime of the graph.
"""

from __future__ import annotations

import heapq
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

NodeIndex = int


class CycleError(ValueError):
    """Raised when an operation that requires a DAG receives a cyclic graph."""


class NodeType(Enum):
    """Kinds of artifacts in a dbt-style lineage."""

    MODEL = "model"
    SOURCE = "source"
    SEED = "seed"
    SNAPSHOT = "snapshot"
    TEST = "test"
    EXPOSURE = "exposure"
    PHANTOM = "phantom"

    @property
    def prefix(self) -> str:
        """Short label prefix used for non-model nodes."""
        return _NODE_TYPE_PREFIXES[self]

    @property
    def label(self) -> str:
        return self.value


_NODE_TYPE_PREFIXES: dict[NodeType, str] = {
    NodeType.MODEL: "",
    NodeType.SOURCE: "src:",
    NodeType.SEED: "seed:",
    NodeType.SNAPSHOT: "snap:",
    NodeType.TEST: "test:",
    NodeType.EXPOSURE: "exp:",
    NodeType.PHANTOM: "?:",
}


class EdgeType(Enum):
    """How one artifact depends on another."""

    REF = "ref"
    SOURCE = "source"
    TEST = "test"
    EXPOSURE = "exposure"


@dataclass(frozen=True)
class NodeData:
    """Payload for one graph node."""

    unique_id: str
    label: str
    node_type: NodeType
    file_path: Path | None = None
    description: str | None = None
    materialization: str | None = None
    tags: tuple[str, ...] = ()

    def display_name(self) -> str:
        """Label with a type prefix for anything that is not a model."""
        prefix = self.node_type.prefix
        return f"{prefix}{self.label}" if prefix else self.label


@dataclass(frozen=True)
class EdgeData:
    source: NodeIndex
    target: NodeIndex
    edge_type: EdgeType


@dataclass
class LineageGraph:
    """Directed graph with dense node ids and adjacency lists.

    The graph is built once (``add_node`` / ``add_edge``) and treated as
    read-only afterwards.
    """

    _nodes: list[NodeData] = field(default_factory=list)
    _edges: list[EdgeData] = field(default_factory=list)
    _outgoing: list[list[int]] = field(default_factory=list)
    _incoming: list[list[int]] = field(default_factory=list)

    def add_node(self, data: NodeData) -> NodeIndex:
        self._nodes.append(data)
        self._outgoing.append([])
        self._incoming.append([])
        return len(self._nodes) - 1

    def add_edge(self, source: NodeIndex, target: NodeIndex, edge_type: EdgeType = EdgeType.REF) -> int:
        for idx in (source, target):
            if not 0 <= idx < len(self._nodes):
                raise IndexError(f"node index out of range: {idx}")
        edge_idx = len(self._edges)
        self._edges.append(EdgeData(source=source, target=target, edge_type=edge_type))
        self._outgoing[source].append(edge_idx)
        self._incoming[target].append(edge_idx)
        return edge_idx

    def __getitem__(self, idx: NodeIndex) -> NodeData:
        return self._nodes[idx]

    def __len__(self) -> int:
        return len(self._nodes)

    def node_count(self) -> int:
        return len(self._nodes)

    def edge_count(self) -> int:
        return len(self._edges)

    def node_indices(self) -> range:
        return range(len(self._nodes))

    def edges(self) -> Iterator[EdgeData]:
        return iter(self._edges)

    def outgoing_edges(self, idx: NodeIndex) -> list[EdgeData]:
        return [self._edges[e] for e in self._outgoing[idx]]

    def incoming_edges(self, idx: NodeIndex) -> list[EdgeData]:
        return [self._edges[e] for e in self._incoming[idx]]

    def successors(self, idx: NodeIndex) -> list[NodeIndex]:
        """Downstream neighbours in edge insertion order."""
        return [self._edges[e].target for e in self._outgoing[idx]]

    def predecessors(self, idx: NodeIndex) -> list[NodeIndex]:
        """Upstream neighbours in edge insertion order."""
        return [self._edges[e].source for e in self._incoming[idx]]

    def find_by_unique_id(self, unique_id: str) -> NodeIndex | None:
        for idx, node in enumerate(self._nodes):
            if node.unique_id == unique_id:
                return idx
        return None

    def toposort(self) -> list[NodeIndex]:
        """Return a topological order, lowest node id first among ready nodes.

        Raises ``CycleError`` when the graph contains a cycle.
        """
        indegree = [len(incoming) for incoming in self._incoming]
        ready = [idx for idx, degree in enumerate(indegree) if degree == 0]
        heapq.heapify(ready)
        order: list[NodeIndex] = []
        while ready:
            idx = heapq.heappop(ready)
            order.append(idx)
            for succ in self.successors(idx):
                indegree[succ] -= 1
                if indegree[succ] == 0:
                    heapq.heappush(ready, succ)
        if len(order) != len(self._nodes):
            stuck = sorted(idx for idx, degree in enumerate(indegree) if degree > 0)
            labels = ", ".join(self._nodes[idx].label for idx in stuck[:5])
            raise CycleError(f"graph contains a cycle involving: {labels}")
        return order

    def ancestors(self, idx: NodeIndex) -> set[NodeIndex]:
        """All nodes with a path to ``idx`` (excluding ``idx`` itself)."""
        return self._reachable(idx, self.predecessors)

    def descendants(self, idx: NodeIndex) -> set[NodeIndex]:
        """All nodes reachable from ``idx`` (excluding ``idx`` itself)."""
        return self._reachable(idx, self.successors)

    @staticmethod
    def _reachable(start: NodeIndex, neighbours) -> set[NodeIndex]:
        seen: set[NodeIndex] = set()
        stack = list(neighbours(start))
        while stack:
            current = stack.pop()
            if current in seen or current == start:
                continue
            seen.add(current)
            stack.extend(neighbours(current))
        return seen
