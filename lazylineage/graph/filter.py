"""Narrow a lineage graph before browsing it.

A focus model keeps itself plus its neighbourhood up to a bounded number of
hops in each direction. Selectors (``tag:``, ``path:`` or a bare model name,
comma separated, OR-combined) intersect with that neighbourhood, or replace
it when no focus is given. Tests, seeds, snapshots and exposures can then be
dropped by type. The result is a fresh ``LineageGraph`` that keeps the
original relative node and edge order.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from .types import LineageGraph, NodeData, NodeIndex, NodeType


class ModelNotFoundError(LookupError):
    """Raised when the focus model does not name any node."""


@dataclass(frozen=True)
class NodeTypeFilter:
    """Which optional node types survive filtering.

    Models, sources and phantoms are always kept.
    """

    include_tests: bool = True
    include_seeds: bool = True
    include_snapshots: bool = True
    include_exposures: bool = True

    def includes(self, node_type: NodeType) -> bool:
        if node_type is NodeType.TEST:
            return self.include_tests
        if node_type is NodeType.SEED:
            return self.include_seeds
        if node_type is NodeType.SNAPSHOT:
            return self.include_snapshots
        if node_type is NodeType.EXPOSURE:
            return self.include_exposures
        return True


class SelectorKind(Enum):
    TAG = "tag"
    PATH = "path"
    MODEL_NAME = "name"


@dataclass(frozen=True)
class Selector:
    kind: SelectorKind
    value: str

    def matches(self, node: NodeData) -> bool:
        if self.kind is SelectorKind.TAG:
            return self.value in node.tags
        if self.kind is SelectorKind.PATH:
            return node.file_path is not None and node.file_path.as_posix().startswith(self.value)
        return node.label == self.value


def parse_selectors(text: str) -> list[Selector]:
    """Parse ``"tag:nightly,path:models/staging,orders"`` into selectors.

    Blank items (stray or trailing commas) are ignored.
    """
    selectors: list[Selector] = []
    for raw in text.split(","):
        item = raw.strip()
        if not item:
            continue
        if item.startswith("tag:"):
            selectors.append(Selector(SelectorKind.TAG, item[len("tag:") :]))
        elif item.startswith("path:"):
            selectors.append(Selector(SelectorKind.PATH, item[len("path:") :]))
        else:
            selectors.append(Selector(SelectorKind.MODEL_NAME, item))
    return selectors


def apply_selectors(graph: LineageGraph, selectors: Sequence[Selector]) -> set[NodeIndex]:
    """Nodes matching at least one selector."""
    return {idx for idx in graph.node_indices() if any(sel.matches(graph[idx]) for sel in selectors)}


def find_focus_node(graph: LineageGraph, model_name: str) -> NodeIndex:
    """Resolve ``model_name`` by label or as ``model.<name>``."""
    unique_id = f"model.{model_name}"
    for idx in graph.node_indices():
        node = graph[idx]
        if node.label == model_name or node.unique_id == unique_id:
            return idx
    raise ModelNotFoundError(model_name)


def collect_within(
    start: NodeIndex,
    neighbours: Callable[[NodeIndex], Iterable[NodeIndex]],
    max_depth: int | None,
) -> set[NodeIndex]:
    """Breadth-first set of nodes at most ``max_depth`` hops from ``start``.

    ``None`` means unbounded. ``start`` itself is not included.
    """
    collected: set[NodeIndex] = set()
    visited = {start}
    queue: deque[tuple[NodeIndex, int]] = deque([(start, 0)])
    while queue:
        node, depth = queue.popleft()
        if max_depth is not None and depth >= max_depth:
            continue
        for neighbour in neighbours(node):
            if neighbour in visited:
                continue
            visited.add(neighbour)
            collected.add(neighbour)
            queue.append((neighbour, depth + 1))
    return collected


def subgraph(graph: LineageGraph, keep: set[NodeIndex]) -> LineageGraph:
    """Copy of ``graph`` restricted to ``keep`` and the edges between them."""
    narrowed = LineageGraph()
    index_map: dict[NodeIndex, NodeIndex] = {}
    for idx in sorted(keep):
        index_map[idx] = narrowed.add_node(graph[idx])
    for edge in graph.edges():
        source = index_map.get(edge.source)
        target = index_map.get(edge.target)
        if source is not None and target is not None:
            narrowed.add_edge(source, target, edge.edge_type)
    return narrowed


def filter_graph(
    graph: LineageGraph,
    focus_model: str | None = None,
    upstream: int | None = None,
    downstream: int | None = None,
    type_filter: NodeTypeFilter | None = None,
    selectors: Sequence[Selector] = (),
) -> LineageGraph:
    """Build the narrowed graph described in the module docstring.

    Raises ``CycleError`` for cyclic input and ``ModelNotFoundError`` when
    ``focus_model`` matches nothing.
    """
    graph.toposort()
    type_filter = type_filter or NodeTypeFilter()

    if focus_model is not None:
        focus = find_focus_node(graph, focus_model)
        keep = {focus}
        keep |= collect_within(focus, graph.predecessors, upstream)
        keep |= collect_within(focus, graph.successors, downstream)
    else:
        keep = set(graph.node_indices())

    if selectors:
        matched = apply_selectors(graph, selectors)
        keep = keep & matched if focus_model is not None else matched

    keep = {idx for idx in keep if type_filter.includes(graph[idx].node_type)}
    return subgraph(graph, keep)
