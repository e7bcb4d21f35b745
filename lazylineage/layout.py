"""Layered (Sugiyama-style) layout for lineage DAGs.

Turns a graph into ``(layer, position)`` coordinates:

1. longest-path layering over a topological order,
2. a few sweeps of the barycenter heuristic to reduce edge crossings,
3. position lookup built from the final per-layer order.

The crossing reduction is a heuristic. It settles visually after a small
fixed number of sweeps and makes no attempt at a global optimum.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass, field

from .graph import LineageGraph, NodeIndex

CROSSING_REDUCTION_PASSES = 3


@dataclass(frozen=True)
class LayoutResult:
    """Per-node grid coordinates plus per-layer draw order."""

    positions: dict[NodeIndex, tuple[int, int]] = field(default_factory=dict)
    layers: tuple[tuple[NodeIndex, ...], ...] = ()

    @property
    def num_layers(self) -> int:
        return len(self.layers)

    @property
    def max_layer_width(self) -> int:
        return max((len(layer) for layer in self.layers), default=0)

    def node_order(self) -> list[NodeIndex]:
        """Flat traversal: layer by layer, top to bottom within a layer."""
        return [node for layer in self.layers for node in layer]


def assign_layers(graph: LineageGraph) -> list[list[NodeIndex]]:
    """Group nodes by longest distance from any root.

    ``graph.toposort`` raises ``CycleError`` for cyclic input; no fallback
    layering is attempted.
    """
    layer_of: dict[NodeIndex, int] = {}
    topo = graph.toposort()
    for node in topo:
        preds = [layer_of[pred] for pred in graph.predecessors(node)]
        layer_of[node] = max(preds) + 1 if preds else 0

    if not layer_of:
        return []
    layers: list[list[NodeIndex]] = [[] for _ in range(max(layer_of.values()) + 1)]
    for node in topo:
        layers[layer_of[node]].append(node)
    return [layer for layer in layers if layer]


def _sort_by_barycenter(
    layer: list[NodeIndex],
    adjacent: list[NodeIndex],
    neighbours: Callable[[NodeIndex], list[NodeIndex]],
) -> list[NodeIndex]:
    adjacent_positions = {node: idx for idx, node in enumerate(adjacent)}

    def barycenter(node: NodeIndex) -> float:
        placed = [adjacent_positions[n] for n in neighbours(node) if n in adjacent_positions]
        if not placed:
            return math.inf
        return sum(placed) / len(placed)

    # ``sorted`` is stable, so equal weights keep their current order.
    return sorted(layer, key=barycenter)


def reduce_crossings(
    graph: LineageGraph,
    layers: list[list[NodeIndex]],
    passes: int = CROSSING_REDUCTION_PASSES,
) -> list[list[NodeIndex]]:
    ordered = [list(layer) for layer in layers]
    for _ in range(passes):
        for idx in range(1, len(ordered)):
            ordered[idx] = _sort_by_barycenter(ordered[idx], ordered[idx - 1], graph.predecessors)
        for idx in range(len(ordered) - 2, -1, -1):
            ordered[idx] = _sort_by_barycenter(ordered[idx], ordered[idx + 1], graph.successors)
    return ordered


def sugiyama_layout(graph: LineageGraph) -> LayoutResult:
    """Compute a deterministic layered layout for ``graph``."""
    if graph.node_count() == 0:
        return LayoutResult()

    ordered = reduce_crossings(graph, assign_layers(graph))
    positions: dict[NodeIndex, tuple[int, int]] = {}
    for layer_idx, layer in enumerate(ordered):
        for pos, node in enumerate(layer):
            positions[node] = (layer_idx, pos)
    return LayoutResult(positions=positions, layers=tuple(tuple(layer) for layer in ordered))
