"""Lineage graph model and graph-level analyses."""

from .filter import (
    ModelNotFoundError,
    NodeTypeFilter,
    Selector,
    SelectorKind,
    apply_selectors,
    filter_graph,
    parse_selectors,
)
from .impact import ImpactReport, ImpactSeverity, ImpactedNode, classify_severity, compute_impact, find_longest_path
from .loader import GraphLoadError, graph_from_dict, load_graph_json
from .types import CycleError, EdgeData, EdgeType, LineageGraph, NodeData, NodeIndex, NodeType

__all__ = [
    "CycleError",
    "EdgeData",
    "EdgeType",
    "GraphLoadError",
    "ImpactReport",
    "ImpactSeverity",
    "ImpactedNode",
    "LineageGraph",
    "ModelNotFoundError",
    "NodeData",
    "NodeIndex",
    "NodeType",
    "NodeTypeFilter",
    "Selector",
    "SelectorKind",
    "apply_selectors",
    "classify_severity",
    "compute_impact",
    "filter_graph",
    "find_longest_path",
    "graph_from_dict",
    "load_graph_json",
    "parse_selectors",
]
