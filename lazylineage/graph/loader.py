"""Load a lineage graph from a plain JSON description.

Expected shape::

    {
      "nodes": [{"unique_id": "model.orders", "label": "orders", "type": "model",
                 "file_path": "models/marts/orders.sql"}],
      "edges": [{"source": "model.stg_orders", "target": "model.orders", "type": "ref"}]
    }

Edges refer to nodes by ``unique_id``. Unknown node or edge types fall back to
``model`` / ``ref``.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from .types import EdgeType, LineageGraph, NodeData, NodeType

logger = logging.getLogger(__name__)


class GraphLoadError(Exception):
    """The graph file is missing, unreadable, or structurally invalid."""


def _coerce_node_type(value: object) -> NodeType:
    try:
        return NodeType(str(value).lower())
    except ValueError:
        return NodeType.MODEL


def _coerce_edge_type(value: object) -> EdgeType:
    try:
        return EdgeType(str(value).lower())
    except ValueError:
        return EdgeType.REF


def _optional_str(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


def graph_from_dict(payload: dict[str, object]) -> LineageGraph:
    """Build a ``LineageGraph`` from decoded JSON data."""
    raw_nodes = payload.get("nodes")
    raw_edges = payload.get("edges", [])
    if not isinstance(raw_nodes, list):
        raise GraphLoadError("graph description needs a 'nodes' list")
    if not isinstance(raw_edges, list):
        raise GraphLoadError("'edges' must be a list")

    graph = LineageGraph()
    by_unique_id: dict[str, int] = {}
    for position, raw in enumerate(raw_nodes):
        if not isinstance(raw, dict):
            raise GraphLoadError(f"node #{position} is not an object")
        unique_id = raw.get("unique_id")
        if not isinstance(unique_id, str) or not unique_id:
            raise GraphLoadError(f"node #{position} has no unique_id")
        if unique_id in by_unique_id:
            raise GraphLoadError(f"duplicate node unique_id: {unique_id}")
        label = raw.get("label")
        if not isinstance(label, str) or not label:
            label = unique_id.rsplit(".", 1)[-1]
        file_path = _optional_str(raw.get("file_path"))
        tags = raw.get("tags")
        by_unique_id[unique_id] = graph.add_node(
            NodeData(
                unique_id=unique_id,
                label=label,
                node_type=_coerce_node_type(raw.get("type", "model")),
                file_path=Path(file_path) if file_path is not None else None,
                description=_optional_str(raw.get("description")),
                materialization=_optional_str(raw.get("materialization")),
                tags=tuple(str(tag) for tag in tags) if isinstance(tags, list) else (),
            )
        )

    for position, raw in enumerate(raw_edges):
        if not isinstance(raw, dict):
            raise GraphLoadError(f"edge #{position} is not an object")
        source = by_unique_id.get(str(raw.get("source")))
        target = by_unique_id.get(str(raw.get("target")))
        if source is None or target is None:
            raise GraphLoadError(
                f"edge #{position} references unknown node: {raw.get('source')!r} -> {raw.get('target')!r}"
            )
        graph.add_edge(source, target, _coerce_edge_type(raw.get("type", "ref")))

    logger.debug("loaded graph with %d nodes and %d edges", graph.node_count(), graph.edge_count())
    return graph


def load_graph_json(path: Path) -> LineageGraph:
    """Read and decode ``path`` into a ``LineageGraph``."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise GraphLoadError(f"cannot read {path}: {exc}") from exc
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise GraphLoadError(f"{path} is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise GraphLoadError(f"{path} must contain a JSON object")
    return graph_from_dict(payload)
