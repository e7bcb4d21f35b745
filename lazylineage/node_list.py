"""Directory-style grouping for the collapsible node list pane."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path, PurePath

from .graph import LineageGraph, NodeData, NodeIndex, NodeType

ROOT_GROUP_LABEL = "(root)"


@dataclass(frozen=True)
class NodeGroup:
    key: str
    label: str
    nodes: tuple[NodeIndex, ...]


@dataclass(frozen=True)
class GroupHeader:
    """List row for group ``group_index`` in the group list."""

    group_index: int


@dataclass(frozen=True)
class NodeRow:
    node: NodeIndex


NodeListEntry = GroupHeader | NodeRow


def group_key_for_node(node: NodeData, project_dir: Path | None = None) -> str:
    """Parent directory of the node's file, or a type-based sentinel."""
    if node.file_path is None:
        if node.node_type is NodeType.EXPOSURE:
            return "(exposures)"
        if node.node_type is NodeType.PHANTOM:
            return "(unresolved)"
        return "(other)"

    path: PurePath = node.file_path
    if path.is_absolute() and project_dir is not None:
        try:
            path = path.relative_to(project_dir)
        except ValueError:
            pass
    parent = path.parent
    if parent == PurePath("."):
        return ""
    return parent.as_posix()


def build_node_groups(
    node_order: list[NodeIndex],
    graph: LineageGraph,
    project_dir: Path | None = None,
) -> list[NodeGroup]:
    """Partition ``node_order`` by group key, keeping first-seen group order."""
    members: dict[str, list[NodeIndex]] = {}
    for node in node_order:
        members.setdefault(group_key_for_node(graph[node], project_dir), []).append(node)
    return [
        NodeGroup(key=key, label=key if key else ROOT_GROUP_LABEL, nodes=tuple(nodes))
        for key, nodes in members.items()
    ]


def build_node_list_entries(groups: list[NodeGroup], collapsed: set[str]) -> list[NodeListEntry]:
    """Flatten groups into rows, hiding members of collapsed groups."""
    entries: list[NodeListEntry] = []
    for group_index, group in enumerate(groups):
        entries.append(GroupHeader(group_index))
        if group.key not in collapsed:
            entries.extend(NodeRow(node) for node in group.nodes)
    return entries


def group_index_for_node(groups: list[NodeGroup], node: NodeIndex) -> int | None:
    for group_index, group in enumerate(groups):
        if node in group.nodes:
            return group_index
    return None


def entry_index_for_node(entries: list[NodeListEntry], node: NodeIndex) -> int | None:
    for idx, entry in enumerate(entries):
        if isinstance(entry, NodeRow) and entry.node == node:
            return idx
    return None


def entry_index_for_group(entries: list[NodeListEntry], group_index: int) -> int | None:
    for idx, entry in enumerate(entries):
        if isinstance(entry, GroupHeader) and entry.group_index == group_index:
            return idx
    return None
