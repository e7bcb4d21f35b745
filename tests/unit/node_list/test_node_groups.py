"""Tests for directory-style node grouping."""

from __future__ import annotations

import unittest
from pathlib import Path

from lazylineage.graph import LineageGraph, NodeData, NodeType
from lazylineage.node_list import (
    GroupHeader,
    NodeRow,
    build_node_groups,
    build_node_list_entries,
    group_key_for_node,
)


def _grouping_graph() -> LineageGraph:
    graph = LineageGraph()
    graph.add_node(NodeData("model.a", "a", NodeType.MODEL, file_path=Path("models/a.sql")))
    graph.add_node(NodeData("model.b", "b", NodeType.MODEL, file_path=Path("models/a/b.sql")))
    graph.add_node(NodeData("exposure.dash", "dash", NodeType.EXPOSURE))
    return graph


class NodeGroupTests(unittest.TestCase):
    def test_three_nodes_yield_three_groups_with_exposures_sentinel(self) -> None:
        groups = build_node_groups([0, 1, 2], _grouping_graph())
        self.assertEqual([group.key for group in groups], ["models", "models/a", "(exposures)"])
        self.assertIn("(exposures)", [group.label for group in groups])

    def test_group_order_follows_first_appearance(self) -> None:
        groups = build_node_groups([2, 1, 0], _grouping_graph())
        self.assertEqual([group.key for group in groups], ["(exposures)", "models/a", "models"])

    def test_sentinels_and_root_label(self) -> None:
        phantom = NodeData("phantom.x", "x", NodeType.PHANTOM)
        other = NodeData("source.y", "y", NodeType.SOURCE)
        top = NodeData("model.top", "top", NodeType.MODEL, file_path=Path("top.sql"))
        self.assertEqual(group_key_for_node(phantom), "(unresolved)")
        self.assertEqual(group_key_for_node(other), "(other)")
        self.assertEqual(group_key_for_node(top), "")

        graph = LineageGraph()
        graph.add_node(top)
        self.assertEqual(build_node_groups([0], graph)[0].label, "(root)")

    def test_absolute_paths_are_made_project_relative(self) -> None:
        project = Path("/work/project")
        node = NodeData("model.a", "a", NodeType.MODEL, file_path=project / "models" / "staging" / "a.sql")
        self.assertEqual(group_key_for_node(node, project), "models/staging")

    def test_collapsed_groups_hide_members(self) -> None:
        groups = build_node_groups([0, 1, 2], _grouping_graph())
        expanded = build_node_list_entries(groups, set())
        self.assertEqual(len(expanded), 6)
        self.assertEqual(expanded[0], GroupHeader(0))
        self.assertEqual(expanded[1], NodeRow(0))

        collapsed = build_node_list_entries(groups, {"models/a"})
        self.assertEqual(len(collapsed), 5)
        self.assertNotIn(NodeRow(1), collapsed)
        self.assertIn(GroupHeader(1), collapsed)


if __name__ == "__main__":
    unittest.main()
