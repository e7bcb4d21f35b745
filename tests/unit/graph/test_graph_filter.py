"""Tests for focus, selector and node-type narrowing of lineage graphs."""

from __future__ import annotations

import unittest

from lazylineage.graph import (
    CycleError,
    ModelNotFoundError,
    NodeTypeFilter,
    Selector,
    SelectorKind,
    apply_selectors,
    filter_graph,
    graph_from_dict,
    parse_selectors,
)


def _chain_graph():
    return graph_from_dict(
        {
            "nodes": [
                {"unique_id": "source.raw_orders", "type": "source", "file_path": "models/staging/schema.yml"},
                {"unique_id": "model.stg_orders", "file_path": "models/staging/stg_orders.sql", "tags": ["nightly"]},
                {"unique_id": "model.orders", "file_path": "models/marts/orders.sql", "tags": ["daily"]},
                {"unique_id": "exposure.dashboard", "type": "exposure"},
            ],
            "edges": [
                {"source": "source.raw_orders", "target": "model.stg_orders", "type": "source"},
                {"source": "model.stg_orders", "target": "model.orders"},
                {"source": "model.orders", "target": "exposure.dashboard", "type": "exposure"},
            ],
        }
    )


def _labels(graph) -> list[str]:
    return [graph[idx].label for idx in graph.node_indices()]


class SelectorParsingTests(unittest.TestCase):
    def test_prefixes_pick_the_selector_kind(self) -> None:
        self.assertEqual(
            parse_selectors("tag:nightly,path:models/staging,orders"),
            [
                Selector(SelectorKind.TAG, "nightly"),
                Selector(SelectorKind.PATH, "models/staging"),
                Selector(SelectorKind.MODEL_NAME, "orders"),
            ],
        )

    def test_whitespace_and_blank_items_are_ignored(self) -> None:
        self.assertEqual(
            parse_selectors(" tag:nightly , orders, "),
            [Selector(SelectorKind.TAG, "nightly"), Selector(SelectorKind.MODEL_NAME, "orders")],
        )
        self.assertEqual(parse_selectors(""), [])

    def test_selectors_are_or_combined(self) -> None:
        graph = _chain_graph()
        matched = apply_selectors(graph, parse_selectors("tag:daily,stg_orders"))
        self.assertEqual({graph[idx].label for idx in matched}, {"orders", "stg_orders"})

    def test_path_selector_needs_a_file_path(self) -> None:
        graph = _chain_graph()
        matched = apply_selectors(graph, parse_selectors("path:models"))
        self.assertNotIn(graph.find_by_unique_id("exposure.dashboard"), matched)
        self.assertEqual(len(matched), 3)


class FilterGraphTests(unittest.TestCase):
    def test_no_options_keeps_everything(self) -> None:
        graph = _chain_graph()
        narrowed = filter_graph(graph)
        self.assertEqual(_labels(narrowed), _labels(graph))
        self.assertEqual(narrowed.edge_count(), 3)

    def test_focus_with_bounded_hops(self) -> None:
        narrowed = filter_graph(_chain_graph(), focus_model="orders", upstream=1, downstream=0)
        self.assertEqual(_labels(narrowed), ["stg_orders", "orders"])
        self.assertEqual(narrowed.edge_count(), 1)

    def test_focus_defaults_to_unbounded_hops(self) -> None:
        narrowed = filter_graph(_chain_graph(), focus_model="stg_orders")
        self.assertEqual(narrowed.node_count(), 4)

    def test_focus_accepts_model_unique_id_suffix(self) -> None:
        graph = graph_from_dict({"nodes": [{"unique_id": "model.orders", "label": "Orders"}]})
        self.assertEqual(filter_graph(graph, focus_model="orders").node_count(), 1)

    def test_unknown_focus_model_raises(self) -> None:
        with self.assertRaises(ModelNotFoundError):
            filter_graph(_chain_graph(), focus_model="missing")

    def test_selectors_intersect_with_focus(self) -> None:
        narrowed = filter_graph(_chain_graph(), focus_model="orders", selectors=parse_selectors("tag:nightly"))
        self.assertEqual(_labels(narrowed), ["stg_orders"])

    def test_selectors_without_focus_replace_the_node_set(self) -> None:
        narrowed = filter_graph(_chain_graph(), selectors=parse_selectors("path:models/staging"))
        self.assertEqual(_labels(narrowed), ["raw_orders", "stg_orders"])
        self.assertEqual(narrowed.edge_count(), 1)

    def test_selector_without_matches_gives_empty_graph(self) -> None:
        narrowed = filter_graph(_chain_graph(), selectors=parse_selectors("tag:weekly"))
        self.assertEqual(narrowed.node_count(), 0)

    def test_type_filter_drops_optional_types_only(self) -> None:
        graph = graph_from_dict(
            {
                "nodes": [
                    {"unique_id": "model.orders"},
                    {"unique_id": "test.orders_positive", "type": "test"},
                    {"unique_id": "seed.countries", "type": "seed"},
                    {"unique_id": "snapshot.orders_hist", "type": "snapshot"},
                    {"unique_id": "source.raw_orders", "type": "source"},
                ],
                "edges": [
                    {"source": "model.orders", "target": "test.orders_positive", "type": "test"},
                    {"source": "seed.countries", "target": "model.orders"},
                    {"source": "model.orders", "target": "snapshot.orders_hist"},
                ],
            }
        )
        nothing_optional = NodeTypeFilter(
            include_tests=False,
            include_seeds=False,
            include_snapshots=False,
            include_exposures=False,
        )
        self.assertEqual(_labels(filter_graph(graph, type_filter=nothing_optional)), ["orders", "raw_orders"])

        tests_only = NodeTypeFilter(include_seeds=False, include_snapshots=False, include_exposures=False)
        narrowed = filter_graph(graph, type_filter=tests_only)
        self.assertEqual(_labels(narrowed), ["orders", "orders_positive", "raw_orders"])
        self.assertEqual(narrowed.edge_count(), 1)

    def test_cyclic_graph_is_rejected(self) -> None:
        graph = graph_from_dict(
            {
                "nodes": [{"unique_id": "model.a"}, {"unique_id": "model.b"}],
                "edges": [{"source": "model.a", "target": "model.b"}, {"source": "model.b", "target": "model.a"}],
            }
        )
        with self.assertRaises(CycleError):
            filter_graph(graph)


if __name__ == "__main__":
    unittest.main()
