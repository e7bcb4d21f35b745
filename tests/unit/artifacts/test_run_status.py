"""Tests for run-result loading, freshness and merging."""

from __future__ import annotations

import json
import os
import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path

from lazylineage import artifacts
from lazylineage.artifacts import (
    NEVER_RUN,
    Error,
    Outdated,
    Skipped,
    Success,
    load_run_status_map,
    reload_run_status,
    status_label,
    status_symbol,
)
from lazylineage.graph import graph_from_dict

_COMPLETED = "2024-05-01T12:00:00.000000Z"


def _write_results(project: Path, results: list[dict[str, object]]) -> None:
    target = project / "target"
    target.mkdir(exist_ok=True)
    (target / "run_results.json").write_text(json.dumps({"results": results}), encoding="utf-8")


def _result(unique_id: str, status: str, message: str | None = None) -> dict[str, object]:
    return {
        "unique_id": unique_id,
        "status": status,
        "message": message,
        "timing": [{"name": "execute", "completed_at": _COMPLETED}],
    }


def _graph():
    return graph_from_dict(
        {
            "nodes": [
                {"unique_id": "model.stg_orders", "file_path": "models/stg_orders.sql"},
                {"unique_id": "model.orders", "file_path": "models/orders.sql"},
                {"unique_id": "model.customers"},
            ]
        }
    )


class RunStatusTests(unittest.TestCase):
    def test_missing_results_file_means_never_run(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            self.assertEqual(load_run_status_map(_graph(), Path(tmp)), {})

    def test_malformed_results_file_is_treated_as_missing(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            project = Path(tmp)
            (project / "target").mkdir()
            (project / "target" / "run_results.json").write_text("[1, 2", encoding="utf-8")
            with self.assertLogs("lazylineage.artifacts", level="WARNING"):
                self.assertEqual(load_run_status_map(_graph(), project), {})

    def test_statuses_match_on_simplified_unique_ids(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            project = Path(tmp)
            _write_results(
                project,
                [
                    _result("model.jaffle_shop.stg_orders", "success"),
                    _result("model.jaffle_shop.orders", "error", "relation does not exist"),
                ],
            )
            status = load_run_status_map(_graph(), project)

        self.assertIsInstance(status["model.stg_orders"], Success)
        self.assertEqual(status["model.stg_orders"].completed_at, datetime(2024, 5, 1, 12, tzinfo=timezone.utc))
        self.assertEqual(status["model.orders"], Error("relation does not exist", datetime(2024, 5, 1, 12, tzinfo=timezone.utc)))
        self.assertIs(status["model.customers"], NEVER_RUN)

    def test_success_becomes_outdated_when_file_is_newer(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            project = Path(tmp)
            (project / "models").mkdir()
            source = project / "models" / "stg_orders.sql"
            source.write_text("select 1\n", encoding="utf-8")
            later = datetime(2024, 6, 1, tzinfo=timezone.utc).timestamp()
            os.utime(source, (later, later))
            _write_results(project, [_result("model.jaffle_shop.stg_orders", "success")])

            status = load_run_status_map(_graph(), project)["model.stg_orders"]

        self.assertIsInstance(status, Outdated)
        self.assertEqual(status.kind, "outdated")

    def test_reload_merges_and_keeps_absent_nodes(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            project = Path(tmp)
            existing = {"model.customers": Skipped(), "model.orders": NEVER_RUN}
            self.assertFalse(reload_run_status(existing, _graph(), project))

            _write_results(project, [_result("model.jaffle_shop.orders", "pass")])
            self.assertTrue(reload_run_status(existing, _graph(), project))

        self.assertIsInstance(existing["model.orders"], Success)
        self.assertEqual(existing["model.customers"], Skipped())
        self.assertNotIn("model.stg_orders", existing)

    def test_symbols_and_labels(self) -> None:
        self.assertEqual(status_symbol(NEVER_RUN), "?")
        self.assertEqual(status_symbol(Error("boom")), "✗")
        self.assertEqual(status_label(Error("boom")), "Error: boom")
        self.assertEqual(status_label(NEVER_RUN), "Never run")
        self.assertEqual(artifacts.simplify_dbt_unique_id("model.proj.orders"), "model.orders")
        self.assertIsNone(artifacts.simplify_dbt_unique_id("orders"))


if __name__ == "__main__":
    unittest.main()
