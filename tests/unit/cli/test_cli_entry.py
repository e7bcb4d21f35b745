"""CLI argument handling and startup errors."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from lazylineage import cli


def _write_graph(path: Path, edges: list[dict[str, str]] | None = None) -> None:
    payload = {
        "nodes": [{"unique_id": "model.stg_orders"}, {"unique_id": "model.orders"}],
        "edges": edges if edges is not None else [{"source": "model.stg_orders", "target": "model.orders"}],
    }
    path.write_text(json.dumps(payload), encoding="utf-8")


class CliMainTests(unittest.TestCase):
    def tearDown(self) -> None:
        cli.configure_logging(None)

    def test_launches_app_with_graph_project_and_theme(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            graph_path = root / "graph.json"
            _write_graph(graph_path)
            with (
                mock.patch("lazylineage.cli.sys.stdin") as stdin,
                mock.patch("lazylineage.cli.sys.stdout") as stdout,
                mock.patch("lazylineage.cli.run_app") as run_app,
            ):
                stdin.isatty.return_value = True
                stdout.isatty.return_value = True
                cli.main([str(graph_path), "--project-dir", str(root), "--theme", "ocean"])

        run_app.assert_called_once()
        graph, project_dir, theme = run_app.call_args.args
        self.assertEqual(graph.node_count(), 2)
        self.assertEqual(project_dir, root)
        self.assertEqual(theme, "ocean")

    def test_project_dir_defaults_to_cwd(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            _write_graph(root / "graph.json")
            previous_cwd = Path.cwd()
            try:
                os.chdir(root)
                with (
                    mock.patch("lazylineage.cli.sys.stdin") as stdin,
                    mock.patch("lazylineage.cli.sys.stdout") as stdout,
                    mock.patch("lazylineage.cli.run_app") as run_app,
                ):
                    stdin.isatty.return_value = True
                    stdout.isatty.return_value = True
                    cli.main(["graph.json"])
            finally:
                os.chdir(previous_cwd)

        self.assertEqual(run_app.call_args.args[1], root)

    def test_missing_graph_file_exits(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(SystemExit) as ctx:
                cli.main([str(Path(tmp) / "absent.json"), "--project-dir", tmp])
        self.assertIn("Graph file not found", str(ctx.exception))

    def test_invalid_graph_exits_with_message(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            graph_path = Path(tmp) / "graph.json"
            graph_path.write_text(json.dumps({"edges": []}), encoding="utf-8")
            with self.assertRaises(SystemExit) as ctx:
                cli.main([str(graph_path), "--project-dir", tmp])
        self.assertIn("Could not load graph", str(ctx.exception))

    def test_cyclic_graph_exits_before_touching_terminal(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            graph_path = Path(tmp) / "graph.json"
            _write_graph(
                graph_path,
                [
                    {"source": "model.stg_orders", "target": "model.orders"},
                    {"source": "model.orders", "target": "model.stg_orders"},
                ],
            )
            with mock.patch("lazylineage.cli.run_app") as run_app, self.assertRaises(SystemExit) as ctx:
                cli.main([str(graph_path), "--project-dir", tmp])
        run_app.assert_not_called()
        self.assertIn("Cannot lay out graph", str(ctx.exception))

    def test_non_interactive_terminal_is_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            graph_path = Path(tmp) / "graph.json"
            _write_graph(graph_path)
            with (
                mock.patch("lazylineage.cli.sys.stdin") as stdin,
                mock.patch("lazylineage.cli.run_app") as run_app,
                self.assertRaises(SystemExit) as ctx,
            ):
                stdin.isatty.return_value = False
                cli.main([str(graph_path), "--project-dir", tmp])
        run_app.assert_not_called()
        self.assertIn("interactive terminal", str(ctx.exception))

    def test_focus_and_type_flags_narrow_graph_before_launch(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            graph_path = root / "graph.json"
            payload = {
                "nodes": [
                    {"unique_id": "model.stg_orders"},
                    {"unique_id": "model.orders"},
                    {"unique_id": "model.unrelated"},
                    {"unique_id": "exposure.dashboard", "type": "exposure"},
                ],
                "edges": [
                    {"source": "model.stg_orders", "target": "model.orders"},
                    {"source": "model.orders", "target": "exposure.dashboard", "type": "exposure"},
                ],
            }
            graph_path.write_text(json.dumps(payload), encoding="utf-8")
            with (
                mock.patch("lazylineage.cli.sys.stdin") as stdin,
                mock.patch("lazylineage.cli.sys.stdout") as stdout,
                mock.patch("lazylineage.cli.run_app") as run_app,
            ):
                stdin.isatty.return_value = True
                stdout.isatty.return_value = True
                cli.main([str(graph_path), "--project-dir", str(root), "-m", "orders", "-u", "1", "--no-include-exposures"])

        graph = run_app.call_args.args[0]
        self.assertEqual([graph[idx].label for idx in graph.node_indices()], ["stg_orders", "orders"])

    def test_unknown_focus_model_exits(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            graph_path = Path(tmp) / "graph.json"
            _write_graph(graph_path)
            with mock.patch("lazylineage.cli.run_app") as run_app, self.assertRaises(SystemExit) as ctx:
                cli.main([str(graph_path), "--project-dir", tmp, "--model", "missing"])
        run_app.assert_not_called()
        self.assertIn("Model not found: missing", str(ctx.exception))

    def test_narrowing_flags_default_to_whole_graph(self) -> None:
        args = cli.build_parser().parse_args(["graph.json"])
        self.assertIsNone(args.model)
        self.assertIsNone(args.upstream)
        self.assertEqual(args.select, "")
        self.assertTrue(args.include_tests and args.include_seeds and args.include_snapshots and args.include_exposures)

    def test_negative_hop_count_is_rejected(self) -> None:
        with mock.patch("sys.stderr"), self.assertRaises(SystemExit):
            cli.build_parser().parse_args(["graph.json", "--upstream", "-1"])

    def test_log_file_receives_package_logs(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            log_path = Path(tmp) / "lazylineage.log"
            cli.configure_logging(str(log_path), "debug")
            logging.getLogger("lazylineage.graph.loader").debug("hello from the loader")
            cli.configure_logging(None)
            self.assertIn("hello from the loader", log_path.read_text(encoding="utf-8"))

    def test_log_file_defaults_from_environment(self) -> None:
        with mock.patch.dict(os.environ, {cli.LOG_ENV_VAR: "/tmp/from-env.log"}):
            args = cli.build_parser().parse_args(["graph.json"])
        self.assertEqual(args.log_file, "/tmp/from-env.log")
        self.assertEqual(args.log_level, "INFO")


if __name__ == "__main__":
    unittest.main()
