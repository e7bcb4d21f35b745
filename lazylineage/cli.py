"""Command-line front door for lazylineage.

Parses CLI options, configures logging, and loads the lineage graph.
Then dispatches into the interactive runtime.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from .graph import (
    CycleError,
    GraphLoadError,
    LineageGraph,
    ModelNotFoundError,
    NodeTypeFilter,
    filter_graph,
    load_graph_json,
    parse_selectors,
)
from .runtime import run_app
from .ui_theme import available_theme_names

LOG_ENV_VAR = "LAZYLINEAGE_LOG"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

logger = logging.getLogger(__name__)


def _non_negative_int(value: str) -> int:
    """argparse type for hop counts."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed < 0:
        raise argparse.ArgumentTypeError("value must be >= 0")
    return parsed


def configure_logging(log_file: str | None, level: str = "INFO") -> None:
    """Route package logs to ``log_file``; the TUI owns the terminal otherwise."""
    package_logger = logging.getLogger("lazylineage")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.propagate = False
    if not log_file:
        package_logger.addHandler(logging.NullHandler())
        return
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger.addHandler(handler)
    package_logger.setLevel(level.upper())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lazylineage",
        description="Explore a data-pipeline lineage graph and run dbt on parts of it.",
    )
    parser.add_argument("graph", help="Path to the lineage graph JSON file.")
    parser.add_argument(
        "--project-dir",
        default=None,
        help="Project directory for run results and commands. Defaults to current directory.",
    )
    parser.add_argument(
        "-m",
        "--model",
        default=None,
        help="Focus on this model and its neighbourhood.",
    )
    parser.add_argument(
        "-u",
        "--upstream",
        type=_non_negative_int,
        default=None,
        help="With --model: keep at most N upstream hops (default: all).",
    )
    parser.add_argument(
        "-d",
        "--downstream",
        type=_non_negative_int,
        default=None,
        help="With --model: keep at most N downstream hops (default: all).",
    )
    parser.add_argument(
        "-s",
        "--select",
        default="",
        help="Comma-separated selectors: tag:NAME, path:PREFIX or a model name.",
    )
    for kind in ("tests", "seeds", "snapshots", "exposures"):
        parser.add_argument(
            f"--include-{kind}",
            action=argparse.BooleanOptionalAction,
            default=True,
            help=f"Keep {kind} in the graph.",
        )
    parser.add_argument(
        "--theme",
        default=None,
        help=f"UI theme name ({', '.join(available_theme_names())}).",
    )
    parser.add_argument(
        "--log-file",
        default=os.environ.get(LOG_ENV_VAR),
        help=f"Write logs to this file (default: ${LOG_ENV_VAR}, otherwise no logging).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Log level for --log-file.",
    )
    return parser


def load_graph(path: Path) -> LineageGraph:
    """Load ``path`` or exit with a readable message."""
    if not path.is_file():
        raise SystemExit(f"Graph file not found: {path}")
    try:
        return load_graph_json(path)
    except GraphLoadError as exc:
        raise SystemExit(f"Could not load graph: {exc}") from exc


def narrow_graph(graph: LineageGraph, args: argparse.Namespace) -> LineageGraph:
    """Apply focus, selector and type options; exits on an unknown model.

    Raises ``CycleError`` when ``graph`` is not a DAG.
    """
    type_filter = NodeTypeFilter(
        include_tests=args.include_tests,
        include_seeds=args.include_seeds,
        include_snapshots=args.include_snapshots,
        include_exposures=args.include_exposures,
    )
    try:
        narrowed = filter_graph(
            graph,
            focus_model=args.model,
            upstream=args.upstream,
            downstream=args.downstream,
            type_filter=type_filter,
            selectors=parse_selectors(args.select),
        )
    except ModelNotFoundError as exc:
        raise SystemExit(f"Model not found: {exc.args[0]}") from exc
    if narrowed.node_count() != graph.node_count():
        logger.info("narrowed graph to %d of %d nodes", narrowed.node_count(), graph.node_count())
    return narrowed


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and launch the explorer on a graph file."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_file, args.log_level)

    graph_path = Path(args.graph)
    project_dir = Path(args.project_dir) if args.project_dir else Path.cwd()
    if not project_dir.is_dir():
        raise SystemExit(f"Project directory not found: {project_dir}")

    graph = load_graph(graph_path)
    logger.info("loaded %s: %d nodes, %d edges", graph_path, graph.node_count(), graph.edge_count())
    try:
        graph = narrow_graph(graph, args)
    except CycleError as exc:
        logger.error("layout failed: %s", exc)
        raise SystemExit(f"Cannot lay out graph: {exc}") from exc

    if not sys.stdin.isatty() or not sys.stdout.isatty():
        raise SystemExit("lazylineage needs an interactive terminal.")

    run_app(graph, project_dir.resolve(), args.theme)


if __name__ == "__main__":
    main()
