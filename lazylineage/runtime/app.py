"""Runtime composition layer for lazylineage.

Builds the initial state from the graph, persisted config and run artifacts,
wires terminal I/O into the loop, and persists view preferences on exit.
"""

from __future__ import annotations

import logging
import shutil
import sys
from pathlib import Path

from ..artifacts import load_run_status_map
from ..graph import LineageGraph
from ..input import read_key
from ..render import render_frame
from ..ui_theme import UITheme, resolve_theme
from .config import (
    load_runner_wrapper,
    load_show_node_list,
    load_theme_name,
    load_zoom,
    save_show_node_list,
    save_theme_name,
    save_zoom,
)
from .loop import RuntimeLoopCallbacks, RuntimeLoopTiming, run_main_loop
from .state import AppState
from .terminal import TerminalController

logger = logging.getLogger(__name__)


def build_initial_state(graph: LineageGraph, project_dir: Path) -> AppState:
    """Lay out ``graph`` and seed the session from config and run results.

    Raises ``CycleError`` when ``graph`` is not a DAG.
    """
    run_status = load_run_status_map(graph, project_dir)
    logger.info("loaded run status for %d of %d nodes", len(run_status), graph.node_count())
    return AppState.from_graph(
        graph,
        project_dir,
        run_status,
        show_node_list=load_show_node_list(),
        zoom=load_zoom(),
        runner_wrapper=load_runner_wrapper(),
    )


def _terminal_size() -> tuple[int, int]:
    term = shutil.get_terminal_size((80, 24))
    return term.columns, term.lines


def _renderer(theme: UITheme):
    def render(state: AppState, columns: int, lines: int) -> None:
        render_frame(state, theme, columns, lines)

    return render


def run_app(graph: LineageGraph, project_dir: Path, theme_name: str | None = None) -> None:
    """Run the interactive explorer until the user quits."""
    state = build_initial_state(graph, project_dir)
    theme = resolve_theme(theme_name or load_theme_name())
    if theme_name:
        save_theme_name(theme.name)

    stdin_fd = sys.stdin.fileno()
    terminal = TerminalController(stdin_fd, sys.stdout.fileno())
    callbacks = RuntimeLoopCallbacks(
        read_key=read_key,
        render=_renderer(theme),
        terminal_size=_terminal_size,
    )
    try:
        run_main_loop(state, terminal, stdin_fd, RuntimeLoopTiming(), callbacks)
    finally:
        state.shutdown()
        save_show_node_list(state.show_node_list)
        save_zoom(state.zoom)
