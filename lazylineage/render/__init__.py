"""Rendering engine for the lineage view.

Computes the pane layout, composes node list, graph canvas, details pane,
overlays and help bar into full rows, and writes each frame with a single
``os.write``. Pane rectangles are recorded on the state for hit testing.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..ansi import fit_ansi_line, splice_ansi_line
from ..ui_theme import UITheme
from .canvas import render_graph_rows
from .geometry import Rect
from .help import build_status_line
from .panels import (
    boxed,
    confirm_lines,
    details_rows,
    filter_lines,
    node_list_rows,
    run_menu_lines,
    run_output_body,
    run_output_title,
)

if TYPE_CHECKING:
    from ..runtime.state import AppState

NODE_LIST_PERCENT = 20
DETAILS_PERCENT = 30
MIN_NODE_LIST_WIDTH = 16
MIN_DETAILS_WIDTH = 24
RUN_MENU_WIDTH = 42
FILTER_PANEL_WIDTH = 34


@dataclass(frozen=True)
class FrameLayout:
    """Screen rectangles for one frame; dividers sit between panes."""

    width: int
    height: int
    node_list: Rect | None
    graph_pane: Rect
    graph: Rect
    details: Rect


def compute_frame_layout(width: int, height: int, show_node_list: bool) -> FrameLayout:
    width = max(1, width)
    height = max(2, height)
    main_rows = height - 1
    details_w = max(MIN_DETAILS_WIDTH, width * DETAILS_PERCENT // 100)
    node_list: Rect | None = None
    x = 0
    if show_node_list:
        list_w = max(MIN_NODE_LIST_WIDTH, width * NODE_LIST_PERCENT // 100)
        node_list = Rect(0, 0, list_w, main_rows)
        x = list_w + 1
    graph_w = max(1, width - x - details_w - 1)
    graph_pane = Rect(x, 0, graph_w, main_rows)
    graph = Rect(x, 1, graph_w, max(1, main_rows - 1))
    details = Rect(x + graph_w + 1, 0, max(0, width - x - graph_w - 1), main_rows)
    return FrameLayout(width, height, node_list, graph_pane, graph, details)


def clamp_node_list_start(state: AppState, visible_rows: int) -> bool:
    """Scroll the node list so the cursor row stays visible."""
    previous = state.node_list_start
    visible_rows = max(1, visible_rows)
    if state.node_list_cursor < state.node_list_start:
        state.node_list_start = state.node_list_cursor
    elif state.node_list_cursor >= state.node_list_start + visible_rows:
        state.node_list_start = state.node_list_cursor - visible_rows + 1
    max_start = max(0, len(state.node_list_entries) - visible_rows)
    state.node_list_start = max(0, min(state.node_list_start, max_start))
    return state.node_list_start != previous


def _graph_title(state: AppState, theme: UITheme, width: int) -> str:
    parts = [f"{theme.title} Lineage Graph{theme.reset}", f"{theme.dim}zoom {state.zoom:.1f}x{theme.reset}"]
    if state.filters_active():
        parts.append(f"{theme.status_outdated}[filtered]{theme.reset}")
    if state.highlight_source is not None:
        parts.append(f"{theme.node_highlight}[path: {state.graph[state.highlight_source].label}]{theme.reset}")
    return fit_ansi_line("  ".join(parts), width)


def _overlay(rows: list[str], box: list[str], x: int, y: int, width: int) -> None:
    for offset, line in enumerate(box):
        row = y + offset
        if 0 <= row < len(rows):
            rows[row] = splice_ansi_line(rows[row], x, line, width)


def _centered(layout: FrameLayout, box_width: int, box_height: int) -> tuple[int, int]:
    return max(0, (layout.width - box_width) // 2), max(0, (layout.height - box_height) // 2)


def _draw_overlays(rows: list[str], state: AppState, theme: UITheme, layout: FrameLayout) -> None:
    from ..runtime.state import Mode

    label = state.graph[state.selected_node].label if state.selected_node is not None else "?"
    if state.mode is Mode.RUN_MENU:
        box_w = min(layout.width, RUN_MENU_WIDTH)
        box = boxed(f"Run: {label}", run_menu_lines(state, theme), box_w, theme)
        x, y = _centered(layout, box_w, len(box))
        _overlay(rows, box, x, y, box_w)
    elif state.mode is Mode.CONTEXT_MENU:
        box_w = min(layout.width, RUN_MENU_WIDTH)
        box = boxed(label, run_menu_lines(state, theme), box_w, theme)
        col, row = state.context_menu_pos or _centered(layout, box_w, len(box))
        x = max(0, min(col, layout.width - box_w))
        y = max(0, min(row, layout.height - len(box)))
        _overlay(rows, box, x, y, box_w)
    elif state.mode is Mode.RUN_CONFIRM:
        command = state.pending_run.display_command() if state.pending_run is not None else ""
        box_w = min(layout.width, max(40, len(command) + 8))
        box = boxed("Confirm", confirm_lines(state, theme), box_w, theme, theme.status_outdated)
        x, y = _centered(layout, box_w, len(box))
        _overlay(rows, box, x, y, box_w)
    elif state.mode is Mode.RUN_OUTPUT:
        box_w = max(4, layout.width - 4)
        body_rows = max(1, layout.height - 4)
        state.last_run_output_rows = body_rows
        if state.is_run_in_progress():
            border = theme.status_outdated
        elif getattr(state.run_state, "success", False):
            border = theme.status_success
        else:
            border = theme.status_error
        body = run_output_body(state, body_rows)
        body.extend([""] * (body_rows - len(body)))
        box = boxed(run_output_title(state), body, box_w, theme, border)
        _overlay(rows, box, 2, 1, box_w)
    elif state.mode is Mode.FILTER:
        box_w = min(layout.width, FILTER_PANEL_WIDTH)
        box = boxed("Filters", filter_lines(state, theme), box_w, theme)
        x, y = _centered(layout, box_w, len(box))
        _overlay(rows, box, x, y, box_w)


def compose_frame(state: AppState, theme: UITheme, width: int, height: int) -> list[str]:
    """Build every row of the frame and record pane rectangles on ``state``."""
    layout = compute_frame_layout(width, height, state.show_node_list)
    state.last_graph_area = layout.graph
    state.last_node_list_area = layout.node_list
    main_rows = layout.graph_pane.height

    graph_rows = [_graph_title(state, theme, layout.graph.width)]
    graph_rows.extend(render_graph_rows(state, layout.graph.width, layout.graph.height, theme))
    details = details_rows(state, theme, layout.details.width, main_rows)
    if layout.node_list is not None:
        node_list = node_list_rows(state, theme, layout.node_list.width, main_rows)
    else:
        node_list = []

    divider = f"{theme.divider}│{theme.reset}"
    rows: list[str] = []
    for idx in range(main_rows):
        parts: list[str] = []
        if node_list:
            parts.append(node_list[idx])
            parts.append(divider)
        parts.append(fit_ansi_line(graph_rows[idx] if idx < len(graph_rows) else "", layout.graph.width))
        if layout.details.width > 0:
            parts.append(divider)
            parts.append(details[idx])
        rows.append("".join(parts))
    _draw_overlays(rows, state, theme, layout)
    # Leave the last column empty so the terminal never scrolls.
    rows.append(build_status_line(state, theme, max(1, layout.width - 1)))
    return rows


def render_frame(state: AppState, theme: UITheme, width: int, height: int) -> None:
    rows = compose_frame(state, theme, width, height)
    out = "\033[H\033[J" + "\r\n".join(rows)
    os.write(sys.stdout.fileno(), out.encode("utf-8", errors="replace"))


__all__ = [
    "FrameLayout",
    "clamp_node_list_start",
    "compose_frame",
    "compute_frame_layout",
    "render_frame",
]
