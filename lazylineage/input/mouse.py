"""Mouse routing for the graph canvas, node list, and run output."""

from __future__ import annotations

from ..render.geometry import hit_test_node
from ..runtime.state import AppState, Mode

WHEEL_SCROLL_LINES = 3


def parse_mouse_col_row(mouse_key: str) -> tuple[int | None, int | None]:
    """Parse ``MOUSE_*:col:row`` into 0-based screen coordinates."""
    parts = mouse_key.split(":")
    if len(parts) < 3:
        return None, None
    try:
        return int(parts[1]) - 1, int(parts[2]) - 1
    except ValueError:
        return None, None


def _node_at(state: AppState, col: int, row: int) -> int | None:
    return hit_test_node(
        state.layout,
        state.last_graph_area,
        state.viewport_x,
        state.viewport_y,
        state.zoom,
        col,
        row,
    )


def _in_graph(state: AppState, col: int, row: int) -> bool:
    return state.last_graph_area is not None and state.last_graph_area.contains(col, row)


def _handle_left_down(state: AppState, col: int, row: int) -> None:
    list_area = state.last_node_list_area
    if state.show_node_list and list_area is not None and list_area.contains(col, row):
        # First row of the pane is its title.
        row_in_list = row - list_area.y - 1
        if row_in_list >= 0:
            state.activate_node_list_entry(state.node_list_start + row_in_list)
        return
    if not _in_graph(state, col, row):
        return
    node = _node_at(state, col, row)
    if node is not None:
        state.select_node_no_center(node)
    else:
        state.begin_drag(col, row)


def handle_mouse(mouse_key: str, state: AppState) -> bool:
    """Apply one mouse token; returns whether it was consumed."""
    col, row = parse_mouse_col_row(mouse_key)
    if col is None or row is None:
        return False
    kind = mouse_key.split(":", 1)[0]

    if state.mode is Mode.CONTEXT_MENU:
        if kind.endswith("_DOWN"):
            state.return_to_normal()
        return True

    if state.mode is Mode.RUN_OUTPUT:
        if kind == "MOUSE_WHEEL_UP":
            state.scroll_run_output(-WHEEL_SCROLL_LINES)
            return True
        if kind == "MOUSE_WHEEL_DOWN":
            state.scroll_run_output(WHEEL_SCROLL_LINES)
            return True
        return False

    if state.mode is not Mode.NORMAL:
        return False

    if kind == "MOUSE_RIGHT_DOWN":
        if _in_graph(state, col, row):
            node = _node_at(state, col, row)
            if node is not None:
                state.open_context_menu(node, col, row)
        return True
    if kind == "MOUSE_LEFT_DOWN":
        _handle_left_down(state, col, row)
        return True
    if kind == "MOUSE_LEFT_DRAG":
        state.drag_to(col, row)
        return True
    if kind == "MOUSE_LEFT_UP":
        state.end_drag()
        return True
    if kind in {"MOUSE_WHEEL_UP", "MOUSE_WHEEL_DOWN"}:
        if _in_graph(state, col, row):
            if kind == "MOUSE_WHEEL_UP":
                state.zoom_in()
            else:
                state.zoom_out()
        return True
    return False
