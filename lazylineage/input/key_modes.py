"""Per-mode keyboard handling.

Every ``Mode`` has exactly one handler in ``_MODE_HANDLERS``; the table is
checked against the enum at import time. Handlers return ``True`` when the
application should quit.
"""

from __future__ import annotations

from collections.abc import Callable

from ..runtime.state import PAN_STEP, RUN_MENU_ITEMS, AppState, Mode
from .key_registry import KeyBinding, KeyRegistry
from .mouse import handle_mouse

OUTPUT_PAGE_ROWS = 10


def _act(action: Callable[[], object]) -> Callable[[], bool]:
    """Wrap a state operation as a non-quitting key handler."""

    def handler() -> bool:
        action()
        return False

    return handler


def _quit() -> bool:
    return True


def _toggle_group_collapse(state: AppState) -> None:
    if state.show_node_list:
        state.toggle_group_collapse()


def _clear_or_ignore(state: AppState) -> None:
    if state.highlight_source is not None:
        state.clear_path_highlight()


def normal_bindings(state: AppState) -> KeyRegistry:
    return KeyRegistry(
        (
            KeyBinding(("q", "CTRL_C"), _quit, "quit", "q"),
            KeyBinding(("h", "LEFT"), _act(state.navigate_left)),
            KeyBinding(("l", "RIGHT"), _act(state.navigate_right)),
            KeyBinding(("k", "UP"), _act(state.navigate_up)),
            KeyBinding(("j", "DOWN"), _act(state.navigate_down), "navigate", "hjkl"),
            KeyBinding(("H",), _act(lambda: state.pan(-PAN_STEP, 0))),
            KeyBinding(("J",), _act(lambda: state.pan(0, PAN_STEP))),
            KeyBinding(("K",), _act(lambda: state.pan(0, -PAN_STEP))),
            KeyBinding(("L",), _act(lambda: state.pan(PAN_STEP, 0)), "pan", "HJKL"),
            KeyBinding(("+", "="), _act(state.zoom_in)),
            KeyBinding(("-",), _act(state.zoom_out), "zoom", "+/-"),
            KeyBinding(("TAB",), _act(state.cycle_next_node)),
            KeyBinding(("SHIFT_TAB",), _act(state.cycle_prev_node), "cycle", "Tab"),
            KeyBinding(("/",), _act(state.open_search), "search"),
            KeyBinding(("p",), _act(state.toggle_path_highlight), "path"),
            KeyBinding(("f",), _act(state.open_filter_panel), "filter"),
            KeyBinding(("n",), _act(state.toggle_node_list), "list"),
            KeyBinding(("c",), _act(lambda: _toggle_group_collapse(state)), "collapse"),
            KeyBinding(("x",), _act(state.open_run_menu), "run"),
            KeyBinding(("o",), _act(state.open_run_output), "output"),
            KeyBinding(("r",), _act(state.reset_view), "reset"),
            KeyBinding(("ESC",), _act(lambda: _clear_or_ignore(state))),
        )
    )


def _search_backspace(state: AppState) -> None:
    state.update_search(state.search_query[:-1])


def search_bindings(state: AppState) -> KeyRegistry:
    return KeyRegistry(
        (
            KeyBinding(("ESC", "CTRL_C"), _act(state.return_to_normal), "cancel", "Esc"),
            KeyBinding(("ENTER",), _act(state.return_to_normal), "confirm", "Enter"),
            KeyBinding(("TAB",), _act(state.next_search_result), "next", "Tab"),
            KeyBinding(("SHIFT_TAB",), _act(state.prev_search_result), "prev", "S-Tab"),
            KeyBinding(("BACKSPACE",), _act(lambda: _search_backspace(state))),
            KeyBinding(("CTRL_U",), _act(lambda: state.update_search(""))),
        )
    )


def _menu_bindings(state: AppState, close_description: str) -> KeyRegistry:
    registry = KeyRegistry()
    for key, command, scope, text in RUN_MENU_ITEMS:
        registry.register(
            KeyBinding(
                (key,),
                _act(lambda command=command, scope=scope: state.stage_run(command, scope)),
                text.lower(),
            )
        )
    registry.register(KeyBinding(("ESC", "q", "CTRL_C"), _act(state.return_to_normal), close_description, "Esc"))
    return registry


def run_menu_bindings(state: AppState) -> KeyRegistry:
    return _menu_bindings(state, "close")


def context_menu_bindings(state: AppState) -> KeyRegistry:
    return _menu_bindings(state, "dismiss")


def confirm_bindings(state: AppState) -> KeyRegistry:
    return KeyRegistry(
        (
            KeyBinding(("y", "ENTER"), _act(state.start_run), "execute", "y/Enter"),
            KeyBinding(("n", "ESC", "CTRL_C"), _act(state.cancel_pending_run), "cancel", "n/Esc"),
        )
    )


def run_output_bindings(state: AppState) -> KeyRegistry:
    return KeyRegistry(
        (
            KeyBinding(("j", "DOWN"), _act(lambda: state.scroll_run_output(1))),
            KeyBinding(("k", "UP"), _act(lambda: state.scroll_run_output(-1)), "scroll", "j/k"),
            KeyBinding(("PAGE_DOWN",), _act(lambda: state.scroll_run_output(OUTPUT_PAGE_ROWS))),
            KeyBinding(("PAGE_UP",), _act(lambda: state.scroll_run_output(-OUTPUT_PAGE_ROWS))),
            KeyBinding(("g",), _act(lambda: state.scroll_run_output(-len(state.run_output_lines()))), "top"),
            KeyBinding(("G",), _act(state.scroll_run_output_to_bottom), "bottom"),
            KeyBinding(("ESC", "q", "CTRL_C"), _act(state.return_to_normal), "close", "Esc/q"),
        )
    )


def filter_bindings(state: AppState) -> KeyRegistry:
    return KeyRegistry(
        (
            KeyBinding(("j", "DOWN"), _act(lambda: state.move_filter_cursor(1))),
            KeyBinding(("k", "UP"), _act(lambda: state.move_filter_cursor(-1)), "move", "j/k"),
            KeyBinding((" ", "ENTER"), _act(state.activate_filter_row), "toggle", "Space"),
            KeyBinding(("s",), _act(state.cycle_status_filter), "status"),
            KeyBinding(("r",), _act(state.reset_filters), "reset"),
            KeyBinding(("ESC", "q", "f", "CTRL_C"), _act(state.return_to_normal), "close", "Esc"),
        )
    )


BINDINGS_BY_MODE: dict[Mode, Callable[[AppState], KeyRegistry]] = {
    Mode.NORMAL: normal_bindings,
    Mode.SEARCH: search_bindings,
    Mode.RUN_MENU: run_menu_bindings,
    Mode.CONTEXT_MENU: context_menu_bindings,
    Mode.RUN_CONFIRM: confirm_bindings,
    Mode.RUN_OUTPUT: run_output_bindings,
    Mode.FILTER: filter_bindings,
}


def _handle_with_bindings(key: str, state: AppState) -> bool:
    return bool(BINDINGS_BY_MODE[state.mode](state).dispatch(key))


def handle_search_key(key: str, state: AppState) -> bool:
    """Bound keys first; any other single printable character edits the query."""
    handled = search_bindings(state).dispatch(key)
    if handled is not None:
        return bool(handled)
    if len(key) == 1 and key.isprintable():
        state.update_search(state.search_query + key)
    return False


def handle_run_menu_key(key: str, state: AppState) -> bool:
    if state.selected_node is None:
        state.return_to_normal()
        return False
    return _handle_with_bindings(key, state)


_MODE_HANDLERS: dict[Mode, Callable[[str, AppState], bool]] = {
    Mode.NORMAL: _handle_with_bindings,
    Mode.SEARCH: handle_search_key,
    Mode.RUN_MENU: handle_run_menu_key,
    Mode.CONTEXT_MENU: handle_run_menu_key,
    Mode.RUN_CONFIRM: _handle_with_bindings,
    Mode.RUN_OUTPUT: _handle_with_bindings,
    Mode.FILTER: _handle_with_bindings,
}

_missing = (set(Mode) - set(_MODE_HANDLERS)) | (set(Mode) - set(BINDINGS_BY_MODE))
if _missing:
    raise RuntimeError(f"modes without key handlers: {sorted(mode.name for mode in _missing)}")


def dispatch_key(key: str, state: AppState) -> bool:
    """Route one decoded key token; ``True`` means quit."""
    if key.startswith("MOUSE"):
        handle_mouse(key, state)
        return False
    return _MODE_HANDLERS[state.mode](key, state)
