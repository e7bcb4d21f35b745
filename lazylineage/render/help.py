"""Mode-dependent help bar.

The advertised keys come from the same binding tables the dispatcher uses,
so the bar cannot drift from the actual key handling.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..ansi import display_width, fit_ansi_line
from ..ui_theme import UITheme

if TYPE_CHECKING:
    from ..runtime.state import AppState


def _format_entries(entries: list[tuple[str, str]], theme: UITheme) -> str:
    return "  ".join(f"{theme.help_key}{label}{theme.reset} {description}" for label, description in entries)


def help_text(state: AppState, theme: UITheme) -> str:
    from ..input.key_modes import BINDINGS_BY_MODE
    from ..runtime.state import Mode

    entries = BINDINGS_BY_MODE[state.mode](state).help_entries()
    if state.mode is Mode.NORMAL:
        if not state.show_node_list:
            entries = [entry for entry in entries if entry[1] != "collapse"]
        if not state.has_run_output():
            entries = [entry for entry in entries if entry[1] != "output"]
    text = _format_entries(entries, theme)
    if state.mode is Mode.SEARCH:
        count = len(state.search_results)
        position = f"{state.search_cursor + 1}/{count}" if count else "0/0"
        prompt = f"{theme.search_query}/{state.search_query}_{theme.reset} {theme.help_dim}[{position}]{theme.reset}"
        text = f"{prompt}  {text}"
    if state.is_run_in_progress():
        text = f"{text}  {theme.status_outdated}[running...]{theme.reset}"
    return " " + text


def build_status_line(state: AppState, theme: UITheme, width: int) -> str:
    """Help text on the left, the timed status message right-aligned."""
    left = help_text(state, theme)
    if not state.status_message:
        return fit_ansi_line(left, width)
    right = f"{theme.status_message}{state.status_message}{theme.reset} "
    right_width = display_width(right)
    if right_width >= width:
        return fit_ansi_line(right, width)
    return fit_ansi_line(left, width - right_width) + right
