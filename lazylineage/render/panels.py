"""Side panes and modal overlays.

Each function returns plain lists of styled rows; frame composition and the
single terminal write happen in ``render.__init__``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..ansi import fit_ansi_line, truncate_label
from ..artifacts import Error, last_run_at, status_label, status_symbol
from ..node_list import GroupHeader, NodeRow
from ..source_preview import preview_lines
from ..ui_theme import UITheme

if TYPE_CHECKING:
    from ..runtime.state import AppState

MAX_NEIGHBOURS_SHOWN = 8
MAX_IMPACTED_SHOWN = 6


def node_list_rows(state: AppState, theme: UITheme, width: int, height: int) -> list[str]:
    """Title row plus the visible slice of the grouped node list."""
    rows = [fit_ansi_line(f"{theme.title} Nodes ({state.graph.node_count()}){theme.reset}", width)]
    visible = max(0, height - 1)
    entries = state.node_list_entries[state.node_list_start : state.node_list_start + visible]
    for offset, entry in enumerate(entries):
        index = state.node_list_start + offset
        if isinstance(entry, GroupHeader):
            group = state.node_groups[entry.group_index]
            arrow = "▸" if group.key in state.collapsed_groups else "▾"
            text = f"{theme.group_header}{arrow} {group.label} ({len(group.nodes)}){theme.reset}"
        elif isinstance(entry, NodeRow):
            status = state.status_for(entry.node)
            name = truncate_label(state.graph[entry.node].display_name(), max(1, width - 5))
            symbol = f"{theme.status_color(status.kind)}{status_symbol(status)}{theme.reset}"
            style = theme.dim if not state.node_passes_filter(entry.node) else ""
            text = f"   {symbol} {style}{name}{theme.reset if style else ''}"
        else:
            continue
        if index == state.node_list_cursor:
            text = theme.reverse + text.replace(theme.reset, theme.reset + theme.reverse)
        rows.append(fit_ansi_line(text, width))
    while len(rows) < height:
        rows.append(" " * width)
    return rows[:height]


def _field(theme: UITheme, name: str, value: str) -> str:
    return f"{theme.title}{name}{theme.reset} {value}"


def _impact_lines(state: AppState, theme: UITheme, width: int) -> list[str]:
    report = state.impact_report
    if report is None:
        return []
    lines = [
        "",
        f"{theme.title}Impact of {report.source_model}{theme.reset}",
        _field(theme, "Severity:", report.overall_severity.label.upper()),
        _field(
            theme,
            "Affected:",
            f"{report.affected_models} models, {report.affected_tests} tests, "
            f"{report.affected_exposures} exposures",
        ),
    ]
    if report.longest_path_length:
        lines.append(_field(theme, "Longest path:", f"{report.longest_path_length} hops"))
        lines.append("  " + truncate_label(" → ".join(report.longest_path), max(1, width - 2)))
    for impacted in report.impacted_nodes[:MAX_IMPACTED_SHOWN]:
        lines.append(f"  [{impacted.severity.label}] {impacted.label} (d={impacted.distance})")
    hidden = len(report.impacted_nodes) - MAX_IMPACTED_SHOWN
    if hidden > 0:
        lines.append(f"  … {hidden} more")
    return lines


def _neighbour_lines(state: AppState, title: str, nodes: list[int], theme: UITheme) -> list[str]:
    lines = ["", f"{theme.title}{title} ({len(nodes)}){theme.reset}"]
    for node in nodes[:MAX_NEIGHBOURS_SHOWN]:
        data = state.graph[node]
        lines.append(f"  {data.label} ({data.node_type.label})")
    if len(nodes) > MAX_NEIGHBOURS_SHOWN:
        lines.append(f"  … {len(nodes) - MAX_NEIGHBOURS_SHOWN} more")
    return lines


def details_lines(state: AppState, theme: UITheme, width: int) -> list[str]:
    """Everything known about the selected node, unclipped."""
    if state.selected_node is None:
        return [f"{theme.dim}No node selected{theme.reset}"]
    node = state.selected_node
    data = state.graph[node]
    status = state.status_for(node)
    lines = [
        _field(theme, "Name:", data.label),
        _field(theme, "Type:", f"{theme.node_color(data.node_type)}{data.node_type.label}{theme.reset}"),
        _field(theme, "ID:  ", data.unique_id),
    ]
    if data.file_path is not None:
        lines.append(_field(theme, "File:", data.file_path.as_posix()))
    if data.materialization:
        lines.append(_field(theme, "Materialized:", data.materialization))
    if data.tags:
        lines.append(_field(theme, "Tags:", ", ".join(data.tags)))
    lines.append(_field(theme, "Status:", f"{theme.status_color(status.kind)}{status_label(status)}{theme.reset}"))
    run_at = last_run_at(status)
    if run_at is not None:
        lines.append(_field(theme, "Last run:", run_at.strftime("%Y-%m-%d %H:%M:%S UTC")))
    if isinstance(status, Error):
        lines.append(_field(theme, f"{theme.status_error}Error:", status.message))
    if data.description:
        lines.extend(["", data.description])
    lines.extend(_neighbour_lines(state, "Upstream", state.graph.predecessors(node), theme))
    lines.extend(_neighbour_lines(state, "Downstream", state.graph.successors(node), theme))
    if state.highlight_source == node:
        lines.extend(_impact_lines(state, theme, width))
    source = preview_lines(data.file_path, state.project_dir)
    if source:
        lines.extend(["", f"{theme.title}Source{theme.reset}", *source])
    return lines


def details_rows(state: AppState, theme: UITheme, width: int, height: int) -> list[str]:
    rows = [fit_ansi_line(f"{theme.title} Details{theme.reset}", width)]
    rows.extend(fit_ansi_line(" " + line, width) for line in details_lines(state, theme, width - 1))
    while len(rows) < height:
        rows.append(" " * width)
    return rows[:height]


def boxed(title: str, body: list[str], width: int, theme: UITheme, border: str | None = None) -> list[str]:
    """Frame ``body`` rows in a single-line border ``width`` columns wide."""
    inner = max(1, width - 2)
    color = border if border is not None else theme.overlay_border
    label = truncate_label(f" {title} ", inner)
    top = f"{color}┌{theme.overlay_title}{label}{theme.reset}{color}{'─' * (inner - len(label))}┐{theme.reset}"
    rows = [top]
    for line in body:
        rows.append(f"{color}│{theme.reset}{fit_ansi_line(line, inner)}{color}│{theme.reset}")
    rows.append(f"{color}└{'─' * inner}┘{theme.reset}")
    return rows


def run_menu_lines(state: AppState, theme: UITheme) -> list[str]:
    from ..runtime.state import RUN_MENU_ITEMS

    lines = [""]
    for key, _command, _scope, text in RUN_MENU_ITEMS:
        lines.append(f"  {theme.help_key}{key}{theme.reset}  {text}")
    lines.extend(["", f"  {theme.help_dim}Esc  cancel{theme.reset}"])
    return lines


def confirm_lines(state: AppState, theme: UITheme) -> list[str]:
    command = state.pending_run.display_command() if state.pending_run is not None else ""
    return [
        "",
        "  Execute this command?",
        "",
        f"  {theme.help_key}$ {command}{theme.reset}",
        "",
        f"  {theme.reverse} Execute (y) {theme.reset}  {theme.help_dim} Cancel (n) {theme.reset}",
    ]


def run_output_title(state: AppState) -> str:
    if state.is_run_in_progress():
        return "dbt (running...)"
    if getattr(state.run_state, "success", False):
        return "dbt (success)"
    return "dbt (failed)"


def run_output_body(state: AppState, rows: int) -> list[str]:
    """Visible slice of run output; follows the tail while following."""
    lines = state.run_output_lines()
    max_scroll = max(0, len(lines) - rows)
    scroll = max_scroll if state.run_output_follow else min(state.run_output_scroll, max_scroll)
    return [" " + line for line in lines[scroll : scroll + rows]]


def filter_lines(state: AppState, theme: UITheme) -> list[str]:
    from ..runtime.state import FILTER_TYPE_ROWS

    lines = [""]
    for idx, node_type in enumerate(FILTER_TYPE_ROWS):
        mark = "x" if node_type in state.enabled_types else " "
        text = f"  [{mark}] {theme.node_color(node_type)}{node_type.label}{theme.reset}"
        if idx == state.filter_cursor:
            text = theme.reverse + text.replace(theme.reset, theme.reset + theme.reverse) + theme.reset
        lines.append(text)
    status = state.status_filter or "any"
    text = f"  status: {status}"
    if state.filter_cursor == len(FILTER_TYPE_ROWS):
        text = theme.reverse + text + theme.reset
    lines.extend([text, ""])
    return lines
