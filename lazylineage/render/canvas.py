"""Graph canvas drawing.

Edges are routed orthogonally (right side of the source box, one vertical
run at the midpoint column, into the left side of the target box) and drawn
first; node boxes are drawn on top. Everything is written into a cell grid
clipped to the visible area, then flattened into styled rows.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..ansi import truncate_label
from ..artifacts import status_symbol
from ..graph import EdgeType
from ..ui_theme import UITheme
from .geometry import NodeGeometry

if TYPE_CHECKING:
    from ..runtime.state import AppState


class Canvas:
    """Fixed-size grid of (character, style) cells with a world offset."""

    def __init__(self, width: int, height: int, origin_x: int = 0, origin_y: int = 0) -> None:
        self.width = max(0, width)
        self.height = max(0, height)
        self.origin_x = origin_x
        self.origin_y = origin_y
        self.chars = [[" "] * self.width for _ in range(self.height)]
        self.styles = [[""] * self.width for _ in range(self.height)]

    def set_cell(self, wx: int, wy: int, ch: str, style: str = "") -> None:
        x = wx - self.origin_x
        y = wy - self.origin_y
        if 0 <= x < self.width and 0 <= y < self.height:
            self.chars[y][x] = ch
            self.styles[y][x] = style

    def get_cell(self, wx: int, wy: int) -> str | None:
        x = wx - self.origin_x
        y = wy - self.origin_y
        if 0 <= x < self.width and 0 <= y < self.height:
            return self.chars[y][x]
        return None

    def hline(self, wx_start: int, wx_end: int, wy: int, ch: str, style: str = "") -> None:
        for wx in range(min(wx_start, wx_end), max(wx_start, wx_end) + 1):
            self.set_cell(wx, wy, ch, style)

    def vline(self, wx: int, wy_start: int, wy_end: int, ch: str, style: str = "") -> None:
        for wy in range(min(wy_start, wy_end), max(wy_start, wy_end) + 1):
            self.set_cell(wx, wy, ch, style)

    def text(self, wx: int, wy: int, text: str, style: str = "") -> None:
        for offset, ch in enumerate(text):
            self.set_cell(wx + offset, wy, ch, style)

    def rows(self, reset: str = "\033[0m") -> list[str]:
        """Flatten to ANSI strings, emitting a style code only on change."""
        out: list[str] = []
        for chars, styles in zip(self.chars, self.styles):
            parts: list[str] = []
            current = ""
            for ch, style in zip(chars, styles):
                if style != current:
                    parts.append(reset + style if style else reset)
                    current = style
                parts.append(ch)
            if current:
                parts.append(reset)
            out.append("".join(parts))
        return out


def _edge_style(state: AppState, theme: UITheme, source: int, target: int, edge_type: EdgeType) -> str:
    if state.highlighted_nodes:
        if source in state.highlighted_nodes and target in state.highlighted_nodes:
            return theme.edge_highlight
        return theme.dim + theme.edge
    if edge_type is EdgeType.EXPOSURE:
        return theme.node_exposure
    if edge_type is EdgeType.TEST:
        return theme.node_test
    return theme.edge


def draw_edges(canvas: Canvas, state: AppState, geometry: NodeGeometry, theme: UITheme) -> None:
    positions = state.layout.positions
    mid_row = geometry.box_height // 2
    for edge in state.graph.edges():
        if edge.source not in positions or edge.target not in positions:
            continue
        style = _edge_style(state, theme, edge.source, edge.target, edge.edge_type)
        src_wx, src_wy = geometry.world_pos(*positions[edge.source])
        tgt_wx, tgt_wy = geometry.world_pos(*positions[edge.target])
        src_right = src_wx + geometry.box_width
        src_y = src_wy + mid_row
        tgt_left = tgt_wx
        tgt_y = tgt_wy + mid_row
        mid_x = (src_right + tgt_left) // 2

        if src_y == tgt_y:
            canvas.hline(src_right, tgt_left - 1, src_y, "─", style)
            canvas.set_cell(tgt_left - 1, tgt_y, "▸", style)
            continue

        if mid_x > src_right:
            canvas.hline(src_right, mid_x - 1, src_y, "─", style)
        low, high = sorted((src_y, tgt_y))
        if low + 1 <= high - 1:
            canvas.vline(mid_x, low + 1, high - 1, "│", style)
        if tgt_left - 1 > mid_x:
            canvas.hline(mid_x + 1, tgt_left - 2, tgt_y, "─", style)
        canvas.set_cell(tgt_left - 1, tgt_y, "▸", style)
        if src_y < tgt_y:
            canvas.set_cell(mid_x, src_y, "┐", style)
            canvas.set_cell(mid_x, tgt_y, "└", style)
        else:
            canvas.set_cell(mid_x, src_y, "┘", style)
            canvas.set_cell(mid_x, tgt_y, "┌", style)


def _node_style(state: AppState, theme: UITheme, node: int) -> str:
    if state.selected_node == node:
        return theme.reverse + theme.node_selected
    status = state.status_for(node)
    if status.kind != "never_run":
        style = theme.status_color(status.kind)
    else:
        style = theme.node_color(state.graph[node].node_type)
    if state.highlighted_nodes and node not in state.highlighted_nodes:
        return theme.dim + style
    if not state.node_passes_filter(node):
        return theme.dim + style
    if node in state.highlighted_nodes:
        return theme.node_highlight
    return style


def draw_nodes(canvas: Canvas, state: AppState, geometry: NodeGeometry, theme: UITheme) -> None:
    w = geometry.box_width
    h = geometry.box_height
    for node, (layer, pos) in state.layout.positions.items():
        wx, wy = geometry.world_pos(layer, pos)
        style = _node_style(state, theme, node)
        canvas.set_cell(wx, wy, "┌", style)
        canvas.hline(wx + 1, wx + w - 2, wy, "─", style)
        canvas.set_cell(wx + w - 1, wy, "┐", style)
        for dy in range(1, h - 1):
            canvas.set_cell(wx, wy + dy, "│", style)
            canvas.hline(wx + 1, wx + w - 2, wy + dy, " ", style)
            canvas.set_cell(wx + w - 1, wy + dy, "│", style)
        canvas.set_cell(wx, wy + h - 1, "└", style)
        canvas.hline(wx + 1, wx + w - 2, wy + h - 1, "─", style)
        canvas.set_cell(wx + w - 1, wy + h - 1, "┘", style)

        data = state.graph[node]
        label = f"{status_symbol(state.status_for(node))} {data.display_name()}"
        inner = w - 2
        canvas.text(wx + 1, wy + 1, (" " + truncate_label(label, inner - 1)).ljust(inner), style)


def render_graph_rows(state: AppState, width: int, height: int, theme: UITheme) -> list[str]:
    """Draw the visible window of the graph as ``height`` styled rows."""
    canvas = Canvas(width, height, state.viewport_x, state.viewport_y)
    if width <= 0 or height <= 0:
        return []
    if state.graph.node_count() == 0:
        canvas.text(state.viewport_x + 1, state.viewport_y + 1, "(empty graph)", theme.dim)
        return canvas.rows(theme.reset)
    geometry = NodeGeometry.for_zoom(state.zoom)
    draw_edges(canvas, state, geometry, theme)
    draw_nodes(canvas, state, geometry, theme)
    return canvas.rows(theme.reset)
