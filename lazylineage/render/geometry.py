"""World-space geometry for the graph canvas.

Layout coordinates ``(layer, pos)`` map to world cells; the viewport offset
maps world cells to screen cells. Box size and gaps scale with zoom but never
shrink below a legible floor.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..graph import NodeIndex
from ..layout import LayoutResult

NODE_BOX_WIDTH = 24
NODE_BOX_HEIGHT = 3
LAYER_GAP = 12
NODE_GAP = 2
MIN_BOX_WIDTH = 12
MIN_LAYER_GAP = 4
MIN_NODE_GAP = 1


@dataclass(frozen=True)
class Rect:
    """Screen rectangle in 0-based terminal cells."""

    x: int
    y: int
    width: int
    height: int

    def contains(self, col: int, row: int) -> bool:
        return self.x <= col < self.x + self.width and self.y <= row < self.y + self.height


@dataclass(frozen=True)
class NodeGeometry:
    box_width: int
    box_height: int
    layer_gap: int
    node_gap: int

    @classmethod
    def for_zoom(cls, zoom: float) -> NodeGeometry:
        return cls(
            box_width=max(MIN_BOX_WIDTH, int(NODE_BOX_WIDTH * zoom)),
            box_height=NODE_BOX_HEIGHT,
            layer_gap=max(MIN_LAYER_GAP, int(LAYER_GAP * zoom)),
            node_gap=max(MIN_NODE_GAP, int(NODE_GAP * zoom)),
        )

    def world_pos(self, layer: int, pos: int) -> tuple[int, int]:
        """Top-left world cell of the box at ``(layer, pos)``."""
        return layer * (self.box_width + self.layer_gap), pos * (self.box_height + self.node_gap)

    def world_center(self, layer: int, pos: int) -> tuple[int, int]:
        wx, wy = self.world_pos(layer, pos)
        return wx + self.box_width // 2, wy + self.box_height // 2


def node_world_center(layer: int, pos: int, zoom: float) -> tuple[int, int]:
    return NodeGeometry.for_zoom(zoom).world_center(layer, pos)


def screen_to_world(area: Rect, viewport_x: int, viewport_y: int, col: int, row: int) -> tuple[int, int]:
    return col - area.x + viewport_x, row - area.y + viewport_y


def hit_test_node(
    layout: LayoutResult,
    area: Rect | None,
    viewport_x: int,
    viewport_y: int,
    zoom: float,
    col: int,
    row: int,
) -> NodeIndex | None:
    """Return the node whose box contains screen cell ``(col, row)``."""
    if area is None or not area.contains(col, row):
        return None
    geometry = NodeGeometry.for_zoom(zoom)
    wx, wy = screen_to_world(area, viewport_x, viewport_y, col, row)
    for node, (layer, pos) in layout.positions.items():
        node_wx, node_wy = geometry.world_pos(layer, pos)
        if node_wx <= wx < node_wx + geometry.box_width and node_wy <= wy < node_wy + geometry.box_height:
            return node
    return None
