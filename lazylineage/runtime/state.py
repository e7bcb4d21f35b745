"""Interactive session state and the operations that mutate it.

``AppState`` owns every derived view of the graph (layout order, grouped node
list, highlight cache, viewport) and keeps them consistent under each user
intent. Background run output is pulled in through ``drain_run_messages``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from ..artifacts import NEVER_RUN, STATUS_KINDS, RunStatus, RunStatusMap, reload_run_status
from ..graph import ImpactReport, LineageGraph, NodeIndex, NodeType, compute_impact
from ..layout import LayoutResult, sugiyama_layout
from ..node_list import (
    GroupHeader,
    NodeGroup,
    NodeListEntry,
    NodeRow,
    build_node_groups,
    build_node_list_entries,
    entry_index_for_group,
    entry_index_for_node,
    group_index_for_node,
)
from ..render.geometry import Rect, node_world_center
from .config import ZOOM_MAX, ZOOM_MIN
from .runner import (
    ChannelDisconnected,
    CommandKind,
    OutputLine,
    RunChannel,
    RunCompleted,
    RunRequest,
    SelectionScope,
    SpawnError,
    resolve_use_uv,
    spawn_run,
)

logger = logging.getLogger(__name__)

ZOOM_STEP = 0.1
PAN_STEP = 3
STATUS_MESSAGE_SECONDS = 3.0
FALLBACK_CENTER_OFFSET = (40, 12)
FALLBACK_RUN_OUTPUT_ROWS = 20
FILTER_TYPE_ROWS: tuple[NodeType, ...] = tuple(NodeType)

# (key, command, scope, menu text) for the run and context menus.
RUN_MENU_ITEMS: tuple[tuple[str, CommandKind, SelectionScope, str], ...] = (
    ("r", CommandKind.RUN, SelectionScope.SINGLE, "Run this model"),
    ("u", CommandKind.RUN, SelectionScope.WITH_UPSTREAM, "Run +upstream"),
    ("d", CommandKind.RUN, SelectionScope.WITH_DOWNSTREAM, "Run downstream+"),
    ("a", CommandKind.RUN, SelectionScope.FULL_LINEAGE, "Run +full lineage+"),
    ("t", CommandKind.TEST, SelectionScope.SINGLE, "Test this model"),
)


class Mode(Enum):
    NORMAL = "normal"
    SEARCH = "search"
    RUN_MENU = "run_menu"
    CONTEXT_MENU = "context_menu"
    RUN_CONFIRM = "run_confirm"
    RUN_OUTPUT = "run_output"
    FILTER = "filter"


@dataclass(frozen=True)
class RunIdle:
    pass


@dataclass
class RunRunning:
    channel: RunChannel
    output_lines: list[str] = field(default_factory=list)


@dataclass
class RunFinished:
    output_lines: list[str]
    success: bool


RunState = RunIdle | RunRunning | RunFinished


@dataclass(frozen=True)
class DragState:
    """Pointer-drag pan anchor captured at button press."""

    start_col: int
    start_row: int
    viewport_x0: int
    viewport_y0: int


ImpactFn = Callable[[LineageGraph, NodeIndex], ImpactReport]
SpawnFn = Callable[[RunRequest], RunChannel]
ReloadStatusFn = Callable[[RunStatusMap, LineageGraph, Path], bool]


@dataclass
class AppState:
    graph: LineageGraph
    layout: LayoutResult
    project_dir: Path
    node_order: list[NodeIndex]
    node_groups: list[NodeGroup]
    node_list_entries: list[NodeListEntry]
    run_status: RunStatusMap = field(default_factory=dict)
    collapsed_groups: set[str] = field(default_factory=set)
    node_list_cursor: int = 0
    node_list_start: int = 0
    show_node_list: bool = False
    selected_node: NodeIndex | None = None
    cycle_index: int = 0
    viewport_x: int = 0
    viewport_y: int = 0
    zoom: float = 1.0
    last_graph_area: Rect | None = None
    last_node_list_area: Rect | None = None
    last_run_output_rows: int | None = None
    mode: Mode = Mode.NORMAL
    search_query: str = ""
    search_results: list[NodeIndex] = field(default_factory=list)
    search_cursor: int = 0
    enabled_types: set[NodeType] = field(default_factory=lambda: set(NodeType))
    status_filter: str | None = None
    filter_cursor: int = 0
    highlight_source: NodeIndex | None = None
    highlighted_nodes: set[NodeIndex] = field(default_factory=set)
    impact_report: ImpactReport | None = None
    run_state: RunState = field(default_factory=RunIdle)
    run_output_scroll: int = 0
    run_output_follow: bool = True
    pending_run: RunRequest | None = None
    context_menu_pos: tuple[int, int] | None = None
    drag: DragState | None = None
    runner_wrapper: str = "auto"
    status_message: str = ""
    status_message_until: float = 0.0
    dirty: bool = True
    spawn: SpawnFn = spawn_run
    impact: ImpactFn = compute_impact
    reload_status: ReloadStatusFn = reload_run_status

    @classmethod
    def from_graph(
        cls,
        graph: LineageGraph,
        project_dir: Path,
        run_status: RunStatusMap | None = None,
        **overrides,
    ) -> AppState:
        """Lay out ``graph`` and build the initial session.

        Raises ``CycleError`` when ``graph`` is not a DAG.
        """
        layout = sugiyama_layout(graph)
        node_order = layout.node_order()
        groups = build_node_groups(node_order, graph, project_dir)
        state = cls(
            graph=graph,
            layout=layout,
            project_dir=project_dir,
            node_order=node_order,
            node_groups=groups,
            node_list_entries=build_node_list_entries(groups, set()),
            run_status=run_status if run_status is not None else {},
            **overrides,
        )
        if node_order:
            state.selected_node = node_order[0]
            state._sync_node_list_cursor()
        return state

    # -- status line ---------------------------------------------------

    def set_status_message(self, message: str, seconds: float = STATUS_MESSAGE_SECONDS) -> None:
        self.status_message = message
        self.status_message_until = time.monotonic() + seconds
        self.dirty = True

    def expire_status_message(self, now: float) -> bool:
        if self.status_message and now >= self.status_message_until:
            self.status_message = ""
            self.status_message_until = 0.0
            self.dirty = True
            return True
        return False

    # -- selection -----------------------------------------------------

    def _sync_cycle_index(self) -> None:
        if self.selected_node is None:
            return
        try:
            self.cycle_index = self.node_order.index(self.selected_node)
        except ValueError:
            self.cycle_index = 0

    def _rebuild_node_list(self) -> None:
        self.node_list_entries = build_node_list_entries(self.node_groups, self.collapsed_groups)
        self.node_list_cursor = min(self.node_list_cursor, max(0, len(self.node_list_entries) - 1))

    def _sync_node_list_cursor(self) -> None:
        """Expand the selected node's group and point the list cursor at it."""
        if self.selected_node is None:
            return
        group_index = group_index_for_node(self.node_groups, self.selected_node)
        if group_index is not None and self.node_groups[group_index].key in self.collapsed_groups:
            self.collapsed_groups.discard(self.node_groups[group_index].key)
            self._rebuild_node_list()
        entry = entry_index_for_node(self.node_list_entries, self.selected_node)
        if entry is not None:
            self.node_list_cursor = entry

    def _select(self, node: NodeIndex, *, center: bool = True) -> None:
        self.selected_node = node
        self._sync_cycle_index()
        self._sync_node_list_cursor()
        if center:
            self.center_on_selected()
        self.dirty = True

    def select_node(self, node: NodeIndex) -> None:
        self._select(node)

    def select_node_no_center(self, node: NodeIndex) -> None:
        self._select(node, center=False)

    def selected_status(self) -> RunStatus:
        if self.selected_node is None:
            return NEVER_RUN
        return self.status_for(self.selected_node)

    def status_for(self, node: NodeIndex) -> RunStatus:
        return self.run_status.get(self.graph[node].unique_id, NEVER_RUN)

    # -- navigation ----------------------------------------------------

    def cycle_next_node(self) -> None:
        if not self.node_order:
            return
        if self.selected_node is None:
            self._select(self.node_order[0])
            return
        self._select(self.node_order[(self.cycle_index + 1) % len(self.node_order)])

    def cycle_prev_node(self) -> None:
        if not self.node_order:
            return
        if self.selected_node is None:
            self._select(self.node_order[-1])
            return
        self._select(self.node_order[(self.cycle_index - 1) % len(self.node_order)])

    def _navigate_across_layers(self, direction: int) -> None:
        if self.selected_node is None:
            return
        position = self.layout.positions.get(self.selected_node)
        if position is None:
            return
        layer, pos = position
        order_index = {node: idx for idx, node in enumerate(self.node_order)}
        best: tuple[int, int, int] | None = None
        best_node: NodeIndex | None = None
        for node, (other_layer, other_pos) in self.layout.positions.items():
            if (other_layer - layer) * direction <= 0:
                continue
            key = (abs(other_layer - layer), abs(other_pos - pos), order_index[node])
            if best is None or key < best:
                best = key
                best_node = node
        if best_node is not None:
            self._select(best_node)

    def navigate_left(self) -> None:
        """Move to the nearest node in any lower layer."""
        self._navigate_across_layers(-1)

    def navigate_right(self) -> None:
        """Move to the nearest node in any higher layer."""
        self._navigate_across_layers(1)

    def _navigate_within_layer(self, step: int) -> None:
        if self.selected_node is None:
            return
        position = self.layout.positions.get(self.selected_node)
        if position is None:
            return
        layer, pos = position
        members = self.layout.layers[layer]
        if len(members) <= 1:
            return
        self._select(members[(pos + step) % len(members)])

    def navigate_up(self) -> None:
        self._navigate_within_layer(-1)

    def navigate_down(self) -> None:
        self._navigate_within_layer(1)

    def center_on_selected(self) -> None:
        if self.selected_node is None:
            return
        position = self.layout.positions.get(self.selected_node)
        if position is None:
            return
        cx, cy = node_world_center(position[0], position[1], self.zoom)
        if self.last_graph_area is not None:
            self.viewport_x = cx - self.last_graph_area.width // 2
            self.viewport_y = cy - self.last_graph_area.height // 2
        else:
            self.viewport_x = cx - FALLBACK_CENTER_OFFSET[0]
            self.viewport_y = cy - FALLBACK_CENTER_OFFSET[1]
        self.dirty = True

    # -- search --------------------------------------------------------

    def open_search(self) -> None:
        self.mode = Mode.SEARCH
        self.search_query = ""
        self.search_results = []
        self.search_cursor = 0
        self.dirty = True

    def update_search(self, query: str | None = None) -> None:
        """Re-run the case-insensitive substring match for the current query.

        An empty query matches every node.
        """
        if query is not None:
            self.search_query = query
        needle = self.search_query.lower()
        self.search_results = [
            node
            for node in self.graph.node_indices()
            if needle in self.graph[node].label.lower() or needle in self.graph[node].unique_id.lower()
        ]
        self.search_cursor = 0
        if self.search_results:
            self._select(self.search_results[0])
        self.dirty = True

    def next_search_result(self) -> None:
        if not self.search_results:
            return
        self.search_cursor = (self.search_cursor + 1) % len(self.search_results)
        self._select(self.search_results[self.search_cursor])

    def prev_search_result(self) -> None:
        if not self.search_results:
            return
        self.search_cursor = (self.search_cursor - 1) % len(self.search_results)
        self._select(self.search_results[self.search_cursor])

    # -- node list -----------------------------------------------------

    def toggle_node_list(self) -> None:
        self.show_node_list = not self.show_node_list
        self.dirty = True

    def toggle_group_collapse(self) -> None:
        """Collapse or expand the group containing the selected node."""
        if self.selected_node is None:
            return
        group_index = group_index_for_node(self.node_groups, self.selected_node)
        if group_index is None:
            return
        key = self.node_groups[group_index].key
        if key in self.collapsed_groups:
            self.collapsed_groups.discard(key)
            self._rebuild_node_list()
            entry = entry_index_for_node(self.node_list_entries, self.selected_node)
        else:
            self.collapsed_groups.add(key)
            self._rebuild_node_list()
            entry = entry_index_for_group(self.node_list_entries, group_index)
        if entry is not None:
            self.node_list_cursor = entry
        self.dirty = True

    def toggle_group_collapse_by_index(self, group_index: int) -> None:
        if not 0 <= group_index < len(self.node_groups):
            return
        key = self.node_groups[group_index].key
        if key in self.collapsed_groups:
            self.collapsed_groups.discard(key)
        else:
            self.collapsed_groups.add(key)
        self._rebuild_node_list()
        self.dirty = True

    def activate_node_list_entry(self, entry_index: int) -> None:
        """Header rows toggle their group; node rows select and center."""
        if not 0 <= entry_index < len(self.node_list_entries):
            return
        entry = self.node_list_entries[entry_index]
        if isinstance(entry, GroupHeader):
            self.toggle_group_collapse_by_index(entry.group_index)
            return
        if isinstance(entry, NodeRow):
            self._select(entry.node)
            self.node_list_cursor = entry_index

    # -- path highlight ------------------------------------------------

    def clear_path_highlight(self) -> None:
        self.highlight_source = None
        self.highlighted_nodes = set()
        self.impact_report = None
        self.dirty = True

    def toggle_path_highlight(self) -> None:
        if self.selected_node is None:
            self.clear_path_highlight()
            return
        if self.highlight_source == self.selected_node:
            self.clear_path_highlight()
            return
        selected = self.selected_node
        self.highlighted_nodes = self.graph.ancestors(selected) | self.graph.descendants(selected) | {selected}
        self.highlight_source = selected
        self.impact_report = self.impact(self.graph, selected)
        self.dirty = True

    # -- filters -------------------------------------------------------

    def node_passes_filter(self, node: NodeIndex) -> bool:
        """Display predicate; navigation ignores it."""
        if self.graph[node].node_type not in self.enabled_types:
            return False
        if self.status_filter is None:
            return True
        return self.status_for(node).kind == self.status_filter

    def filters_active(self) -> bool:
        return self.status_filter is not None or self.enabled_types != set(NodeType)

    def toggle_type_filter(self, node_type: NodeType) -> None:
        if node_type in self.enabled_types:
            self.enabled_types.discard(node_type)
        else:
            self.enabled_types.add(node_type)
        self.dirty = True

    def cycle_status_filter(self) -> None:
        """Step through ``None`` and every status kind, wrapping."""
        options: list[str | None] = [None, *STATUS_KINDS]
        self.status_filter = options[(options.index(self.status_filter) + 1) % len(options)]
        self.dirty = True

    def reset_filters(self) -> None:
        self.enabled_types = set(NodeType)
        self.status_filter = None
        self.dirty = True

    def open_filter_panel(self) -> None:
        self.mode = Mode.FILTER
        self.filter_cursor = 0
        self.dirty = True

    def move_filter_cursor(self, delta: int) -> None:
        rows = len(FILTER_TYPE_ROWS) + 1
        self.filter_cursor = (self.filter_cursor + delta) % rows
        self.dirty = True

    def activate_filter_row(self) -> None:
        """Type rows toggle their type; the last row cycles the status filter."""
        if self.filter_cursor < len(FILTER_TYPE_ROWS):
            self.toggle_type_filter(FILTER_TYPE_ROWS[self.filter_cursor])
        else:
            self.cycle_status_filter()

    # -- viewport ------------------------------------------------------

    def pan(self, dx: int, dy: int) -> None:
        self.viewport_x += dx
        self.viewport_y += dy
        self.dirty = True

    def zoom_in(self) -> None:
        self.zoom = round(min(ZOOM_MAX, self.zoom + ZOOM_STEP), 2)
        self.dirty = True

    def zoom_out(self) -> None:
        self.zoom = round(max(ZOOM_MIN, self.zoom - ZOOM_STEP), 2)
        self.dirty = True

    def reset_view(self) -> None:
        self.viewport_x = 0
        self.viewport_y = 0
        self.zoom = 1.0
        self.dirty = True

    def begin_drag(self, col: int, row: int) -> None:
        self.drag = DragState(col, row, self.viewport_x, self.viewport_y)

    def drag_to(self, col: int, row: int) -> None:
        if self.drag is None:
            return
        # Dragging right moves the viewport left.
        self.viewport_x = self.drag.viewport_x0 - (col - self.drag.start_col)
        self.viewport_y = self.drag.viewport_y0 - (row - self.drag.start_row)
        self.dirty = True

    def end_drag(self) -> None:
        self.drag = None

    # -- run lifecycle -------------------------------------------------

    def is_run_in_progress(self) -> bool:
        return isinstance(self.run_state, RunRunning)

    def has_run_output(self) -> bool:
        return not isinstance(self.run_state, RunIdle)

    def run_output_lines(self) -> list[str]:
        if isinstance(self.run_state, (RunRunning, RunFinished)):
            return self.run_state.output_lines
        return []

    def return_to_normal(self) -> None:
        self.mode = Mode.NORMAL
        self.context_menu_pos = None
        self.dirty = True

    def open_run_menu(self) -> bool:
        if self.selected_node is None:
            self.set_status_message("No node selected")
            return False
        if self.is_run_in_progress():
            self.set_status_message("A run is already in progress")
            return False
        self.mode = Mode.RUN_MENU
        self.dirty = True
        return True

    def open_context_menu(self, node: NodeIndex, col: int, row: int) -> bool:
        self.select_node_no_center(node)
        if self.is_run_in_progress():
            self.set_status_message("A run is already in progress")
            return False
        self.context_menu_pos = (col, row)
        self.mode = Mode.CONTEXT_MENU
        self.dirty = True
        return True

    def stage_run(self, command: CommandKind, scope: SelectionScope) -> bool:
        """Build the pending request for the selection and ask for confirmation."""
        if self.mode not in (Mode.RUN_MENU, Mode.CONTEXT_MENU):
            return False
        if self.selected_node is None:
            self.return_to_normal()
            return False
        self.pending_run = RunRequest(
            command=command,
            scope=scope,
            model_name=self.graph[self.selected_node].label,
            project_dir=self.project_dir,
            use_uv=resolve_use_uv(self.project_dir, self.runner_wrapper),
        )
        self.context_menu_pos = None
        self.mode = Mode.RUN_CONFIRM
        self.dirty = True
        return True

    def cancel_pending_run(self) -> None:
        self.pending_run = None
        self.return_to_normal()

    def start_run(self) -> bool:
        """Hand the pending request to the runner exactly once."""
        request = self.pending_run
        if request is None:
            return False
        self.pending_run = None
        channel = self.spawn(request)
        self.run_state = RunRunning(channel=channel, output_lines=[])
        self.run_output_scroll = 0
        self.run_output_follow = True
        self.mode = Mode.RUN_OUTPUT
        self.dirty = True
        return True

    def _finish_run(self, running: RunRunning, success: bool) -> None:
        running.channel.close()
        self.run_state = RunFinished(output_lines=running.output_lines, success=success)
        self.dirty = True

    def _reload_run_status(self) -> None:
        if self.reload_status(self.run_status, self.graph, self.project_dir):
            logger.debug("reloaded run status for %d nodes", len(self.run_status))

    def drain_run_messages(self) -> bool:
        """Pull every queued runner message without blocking.

        Returns ``True`` when anything changed.
        """
        running = self.run_state
        if not isinstance(running, RunRunning):
            return False
        messages = running.channel.drain()
        for message in messages:
            if isinstance(message, OutputLine):
                running.output_lines.append(message.text)
                self.dirty = True
            elif isinstance(message, RunCompleted):
                self._finish_run(running, message.success)
                self._reload_run_status()
                return True
            elif isinstance(message, SpawnError):
                first, *rest = message.message.splitlines() or [""]
                running.output_lines.append(f"ERROR: {first}")
                running.output_lines.extend(rest)
                self._finish_run(running, False)
                return True
            elif isinstance(message, ChannelDisconnected):
                self._finish_run(running, False)
                self._reload_run_status()
                return True
        return bool(messages)

    def open_run_output(self) -> bool:
        if not self.has_run_output():
            self.set_status_message("No run output yet")
            return False
        self.mode = Mode.RUN_OUTPUT
        self.dirty = True
        return True

    def run_output_max_scroll(self) -> int:
        """First line index that still fills the last rendered output body."""
        rows = self.last_run_output_rows or FALLBACK_RUN_OUTPUT_ROWS
        return max(0, len(self.run_output_lines()) - rows)

    def scroll_run_output(self, delta: int) -> None:
        max_scroll = self.run_output_max_scroll()
        # Scrolling starts from what is on screen, which is the tail while following.
        start = max_scroll if self.run_output_follow else min(self.run_output_scroll, max_scroll)
        self.run_output_follow = False
        self.run_output_scroll = max(0, min(max_scroll, start + delta))
        self.dirty = True

    def scroll_run_output_to_bottom(self) -> None:
        self.run_output_scroll = self.run_output_max_scroll()
        self.run_output_follow = True
        self.dirty = True

    def shutdown(self) -> None:
        """Abandon any in-flight run; its threads finish on their own."""
        if isinstance(self.run_state, RunRunning):
            self.run_state.channel.close()
