"""Main interactive event loop for the terminal UI.

Each tick: expire the status message, redraw when dirty, wait up to the key
timeout for input, dispatch it, and drain background run output. The loop is
wiring only; feature logic lives in ``AppState`` and the input handlers.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from ..input import dispatch_key
from ..render import clamp_node_list_start
from .state import AppState
from .terminal import TerminalController

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuntimeLoopTiming:
    key_timeout_ms: int = 50


@dataclass(frozen=True)
class RuntimeLoopCallbacks:
    """Injected I/O used by ``run_main_loop`` so tests can drive it."""

    read_key: Callable[[int, int], str]
    render: Callable[[AppState, int, int], None]
    terminal_size: Callable[[], tuple[int, int]]


def run_main_loop(
    state: AppState,
    terminal: TerminalController,
    stdin_fd: int,
    timing: RuntimeLoopTiming,
    callbacks: RuntimeLoopCallbacks,
) -> None:
    """Run until a quit key is dispatched."""
    last_size: tuple[int, int] | None = None
    skip_next_lf = False
    with terminal.raw_mode():
        while True:
            columns, lines = callbacks.terminal_size()
            if (columns, lines) != last_size:
                last_size = (columns, lines)
                state.dirty = True
            state.expire_status_message(time.monotonic())
            if state.show_node_list and clamp_node_list_start(state, lines - 2):
                state.dirty = True

            if state.dirty:
                callbacks.render(state, columns, lines)
                state.dirty = False

            try:
                key = callbacks.read_key(stdin_fd, timing.key_timeout_ms)
            except KeyboardInterrupt:
                continue
            if key == "":
                state.drain_run_messages()
                continue

            # A CR LF pair from one Enter press must not dispatch twice.
            if skip_next_lf and key == "ENTER_LF":
                skip_next_lf = False
                continue
            skip_next_lf = key == "ENTER_CR"
            if key in {"ENTER_CR", "ENTER_LF"}:
                key = "ENTER"

            if dispatch_key(key, state):
                logger.debug("quit requested")
                break
            state.drain_run_messages()
