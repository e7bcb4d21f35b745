"""Terminal control helpers for the TUI session.

Owns raw-mode lifecycle, alternate-screen switching, and mouse toggles.
Button-event tracking (1002) is enabled so left-drag pans arrive as motion.
"""

from __future__ import annotations

import contextlib
import os
import termios
import tty

_MOUSE_ON = b"\x1b[?1000h\x1b[?1002h\x1b[?1006h"
_MOUSE_OFF = b"\x1b[?1000l\x1b[?1002l\x1b[?1006l"


class TerminalController:
    """Manage terminal mode transitions for one interactive session."""

    def __init__(self, stdin_fd: int, stdout_fd: int) -> None:
        self.stdin_fd = stdin_fd
        self.stdout_fd = stdout_fd
        self._saved_tty_state = termios.tcgetattr(stdin_fd)
        self._mouse_reporting_enabled = False

    def enable_tui_mode(self) -> None:
        """Enter raw alternate-screen mode with mouse reporting enabled."""
        tty.setraw(self.stdin_fd, termios.TCSAFLUSH)
        # Alternate screen, hide cursor, then mouse reporting.
        os.write(self.stdout_fd, b"\x1b[?1049h\x1b[?25l" + _MOUSE_ON)
        self._mouse_reporting_enabled = True

    def disable_tui_mode(self) -> None:
        """Restore normal terminal state and disable TUI mouse mode."""
        os.write(self.stdout_fd, _MOUSE_OFF + b"\x1b[?25h\x1b[?1049l")
        self._mouse_reporting_enabled = False
        termios.tcsetattr(self.stdin_fd, termios.TCSAFLUSH, self._saved_tty_state)

    def set_mouse_reporting(self, enabled: bool) -> None:
        desired = bool(enabled)
        if desired == self._mouse_reporting_enabled:
            return
        os.write(self.stdout_fd, _MOUSE_ON if desired else _MOUSE_OFF)
        self._mouse_reporting_enabled = desired

    @contextlib.contextmanager
    def raw_mode(self):
        """Context manager that brackets code with TUI enter/exit calls."""
        try:
            self.enable_tui_mode()
            yield
        finally:
            self.disable_tui_mode()
