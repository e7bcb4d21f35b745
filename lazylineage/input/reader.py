"""Low-level terminal input decoding.

Reads raw bytes from stdin and translates them into normalized key tokens.
Handles ESC-sequence timing, shift-tab, and SGR mouse events (press, drag,
release, wheel).
"""

from __future__ import annotations

import os
import select

ESC_SEQUENCE_TIMEOUT_MS = 25
_PENDING_BYTES: list[bytes] = []

_CONTROL_KEYS = {
    b"\x03": "CTRL_C",
    b"\t": "TAB",
    b"\x08": "BACKSPACE",
    b"\x7f": "BACKSPACE",
    b"\x15": "CTRL_U",
    b"\r": "ENTER_CR",
    b"\n": "ENTER_LF",
}

_CSI_FINAL_KEYS = {
    b"A": "UP",
    b"B": "DOWN",
    b"C": "RIGHT",
    b"D": "LEFT",
    b"Z": "SHIFT_TAB",
    b"H": "HOME",
    b"F": "END",
}

_MOUSE_MOTION_BIT = 0b0010_0000
_MOUSE_WHEEL_BIT = 0b0100_0000
_MOUSE_BUTTON_NAMES = {0: "LEFT", 1: "MIDDLE", 2: "RIGHT"}
_WHEEL_NAMES = {0: "UP", 1: "DOWN", 2: "LEFT", 3: "RIGHT"}


def _read_ready_byte(fd: int, timeout_ms: int) -> bytes | None:
    ready, _, _ = select.select([fd], [], [], max(0.0, timeout_ms / 1000.0))
    if not ready:
        return None
    ch = os.read(fd, 1)
    if not ch:
        return None
    return ch


def _decode_utf8_char(fd: int, first: bytes) -> str:
    lead = first[0]
    if lead >= 0xF0:
        extra = 3
    elif lead >= 0xE0:
        extra = 2
    elif lead >= 0xC0:
        extra = 1
    else:
        extra = 0
    data = first
    for _ in range(extra):
        nxt = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        if nxt is None:
            break
        data += nxt
    return data.decode("utf-8", errors="replace")


def _decode_sgr_mouse(fd: int) -> str:
    """Decode ``ESC [ < btn ; col ; row (M|m)`` into a ``MOUSE_*`` token."""
    payload: list[bytes] = []
    while True:
        part = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        if part is None:
            return "ESC"
        if part in {b"M", b"m"}:
            break
        payload.append(part)
        if len(payload) > 64:
            return "ESC"
    try:
        btn_s, col_s, row_s = b"".join(payload).decode("ascii").split(";")
        btn = int(btn_s)
        col = int(col_s)
        row = int(row_s)
    except ValueError:
        return "ESC"

    button = btn & 0b11
    if btn & _MOUSE_WHEEL_BIT:
        return f"MOUSE_WHEEL_{_WHEEL_NAMES[button]}:{col}:{row}"
    if btn & _MOUSE_MOTION_BIT:
        name = _MOUSE_BUTTON_NAMES.get(button)
        if name is None:
            return "MOUSE"
        return f"MOUSE_{name}_DRAG:{col}:{row}"
    name = _MOUSE_BUTTON_NAMES.get(button)
    if name is None:
        return "MOUSE"
    suffix = "DOWN" if part == b"M" else "UP"
    return f"MOUSE_{name}_{suffix}:{col}:{row}"


def read_key(fd: int, timeout_ms: int | None = None) -> str:
    """Read one key token from ``fd``; ``""`` when the timeout elapses."""
    if _PENDING_BYTES:
        ch = _PENDING_BYTES.pop(0)
    else:
        if timeout_ms is not None:
            ready, _, _ = select.select([fd], [], [], max(0.0, timeout_ms / 1000.0))
            if not ready:
                return ""

        ch = os.read(fd, 1)
        if not ch:
            return ""

    control = _CONTROL_KEYS.get(ch)
    if control is not None:
        return control

    if ch != b"\x1b":
        return _decode_utf8_char(fd, ch)

    seq = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
    if seq is None:
        return "ESC"
    if seq != b"[":
        _PENDING_BYTES.append(seq)
        return "ESC"
    seq = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
    if seq is None:
        return "ESC"
    final = _CSI_FINAL_KEYS.get(seq)
    if final is not None:
        return final
    if seq == b"<":
        return _decode_sgr_mouse(fd)
    if seq in {b"5", b"6"}:
        tail = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        if tail == b"~":
            return "PAGE_UP" if seq == b"5" else "PAGE_DOWN"
    return "ESC"
