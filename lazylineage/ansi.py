"""ANSI-aware text measurement and line shaping utilities.

Clipping and padding preserve escape sequences so styled cells stay aligned
when color codes and wide chars are present.
"""

from __future__ import annotations

import re
import unicodedata

ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")
TAB_STOP = 8
RESET = "\033[0m"


def char_display_width(ch: str, col: int) -> int:
    """Return terminal column width for one character at visual column ``col``.

    Tabs expand to the next 8-column stop, combining marks consume no columns,
    and East Asian wide/fullwidth characters consume two.
    """
    if ch == "\t":
        return TAB_STOP - (col % TAB_STOP)
    if unicodedata.combining(ch):
        return 0
    if unicodedata.east_asian_width(ch) in {"W", "F"}:
        return 2
    return 1


def display_width(text: str) -> int:
    col = 0
    for ch in ANSI_ESCAPE_RE.sub("", text):
        col += char_display_width(ch, col)
    return col


def clip_ansi_line(text: str, max_cols: int) -> str:
    """Trim a styled line to at most ``max_cols`` display columns.

    ANSI escape sequences are preserved verbatim and do not count toward width.
    """
    if max_cols <= 0 or not text:
        return ""

    out: list[str] = []
    col = 0
    i = 0
    n = len(text)
    while i < n and col < max_cols:
        if text[i] == "\x1b":
            match = ANSI_ESCAPE_RE.match(text, i)
            if match:
                out.append(match.group(0))
                i = match.end()
                continue
        ch = text[i]
        w = char_display_width(ch, col)
        if col + w > max_cols:
            break
        out.append(" " * w if ch == "\t" else ch)
        col += w
        i += 1

    return "".join(out)


def slice_ansi_line(text: str, start_cols: int) -> str:
    """Return the part of a styled line from display column ``start_cols`` on.

    The latest SGR sequence seen before the cut is re-emitted so the visible
    remainder keeps its styling.
    """
    if not text:
        return ""
    start_cols = max(0, start_cols)
    col = 0
    i = 0
    n = len(text)
    pending_sgr = ""
    while i < n and col < start_cols:
        if text[i] == "\x1b":
            match = ANSI_ESCAPE_RE.match(text, i)
            if match:
                if match.group(0).endswith("m"):
                    pending_sgr = match.group(0)
                i = match.end()
                continue
        col += char_display_width(text[i], col)
        i += 1
    # A wide char straddling the cut leaves one blank column.
    lead = " " * (col - start_cols)
    return pending_sgr + lead + text[i:]


def splice_ansi_line(base: str, col: int, overlay: str, width: int) -> str:
    """Replace columns ``[col, col + width)`` of ``base`` with ``overlay``."""
    left = fit_ansi_line(base, col)
    return f"{RESET}{left}{fit_ansi_line(overlay, width)}{RESET}{slice_ansi_line(base, col + width)}"


def fit_ansi_line(text: str, width: int) -> str:
    """Clip or right-pad ``text`` to exactly ``width`` columns, ending reset."""
    clipped = clip_ansi_line(text, width)
    pad = max(0, width - display_width(clipped))
    suffix = RESET if "\x1b" in clipped else ""
    return f"{clipped}{suffix}{' ' * pad}"


def truncate_label(text: str, width: int) -> str:
    """Plain-text truncation with an ellipsis when ``text`` does not fit."""
    if width <= 0:
        return ""
    if len(text) <= width:
        return text
    if width == 1:
        return "…"
    return text[: width - 1] + "…"
