"""Syntax-highlighted preview of a node's source file.

SQL files use Pygments' ``SqlLexer``; other files get a lexer chosen by
filename. Terminal control bytes are neutralized before highlighting.
"""

from __future__ import annotations

import logging
import re
from collections import OrderedDict
from pathlib import Path

from pygments import highlight
from pygments.formatters import Terminal256Formatter
from pygments.lexers import SqlLexer, TextLexer, get_lexer_for_filename
from pygments.util import ClassNotFound

logger = logging.getLogger(__name__)

_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")
PREVIEW_STYLE = "monokai"
MAX_PREVIEW_BYTES = 256 * 1024
PREVIEW_CACHE_MAX = 64

_FORMATTER = Terminal256Formatter(style=PREVIEW_STYLE)
# One entry per path, keyed to the mtime it was rendered from.
_CACHE: OrderedDict[Path, tuple[float, list[str]]] = OrderedDict()


def read_text(path: Path) -> str:
    """Read text using tolerant encoding fallback order."""
    for encoding in ("utf-8", "utf-8-sig", "latin-1"):
        try:
            return path.read_text(encoding=encoding)
        except UnicodeDecodeError:
            continue
    return path.read_bytes().decode("utf-8", errors="replace")


def sanitize_terminal_text(source: str) -> str:
    """Escape terminal control bytes to avoid side effects (bell, cursor moves, etc.)."""
    if _CONTROL_RE.search(source) is None:
        return source
    return _CONTROL_RE.sub(lambda match: f"\\x{ord(match.group(0)):02x}", source)


def _lexer_for(path: Path):
    if path.suffix.lower() == ".sql":
        return SqlLexer()
    try:
        return get_lexer_for_filename(path.name)
    except ClassNotFound:
        return TextLexer()


def highlight_text(source: str, path: Path) -> list[str]:
    """Highlight ``source`` as if it came from ``path``; one string per line."""
    rendered = highlight(sanitize_terminal_text(source), _lexer_for(path), _FORMATTER)
    return rendered.rstrip("\n").split("\n")


def resolve_source_path(file_path: Path | None, project_dir: Path) -> Path | None:
    if file_path is None:
        return None
    return file_path if file_path.is_absolute() else project_dir / file_path


def preview_lines(file_path: Path | None, project_dir: Path) -> list[str]:
    """Highlighted lines of the node's file; empty when it cannot be read."""
    path = resolve_source_path(file_path, project_dir)
    if path is None:
        return []
    try:
        stat = path.stat()
    except OSError:
        return []
    cached = _CACHE.get(path)
    if cached is not None and cached[0] == stat.st_mtime:
        _CACHE.move_to_end(path)
        return cached[1]
    if stat.st_size > MAX_PREVIEW_BYTES:
        return ["(file too large to preview)"]
    try:
        source = read_text(path)
    except OSError as exc:
        logger.debug("cannot preview %s: %s", path, exc)
        return []
    lines = highlight_text(source, path)
    _CACHE[path] = (stat.st_mtime, lines)
    _CACHE.move_to_end(path)
    while len(_CACHE) > PREVIEW_CACHE_MAX:
        _CACHE.popitem(last=False)
    return lines
