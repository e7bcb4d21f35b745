"""Input-layer public API for key decoding and interaction handlers.

Exports are split between low-level terminal decoding (``read_key``) and the
mode-aware dispatch used by the runtime loop.
"""

from .key_modes import BINDINGS_BY_MODE, dispatch_key
from .key_registry import KeyBinding, KeyRegistry
from .mouse import handle_mouse, parse_mouse_col_row
from .reader import ESC_SEQUENCE_TIMEOUT_MS, _PENDING_BYTES, read_key

__all__ = [
    "read_key",
    "_PENDING_BYTES",
    "ESC_SEQUENCE_TIMEOUT_MS",
    "BINDINGS_BY_MODE",
    "KeyBinding",
    "KeyRegistry",
    "dispatch_key",
    "handle_mouse",
    "parse_mouse_col_row",
]
