"""Persistent JSON config helpers.

Stores node-list visibility, UI theme, default zoom, and the dbt wrapper
preference. All access is defensive: malformed or missing config falls back
safely.
"""

from __future__ import annotations

import json
from pathlib import Path

from platformdirs import user_config_dir

APP_NAME = "lazylineage"
CONFIG_FILENAME = "config.json"
CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME

ZOOM_MIN = 0.3
ZOOM_MAX = 3.0
RUNNER_WRAPPERS: tuple[str, ...] = ("auto", "uv", "dbt")


def load_config() -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict[str, object]) -> None:
    """Persist config data as pretty-printed JSON.

    Filesystem errors are ignored so a read-only config dir never breaks
    the session.
    """
    try:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_PATH.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except OSError:
        pass


def _update_config(key: str, value: object) -> None:
    config = load_config()
    config[key] = value
    save_config(config)


def load_show_node_list() -> bool:
    """Only explicit booleans are honoured; anything else means hidden."""
    value = load_config().get("show_node_list")
    return value if isinstance(value, bool) else False


def save_show_node_list(show_node_list: bool) -> None:
    _update_config("show_node_list", bool(show_node_list))


def load_theme_name() -> str | None:
    """Load persisted UI theme name, returning ``None`` when unset/invalid."""
    value = load_config().get("theme")
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped if stripped else None


def save_theme_name(theme_name: str) -> None:
    stripped = str(theme_name).strip()
    if not stripped:
        return
    _update_config("theme", stripped)


def load_zoom() -> float:
    value = load_config().get("zoom")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 1.0
    return max(ZOOM_MIN, min(ZOOM_MAX, float(value)))


def save_zoom(zoom: float) -> None:
    _update_config("zoom", round(max(ZOOM_MIN, min(ZOOM_MAX, zoom)), 2))


def load_runner_wrapper() -> str:
    """``auto`` detects uv projects; ``uv`` and ``dbt`` force a choice."""
    value = load_config().get("runner_wrapper")
    if isinstance(value, str) and value.strip().lower() in RUNNER_WRAPPERS:
        return value.strip().lower()
    return "auto"
