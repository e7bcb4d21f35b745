"""UI theme definitions and selection helpers.

Themes are semantic ANSI palettes for the canvas, panes and overlays. SQL
preview colours come from Pygments and are not part of the theme.
"""

from __future__ import annotations

from dataclasses import dataclass

from .graph import NodeType


@dataclass(frozen=True)
class UITheme:
    """Semantic ANSI palette used by renderers."""

    name: str
    divider: str
    reverse: str
    reset: str
    dim: str
    title: str
    edge: str
    edge_highlight: str
    node_model: str
    node_source: str
    node_seed: str
    node_snapshot: str
    node_test: str
    node_exposure: str
    node_phantom: str
    node_selected: str
    node_highlight: str
    status_success: str
    status_error: str
    status_skipped: str
    status_outdated: str
    status_never_run: str
    group_header: str
    search_query: str
    help_key: str
    help_dim: str
    overlay_border: str
    overlay_title: str
    status_message: str

    def node_color(self, node_type: NodeType) -> str:
        return {
            NodeType.MODEL: self.node_model,
            NodeType.SOURCE: self.node_source,
            NodeType.SEED: self.node_seed,
            NodeType.SNAPSHOT: self.node_snapshot,
            NodeType.TEST: self.node_test,
            NodeType.EXPOSURE: self.node_exposure,
            NodeType.PHANTOM: self.node_phantom,
        }[node_type]

    def status_color(self, kind: str) -> str:
        return {
            "success": self.status_success,
            "error": self.status_error,
            "skipped": self.status_skipped,
            "outdated": self.status_outdated,
        }.get(kind, self.status_never_run)


DEFAULT_THEME = UITheme(
    name="default",
    divider="\033[2m",
    reverse="\033[7m",
    reset="\033[0m",
    dim="\033[2m",
    title="\033[1;38;5;81m",
    edge="\033[38;5;244m",
    edge_highlight="\033[1;38;5;220m",
    node_model="\033[38;5;75m",
    node_source="\033[38;5;114m",
    node_seed="\033[38;5;180m",
    node_snapshot="\033[38;5;176m",
    node_test="\033[38;5;250m",
    node_exposure="\033[38;5;209m",
    node_phantom="\033[2;38;5;245m",
    node_selected="\033[1;38;5;229m",
    node_highlight="\033[38;5;220m",
    status_success="\033[38;5;42m",
    status_error="\033[1;38;5;196m",
    status_skipped="\033[38;5;244m",
    status_outdated="\033[38;5;214m",
    status_never_run="\033[2;38;5;250m",
    group_header="\033[1;34m",
    search_query="\033[1;38;5;81m",
    help_key="\033[38;5;229m",
    help_dim="\033[2;38;5;250m",
    overlay_border="\033[38;5;45m",
    overlay_title="\033[1;38;5;45m",
    status_message="\033[38;5;214m",
)

OCEAN_THEME = UITheme(
    name="ocean",
    divider="\033[2;38;5;31m",
    reverse="\033[7m",
    reset="\033[0m",
    dim="\033[2;38;5;110m",
    title="\033[1;38;5;45m",
    edge="\033[38;5;31m",
    edge_highlight="\033[1;38;5;159m",
    node_model="\033[38;5;117m",
    node_source="\033[38;5;79m",
    node_seed="\033[38;5;152m",
    node_snapshot="\033[38;5;147m",
    node_test="\033[38;5;110m",
    node_exposure="\033[38;5;215m",
    node_phantom="\033[2;38;5;67m",
    node_selected="\033[1;38;5;231m",
    node_highlight="\033[38;5;159m",
    status_success="\033[38;5;84m",
    status_error="\033[1;38;5;203m",
    status_skipped="\033[38;5;67m",
    status_outdated="\033[38;5;215m",
    status_never_run="\033[2;38;5;110m",
    group_header="\033[1;38;5;45m",
    search_query="\033[1;38;5;45m",
    help_key="\033[38;5;153m",
    help_dim="\033[2;38;5;110m",
    overlay_border="\033[38;5;39m",
    overlay_title="\033[1;38;5;39m",
    status_message="\033[38;5;215m",
)

_THEMES: dict[str, UITheme] = {
    DEFAULT_THEME.name: DEFAULT_THEME,
    OCEAN_THEME.name: OCEAN_THEME,
}


def available_theme_names() -> tuple[str, ...]:
    return tuple(sorted(_THEMES.keys()))


def normalize_theme_name(name: str | None) -> str:
    """Return a valid theme name, falling back to default."""
    if not name:
        return DEFAULT_THEME.name
    candidate = str(name).strip().lower()
    if candidate in _THEMES:
        return candidate
    return DEFAULT_THEME.name


def resolve_theme(name: str | None) -> UITheme:
    return _THEMES[normalize_theme_name(name)]


__all__ = [
    "UITheme",
    "DEFAULT_THEME",
    "OCEAN_THEME",
    "available_theme_names",
    "normalize_theme_name",
    "resolve_theme",
]
