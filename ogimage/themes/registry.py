"""Closed registry of preview image themes."""

from enum import Enum

from ogimage.themes.modern import modern_theme
from ogimage.themes.pixel import pixel_theme
from ogimage.themes.types import ThemeDefinition


class Theme(str, Enum):
    PIXEL = "pixel"
    MODERN = "modern"


DEFAULT_THEME = Theme.PIXEL

THEMES: dict[Theme, ThemeDefinition] = {
    Theme.PIXEL: pixel_theme,
    Theme.MODERN: modern_theme,
}


def resolve_theme(name: str | None) -> Theme:
    """Map a ``theme`` query value to a Theme; unknown names get the default."""
    try:
        return Theme(name or DEFAULT_THEME.value)
    except ValueError:
        return DEFAULT_THEME


def get_theme(name: str | None) -> ThemeDefinition:
    return THEMES[resolve_theme(name)]
