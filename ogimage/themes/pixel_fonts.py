"""Pixel font options selectable through the ``pixelFont`` parameter."""

from dataclasses import dataclass


@dataclass(frozen=True)
class PixelFontOption:
    key: str
    label: str
    font_name: str
    file_path: str


PIXEL_FONT_OPTIONS = (
    PixelFontOption("zpix", "Zpix", "Zpix", "zpix.ttf"),
    PixelFontOption(
        "geist-square", "Geist Pixel Square", "Geist Pixel Square", "geist-pixel/GeistPixel-Square.ttf"
    ),
    PixelFontOption(
        "geist-circle", "Geist Pixel Circle", "Geist Pixel Circle", "geist-pixel/GeistPixel-Circle.ttf"
    ),
    PixelFontOption(
        "geist-line", "Geist Pixel Line", "Geist Pixel Line", "geist-pixel/GeistPixel-Line.ttf"
    ),
    PixelFontOption(
        "geist-triangle",
        "Geist Pixel Triangle",
        "Geist Pixel Triangle",
        "geist-pixel/GeistPixel-Triangle.ttf",
    ),
    PixelFontOption(
        "geist-grid", "Geist Pixel Grid", "Geist Pixel Grid", "geist-pixel/GeistPixel-Grid.ttf"
    ),
)

DEFAULT_PIXEL_FONT = "zpix"

_PIXEL_FONT_MAP = {option.key: option for option in PIXEL_FONT_OPTIONS}


def normalize_pixel_font(value: str | None) -> str:
    if not value:
        return DEFAULT_PIXEL_FONT
    return value if value in _PIXEL_FONT_MAP else DEFAULT_PIXEL_FONT


def get_pixel_font_option(value: str | None) -> PixelFontOption:
    return _PIXEL_FONT_MAP[normalize_pixel_font(value)]
