"""Shared types for preview image themes."""

from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Mapping

import httpx

IMAGE_WIDTH = 1200
IMAGE_HEIGHT = 630


@dataclass(frozen=True)
class ThemeProps:
    title: str
    site: str
    excerpt: str
    author: str
    date: str
    background_image_src: str


@dataclass
class ThemeContext:
    """Per-request inputs a theme may need besides its props."""

    base_url: str
    params: Mapping[str, str]
    fonts_dir: Path
    http_client: httpx.AsyncClient
    default_background_url: str = ""


@dataclass(frozen=True)
class ThemeFont:
    name: str
    data: bytes
    weight: int = 400
    style: str = "normal"


@dataclass(frozen=True)
class ThemeDefinition:
    """A theme is a pair of functions plus the font family it draws with."""

    load_fonts: Callable[[ThemeContext], Awaitable[list[ThemeFont]]]
    render: Callable[[ThemeProps, ThemeContext, list[ThemeFont]], Awaitable[bytes]]
    font_family: str
