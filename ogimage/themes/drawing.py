"""Pillow helpers shared by the themes."""

import asyncio
import io
import logging
import random
from functools import lru_cache
from pathlib import Path

import httpx
from PIL import Image, ImageDraw, ImageFont, ImageOps

from ogimage.themes.types import IMAGE_HEIGHT, IMAGE_WIDTH, ThemeContext, ThemeFont

logger = logging.getLogger(__name__)

BACKGROUND_TIMEOUT_SECONDS = 5.0
MAX_BACKGROUND_BYTES = 8 * 1024 * 1024
BASE_COLOR = (10, 10, 10)

FontType = ImageFont.FreeTypeFont | ImageFont.ImageFont


def truncate(text: str, limit: int) -> str:
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text


@lru_cache(maxsize=1)
def default_background() -> Image.Image:
    """Starry night sky drawn once per process."""
    image = Image.new("RGB", (IMAGE_WIDTH, IMAGE_HEIGHT), BASE_COLOR)
    draw = ImageDraw.Draw(image)
    for y in range(IMAGE_HEIGHT):
        t = y / IMAGE_HEIGHT
        color = (int(8 + 22 * t), int(12 + 18 * t), int(38 + 40 * t))
        draw.line([(0, y), (IMAGE_WIDTH, y)], fill=color)
    rng = random.Random(630)
    for _ in range(260):
        x, y = rng.randrange(IMAGE_WIDTH), rng.randrange(IMAGE_HEIGHT)
        level = rng.randrange(120, 256)
        size = 1 if rng.random() < 0.85 else 2
        draw.rectangle([x, y, x + size - 1, y + size - 1], fill=(level, level, level))
    return image


@lru_cache(maxsize=1)
def default_background_jpeg() -> bytes:
    buffer = io.BytesIO()
    default_background().save(buffer, format="JPEG", quality=90)
    return buffer.getvalue()


async def load_background(src: str, context: ThemeContext) -> Image.Image:
    """Fetch ``src`` and decode it; any failure yields the built-in default.

    ``src`` has already passed the URL safety gate. Redirects are not
    followed since their targets were never validated.
    """
    if not src or src == context.default_background_url:
        return default_background()
    try:
        data = await _fetch_capped(src, context.http_client)
        if data is None:
            return default_background()
        return await asyncio.to_thread(_decode_image, data)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.debug(f"Background fetch failed for {src}: {e}")
    except (OSError, Image.DecompressionBombError) as e:
        logger.debug(f"Background decode failed for {src}: {e}")
    return default_background()


async def _fetch_capped(src: str, client: httpx.AsyncClient) -> bytes | None:
    """Stream ``src`` into memory, giving up once it passes the size cap."""
    async with client.stream(
        "GET",
        src,
        timeout=BACKGROUND_TIMEOUT_SECONDS,
        follow_redirects=False,
        headers={"User-Agent": "ogimage/1.0 (preview renderer)"},
    ) as response:
        if response.status_code != 200:
            logger.debug(f"Background {src} returned {response.status_code}")
            return None
        declared = response.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > MAX_BACKGROUND_BYTES:
            logger.debug(f"Background {src} declares {declared} bytes")
            return None

        buffer = bytearray()
        async for chunk in response.aiter_bytes():
            buffer.extend(chunk)
            if len(buffer) > MAX_BACKGROUND_BYTES:
                logger.debug(f"Background {src} exceeds {MAX_BACKGROUND_BYTES} bytes")
                return None
        return bytes(buffer)


def _decode_image(data: bytes) -> Image.Image:
    with Image.open(io.BytesIO(data)) as image:
        return image.convert("RGB")


def cover(image: Image.Image) -> Image.Image:
    """Scale and center-crop to the output size (CSS ``object-fit: cover``)."""
    return ImageOps.fit(image, (IMAGE_WIDTH, IMAGE_HEIGHT), centering=(0.5, 0.5))


async def read_font_file(fonts_dir: Path, relative_path: str) -> bytes | None:
    path = fonts_dir / relative_path
    try:
        return await asyncio.to_thread(path.read_bytes)
    except OSError as e:
        logger.warning(f"Font not available at {path}: {e}")
        return None


def pick_font(fonts: list[ThemeFont], size: int, weight: int = 400) -> FontType:
    """Closest-weight TrueType font at ``size``, or Pillow's built-in font."""
    if fonts:
        font = min(fonts, key=lambda f: abs(f.weight - weight))
        try:
            return ImageFont.truetype(io.BytesIO(font.data), size)
        except OSError as e:
            logger.warning(f"Could not load font {font.name}: {e}")
    return ImageFont.load_default(size=size)


def vertical_overlay(height: int, stops: list[tuple[float, int]]) -> Image.Image:
    """Black overlay anchored at the bottom edge, alpha interpolated upwards.

    ``stops`` are ``(position, alpha)`` pairs from 0.0 (bottom) to 1.0 (top).
    """
    overlay = Image.new("RGBA", (IMAGE_WIDTH, height), (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)
    for row in range(height):
        position = 1 - row / max(height - 1, 1)
        draw.line([(0, row), (IMAGE_WIDTH, row)], fill=(0, 0, 0, _interpolate(stops, position)))
    return overlay


def _interpolate(stops: list[tuple[float, int]], position: float) -> int:
    for (p0, a0), (p1, a1) in zip(stops, stops[1:]):
        if p0 <= position <= p1:
            span = (p1 - p0) or 1
            return int(a0 + (a1 - a0) * (position - p0) / span)
    return stops[-1][1]


def text_height(draw: ImageDraw.ImageDraw, text: str, font: FontType) -> int:
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    return bottom - top


def encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.convert("RGB").save(buffer, format="PNG", optimize=True)
    return buffer.getvalue()
