"""Preview image request orchestration.

Authorization fails closed: an unknown route key or a bad signature is a
plain 404 with no hint of which check failed. Content fails open: anything
wrong with the requested image, theme or font silently falls back to a
default so that a preview is always produced.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable
from urllib.parse import urlsplit

import httpx
from fastapi.responses import PlainTextResponse, Response

from ogimage.net.resolver import HostnameResolver
from ogimage.net.url_gate import (
    is_supported_image_format,
    parse_public_image_url,
    reconstruct_truncated_image_url,
)
from ogimage.security.signing import SignatureAuthority, parse_query
from ogimage.settings import AppSettings
from ogimage.text import sanitize_text
from ogimage.themes.registry import get_theme
from ogimage.themes.types import ThemeContext, ThemeFont, ThemeProps

logger = logging.getLogger(__name__)

DEFAULT_BACKGROUND_PATH = "/default-bg.jpg"
IMAGE_CACHE_CONTROL = "public, max-age=0, s-maxage=86400, stale-while-revalidate=604800"


def not_found_response(headers: dict[str, str] | None = None) -> PlainTextResponse:
    return PlainTextResponse("Not Found", status_code=404, headers=headers)


def first_values(query: str) -> dict[str, str]:
    """First value of every query parameter, like ``URLSearchParams.get``."""
    params: dict[str, str] = {}
    for key, value in parse_query(query):
        params.setdefault(key, value)
    return params


def origin_of(url: str) -> str:
    parsed = urlsplit(url)
    return f"{parsed.scheme}://{parsed.netloc}"


@dataclass(frozen=True)
class PreviewFields:
    title: str
    site: str
    author: str
    date: str
    excerpt: str
    image: str
    theme: str
    pixel_font: str


def extract_fields(params: dict[str, str]) -> PreviewFields:
    return PreviewFields(
        title=params.get("title") or "Untitled",
        site=params.get("site") or "Blog",
        author=params.get("author") or "",
        date=params.get("date") or "",
        excerpt=params.get("excerpt") or "",
        image=params.get("image") or "",
        theme=params.get("theme") or "",
        pixel_font=params.get("pixelFont") or "",
    )


class PreviewRequestHandler:
    """Turns ``GET /api/<route_key>?...`` into a rendered preview image."""

    def __init__(
        self,
        settings: AppSettings,
        resolver: HostnameResolver,
        authority: SignatureAuthority,
        http_client: httpx.AsyncClient,
    ) -> None:
        self._settings = settings
        self._resolver = resolver
        self._authority = authority
        self._http_client = http_client
        self._allowed_route_keys = settings.security.allowed_route_keys

    def is_allowed_route(self, route_key: str) -> bool:
        return route_key in self._allowed_route_keys

    async def resolve_background(self, image: str, params: dict[str, str], default_url: str) -> str:
        """Return a vetted image URL, or ``default_url`` on any rejection."""
        image = reconstruct_truncated_image_url(image, params)
        allowed = await parse_public_image_url(image, self._resolver)
        if allowed is None:
            if image:
                logger.debug(f"Image rejected by safety gate: {image[:200]}")
            return default_url
        candidate = allowed.geturl()
        if not is_supported_image_format(candidate):
            logger.debug(f"Image format not supported: {candidate[:200]}")
            return default_url
        return candidate

    async def handle(self, route_key: str, request_url: str) -> Response:
        if not self.is_allowed_route(route_key):
            logger.info("Rejected preview request: unknown route key")
            return not_found_response()

        if not self._authority.verify(request_url):
            return not_found_response()

        params = first_values(urlsplit(request_url).query)
        fields = extract_fields(params)
        base_url = origin_of(request_url)
        default_background = base_url + DEFAULT_BACKGROUND_PATH

        context = ThemeContext(
            base_url=base_url,
            params=params,
            fonts_dir=self._settings.fonts_dir,
            http_client=self._http_client,
            default_background_url=default_background,
        )
        theme = get_theme(fields.theme)
        font_task = asyncio.create_task(self._load_fonts(theme.load_fonts, context))

        try:
            background = await self.resolve_background(fields.image, params, default_background)
        except BaseException:
            font_task.cancel()
            raise
        props = ThemeProps(
            title=sanitize_text(fields.title),
            site=sanitize_text(fields.site),
            excerpt=sanitize_text(fields.excerpt),
            author=fields.author,
            date=fields.date,
            background_image_src=background,
        )

        fonts = await font_task
        image = await theme.render(props, context, fonts)
        return Response(
            content=image,
            media_type="image/png",
            headers={"Cache-Control": IMAGE_CACHE_CONTROL},
        )

    @staticmethod
    async def _load_fonts(
        load_fonts: Callable[[ThemeContext], Awaitable[list[ThemeFont]]], context: ThemeContext
    ) -> list[ThemeFont]:
        try:
            return await load_fonts(context)
        except Exception as e:
            logger.warning(f"Font loading failed, using built-in font: {e}")
            return []
