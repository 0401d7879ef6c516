"""FastAPI application entry point."""

import json
import logging
import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Mapping

import httpx
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from ogimage.api.handler import DEFAULT_BACKGROUND_PATH, PreviewRequestHandler, not_found_response
from ogimage.api.routes import router
from ogimage.net.resolver import HostnameResolver
from ogimage.security.route_path import DEFAULT_ROUTE_PATH
from ogimage.security.signing import SignatureAuthority
from ogimage.settings import AppSettings
from ogimage.themes.drawing import default_background_jpeg

API_VERSION = "1.2.0"


# ── Structured JSON logging ──────────────────────────────────────────────────

_RESERVED_RECORD_KEYS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "message",
    "taskName",
}


class _JsonFormatter(logging.Formatter):
    """Emit log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        log: dict = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_KEYS:
                log[key] = value
        if record.exc_info:
            log["exc_type"] = (
                record.exc_info[0].__name__ if record.exc_info[0] else None
            )
        return json.dumps(log, default=str)


def configure_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(_JsonFormatter())
    logging.basicConfig(level=level, handlers=[handler], force=True)


logger = logging.getLogger(__name__)


# ── Middleware ────────────────────────────────────────────────────────────────


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["X-API-Version"] = API_VERSION
        return response


def is_allowed_when_api_only(path: str) -> bool:
    if path == "/api" or path.startswith("/api/"):
        return True
    # Fallback background and theme fonts are still needed by the renderer
    if path == DEFAULT_BACKGROUND_PATH:
        return True
    return path.startswith("/fonts/")


class ApiOnlyMiddleware(BaseHTTPMiddleware):
    """With OG_API_ONLY=true, everything outside the API is a 404."""

    async def dispatch(self, request: Request, call_next):
        if not is_allowed_when_api_only(request.url.path):
            return not_found_response()
        return await call_next(request)


# ── App ───────────────────────────────────────────────────────────────────────


def create_app(env: Mapping[str, str] | None = None) -> FastAPI:
    """Build the application from ``env`` (defaults to ``os.environ``).

    The DNS cache, the HMAC key and the outbound HTTP client are created
    here once and shared by every request through ``app.state``.
    """
    settings = AppSettings.from_env(env)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await app.state.http_client.aclose()

    app = FastAPI(title="ogimage", version=API_VERSION, lifespan=lifespan)

    http_client = httpx.AsyncClient(follow_redirects=False)
    resolver = HostnameResolver(http_client, doh_url=settings.doh_url)
    authority = SignatureAuthority(settings.security.signature_secret)

    app.state.settings = settings
    app.state.http_client = http_client
    app.state.resolver = resolver
    app.state.authority = authority
    app.state.preview_handler = PreviewRequestHandler(settings, resolver, authority, http_client)

    logger.info(
        "ogimage configured",
        extra={
            "route_key_is_default": settings.security.primary_route_key == DEFAULT_ROUTE_PATH,
            "allow_legacy_path": settings.security.allow_legacy_path,
            "signature_required": settings.security.has_signature_protection,
        },
    )

    # ── Rate limiter ─────────────────────────────────────────────────────────
    app.state.limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
    app.add_middleware(SlowAPIMiddleware)

    @app.exception_handler(RateLimitExceeded)
    def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        return JSONResponse(status_code=429, content={"detail": str(exc.detail)})

    # ── CORS ─────────────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=False,
        allow_methods=["GET"],
        allow_headers=["Content-Type"],
    )

    app.add_middleware(SecurityHeadersMiddleware)
    if settings.api_only:
        app.add_middleware(ApiOnlyMiddleware)

    app.include_router(router, prefix="/api")

    # ── Global error sanitization ────────────────────────────────────────────
    @app.exception_handler(Exception)
    async def _global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Return a sanitized error response; never expose internal details."""
        logger.error(
            "unhandled_exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "exc_type": type(exc).__name__,
                "detail": traceback.format_exc(),
            },
        )
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error"},
        )

    @app.get(DEFAULT_BACKGROUND_PATH, include_in_schema=False)
    async def default_background() -> Response:
        """Built-in background used whenever a requested image is rejected."""
        return Response(
            content=default_background_jpeg(),
            media_type="image/jpeg",
            headers={"Cache-Control": "public, max-age=86400"},
        )

    if settings.fonts_dir.is_dir():
        app.mount("/fonts", StaticFiles(directory=settings.fonts_dir), name="fonts")

    return app


configure_logging(AppSettings.from_env().log_level)

app = create_app()
