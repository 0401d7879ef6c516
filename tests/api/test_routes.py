"""Tests for API routes in ogimage/api/routes.py and the app in ogimage/main.py."""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from ogimage.api.handler import IMAGE_CACHE_CONTROL
from ogimage.api.routes import CONFIG_CACHE_CONTROL
from ogimage.cli.sign_url import sign_url
from ogimage.main import API_VERSION, create_app, is_allowed_when_api_only
from ogimage.security.route_path import derive_route_path_from_secret


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _client(env: dict[str, str] | None = None) -> TestClient:
    """Return a synchronous TestClient for an app built from ``env``."""
    return TestClient(create_app(env or {}), raise_server_exceptions=False)


@pytest.fixture
def client() -> TestClient:
    return _client()


# ---------------------------------------------------------------------------
# GET /api/og-config
# ---------------------------------------------------------------------------


class TestOgConfig:
    """GET /api/og-config"""

    def test_open_mode_defaults(self, client):
        response = client.get("/api/og-config")
        assert response.status_code == 200
        assert response.json() == {"endpoint": "/api/og", "signatureRequired": False}
        assert response.headers["cache-control"] == CONFIG_CACHE_CONTROL

    def test_unified_secret_mode(self):
        response = _client({"OG_SECRET": "abc123"}).get("/api/og-config")
        assert response.json() == {
            "endpoint": f"/api/{derive_route_path_from_secret('abc123')}",
            "signatureRequired": True,
        }

    def test_explicit_path(self):
        response = _client({"OG_API_PATH": "/custom_key/"}).get("/api/og-config")
        assert response.json()["endpoint"] == "/api/custom_key"

    def test_disabled_returns_plain_404(self):
        response = _client({"OG_ENABLE_CONFIG_ENDPOINT": "false"}).get("/api/og-config")
        assert response.status_code == 404
        assert response.text == "Not Found"
        assert response.headers["cache-control"] == "no-store"

    def test_only_exact_false_disables(self):
        response = _client({"OG_ENABLE_CONFIG_ENDPOINT": "no"}).get("/api/og-config")
        assert response.status_code == 200


# ---------------------------------------------------------------------------
# GET /api/debug
# ---------------------------------------------------------------------------


class TestImageDebug:
    """GET /api/debug"""

    def test_reconstructs_unsplash_image(self, client):
        response = client.get(
            "/api/debug",
            params={
                "image": "https://images.unsplash.com/photo-1506905925346?ixlib=rb-4.0.3",
                "w": "1200",
                "q": "80",
            },
        )
        assert response.status_code == 200
        body = response.json()
        assert body["originalImage"] == "https://images.unsplash.com/photo-1506905925346?ixlib=rb-4.0.3"
        assert body["reconstructedImage"] == body["originalImage"] + "&q=80&w=1200"
        assert body["isValidUrl"] is True
        assert body["isSupportedFormat"] is True
        assert body["allParams"]["w"] == "1200"

    def test_reports_rejected_image(self, client):
        body = client.get("/api/debug", params={"image": "ftp://example.com/photo.webp"}).json()
        assert body["isValidUrl"] is False
        assert body["isSupportedFormat"] is False

    def test_missing_image(self, client):
        body = client.get("/api/debug").json()
        assert body["originalImage"] == ""
        assert body["isValidUrl"] is False

    def test_disabled_in_production(self):
        response = _client({"OG_ENV": "production"}).get("/api/debug")
        assert response.status_code == 404
        assert response.text == "Not Found"

    def test_explicit_flag_overrides_environment(self):
        assert _client({"OG_ENV": "production", "OG_ENABLE_DEBUG": "true"}).get("/api/debug").status_code == 200
        assert _client({"OG_ENABLE_DEBUG": "false"}).get("/api/debug").status_code == 404


# ---------------------------------------------------------------------------
# GET /api/{route_key}
# ---------------------------------------------------------------------------


class TestPreviewImage:
    """GET /api/{route_key}"""

    def test_renders_png(self, client):
        response = client.get("/api/og", params={"title": "Hello", "site": "Blog"})
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.headers["cache-control"] == IMAGE_CACHE_CONTROL
        assert response.content.startswith(b"\x89PNG")

    def test_unknown_route_key(self, client):
        response = client.get("/api/og_guess", params={"title": "Hello"})
        assert response.status_code == 404
        assert response.text == "Not Found"

    def test_signed_request_on_derived_route(self):
        secret = "route-secret"
        key = derive_route_path_from_secret(secret)
        client = _client({"OG_SECRET": secret})

        signed = sign_url(f"http://testserver/api/{key}?title=Hello&site=Blog", secret)
        assert client.get(signed).status_code == 200
        assert client.get(f"/api/{key}?title=Hello&site=Blog").status_code == 404
        assert client.get(signed.replace(f"/api/{key}", "/api/og")).status_code == 404

    def test_unhandled_error_is_sanitized(self, client):
        client.app.state.preview_handler.handle = AsyncMock(side_effect=RuntimeError("secret detail"))
        response = client.get("/api/og")
        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}


# ---------------------------------------------------------------------------
# App-level behavior
# ---------------------------------------------------------------------------


class TestApp:
    def test_security_headers(self, client):
        response = client.get("/api/og-config")
        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["referrer-policy"] == "strict-origin-when-cross-origin"
        assert response.headers["x-api-version"] == API_VERSION

    def test_default_background(self, client):
        response = client.get("/default-bg.jpg")
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/jpeg"
        assert response.content.startswith(b"\xff\xd8")

    def test_rate_limit(self):
        client = _client({"OG_RATE_LIMIT": "2/minute"})
        statuses = [client.get("/api/og-config").status_code for _ in range(3)]
        assert statuses == [200, 200, 429]


class TestApiOnly:
    @pytest.mark.parametrize(
        "path,allowed",
        [
            ("/api", True),
            ("/api/og", True),
            ("/default-bg.jpg", True),
            ("/fonts/zpix.ttf", True),
            ("/", False),
            ("/docs", False),
            ("/apixyz", False),
        ],
    )
    def test_allow_list(self, path, allowed):
        assert is_allowed_when_api_only(path) is allowed

    def test_blocks_non_api_paths(self):
        client = _client({"OG_API_ONLY": "true"})
        response = client.get("/docs")
        assert response.status_code == 404
        assert response.text == "Not Found"
        assert client.get("/api/og-config").status_code == 200
        assert client.get("/default-bg.jpg").status_code == 200

    def test_docs_served_without_api_only(self, client):
        assert client.get("/docs").status_code == 200


class TestFonts:
    def test_serves_fonts_dir(self, tmp_path):
        (tmp_path / "zpix.ttf").write_bytes(b"font-bytes")
        client = _client({"OG_FONTS_DIR": str(tmp_path), "OG_API_ONLY": "true"})
        response = client.get("/fonts/zpix.ttf")
        assert response.status_code == 200
        assert response.content == b"font-bytes"

    def test_missing_fonts_dir_is_not_mounted(self, tmp_path):
        client = _client({"OG_FONTS_DIR": str(tmp_path / "absent")})
        assert client.get("/fonts/zpix.ttf").status_code == 404
