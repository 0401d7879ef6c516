"""Tests for ogimage/settings.py, ogimage/exceptions.py and JSON logging."""

import json
import logging
import sys
from pathlib import Path

import pytest

from ogimage.exceptions import ConfigurationError, ValidationError
from ogimage.main import _JsonFormatter
from ogimage.net.resolver import DEFAULT_DOH_URL
from ogimage.settings import DEFAULT_FONTS_DIR, AppSettings


class TestAppSettings:
    def test_defaults(self):
        settings = AppSettings.from_env({})
        assert settings.config_endpoint_enabled is True
        assert settings.debug_enabled is True
        assert settings.api_only is False
        assert settings.doh_url == DEFAULT_DOH_URL
        assert settings.rate_limit == "120/minute"
        assert settings.fonts_dir == DEFAULT_FONTS_DIR
        assert settings.log_level == "INFO"
        assert settings.cors_origins == ()

    @pytest.mark.parametrize(
        "env,expected",
        [
            ({"OG_ENV": "production"}, False),
            ({"OG_ENV": " Production "}, False),
            ({"OG_ENV": "staging"}, True),
            ({"OG_ENV": "production", "OG_ENABLE_DEBUG": "true"}, True),
            ({"OG_ENABLE_DEBUG": "false"}, False),
            ({"OG_ENV": "production", "OG_ENABLE_DEBUG": "yes"}, False),
        ],
    )
    def test_debug_flag(self, env, expected):
        assert AppSettings.from_env(env).debug_enabled is expected

    def test_overrides(self):
        settings = AppSettings.from_env(
            {
                "OG_ENABLE_CONFIG_ENDPOINT": "false",
                "OG_API_ONLY": "true",
                "OG_DNS_RESOLVER_URL": "https://cloudflare-dns.com/dns-query",
                "OG_RATE_LIMIT": "10/second",
                "OG_FONTS_DIR": "/srv/fonts",
                "OG_LOG_LEVEL": "debug",
                "CORS_ORIGINS": "https://a.example, https://b.example,",
                "OG_SECRET": "abc123",
            }
        )
        assert settings.config_endpoint_enabled is False
        assert settings.api_only is True
        assert settings.doh_url == "https://cloudflare-dns.com/dns-query"
        assert settings.rate_limit == "10/second"
        assert settings.fonts_dir == Path("/srv/fonts")
        assert settings.log_level == "DEBUG"
        assert settings.cors_origins == ("https://a.example", "https://b.example")
        assert settings.security.has_signature_protection is True

    def test_api_only_needs_exact_true(self):
        assert AppSettings.from_env({"OG_API_ONLY": "1"}).api_only is False


class TestExceptions:
    def test_configuration_error_message(self):
        err = ConfigurationError("secret", ("OG_SIGNATURE_SECRET", "OG_SECRET"))
        assert str(err) == "Missing secret\n  Hint: Provide --secret or set OG_SIGNATURE_SECRET / OG_SECRET"

    def test_validation_error_message(self):
        assert str(ValidationError("--exp", "must be digits")) == "Invalid --exp: must be digits"


class TestJsonFormatter:
    def test_single_line_json_with_extras(self):
        record = logging.LogRecord("ogimage.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
        record.route_key_is_default = True

        payload = json.loads(_JsonFormatter().format(record))

        assert payload["message"] == "hello world"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "ogimage.test"
        assert payload["route_key_is_default"] is True
        assert "args" not in payload

    def test_exception_type(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
        assert json.loads(_JsonFormatter().format(record))["exc_type"] == "ValueError"
