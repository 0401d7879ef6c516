"""Process-level settings read once from the environment."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from ogimage.net.resolver import DEFAULT_DOH_URL
from ogimage.security.config import SecurityConfig, parse_boolean, resolve_security_config

DEFAULT_FONTS_DIR = Path(__file__).parent / "fonts"


@dataclass(frozen=True)
class AppSettings:
    security: SecurityConfig
    config_endpoint_enabled: bool = True
    debug_enabled: bool = False
    api_only: bool = False
    doh_url: str = DEFAULT_DOH_URL
    rate_limit: str = "120/minute"
    fonts_dir: Path = DEFAULT_FONTS_DIR
    log_level: str = "INFO"
    cors_origins: tuple[str, ...] = ()

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "AppSettings":
        if env is None:
            env = os.environ

        # Debug endpoint is on outside production unless explicitly disabled
        is_production = env.get("OG_ENV", "").strip().lower() == "production"
        debug_flag = parse_boolean(env.get("OG_ENABLE_DEBUG"))
        debug_enabled = debug_flag if debug_flag is not None else not is_production

        cors_raw = env.get("CORS_ORIGINS", "")

        return cls(
            security=resolve_security_config(env),
            config_endpoint_enabled=parse_boolean(env.get("OG_ENABLE_CONFIG_ENDPOINT")) is not False,
            debug_enabled=debug_enabled,
            api_only=env.get("OG_API_ONLY") == "true",
            doh_url=env.get("OG_DNS_RESOLVER_URL", "").strip() or DEFAULT_DOH_URL,
            rate_limit=env.get("OG_RATE_LIMIT", "").strip() or "120/minute",
            fonts_dir=Path(env.get("OG_FONTS_DIR", "").strip() or DEFAULT_FONTS_DIR),
            log_level=env.get("OG_LOG_LEVEL", "").strip().upper() or "INFO",
            cors_origins=tuple(o.strip() for o in cors_raw.split(",") if o.strip()),
        )
