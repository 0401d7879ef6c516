"""Security configuration derived from the environment."""

import os
from dataclasses import dataclass
from typing import Mapping

from ogimage.security.route_path import (
    DEFAULT_ROUTE_PATH,
    derive_route_path_from_secret,
    normalize_route_path,
)


@dataclass(frozen=True)
class SecurityConfig:
    primary_route_key: str
    allow_legacy_path: bool
    signature_secret: str
    has_signature_protection: bool

    @property
    def allowed_route_keys(self) -> frozenset[str]:
        keys = {self.primary_route_key}
        if self.allow_legacy_path:
            keys.add(DEFAULT_ROUTE_PATH)
        return frozenset(keys)


def parse_boolean(value: str | None) -> bool | None:
    """Only the exact strings "true" and "false" count; anything else is unset."""
    if value == "true":
        return True
    if value == "false":
        return False
    return None


def _resolve_legacy_path_policy(
    primary_path: str, has_unified_secret: bool, env_value: str | None
) -> bool:
    explicit = parse_boolean(env_value)
    if explicit is not None:
        return explicit
    # A unified secret means strict mode: the derived path is the only path.
    if has_unified_secret:
        return False
    return primary_path == DEFAULT_ROUTE_PATH


def resolve_security_config(env: Mapping[str, str] | None = None) -> SecurityConfig:
    """Build the SecurityConfig from ``env`` (defaults to ``os.environ``).

    - OG_SECRET: unified secret, used for both the derived route key and
      request signing
    - OG_API_PATH: explicit route key, wins over the derived one
    - OG_SIGNATURE_SECRET: dedicated signing secret, wins over OG_SECRET
    - OG_API_ALLOW_LEGACY_PATH: "true"/"false" override for serving /api/og
    """
    if env is None:
        env = os.environ

    unified_secret = (env.get("OG_SECRET") or "").strip()
    explicit_path_raw = (env.get("OG_API_PATH") or "").strip()
    explicit_path = normalize_route_path(explicit_path_raw) if explicit_path_raw else ""

    if explicit_path:
        primary_route_key = explicit_path
    elif unified_secret:
        primary_route_key = derive_route_path_from_secret(unified_secret)
    else:
        primary_route_key = DEFAULT_ROUTE_PATH

    signature_secret = env.get("OG_SIGNATURE_SECRET")
    if signature_secret is None:
        signature_secret = unified_secret
    signature_secret = signature_secret.strip()

    return SecurityConfig(
        primary_route_key=primary_route_key,
        allow_legacy_path=_resolve_legacy_path_policy(
            primary_route_key,
            bool(unified_secret),
            env.get("OG_API_ALLOW_LEGACY_PATH"),
        ),
        signature_secret=signature_secret,
        has_signature_protection=bool(signature_secret),
    )
