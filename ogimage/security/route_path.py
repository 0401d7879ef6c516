"""Route key normalization and secret-derived route keys."""

import re

DEFAULT_ROUTE_PATH = "og"

ROUTE_PATH_PATTERN = re.compile(r"[a-z0-9][a-z0-9_-]{0,127}", re.IGNORECASE | re.ASCII)

DERIVED_SUFFIX_LENGTH = 12

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"
_MASK32 = 0xFFFFFFFF


def normalize_route_path(value: str | None) -> str:
    """Return a safe route key, or ``"og"`` if ``value`` is empty or invalid."""
    trimmed = (value or "").strip()
    if not trimmed:
        return DEFAULT_ROUTE_PATH
    cleaned = trimmed.strip("/")
    if not ROUTE_PATH_PATTERN.fullmatch(cleaned):
        return DEFAULT_ROUTE_PATH
    return cleaned


def build_api_endpoint(path: str | None) -> str:
    return f"/api/{normalize_route_path(path)}"


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36_DIGITS[rem])
    return "".join(reversed(digits))


def _utf16_code_units(text: str) -> list[int]:
    raw = text.encode("utf-16-le", "surrogatepass")
    return [int.from_bytes(raw[i:i + 2], "little") for i in range(0, len(raw), 2)]


def _hash_to_base36(seed: str) -> str:
    # Two independent 32-bit FNV-style mixes. Not a cryptographic hash: the
    # output only has to be stable so deployed URLs keep working.
    h1 = 0x811C9DC5
    h2 = 0x9E3779B9
    for unit in _utf16_code_units(seed):
        h1 ^= unit
        h2 ^= unit
        h1 = (h1 * 0x01000193) & _MASK32
        h2 = (h2 * 0x85EBCA6B) & _MASK32
    return f"{_to_base36(h1)}{_to_base36(h2)}"


def derive_route_path_from_secret(secret: str) -> str:
    """Derive the obscure ``og_<12 chars>`` route key from a shared secret.

    Same secret, same key, in every process. An empty secret maps to the
    default route key.
    """
    normalized = secret.strip()
    if not normalized:
        return DEFAULT_ROUTE_PATH
    suffix = _hash_to_base36(normalized)[:DERIVED_SUFFIX_LENGTH].ljust(DERIVED_SUFFIX_LENGTH, "0")
    return f"og_{suffix}"
