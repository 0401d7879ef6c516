"""HMAC request signing over a canonicalized query string.

The signed payload is the request's query parameters, minus ``sig`` and
``ogKey``, sorted by key then value, percent-encoded the way JavaScript's
``encodeURIComponent`` does and joined as ``k=v&k=v``. A query with nothing
left to sign becomes the literal ``__empty__``. The signing CLI and any
other client implementation must produce the exact same bytes.
"""

import hashlib
import hmac
import logging
import re
import time
from functools import cached_property
from typing import Callable, Iterable
from urllib.parse import parse_qsl, quote, urlsplit

logger = logging.getLogger(__name__)

UNSIGNED_PARAMS = {"sig", "ogKey"}
EMPTY_PAYLOAD = "__empty__"

# Characters encodeURIComponent leaves untouched besides alphanumerics
_URI_COMPONENT_SAFE = "-_.!~*'()"
_DIGITS = re.compile(r"[0-9]+")


def encode_uri_component(value: str) -> str:
    return quote(value, safe=_URI_COMPONENT_SAFE)


def _utf16_sort_key(text: str) -> bytes:
    # JavaScript compares strings by UTF-16 code unit; big-endian UTF-16
    # bytes order the same way.
    return text.encode("utf-16-be", "surrogatepass")


def parse_query(query: str) -> list[tuple[str, str]]:
    """Decode a raw query string the way URLSearchParams does."""
    return parse_qsl(query, keep_blank_values=True)


def first_param(params: Iterable[tuple[str, str]], name: str) -> str | None:
    for key, value in params:
        if key == name:
            return value
    return None


def canonicalize_query(params: Iterable[tuple[str, str]]) -> str:
    entries = [(key, value) for key, value in params if key not in UNSIGNED_PARAMS]
    entries.sort(key=lambda entry: (_utf16_sort_key(entry[0]), _utf16_sort_key(entry[1])))
    return "&".join(
        f"{encode_uri_component(key)}={encode_uri_component(value)}" for key, value in entries
    )


def build_signing_payload(params: Iterable[tuple[str, str]]) -> str:
    return canonicalize_query(params) or EMPTY_PAYLOAD


def compute_signature(payload: str, secret: str) -> str:
    """One-shot HMAC-SHA256 of ``payload``, lowercase hex."""
    return hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).hexdigest()


def constant_time_equal(a: str, b: str) -> bool:
    """Compare two strings without short-circuiting on the first mismatch."""
    if len(a) != len(b):
        return False
    mismatch = 0
    for x, y in zip(a, b):
        mismatch |= ord(x) ^ ord(y)
    return mismatch == 0


def is_expired(params: list[tuple[str, str]], now: float) -> bool:
    """An ``exp`` that is present but not all digits counts as expired."""
    exp = first_param(params, "exp")
    if not exp:
        return False
    if not _DIGITS.fullmatch(exp):
        return True
    return int(now) > int(exp)


class SignatureAuthority:
    """Signs payloads and verifies signed request URLs.

    The HMAC key is derived on first use and reused for the lifetime of the
    object; one authority is built per app and shared by all requests.
    """

    def __init__(self, secret: str, clock: Callable[[], float] = time.time) -> None:
        self._secret = secret
        self._clock = clock

    @property
    def enabled(self) -> bool:
        return bool(self._secret)

    @cached_property
    def _signing_key(self) -> "hmac.HMAC":
        return hmac.new(self._secret.encode("utf-8"), digestmod=hashlib.sha256)

    def sign(self, payload: str) -> str:
        mac = self._signing_key.copy()
        mac.update(payload.encode("utf-8"))
        return mac.hexdigest()

    def sign_params(self, params: Iterable[tuple[str, str]]) -> str:
        return self.sign(build_signing_payload(params))

    def verify(self, request_url: str) -> bool:
        """Check the ``sig`` (and optional ``exp``) of a full request URL.

        Always True when no secret is configured.
        """
        if not self.enabled:
            return True

        params = parse_query(urlsplit(request_url).query)
        if is_expired(params, self._clock()):
            logger.info("Rejected signed request: expired or malformed exp")
            return False

        provided = (first_param(params, "sig") or "").strip()
        if not provided:
            logger.info("Rejected signed request: missing sig")
            return False

        expected = self.sign_params(params)
        if not constant_time_equal(expected, provided):
            logger.info("Rejected signed request: signature mismatch")
            return False
        return True
