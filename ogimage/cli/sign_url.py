"""Sign a preview image URL so the server will accept it.

Usage:
    og-sign-url --url "https://example.com/api/og_9f3k?title=Hello&site=Blog"
    og-sign-url --url "<url>" --secret "<hmac-secret>" --exp-seconds 604800

The secret defaults to OG_SIGNATURE_SECRET, then OG_SECRET. The payload is
built with the same canonicalization the server verifies against.
"""

import argparse
import os
import re
import sys
import time
from typing import Mapping, Sequence
from urllib.parse import urlencode, urlsplit, urlunsplit

from ogimage.exceptions import ConfigurationError, OgImageError, ValidationError
from ogimage.security.signing import build_signing_payload, compute_signature, parse_query

_DIGITS = re.compile(r"[0-9]+")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="og-sign-url",
        description="Append an HMAC signature (and optional expiry) to a preview image URL",
    )
    parser.add_argument("--url", help="Full preview image URL to sign")
    parser.add_argument("--secret", help="HMAC secret (default: OG_SIGNATURE_SECRET / OG_SECRET)")
    parser.add_argument("--exp", help="Absolute expiry as unix seconds")
    parser.add_argument("--exp-seconds", dest="exp_seconds", help="Expiry relative to now, in seconds")
    return parser


def resolve_secret(explicit: str | None, env: Mapping[str, str]) -> str:
    for candidate in (explicit, env.get("OG_SIGNATURE_SECRET"), env.get("OG_SECRET")):
        if candidate is not None:
            return candidate.strip()
    return ""


def sign_url(url: str, secret: str, exp: int | None = None) -> str:
    """Return ``url`` with ``exp`` (if given) set and a fresh ``sig`` appended."""
    parsed = urlsplit(url)
    params = [(key, value) for key, value in parse_query(parsed.query) if key != "sig"]
    if exp is not None:
        params = [(key, value) for key, value in params if key != "exp"]
        params.append(("exp", str(exp)))

    sig = compute_signature(build_signing_payload(params), secret)
    params.append(("sig", sig))
    return urlunsplit(parsed._replace(query=urlencode(params)))


def _parse_digits(name: str, value: str) -> int:
    if not _DIGITS.fullmatch(value):
        raise ValidationError(name, "must be an integer number of seconds")
    return int(value)


def run(argv: Sequence[str] | None = None, env: Mapping[str, str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if env is None:
        env = os.environ

    if not args.url:
        parser.print_usage(sys.stderr)
        return 1

    try:
        secret = resolve_secret(args.secret, env)
        if not secret:
            raise ConfigurationError("secret", ("OG_SIGNATURE_SECRET", "OG_SECRET"))

        exp = None
        if args.exp:
            exp = _parse_digits("--exp", args.exp)
        if args.exp_seconds:
            exp = int(time.time()) + _parse_digits("--exp-seconds", args.exp_seconds)

        print(sign_url(args.url, secret, exp))
        return 0
    except OgImageError as e:
        print(str(e), file=sys.stderr)
        return 1


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
