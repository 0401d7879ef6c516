"""Image URL safety gate: SSRF validation for background images.

A user-supplied ``image`` parameter is only ever fetched if it is an
``http(s)`` URL without credentials, on a default port, whose host is a
public IP literal or resolves exclusively to public addresses.
"""

import logging
import re
from typing import Mapping
from urllib.parse import SplitResult, urlsplit

import idna

from ogimage.net.addresses import is_public_ip, is_public_ipv4, is_public_ipv6, parse_ipv4, parse_ipv6
from ogimage.net.resolver import HostnameResolver

logger = logging.getLogger(__name__)

MIN_IMAGE_URL_LENGTH = 20
TRUNCATION_MARKERS = ("...", "\N{HORIZONTAL ELLIPSIS}")
ALLOWED_SCHEMES = {"http", "https"}
ALLOWED_PORTS = {80, 443}

FORMAT_MARKERS = ("/format/jpeg/", "/format/png/", "/format/jpg/")
SUPPORTED_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif")
_MODERN_FORMAT_RE = re.compile(r"\.(webp|avif)(\?|$)", re.IGNORECASE)
_UNSUPPORTED_FORMAT_RE = re.compile(r"\.(webp|avif|svg|bmp|tiff?)(\?|$)", re.IGNORECASE)

# Unsplash links pasted into a query string lose everything after their
# first "&"; the lost params land on the outer request instead.
UNSPLASH_HOSTNAME = "images.unsplash.com"
UNSPLASH_PARAMS = ("crop", "cs", "fit", "fm", "ixid", "ixlib", "q", "w", "h")


def normalize_hostname(hostname: str) -> str:
    """Strip IPv6 brackets and a trailing dot, then lowercase."""
    if hostname.startswith("["):
        hostname = hostname[1:]
    if hostname.endswith("]"):
        hostname = hostname[:-1]
    if hostname.endswith("."):
        hostname = hostname[:-1]
    return hostname.lower()


def to_ascii_hostname(hostname: str) -> str | None:
    """Punycode a Unicode hostname the way httpx will when fetching it.

    ASCII hostnames are returned unchanged. None means the name has no
    valid IDNA form and could never be fetched.
    """
    if hostname.isascii():
        return hostname
    try:
        return idna.encode(hostname, uts46=True).decode("ascii").lower()
    except idna.IDNAError:
        return None


def is_blocked_hostname(hostname: str) -> bool:
    if not hostname:
        return True
    return (
        hostname == "localhost"
        or hostname.endswith(".localhost")
        or hostname.endswith(".local")
    )


def check_url_shape(url: str) -> SplitResult | None:
    """Run the synchronous checks on ``url``: length, truncation, scheme,
    credentials and port. Returns the parsed URL, or None if rejected."""
    if not url or len(url) < MIN_IMAGE_URL_LENGTH:
        return None
    if url.endswith(TRUNCATION_MARKERS):
        return None
    try:
        parsed = urlsplit(url)
        port = parsed.port
    except ValueError:
        return None
    if parsed.scheme.lower() not in ALLOWED_SCHEMES or not parsed.netloc:
        return None
    if parsed.username or parsed.password:
        return None
    if port is not None and port not in ALLOWED_PORTS:
        return None
    return parsed


async def parse_public_image_url(url: str, resolver: HostnameResolver) -> SplitResult | None:
    """Validate ``url`` as a safe image source.

    Returns the parsed URL unchanged when accepted, None otherwise. A
    hostname is only accepted when every address it resolves to is public:
    a round-robin name with a single private answer is rejected.
    """
    parsed = check_url_shape(url)
    if parsed is None:
        return None

    hostname = to_ascii_hostname(normalize_hostname(parsed.hostname or ""))
    if hostname is None or is_blocked_hostname(hostname):
        return None

    if parse_ipv4(hostname) is not None:
        return parsed if is_public_ipv4(hostname) else None
    if parse_ipv6(hostname) is not None:
        return parsed if is_public_ipv6(hostname) else None

    ips = await resolver.resolve(hostname)
    if not ips:
        logger.debug(f"Image host {hostname} did not resolve")
        return None
    if not all(is_public_ip(ip) for ip in ips):
        logger.info(f"Image host {hostname} resolves to a non-public address")
        return None
    return parsed


def is_supported_image_format(url: str) -> bool:
    """Check whether the renderer can decode the image behind ``url``.

    PNG/JPEG/GIF by extension or format-marker path segment are accepted;
    WebP/AVIF/SVG/BMP/TIFF are rejected; anything unrecognised is let through.
    """
    if not url:
        return False
    lower_url = url.lower()
    if any(marker in lower_url for marker in FORMAT_MARKERS):
        return True
    if _MODERN_FORMAT_RE.search(lower_url):
        return False
    if any(ext in lower_url for ext in SUPPORTED_EXTENSIONS):
        return True
    return not _UNSUPPORTED_FORMAT_RE.search(lower_url)


def is_unsplash_image(url: str) -> bool:
    if not url:
        return False
    try:
        return urlsplit(url).hostname == UNSPLASH_HOSTNAME
    except ValueError:
        return False


def reconstruct_truncated_image_url(image: str, params: Mapping[str, str]) -> str:
    """Re-append Unsplash params that ended up on the outer request."""
    if not is_unsplash_image(image):
        return image
    recovered = [f"{name}={params[name]}" for name in UNSPLASH_PARAMS if params.get(name)]
    if not recovered:
        return image
    return image + "&" + "&".join(recovered)
