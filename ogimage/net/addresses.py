"""IPv4/IPv6 address parsing and public-routability classification.

Parsing is strict and fails closed: anything that is not exactly a dotted
quad or a well-formed hextet sequence is "not an address" and therefore not
public. Every function here is total over ``str`` input and never raises.
"""

import ipaddress
import re

_IPV4_PART = re.compile(r"[0-9]{1,3}")
_HEXTET = re.compile(r"[0-9a-f]{1,4}")

# Non-global IPv4 ranges (everything from 224.0.0.0 up is handled separately)
BLOCKED_IPV4_NETS = [
    ipaddress.ip_network("0.0.0.0/8"),
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("100.64.0.0/10"),  # carrier-grade NAT
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("169.254.0.0/16"),  # link-local / cloud metadata
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.0.0.0/24"),
    ipaddress.ip_network("192.0.2.0/24"),
    ipaddress.ip_network("192.88.99.0/24"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("198.18.0.0/15"),
    ipaddress.ip_network("198.51.100.0/24"),
    ipaddress.ip_network("203.0.113.0/24"),
]

BLOCKED_IPV6_NETS = [
    ipaddress.ip_network("::/128"),
    ipaddress.ip_network("::1/128"),
    ipaddress.ip_network("fc00::/7"),  # unique local
    ipaddress.ip_network("fe80::/10"),
    ipaddress.ip_network("ff00::/8"),
    ipaddress.ip_network("2001:db8::/32"),
]

_IPV4_MAPPED = ipaddress.ip_network("::ffff:0:0/96")


def parse_ipv4(text: str) -> tuple[int, int, int, int] | None:
    """Parse a dotted-quad IPv4 literal into its four octets.

    Each of the four parts must be 1-3 ASCII digits with a value of 0-255.
    Leading zeros are read as plain decimal ("010" is 10).
    """
    parts = text.split(".")
    if len(parts) != 4:
        return None
    octets = []
    for part in parts:
        if not _IPV4_PART.fullmatch(part):
            return None
        value = int(part)
        if value > 255:
            return None
        octets.append(value)
    return octets[0], octets[1], octets[2], octets[3]


def is_public_ipv4(text: str) -> bool:
    octets = parse_ipv4(text)
    if octets is None:
        return False
    if octets[0] >= 224:
        return False  # multicast / reserved
    addr = ipaddress.IPv4Address(bytes(octets))
    return not any(addr in net for net in BLOCKED_IPV4_NETS)


def _ipv4_to_hextets(text: str) -> list[int] | None:
    octets = parse_ipv4(text)
    if octets is None:
        return None
    return [(octets[0] << 8) | octets[1], (octets[2] << 8) | octets[3]]


def _collect_hextets(groups: list[str]) -> list[int] | None:
    hextets: list[int] = []
    for index, group in enumerate(groups):
        if not group:
            return None
        if "." in group:
            # Embedded IPv4 is only valid as the final group
            if index != len(groups) - 1:
                return None
            v4 = _ipv4_to_hextets(group)
            if v4 is None:
                return None
            hextets.extend(v4)
        else:
            if not _HEXTET.fullmatch(group):
                return None
            hextets.append(int(group, 16))
    return hextets


def parse_ipv6(text: str) -> tuple[int, ...] | None:
    """Parse an IPv6 literal into exactly eight 16-bit hextets.

    Supports a single ``::`` compression and a trailing embedded IPv4
    literal. Zone IDs (``fe80::1%eth0``) are rejected.
    """
    normalized = text.lower()
    if "%" in normalized:
        return None
    pieces = normalized.split("::")
    if len(pieces) > 2:
        return None

    left = pieces[0].split(":") if pieces[0] else []
    right = pieces[1].split(":") if len(pieces) == 2 and pieces[1] else []

    left_hextets = _collect_hextets(left)
    if left_hextets is None:
        return None
    right_hextets = _collect_hextets(right)
    if right_hextets is None:
        return None

    total = len(left_hextets) + len(right_hextets)
    if len(pieces) == 1:
        if total != 8:
            return None
        return tuple(left_hextets)
    if total > 8:
        return None
    return tuple(left_hextets + [0] * (8 - total) + right_hextets)


def is_public_ipv6(text: str) -> bool:
    hextets = parse_ipv6(text)
    if hextets is None:
        return False
    packed = b"".join(h.to_bytes(2, "big") for h in hextets)
    addr = ipaddress.IPv6Address(packed)
    if any(addr in net for net in BLOCKED_IPV6_NETS):
        return False
    if addr in _IPV4_MAPPED:
        h6, h7 = hextets[6], hextets[7]
        return is_public_ipv4(f"{h6 >> 8}.{h6 & 0xFF}.{h7 >> 8}.{h7 & 0xFF}")
    return True


def is_public_ip(text: str) -> bool:
    """True if ``text`` is a globally routable IPv4 or IPv6 literal."""
    return is_public_ipv4(text) or is_public_ipv6(text)
