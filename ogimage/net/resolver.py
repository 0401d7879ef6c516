"""Hostname resolution over DNS-over-HTTPS with a TTL cache."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Literal

import httpx

from ogimage.net.addresses import parse_ipv4, parse_ipv6

logger = logging.getLogger(__name__)

DEFAULT_DOH_URL = "https://dns.google/resolve"
DNS_TIMEOUT_SECONDS = 2.0
DNS_CACHE_TTL_SECONDS = 10 * 60

RecordType = Literal["A", "AAAA"]


@dataclass(frozen=True)
class DnsCacheEntry:
    ips: list[str]
    expires_at: float


class HostnameResolver:
    """Resolve hostnames to A + AAAA addresses, caching non-empty answers.

    Lookups never raise: a timeout, transport error, non-200 response or an
    unexpected payload shape all count as "no records" for that record type.
    Empty results are not cached so a transient resolver failure is retried
    on the next request.

    The cache is not locked. Two concurrent misses for the same hostname
    both query upstream and the later write wins.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        doh_url: str = DEFAULT_DOH_URL,
        timeout: float = DNS_TIMEOUT_SECONDS,
        ttl: float = DNS_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._doh_url = doh_url
        self._timeout = timeout
        self._ttl = ttl
        self._clock = clock
        self._cache: dict[str, DnsCacheEntry] = {}

    async def resolve(self, hostname: str) -> list[str]:
        """Return A records followed by AAAA records for ``hostname``."""
        now = self._clock()
        cached = self._cache.get(hostname)
        if cached is not None:
            if cached.expires_at > now:
                logger.debug(f"DNS cache hit for {hostname}")
                return cached.ips
            del self._cache[hostname]

        ipv4_records, ipv6_records = await asyncio.gather(
            self._fetch_records(hostname, "A"),
            self._fetch_records(hostname, "AAAA"),
        )
        ips = [*ipv4_records, *ipv6_records]
        if ips:
            self._cache[hostname] = DnsCacheEntry(ips=ips, expires_at=now + self._ttl)
        else:
            logger.debug(f"DNS lookup for {hostname} returned no usable records")
        return ips

    def clear(self) -> None:
        self._cache.clear()

    async def _fetch_records(self, hostname: str, record_type: RecordType) -> list[str]:
        try:
            return await asyncio.wait_for(
                self._query(hostname, record_type), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"DNS {record_type} lookup for {hostname} timed out after {self._timeout}s"
            )
            return []
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"DNS {record_type} lookup for {hostname} failed: {e}")
            return []

    async def _query(self, hostname: str, record_type: RecordType) -> list[str]:
        response = await self._client.get(
            self._doh_url,
            params={"name": hostname, "type": record_type},
            headers={"accept": "application/dns-json", "cache-control": "no-store"},
            timeout=self._timeout,
        )
        if response.status_code != 200:
            return []

        data = response.json()
        if not isinstance(data, dict):
            return []
        answers = data.get("Answer")
        if data.get("Status") != 0 or not isinstance(answers, list):
            return []

        entries = [
            answer["data"]
            for answer in answers
            if isinstance(answer, dict) and isinstance(answer.get("data"), str)
        ]
        parse = parse_ipv4 if record_type == "A" else parse_ipv6
        return [entry for entry in entries if parse(entry) is not None]
