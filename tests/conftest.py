"""
Shared pytest fixtures and configuration for all tests.
"""

import json

import httpx
import pytest

from ogimage.net.resolver import HostnameResolver


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeDoh:
    """In-memory DNS-over-HTTPS endpoint speaking the dns-json format.

    ``records`` maps ``(hostname, type)`` to the list of answer values.
    Every query is recorded in ``calls``.
    """

    def __init__(self, records: dict[tuple[str, str], list[str]] | None = None) -> None:
        self.records = records or {}
        self.calls: list[tuple[str, str]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        name = request.url.params["name"]
        record_type = request.url.params["type"]
        self.calls.append((name, record_type))
        answers = [{"data": value} for value in self.records.get((name, record_type), [])]
        body = {"Status": 0, "Answer": answers} if answers else {"Status": 0}
        return httpx.Response(200, content=json.dumps(body), headers={"content-type": "application/dns-json"})


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_doh() -> FakeDoh:
    return FakeDoh()


@pytest.fixture
def doh_client(fake_doh: FakeDoh) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(fake_doh))


@pytest.fixture
def resolver(doh_client: httpx.AsyncClient, fake_clock: FakeClock) -> HostnameResolver:
    return HostnameResolver(doh_client, clock=fake_clock)


@pytest.fixture
def sample_query_params():
    """Query parameters of a typical preview request."""
    return [
        ("title", "Hello World"),
        ("site", "My Blog"),
        ("excerpt", "A short summary"),
        ("theme", "pixel"),
    ]
