from __future__ import annotations

import asyncio
from typing import Any

import httpx
import pytest

from limitless_gateway.services import (
    CacheStore,
    ServiceClient,
    ServiceConfig,
    TTLMultipliers,
)

BASE_URL = "https://api.test/v1"


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeUpstream:
    """Scripted upstream: replays queued responses/exceptions, records requests."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._script: list[Any] = []
        self.default: Any = None

    def queue(self, *items: Any) -> None:
        self._script.extend(items)

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        # Yield to the loop like a real network call would
        await asyncio.sleep(0)

        item = self._script.pop(0) if self._script else self.default
        if item is None:
            raise AssertionError(f"Unexpected request: {request.url}")
        if isinstance(item, type) and issubclass(item, Exception):
            raise item("scripted failure", request=request)
        if isinstance(item, Exception):
            raise item
        if isinstance(item, int):
            return httpx.Response(item, json={"error": f"status {item}"})
        return item


def ok(body: Any) -> httpx.Response:
    return httpx.Response(200, json=body)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock) -> CacheStore:
    return CacheStore(max_keys=50, clock=clock)


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def config() -> ServiceConfig:
    return ServiceConfig(
        base_url=BASE_URL,
        api_key="test-key",
        timeout=5.0,
        max_retries=3,
        retry_base_delay=1.0,
        cache_ttl=300,
        ttl_multipliers=TTLMultipliers(metadata=3, listing=2, search=1.5),
    )


@pytest.fixture
def make_client(upstream, sleeps):
    def _make(config: ServiceConfig, cache: CacheStore) -> ServiceClient:
        async def fake_sleep(delay: float) -> None:
            sleeps.append(delay)

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler))
        return ServiceClient(config, cache=cache, http_client=http_client, sleep=fake_sleep)

    return _make


@pytest.fixture
def client(make_client, config, cache) -> ServiceClient:
    return make_client(config, cache)
