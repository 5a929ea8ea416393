"""
Shared pytest fixtures and configuration for cachespine tests.

This module provides:
- Backend fixtures (in-memory, Redis over the in-process fake)
- A parametrized ``cache`` fixture so contract tests run on every backend
- A controllable clock for expiry tests without sleeping

Usage:
    def test_round_trip(cache):
        cache.set("k", 1)
        assert cache.get("k") == 1
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Generator

import pytest

from cachespine.cache import InMemoryCache, LockOptions, RedisCache
from tests._support import FakeRedis


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)

        if "integration" in str(test_path):
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Clock
# =============================================================================


class ManualClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


# =============================================================================
# Backends
# =============================================================================

FAST_LOCK = LockOptions(retries=5, ttl_seconds=5.0, retry_wait_seconds=0.01)


@pytest.fixture
def fake_redis(clock: ManualClock) -> FakeRedis:
    return FakeRedis(clock=clock)


@pytest.fixture
def memory_cache(clock: ManualClock) -> InMemoryCache:
    return InMemoryCache(default_expiry=3600, clock=clock)


@pytest.fixture
def redis_cache(fake_redis: FakeRedis) -> RedisCache:
    return RedisCache(fake_redis, default_expiry=3600, lock_options=FAST_LOCK)


@pytest.fixture
def watch_cache(fake_redis: FakeRedis) -> RedisCache:
    return RedisCache(fake_redis, default_expiry=3600, lock_options=FAST_LOCK, strategy="watch")


CacheFactory = Callable[[ManualClock, float], Any]

_FACTORIES: dict[str, CacheFactory] = {
    "memory": lambda clk, default: InMemoryCache(default_expiry=default, clock=clk),
    "redis-lock": lambda clk, default: RedisCache(
        FakeRedis(clock=clk), default_expiry=default, lock_options=FAST_LOCK
    ),
    "redis-watch": lambda clk, default: RedisCache(
        FakeRedis(clock=clk), default_expiry=default, lock_options=FAST_LOCK, strategy="watch"
    ),
}


@pytest.fixture(params=sorted(_FACTORIES))
def new_cache(request: pytest.FixtureRequest, clock: ManualClock) -> Callable[[float], Any]:
    """Build a fresh cache of the parametrized backend with a given default expiry."""
    factory = _FACTORIES[request.param]

    def build(default_expiry: float = 3600) -> Any:
        return factory(clock, default_expiry)

    return build


@pytest.fixture
def cache(new_cache: Callable[[float], Any]) -> Generator[Any, None, None]:
    c = new_cache(3600)
    yield c
    c.flush()
