"""Tests for ``cachespine.cache.factory`` — building backends from settings."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import redis

from cachespine.cache import InMemoryCache, RedisCache, create_cache, create_redis_client
from cachespine.cache.lock import RedisLock, WatchGuard
from cachespine.core.errors import InvalidConfigError
from cachespine.core.settings import CacheSettings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ("CACHESPINE_BACKEND", "CACHESPINE_REDIS_URL", "CACHESPINE_DEFAULT_EXPIRY_SECONDS"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def mock_redis(monkeypatch):
    mock_cls = MagicMock(name="Redis")
    monkeypatch.setattr(redis, "Redis", mock_cls)
    return mock_cls


class TestCreateCache:
    def test_default_is_memory(self):
        cache = create_cache()
        assert isinstance(cache, InMemoryCache)
        assert cache.default_expiry == 3600

    @pytest.mark.parametrize("alias", ["memory", "mem", "inmemory", "in_memory", "MEMORY"])
    def test_memory_aliases(self, alias):
        assert isinstance(create_cache(CacheSettings(backend=alias)), InMemoryCache)

    def test_memory_default_expiry(self):
        cache = create_cache(CacheSettings(default_expiry_seconds=60))
        assert cache.default_expiry == 60

    def test_redis_with_supplied_client(self):
        client = MagicMock()
        settings = CacheSettings(backend="redis", lock_retries=3, lock_ttl_seconds=2, lock_suffix=":lk")

        cache = create_cache(settings, redis_client=client)

        assert isinstance(cache, RedisCache)
        assert cache.client is client
        assert isinstance(cache.guard, RedisLock)
        assert cache.guard.options.retries == 3
        assert cache.guard.options.ttl_ms == 2000
        assert cache.guard.token_key("k") == "k:lk"

    def test_redis_watch_strategy(self):
        settings = CacheSettings(backend="redis", cas_strategy="watch")
        cache = create_cache(settings, redis_client=MagicMock())
        assert isinstance(cache.guard, WatchGuard)

    def test_redis_from_env(self, monkeypatch, mock_redis):
        monkeypatch.setenv("CACHESPINE_BACKEND", "redis")
        monkeypatch.setenv("CACHESPINE_DEFAULT_EXPIRY_SECONDS", "120")

        cache = create_cache()

        assert isinstance(cache, RedisCache)
        assert cache.default_expiry == 120
        assert cache.client is mock_redis.return_value


class TestCreateRedisClient:
    def test_host_and_port(self, mock_redis):
        settings = CacheSettings(redis_host="cache.internal:6380", redis_db=2, redis_password="s3cret")

        create_redis_client(settings)

        mock_redis.assert_called_once_with(
            host="cache.internal",
            port=6380,
            db=2,
            password="s3cret",
            socket_connect_timeout=10.0,
            socket_timeout=5.0,
            max_connections=None,
        )

    def test_host_without_port(self, mock_redis):
        create_redis_client(CacheSettings(redis_host="cache.internal"))
        kwargs = mock_redis.call_args.kwargs
        assert kwargs["host"] == "cache.internal"
        assert kwargs["port"] == 6379

    def test_socket_timeout_is_larger_of_read_and_write(self, mock_redis):
        create_redis_client(CacheSettings(redis_timeout_read_ms=2000, redis_timeout_write_ms=7000))
        assert mock_redis.call_args.kwargs["socket_timeout"] == 7.0

    def test_unix_socket(self, mock_redis):
        create_redis_client(CacheSettings(redis_protocol="unix", redis_host="/var/run/redis.sock"))
        kwargs = mock_redis.call_args.kwargs
        assert kwargs["unix_socket_path"] == "/var/run/redis.sock"
        assert "host" not in kwargs

    def test_unix_socket_connect_timeout(self, mock_redis):
        create_redis_client(
            CacheSettings(
                redis_protocol="unix",
                redis_host="/var/run/redis.sock",
                redis_timeout_connect_ms=2500,
            )
        )
        assert mock_redis.call_args.kwargs["socket_connect_timeout"] == 2.5

    def test_url_wins(self, mock_redis):
        settings = CacheSettings(redis_url="redis://cache:6390/1", redis_max_connections=20)

        create_redis_client(settings)

        mock_redis.from_url.assert_called_once_with(
            "redis://cache:6390/1",
            socket_connect_timeout=10.0,
            socket_timeout=5.0,
            max_connections=20,
        )
        mock_redis.assert_not_called()

    def test_bad_port(self, mock_redis):
        with pytest.raises(InvalidConfigError) as exc_info:
            create_redis_client(CacheSettings(redis_host="cache:http"))
        assert exc_info.value.key == "redis_host"
