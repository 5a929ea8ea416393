"""
Redis cache backend.

``RedisCache`` implements the ``Cache`` contract on a synchronous
``redis.Redis`` client. Plain reads and writes are one round trip each;
``add``, ``replace`` and ``set_fields`` run inside a per-key guard from
:mod:`cachespine.cache.lock` so they behave as compare-and-swap.

Requires: ``pip install redis``

Example::

    import redis
    from cachespine.cache.redis import RedisCache

    cache = RedisCache(redis.Redis(), default_expiry=600)
    cache.set("product:123", {"name": "Widget", "price": 9.99})
    cache.set_fields("product:123", {"price": 8.99})

Tags:
    cache, redis, distributed, compare-and-swap

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from cachespine.core.codec import JsonCodec
from cachespine.core.errors import CacheMissError, NotStoredError
from cachespine.core.logging import get_logger

from ._errors import translate_redis_errors
from .base import DEFAULT_EXPIRY, BaseCache, Expiry
from .getter import ItemMapGetter
from .lock import LockOptions, StoreView, create_guard

logger = get_logger(__name__)


def _ttl_ms(ttl: float | None) -> int | None:
    if ttl is None:
        return None
    return max(1, int(ttl * 1000))


class RedisCache(BaseCache):
    """Redis-backed distributed cache.

    Thread-safe as long as the client is (``redis.Redis`` with its
    connection pool is). Entries expire through Redis' own per-key TTL.

    Args:
        client: A ``redis.Redis`` instance (``decode_responses=False``).
        default_expiry: Lifetime in seconds for ``DEFAULT_EXPIRY`` writes.
        codec: Value codec, ``JsonCodec`` by default.
        lock_options: Retry budget and safety window for CAS operations.
        strategy: ``"lock"`` (lock token) or ``"watch"`` (WATCH/MULTI/EXEC).
    """

    backend_name = "redis"

    def __init__(
        self,
        client: Any,
        *,
        default_expiry: float = 3600,
        codec: JsonCodec | None = None,
        lock_options: LockOptions | None = None,
        strategy: str = "lock",
    ) -> None:
        super().__init__(default_expiry=default_expiry, codec=codec)
        self._client = client
        self._guard = create_guard(client, strategy, lock_options)
        logger.debug(
            "redis_cache_created",
            default_expiry=self._default_expiry,
            strategy=strategy,
        )

    @property
    def client(self) -> Any:
        return self._client

    @property
    def guard(self) -> Any:
        return self._guard

    def _px(self, expires: Expiry) -> int | None:
        return _ttl_ms(self._ttl(expires))

    def _not_stored(self, key: str, operation: str, reason: str) -> NotStoredError:
        return NotStoredError(f"{operation} {key!r}: {reason}").with_context(  # type: ignore[return-value]
            key=key, backend=self.backend_name, operation=operation
        )

    def ping(self) -> bool:
        """Check the server is reachable."""
        with translate_redis_errors(None, "ping"):
            return bool(self._client.ping())

    def get(self, key: str, target: Any = None) -> Any:
        with translate_redis_errors(key, "get"):
            raw = self._client.get(key)
        if raw is None:
            raise CacheMissError(f"Cache miss: {key!r}").with_context(
                key=key, backend=self.backend_name, operation="get"
            )
        return self._codec.decode(raw, target)

    def set(self, key: str, value: Any, expires: Expiry = DEFAULT_EXPIRY) -> None:
        data = self._codec.encode(value)
        with translate_redis_errors(key, "set"):
            self._client.set(key, data, px=self._px(expires))

    def add(self, key: str, value: Any, expires: Expiry = DEFAULT_EXPIRY) -> None:
        data = self._codec.encode(value)
        px = self._px(expires)

        def critical_section(store: StoreView) -> None:
            if store.exists(key):
                raise self._not_stored(key, "add", "key already exists")
            store.set(key, data, px=px)

        self._guard.run(key, critical_section, operation="add")

    def replace(self, key: str, value: Any, expires: Expiry = DEFAULT_EXPIRY) -> None:
        data = self._codec.encode(value)
        px = self._px(expires)

        def critical_section(store: StoreView) -> None:
            if not store.exists(key):
                raise self._not_stored(key, "replace", "key does not exist")
            store.set(key, data, px=px)

        self._guard.run(key, critical_section, operation="replace")

    def set_fields(
        self, key: str, fields: Mapping[str, Any], expires: Expiry = DEFAULT_EXPIRY
    ) -> None:
        self._check_fields(key, fields)
        px = self._px(expires)

        def critical_section(store: StoreView) -> None:
            raw = store.get(key)
            if raw is None:
                raise self._not_stored(key, "set_fields", "key does not exist")
            store.set(key, self._merge_fields(key, raw, fields), px=px)

        self._guard.run(key, critical_section, operation="set_fields")

    def get_multi(self, *keys: str) -> ItemMapGetter:
        if not keys:
            return ItemMapGetter({}, self._codec)
        with translate_redis_errors(None, "get_multi"):
            values = self._client.mget(list(keys))
        return ItemMapGetter(dict(zip(keys, values)), self._codec)

    def keys(self) -> list[str]:
        with translate_redis_errors(None, "keys"):
            raw_keys = list(self._client.scan_iter(match="*"))
        return [k.decode("utf-8") if isinstance(k, bytes) else str(k) for k in raw_keys]

    def delete(self, key: str) -> bool:
        with translate_redis_errors(key, "delete"):
            return bool(self._client.delete(key))

    def flush(self) -> None:
        """Remove every key of the current Redis database."""
        with translate_redis_errors(None, "flush"):
            self._client.flushdb()
        logger.info("cache_flushed", backend=self.backend_name)
