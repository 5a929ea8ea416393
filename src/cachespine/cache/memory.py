"""
Process-local cache backend.

``ExpiringStore`` is the in-process expiring map; ``InMemoryCache`` wraps
it behind one mutex and the ``Cache`` contract. Expired items are dropped
when a read or write runs into them; there is no background sweep and no
size bound.

Example::

    cache = InMemoryCache(default_expiry=1800)
    cache.set("session:abc", {"user_id": 42}, expires=3600)
    cache.add("session:abc", {"user_id": 7})     # NotStoredError
"""

from __future__ import annotations

import threading
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable

from cachespine.core.codec import JsonCodec
from cachespine.core.errors import CacheMissError, NotStoredError
from cachespine.core.logging import get_logger

from .base import DEFAULT_EXPIRY, BaseCache, Expiry
from .getter import ItemMapGetter

logger = get_logger(__name__)


@dataclass
class _Item:
    data: bytes
    deadline: float | None

    def expired(self, now: float) -> bool:
        return self.deadline is not None and now >= self.deadline


class ExpiringStore:
    """
    Dict of raw values with per-item deadlines.

    Not thread-safe on its own; ``InMemoryCache`` serializes access.
    ``ttl`` arguments are seconds, ``None`` meaning no expiry.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._items: dict[str, _Item] = {}
        self._clock = clock

    def _deadline(self, ttl: float | None) -> float | None:
        return None if ttl is None else self._clock() + ttl

    def _live(self, key: str) -> _Item | None:
        item = self._items.get(key)
        if item is None:
            return None
        if item.expired(self._clock()):
            del self._items[key]
            return None
        return item

    def get(self, key: str) -> bytes | None:
        item = self._live(key)
        return None if item is None else item.data

    def set(self, key: str, data: bytes, ttl: float | None) -> None:
        self._items[key] = _Item(data, self._deadline(ttl))

    def add(self, key: str, data: bytes, ttl: float | None) -> bool:
        """Store only if no live item exists; False otherwise."""
        if self._live(key) is not None:
            return False
        self.set(key, data, ttl)
        return True

    def replace(self, key: str, data: bytes, ttl: float | None) -> bool:
        """Store only if a live item exists; False otherwise."""
        if self._live(key) is None:
            return False
        self.set(key, data, ttl)
        return True

    def delete(self, key: str) -> bool:
        item = self._items.pop(key, None)
        return item is not None and not item.expired(self._clock())

    def items(self) -> dict[str, bytes]:
        """Live items; expired ones are dropped on the way."""
        now = self._clock()
        expired = [k for k, item in self._items.items() if item.expired(now)]
        for key in expired:
            del self._items[key]
        return {k: item.data for k, item in self._items.items()}

    def flush(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self.items())


class InMemoryCache(BaseCache):
    """In-process cache with TTL support.

    Thread-safe: every operation holds one lock for its whole duration, so
    ``add``/``replace``/``set_fields`` are atomic without a separate
    locking protocol. Values are stored encoded, which keeps reads isolated
    from later mutation of the objects passed to ``set``.

    Attributes:
        default_expiry: Lifetime in seconds for ``DEFAULT_EXPIRY`` writes.
    """

    backend_name = "memory"

    def __init__(
        self,
        default_expiry: float = 3600,
        *,
        codec: JsonCodec | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        super().__init__(default_expiry=default_expiry, codec=codec)
        self._store = ExpiringStore(clock or time.monotonic)
        self._lock = threading.RLock()
        logger.debug("memory_cache_created", default_expiry=self._default_expiry)

    def _miss(self, key: str) -> CacheMissError:
        return CacheMissError(f"Cache miss: {key!r}").with_context(  # type: ignore[return-value]
            key=key, backend=self.backend_name, operation="get"
        )

    def _not_stored(self, key: str, operation: str, reason: str) -> NotStoredError:
        return NotStoredError(f"{operation} {key!r}: {reason}").with_context(  # type: ignore[return-value]
            key=key, backend=self.backend_name, operation=operation
        )

    def get(self, key: str, target: Any = None) -> Any:
        with self._lock:
            data = self._store.get(key)
        if data is None:
            raise self._miss(key)
        return self._codec.decode(data, target)

    def set(self, key: str, value: Any, expires: Expiry = DEFAULT_EXPIRY) -> None:
        data = self._codec.encode(value)
        with self._lock:
            self._store.set(key, data, self._ttl(expires))

    def add(self, key: str, value: Any, expires: Expiry = DEFAULT_EXPIRY) -> None:
        data = self._codec.encode(value)
        with self._lock:
            stored = self._store.add(key, data, self._ttl(expires))
        if not stored:
            raise self._not_stored(key, "add", "key already exists")

    def replace(self, key: str, value: Any, expires: Expiry = DEFAULT_EXPIRY) -> None:
        data = self._codec.encode(value)
        with self._lock:
            stored = self._store.replace(key, data, self._ttl(expires))
        if not stored:
            raise self._not_stored(key, "replace", "key does not exist")

    def set_fields(
        self, key: str, fields: Mapping[str, Any], expires: Expiry = DEFAULT_EXPIRY
    ) -> None:
        self._check_fields(key, fields)
        with self._lock:
            data = self._store.get(key)
            if data is None:
                raise self._not_stored(key, "set_fields", "key does not exist")
            merged = self._merge_fields(key, data, fields)
            self._store.set(key, merged, self._ttl(expires))

    def get_multi(self, *keys: str) -> ItemMapGetter:
        with self._lock:
            snapshot = {key: self._store.get(key) for key in keys}
        return ItemMapGetter(snapshot, self._codec)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._store.items())

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._store.delete(key)

    def flush(self) -> None:
        with self._lock:
            self._store.flush()
        logger.info("cache_flushed", backend=self.backend_name)

    def size(self) -> int:
        """Return current number of live keys."""
        with self._lock:
            return len(self._store)
