"""
Cache backends behind one contract.

    from cachespine.cache import InMemoryCache, RedisCache, NEVER_EXPIRE

    cache = InMemoryCache(default_expiry=600)
    cache.set("greeting", "hello", expires=NEVER_EXPIRE)
"""

from .base import DEFAULT_EXPIRY, NEVER_EXPIRE, BaseCache, Cache, Expiry, Getter, resolve_expiry
from .factory import create_cache, create_redis_client
from .getter import ItemMapGetter
from .lock import LockOptions, RedisLock, WatchGuard, create_guard
from .memory import ExpiringStore, InMemoryCache
from .redis import RedisCache

__all__ = [
    "DEFAULT_EXPIRY",
    "NEVER_EXPIRE",
    "Expiry",
    "resolve_expiry",
    "Cache",
    "Getter",
    "BaseCache",
    "ItemMapGetter",
    "ExpiringStore",
    "InMemoryCache",
    "LockOptions",
    "RedisLock",
    "WatchGuard",
    "create_guard",
    "RedisCache",
    "create_cache",
    "create_redis_client",
]
