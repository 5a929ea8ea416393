"""
cachespine: one cache contract, an in-process backend and a Redis backend
with atomic add/replace/set_fields.

    from cachespine import create_cache, CacheMissError

    cache = create_cache()
    try:
        user = cache.get("user:1")
    except CacheMissError:
        user = load_user(1)
        cache.add("user:1", user)
"""

from cachespine.cache import (
    DEFAULT_EXPIRY,
    NEVER_EXPIRE,
    Cache,
    Getter,
    InMemoryCache,
    LockOptions,
    RedisCache,
    create_cache,
)
from cachespine.core.errors import (
    BackendError,
    BackendUnavailableError,
    CacheError,
    CacheMissError,
    CodecError,
    LockContentionError,
    NotAMappingError,
    NotStoredError,
)

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_EXPIRY",
    "NEVER_EXPIRE",
    "Cache",
    "Getter",
    "InMemoryCache",
    "RedisCache",
    "LockOptions",
    "create_cache",
    "CacheError",
    "CacheMissError",
    "NotStoredError",
    "LockContentionError",
    "BackendError",
    "BackendUnavailableError",
    "CodecError",
    "NotAMappingError",
]
