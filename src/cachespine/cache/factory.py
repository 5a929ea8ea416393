"""
Factory helpers that build a cache backend from ``CacheSettings``.

Example::

    from cachespine.cache.factory import create_cache

    cache = create_cache()                               # from CACHESPINE_* env
    cache = create_cache(CacheSettings(backend="redis"))
    cache = create_cache(settings, redis_client=my_client)
"""

from __future__ import annotations

from typing import Any

import redis

from cachespine.core.errors import InvalidConfigError
from cachespine.core.settings import BackendKind, CacheSettings

from .base import Cache
from .memory import InMemoryCache
from .redis import RedisCache


def create_redis_client(settings: CacheSettings) -> redis.Redis:
    """Create a ``redis.Redis`` client from connection settings.

    ``redis_url`` wins when set. Otherwise ``redis_host`` is ``host:port``
    for ``tcp`` or a socket path for ``unix``. redis-py has a single socket
    timeout, so the larger of the read and write timeouts is used.
    """
    socket_timeout = max(settings.redis_timeout_read_ms, settings.redis_timeout_write_ms) / 1000
    connect_timeout = settings.redis_timeout_connect_ms / 1000
    common: dict[str, Any] = {
        "socket_timeout": socket_timeout,
        "max_connections": settings.redis_max_connections,
    }

    if settings.redis_url:
        return redis.Redis.from_url(
            settings.redis_url,
            socket_connect_timeout=connect_timeout,
            **common,
        )

    if settings.redis_protocol == "unix":
        return redis.Redis(
            unix_socket_path=settings.redis_host,
            db=settings.redis_db,
            password=settings.redis_password,
            socket_connect_timeout=connect_timeout,
            **common,
        )

    host, _, port = settings.redis_host.rpartition(":")
    if not host:
        host, port = port, "6379"
    try:
        port_number = int(port)
    except ValueError as exc:
        raise InvalidConfigError("redis_host", settings.redis_host) from exc

    return redis.Redis(
        host=host,
        port=port_number,
        db=settings.redis_db,
        password=settings.redis_password,
        socket_connect_timeout=connect_timeout,
        **common,
    )


def create_cache(
    settings: CacheSettings | None = None,
    *,
    redis_client: Any | None = None,
) -> Cache:
    """
    Create a cache backend from settings (``CACHESPINE_*`` env vars by default).

    Backends:
    - ``memory`` (default)
    - ``redis``: uses ``redis_client`` when supplied, otherwise builds one
      with :func:`create_redis_client`.
    """
    settings = settings or CacheSettings()

    match settings.backend:
        case BackendKind.MEMORY:
            return InMemoryCache(default_expiry=settings.default_expiry_seconds)
        case BackendKind.REDIS:
            client = redis_client if redis_client is not None else create_redis_client(settings)
            return RedisCache(
                client,
                default_expiry=settings.default_expiry_seconds,
                lock_options=settings.lock_options(),
                strategy=settings.cas_strategy.value,
            )
        case _:
            raise InvalidConfigError("backend", settings.backend)
