"""Translation of redis-py exceptions into cachespine errors."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from cachespine.core.errors import BackendError, BackendUnavailableError
from cachespine.core.logging import get_logger

logger = get_logger(__name__)


@contextmanager
def translate_redis_errors(key: str | None, operation: str | None) -> Iterator[None]:
    """Re-raise ``RedisError`` as ``BackendError`` with the key and operation attached."""
    try:
        yield
    except (RedisConnectionError, RedisTimeoutError) as exc:
        logger.warning("redis_unavailable", key=key, operation=operation, error=str(exc))
        raise BackendUnavailableError(
            f"Redis unavailable during {operation or 'operation'}", cause=exc
        ).with_context(key=key, backend="redis", operation=operation) from exc
    except RedisError as exc:
        logger.warning("redis_error", key=key, operation=operation, error=str(exc))
        raise BackendError(
            f"Redis error during {operation or 'operation'}: {exc}", cause=exc
        ).with_context(key=key, backend="redis", operation=operation) from exc
