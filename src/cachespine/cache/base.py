"""
Cache contract shared by every backend.

Defines the ``Cache`` protocol, the ``Getter`` protocol returned by
``get_multi``, the two expiry sentinels and ``BaseCache``, which holds the
pieces both backends implement identically (codec, expiry resolution,
field merge).

Manifesto:
    Call sites should not know which backend they talk to. A value written
    through ``InMemoryCache`` and one written through ``RedisCache`` read
    back the same way, fail the same way and expire the same way.

    - **Protocol-based:** ``Cache`` defines the contract
    - **Typed outcomes:** misses and lost races raise, never return None
    - **Conditional writes:** add/replace/set_fields are atomic per key
    - **Explicit expiry:** durations or the DEFAULT_EXPIRY / NEVER_EXPIRE sentinels

Architecture:
    ::

        Cache (Protocol)
        ├── InMemoryCache  — process-local, one mutex
        └── RedisCache     — networked, lock token or WATCH per key

        API: get(key, target=None) → value        (CacheMissError)
             set(key, value, expires)
             add(key, value, expires)             (NotStoredError)
             replace(key, value, expires)         (NotStoredError)
             set_fields(key, fields, expires)     (NotStoredError, NotAMappingError)
             get_multi(*keys) → Getter
             keys() → list[str]
             delete(key) → bool
             flush()

Guardrails:
    ❌ DON'T: Treat CacheMissError as a failure to log
    ✅ DO: Catch it where a miss is handled

    ❌ DON'T: Mix plain set() with add()/replace() on a key that needs CAS
    ✅ DO: Route every conditional writer through add/replace/set_fields

Tags:
    cache, protocol, ttl, compare-and-swap

Doc-Types:
    - API Reference
    - Technical Design
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import timedelta
from typing import Any, Protocol, Union

from cachespine.core.codec import JsonCodec
from cachespine.core.errors import NotAMappingError

#: Use the backend's configured default lifetime.
DEFAULT_EXPIRY = 0
#: Never expire the entry.
NEVER_EXPIRE = -1

Expiry = Union[int, float, timedelta]


def resolve_expiry(expires: Expiry, default: float | None) -> float | None:
    """Turn an expiry into seconds, or ``None`` for "never expires".

    ``DEFAULT_EXPIRY`` resolves to ``default``; any negative duration
    (``NEVER_EXPIRE`` included) means no expiry.
    """
    seconds = expires.total_seconds() if isinstance(expires, timedelta) else float(expires)
    if seconds == DEFAULT_EXPIRY:
        return default
    if seconds < 0:
        return None
    return seconds


class Getter(Protocol):
    """Read-only view over the values fetched by ``get_multi``."""

    def get(self, key: str, target: Any = None) -> Any:
        """Decode one fetched value.

        Raises:
            CacheMissError: ``key`` was not fetched or had no value.
            CodecError: The value does not decode into ``target``.
        """
        ...


class Cache(Protocol):
    """Protocol every cache backend satisfies."""

    def get(self, key: str, target: Any = None) -> Any:
        """Return the value stored under ``key``.

        Args:
            key: Cache key.
            target: Optional type to decode into (dataclass, pydantic model,
                builtin or generic alias). ``None`` returns plain JSON types.

        Raises:
            CacheMissError: If the key is absent or expired.
            CodecError: If the stored value does not fit ``target``.
        """
        ...

    def set(self, key: str, value: Any, expires: Expiry = DEFAULT_EXPIRY) -> None:
        """Store ``value`` unconditionally."""
        ...

    def add(self, key: str, value: Any, expires: Expiry = DEFAULT_EXPIRY) -> None:
        """Store ``value`` only if no live entry exists.

        Raises:
            NotStoredError: If the key already holds a live entry.
        """
        ...

    def replace(self, key: str, value: Any, expires: Expiry = DEFAULT_EXPIRY) -> None:
        """Store ``value`` only if a live entry exists.

        Raises:
            NotStoredError: If the key is absent or expired.
        """
        ...

    def set_fields(
        self, key: str, fields: Mapping[str, Any], expires: Expiry = DEFAULT_EXPIRY
    ) -> None:
        """Merge ``fields`` into the mapping stored under ``key``.

        Raises:
            NotStoredError: If the key is absent or expired.
            NotAMappingError: If the stored value or ``fields`` is not a mapping.
        """
        ...

    def get_multi(self, *keys: str) -> Getter:
        """Fetch several keys in one round trip."""
        ...

    def keys(self) -> list[str]:
        """Return all live keys, in no particular order."""
        ...

    def delete(self, key: str) -> bool:
        """Remove ``key``; returns False if there was nothing to remove."""
        ...

    def flush(self) -> None:
        """Remove every entry."""
        ...


class BaseCache(ABC):
    """Shared codec, expiry and merge logic for concrete backends."""

    backend_name = "base"

    def __init__(
        self,
        *,
        default_expiry: float = 3600,
        codec: JsonCodec | None = None,
    ) -> None:
        if default_expiry <= 0:
            raise ValueError("default_expiry must be > 0")
        self._default_expiry = float(default_expiry)
        self._codec = codec or JsonCodec()

    @property
    def default_expiry(self) -> float:
        """Lifetime in seconds applied to ``DEFAULT_EXPIRY`` writes."""
        return self._default_expiry

    @property
    def codec(self) -> JsonCodec:
        return self._codec

    def _ttl(self, expires: Expiry) -> float | None:
        return resolve_expiry(expires, self._default_expiry)

    def _check_fields(self, key: str, fields: Any) -> None:
        if not isinstance(fields, Mapping):
            raise NotAMappingError(
                "set_fields expects a mapping of fields", value=fields
            ).with_context(key=key, backend=self.backend_name, operation="set_fields")

    def _merge_fields(self, key: str, data: bytes, fields: Mapping[str, Any]) -> bytes:
        """Decode the stored bytes, merge ``fields`` in and re-encode."""
        existing = self._codec.decode(data)
        if not isinstance(existing, dict):
            raise NotAMappingError(
                f"Value stored under {key!r} is not a mapping",
                value=existing,
            ).with_context(key=key, backend=self.backend_name, operation="set_fields")
        existing.update(fields)
        return self._codec.encode(existing)

    @abstractmethod
    def get(self, key: str, target: Any = None) -> Any: ...

    @abstractmethod
    def set(self, key: str, value: Any, expires: Expiry = DEFAULT_EXPIRY) -> None: ...

    @abstractmethod
    def add(self, key: str, value: Any, expires: Expiry = DEFAULT_EXPIRY) -> None: ...

    @abstractmethod
    def replace(self, key: str, value: Any, expires: Expiry = DEFAULT_EXPIRY) -> None: ...

    @abstractmethod
    def set_fields(
        self, key: str, fields: Mapping[str, Any], expires: Expiry = DEFAULT_EXPIRY
    ) -> None: ...

    @abstractmethod
    def get_multi(self, *keys: str) -> Getter: ...

    @abstractmethod
    def keys(self) -> list[str]: ...

    @abstractmethod
    def delete(self, key: str) -> bool: ...

    @abstractmethod
    def flush(self) -> None: ...
