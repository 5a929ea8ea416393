"""
Settings for cachespine backends.

``CacheSettings`` collects every tunable the backends and the factory
consume: which backend to build, the default entry lifetime, Redis
connection parameters and the lock/retry constants of the compare-and-swap
layer. Values come from ``CACHESPINE_*`` environment variables or a
``.env`` file, and are validated at startup.

Examples:
    >>> from cachespine.core.settings import CacheSettings
    >>> settings = CacheSettings(backend="redis", lock_retries=3)
    >>> settings.lock_options().retries
    3

Tags:
    settings, configuration, pydantic, environment

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from cachespine.cache.lock import LockOptions


class BackendKind(str, Enum):
    """Supported cache backends."""

    MEMORY = "memory"
    REDIS = "redis"


class CasStrategy(str, Enum):
    """How the Redis backend makes add/replace/set_fields atomic."""

    LOCK = "lock"
    WATCH = "watch"


class BackoffKind(str, Enum):
    """Wait policy between lock acquisition attempts."""

    CONSTANT = "constant"
    EXPONENTIAL = "exponential"


_BACKEND_ALIASES = {
    "mem": "memory",
    "inmemory": "memory",
    "in_memory": "memory",
}


class CacheSettings(BaseSettings):
    """cachespine configuration.

    Fields
    ──────
    backend                  : ``memory`` or ``redis``
    default_expiry_seconds   : Lifetime used for ``DEFAULT_EXPIRY`` writes
    redis_*                  : Connection parameters for the Redis client
    cas_strategy             : ``lock`` (lock token) or ``watch`` (WATCH/MULTI)
    lock_*                   : Retry budget and safety window of the lock
    log_level / log_format   : structlog configuration
    """

    model_config = SettingsConfigDict(
        env_prefix="CACHESPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Backend ──────────────────────────────────────────────────
    backend: BackendKind = Field(default=BackendKind.MEMORY)
    default_expiry_seconds: float = Field(default=3600, gt=0)

    # ── Redis ────────────────────────────────────────────────────
    redis_url: str | None = Field(default=None, description="Overrides host/db/password when set")
    redis_host: str = Field(default="localhost:6379")
    redis_protocol: str = Field(default="tcp", pattern="^(tcp|unix)$")
    redis_password: str | None = Field(default=None)
    redis_db: int = Field(default=0, ge=0)
    redis_timeout_connect_ms: int = Field(default=10000, gt=0)
    redis_timeout_read_ms: int = Field(default=5000, gt=0)
    redis_timeout_write_ms: int = Field(default=5000, gt=0)
    redis_max_connections: int | None = Field(default=None, gt=0)

    # ── Compare-and-swap ─────────────────────────────────────────
    cas_strategy: CasStrategy = Field(default=CasStrategy.LOCK)
    lock_retries: int = Field(default=5, ge=1, description="Total acquisition attempts")
    lock_ttl_seconds: float = Field(default=5.0, gt=0)
    lock_retry_wait_seconds: float = Field(default=0.1, ge=0)
    lock_backoff: BackoffKind = Field(default=BackoffKind.CONSTANT)
    lock_max_wait_seconds: float = Field(default=1.0, ge=0)
    lock_suffix: str = Field(default="-op", min_length=1)

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="auto", pattern="^(json|console|auto)$")

    @field_validator("backend", mode="before")
    @classmethod
    def _normalize_backend(cls, value: object) -> object:
        if isinstance(value, str):
            name = value.strip().lower()
            return _BACKEND_ALIASES.get(name, name)
        return value

    def lock_options(self) -> LockOptions:
        """Build the ``LockOptions`` the Redis backend guards with."""
        from cachespine.cache.lock import LockOptions

        return LockOptions(
            retries=self.lock_retries,
            ttl_seconds=self.lock_ttl_seconds,
            retry_wait_seconds=self.lock_retry_wait_seconds,
            backoff=self.lock_backoff.value,
            max_wait_seconds=self.lock_max_wait_seconds,
            suffix=self.lock_suffix,
        )
