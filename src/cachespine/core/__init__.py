"""
Shared building blocks for cachespine: errors, codec, retry, settings, logging.

Only the dependency-light modules are re-exported here; ``settings`` and
``logging`` are imported from their own modules.
"""

from cachespine.core.codec import JsonCodec
from cachespine.core.errors import (
    BackendError,
    BackendUnavailableError,
    CacheError,
    CacheMissError,
    CodecError,
    ConfigError,
    ErrorCategory,
    ErrorContext,
    InvalidConfigError,
    LockContentionError,
    NotAMappingError,
    NotStoredError,
    TransientError,
    ValidationError,
    is_retryable,
)
from cachespine.core.retry import (
    ConstantBackoff,
    ExponentialBackoff,
    RetryContext,
    RetryStrategy,
)

__all__ = [
    "JsonCodec",
    "ErrorCategory",
    "ErrorContext",
    "CacheError",
    "CacheMissError",
    "NotStoredError",
    "TransientError",
    "LockContentionError",
    "BackendError",
    "BackendUnavailableError",
    "CodecError",
    "ValidationError",
    "NotAMappingError",
    "ConfigError",
    "InvalidConfigError",
    "is_retryable",
    "RetryStrategy",
    "ConstantBackoff",
    "ExponentialBackoff",
    "RetryContext",
]
