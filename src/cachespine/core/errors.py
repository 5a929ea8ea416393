"""
Structured error types for cachespine.

Every failure a cache backend can report is a typed ``CacheError`` carrying
a category, a retry hint, structured context and the underlying cause. Call
sites can then tell a routine miss from a lost compare-and-swap race, and
both from a store that is down, without parsing messages.

Manifesto:
    - **Typed outcomes:** Misses and failed preconditions are exceptions
      with their own classes, not ``None`` or ``False``
    - **Explicit retry semantics:** Each error knows if a caller may retry
    - **Rich context:** Errors carry the key, backend and operation
    - **Error chaining:** Driver exceptions are preserved as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                        CacheError                            │
        │        (category, retryable, retry_after, context, cause)   │
        ├─────────────────────────────────────────────────────────────┤
        │                                                              │
        │  CacheMissError    NotStoredError     CodecError             │
        │  (MISS)            (PRECONDITION)     (CODEC)                │
        │                                                              │
        │  TransientError    BackendError       ValidationError        │
        │  (retryable)       (NETWORK)          (VALIDATION)           │
        │       │                 │                  │                 │
        │  LockContention    BackendUnavailable NotAMappingError       │
        │                                                              │
        │  ConfigError                                                 │
        │       │                                                      │
        │  InvalidConfigError                                          │
        └─────────────────────────────────────────────────────────────┘

Guardrails:
    ❌ DON'T: Log CacheMissError as an error, it is a normal outcome
    ✅ DO: Catch it where a miss needs handling

    ❌ DON'T: Retry BackendError inside the cache layer
    ✅ DO: Leave transport retries to the caller (is_retryable helps)

Tags:
    error-handling, exception-hierarchy, cache, retry-logic

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    # Expected outcomes
    MISS = "MISS"                   # Key absent or expired
    PRECONDITION = "PRECONDITION"   # add/replace/set_fields precondition failed
    CONTENTION = "CONTENTION"       # Lock or optimistic retry budget exhausted

    # Infrastructure
    NETWORK = "NETWORK"             # Store unreachable, protocol errors

    # Data
    CODEC = "CODEC"                 # Encode/decode failures
    VALIDATION = "VALIDATION"       # Wrong value shape

    # Configuration
    CONFIG = "CONFIG"

    # Internal errors
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        key: Cache key the operation targeted
        backend: Backend name (``memory``, ``redis``)
        operation: Cache operation (``add``, ``set_fields``, ...)
        attempts: Acquisition attempts made, for contention errors
        metadata: Additional key-value pairs
    """

    key: str | None = None
    backend: str | None = None
    operation: str | None = None
    attempts: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for name in ["key", "backend", "operation", "attempts"]:
            value = getattr(self, name)
            if value is not None:
                result[name] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class CacheError(Exception):
    """
    Base exception for all cache errors.

    Subclasses set ``default_category`` and ``default_retryable`` so that
    raising sites only pass what differs from the defaults.

    Examples:
        >>> error = CacheError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(key="user:1", backend="redis").context.key
        'user:1'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        retry_after: float | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.retry_after = retry_after
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> CacheError:
        """
        Add context to this error (fluent API).

        Usage:
            raise NotStoredError("Key exists").with_context(key=key, operation="add")
        """
        for name, value in kwargs.items():
            if hasattr(self.context, name) and name != "metadata":
                setattr(self.context, name, value)
            else:
                self.context.metadata[name] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if self.retry_after is not None:
            result["retry_after"] = self.retry_after
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# EXPECTED OUTCOMES
# =============================================================================


class CacheMissError(CacheError):
    """Key is absent or expired."""

    default_category = ErrorCategory.MISS


class NotStoredError(CacheError):
    """
    A conditional store did not happen.

    Raised by ``add`` when a live entry exists, and by ``replace`` and
    ``set_fields`` when none does.
    """

    default_category = ErrorCategory.PRECONDITION


# =============================================================================
# TRANSIENT ERRORS (Retryable by the caller)
# =============================================================================


class TransientError(CacheError):
    """Temporary condition that may clear if the caller tries again later."""

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class LockContentionError(TransientError):
    """
    The per-key guard could not be obtained within the retry budget.

    ``attempts`` is the number of acquisition attempts made before giving up.
    """

    default_category = ErrorCategory.CONTENTION

    def __init__(self, message: str, *, attempts: int, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.attempts = attempts
        self.context.attempts = attempts


# =============================================================================
# BACKEND ERRORS
# =============================================================================


class BackendError(CacheError):
    """The underlying store failed (protocol error, auth failure, ...)."""

    default_category = ErrorCategory.NETWORK
    default_retryable = False


class BackendUnavailableError(BackendError):
    """The store could not be reached (connection refused, timeout)."""

    default_retryable = True


# =============================================================================
# DATA ERRORS
# =============================================================================


class CodecError(CacheError):
    """A value could not be encoded, or stored bytes could not be decoded."""

    default_category = ErrorCategory.CODEC


class ValidationError(CacheError):
    """
    Value has the wrong shape for the requested operation.

    Never retryable, the data must change.
    """

    default_category = ErrorCategory.VALIDATION

    def __init__(self, message: str, *, value: Any = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.value is not None:
            result["value"] = repr(self.value)
        return result


class NotAMappingError(ValidationError):
    """``set_fields`` needs mappings on both sides of the merge."""


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(CacheError):
    """Configuration error. Never retryable."""

    default_category = ErrorCategory.CONFIG


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}")


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: BaseException) -> bool:
    """Check if an error is worth retrying at a higher level."""
    if isinstance(error, CacheError):
        return error.retryable
    return False


__all__ = [
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
]
