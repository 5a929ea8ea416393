"""Per-key guards that make Redis read-modify-write sequences atomic.

WHY
───
Redis runs each command atomically but offers no transaction spanning
"check the key" and "write the key" unless the client builds one. Without a
guard, two concurrent ``add`` calls can both see the key missing and both
write, and two ``set_fields`` calls can each merge into the same stale
value and lose an update.

ARCHITECTURE
────────────
::

    RedisLock(client, options)            ─ pessimistic, lock token per key
      └── .run(key, critical_section)
            SET <key>-op 1 NX PX <ttl>     ─ acquire (retry on contention)
            critical_section(client)
            DEL <key>-op                   ─ always, in finally; a failed DEL is logged

    WatchGuard(client, options)           ─ optimistic, Redis WATCH/MULTI/EXEC
      └── .run(key, critical_section)
            WATCH key
            critical_section(view)         ─ reads run now, first write opens MULTI
            EXEC                           ─ WatchError → retry

    Both hand the critical section a store view with
    exists(key) / get(key) / set(key, data, px=None).

The lock token expires after ``ttl_seconds`` even if its holder dies, so a
crash never wedges a key for longer than the safety window. Contention is
retried up to ``retries`` attempts and then surfaces as
``LockContentionError``; any other failure is raised at once.

Related modules:
    redis.py   — RedisCache runs add/replace/set_fields through a guard
    retry.py   — backoff strategies for the retry loop
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Protocol, TypeVar

from redis.exceptions import WatchError

from cachespine.core.errors import BackendError, LockContentionError
from cachespine.core.logging import get_logger
from cachespine.core.retry import RetryContext, RetryStrategy, build_strategy

from ._errors import translate_redis_errors

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class LockOptions:
    """Tuning for lock acquisition.

    Attributes:
        retries: Total acquisition attempts, the first one included (>= 1)
        ttl_seconds: Safety window after which an unreleased token expires
        retry_wait_seconds: Wait between attempts (base delay for exponential)
        backoff: ``"constant"`` or ``"exponential"``
        max_wait_seconds: Cap on a single wait when backing off exponentially
        suffix: Appended to the protected key to form the token key
    """

    retries: int = 5
    ttl_seconds: float = 5.0
    retry_wait_seconds: float = 0.1
    backoff: str = "constant"
    max_wait_seconds: float = 1.0
    suffix: str = "-op"

    def __post_init__(self) -> None:
        if self.retries < 1:
            raise ValueError("retries must be >= 1")
        if self.ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        if self.retry_wait_seconds < 0:
            raise ValueError("retry_wait_seconds must be >= 0")
        if self.backoff not in ("constant", "exponential"):
            raise ValueError(f"Unknown backoff: {self.backoff!r}")
        if not self.suffix:
            raise ValueError("suffix must not be empty")

    def strategy(self) -> RetryStrategy:
        return build_strategy(
            self.backoff,
            max_attempts=self.retries,
            delay=self.retry_wait_seconds,
            max_delay=self.max_wait_seconds,
        )

    @property
    def ttl_ms(self) -> int:
        return max(1, int(self.ttl_seconds * 1000))


class StoreView(Protocol):
    """Commands a critical section may issue."""

    def exists(self, key: str) -> int: ...

    def get(self, key: str) -> bytes | None: ...

    def set(self, key: str, data: bytes, px: int | None = None) -> Any: ...


class _Busy(Exception):
    """Internal contention signal, one per failed attempt."""


class _Guard(ABC):
    """Retry loop shared by both guards."""

    kind = "guard"

    def __init__(
        self,
        client: Any,
        options: LockOptions | None = None,
        *,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self._client = client
        self._options = options or LockOptions()
        self._sleep = sleep

    @property
    def options(self) -> LockOptions:
        return self._options

    def _log_retry(self, attempt: int, error: BaseException, delay: float) -> None:
        logger.debug(
            "cas_contention_retry",
            guard=self.kind,
            key=str(error),
            attempt=attempt,
            delay=round(delay, 4),
        )

    def _retrying(self, key: str, attempt: Callable[[], T], operation: str | None) -> T:
        ctx = RetryContext(
            strategy=self._options.strategy(),
            retry_on=(_Busy,),
            on_retry=self._log_retry,
        )
        if self._sleep is not None:
            ctx.sleep = self._sleep
        try:
            return ctx.run(attempt)
        except _Busy as exc:
            logger.warning(
                "cas_contention_exhausted",
                guard=self.kind,
                key=key,
                attempts=ctx.attempts,
            )
            raise LockContentionError(
                f"Could not guard {key!r} after {ctx.attempts} attempt(s)",
                attempts=ctx.attempts,
            ).with_context(key=key, backend="redis", operation=operation) from exc

    @abstractmethod
    def run(
        self,
        key: str,
        critical_section: Callable[[StoreView], T],
        *,
        operation: str | None = None,
    ) -> T:
        """Run ``critical_section`` under the guard for ``key``."""


class RedisLock(_Guard):
    """
    Lock token per key, acquired with ``SET NX PX`` and bounded retry.

    Example::

        lock = RedisLock(client, LockOptions(retries=3))
        lock.run("user:1", lambda store: store.set("user:1", b"{}"))
    """

    kind = "lock"

    def token_key(self, key: str) -> str:
        return f"{key}{self._options.suffix}"

    def acquire(self, key: str) -> bool:
        """One acquisition attempt; False if another holder has the token."""
        with translate_redis_errors(key, "lock_acquire"):
            return bool(
                self._client.set(self.token_key(key), "1", nx=True, px=self._options.ttl_ms)
            )

    def release(self, key: str) -> bool:
        """Delete the token for ``key``; False if the delete failed.

        A failed delete is logged and not raised: the critical section has
        already run, and the token expires on its own after ``ttl_seconds``.
        """
        try:
            with translate_redis_errors(key, "lock_release"):
                self._client.delete(self.token_key(key))
        except BackendError as exc:
            logger.warning(
                "lock_release_failed",
                key=key,
                ttl_seconds=self._options.ttl_seconds,
                error=exc.message,
            )
            return False
        return True

    def run(
        self,
        key: str,
        critical_section: Callable[[StoreView], T],
        *,
        operation: str | None = None,
    ) -> T:
        """Run ``critical_section`` while holding the token for ``key``.

        Raises:
            LockContentionError: The token stayed taken for every attempt.
            BackendError: Redis failed; not retried.
        """

        def attempt() -> None:
            if not self.acquire(key):
                raise _Busy(key)

        self._retrying(key, attempt, operation)
        try:
            with translate_redis_errors(key, operation):
                return critical_section(self._client)
        finally:
            self.release(key)


class _PipelineView:
    """Store view over a watching pipeline.

    Reads execute immediately; the first write switches the pipeline into
    MULTI so it is queued and committed by EXEC.
    """

    def __init__(self, pipe: Any) -> None:
        self._pipe = pipe
        self.queued = False

    def exists(self, key: str) -> int:
        return self._pipe.exists(key)

    def get(self, key: str) -> bytes | None:
        return self._pipe.get(key)

    def set(self, key: str, data: bytes, px: int | None = None) -> Any:
        if not self.queued:
            self._pipe.multi()
            self.queued = True
        return self._pipe.set(key, data, px=px)


class WatchGuard(_Guard):
    """
    Optimistic check-and-set with ``WATCH``/``MULTI``/``EXEC``.

    No token key is written. Any change to the watched key between the read
    and ``EXEC`` (a plain ``set`` included) aborts the attempt, which is
    then retried under the same budget as ``RedisLock``.
    """

    kind = "watch"

    def run(
        self,
        key: str,
        critical_section: Callable[[StoreView], T],
        *,
        operation: str | None = None,
    ) -> T:
        """Run ``critical_section`` until it commits against an unchanged key.

        Raises:
            LockContentionError: Every attempt was invalidated by a concurrent write.
            BackendError: Redis failed; not retried.
        """

        def attempt() -> T:
            with translate_redis_errors(key, operation):
                with self._client.pipeline(transaction=True) as pipe:
                    try:
                        pipe.watch(key)
                        view = _PipelineView(pipe)
                        result = critical_section(view)
                        if view.queued:
                            pipe.execute()
                        return result
                    except WatchError as exc:
                        raise _Busy(key) from exc

        return self._retrying(key, attempt, operation)


def create_guard(
    client: Any,
    strategy: str = "lock",
    options: LockOptions | None = None,
) -> _Guard:
    """Build the guard for a CAS strategy name (``lock`` or ``watch``)."""
    if strategy == "lock":
        return RedisLock(client, options)
    if strategy == "watch":
        return WatchGuard(client, options)
    raise ValueError(f"Unknown CAS strategy: {strategy!r}")
