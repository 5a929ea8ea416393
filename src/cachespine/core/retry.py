"""Retry strategies used by the lock and optimistic guards.

A strategy answers two questions: may attempt ``n`` be followed by another
one, and how long to wait before it. ``RetryContext`` drives a callable
through a strategy, retrying only the exception types it is told are
contention signals and re-raising everything else at once.

Example:
    >>> from cachespine.core.retry import ConstantBackoff, RetryContext
    >>>
    >>> ctx = RetryContext(ConstantBackoff(max_attempts=5, delay=0.1), retry_on=(BusyError,))
    >>> ctx.run(try_acquire)
"""

from __future__ import annotations

import random
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

T = TypeVar("T")


class RetryStrategy(ABC):
    """Abstract base for retry strategies."""

    max_attempts: int

    @abstractmethod
    def next_delay(self, attempt: int) -> float:
        """Calculate delay before the next attempt.

        Args:
            attempt: One-based number of the attempt that just failed

        Returns:
            Delay in seconds before the next attempt
        """
        ...

    def should_retry(self, attempt: int) -> bool:
        """True if another attempt may follow attempt number ``attempt``."""
        return attempt < self.max_attempts


@dataclass
class ConstantBackoff(RetryStrategy):
    """Fixed wait between attempts."""

    max_attempts: int = 5
    delay: float = 0.1

    def next_delay(self, attempt: int) -> float:
        return self.delay


@dataclass
class ExponentialBackoff(RetryStrategy):
    """Exponential backoff with optional jitter.

    Delay = min(base_delay * (multiplier ** (attempt - 1)), max_delay) +/- jitter

    Attributes:
        max_attempts: Total attempts, the first one included
        base_delay: Wait after the first failed attempt
        max_delay: Maximum delay cap in seconds
        multiplier: Exponential multiplier
        jitter: Add randomness to prevent thundering herd
        jitter_range: Range of jitter as fraction of delay (0.0-1.0)
    """

    max_attempts: int = 5
    base_delay: float = 0.1
    max_delay: float = 1.0
    multiplier: float = 2.0
    jitter: bool = True
    jitter_range: float = 0.25

    def next_delay(self, attempt: int) -> float:
        delay = min(
            self.base_delay * (self.multiplier ** max(0, attempt - 1)),
            self.max_delay,
        )

        if self.jitter:
            jitter_amount = delay * self.jitter_range
            delay += random.uniform(-jitter_amount, jitter_amount)
            delay = max(0.0, delay)

        return delay


@dataclass
class RetryContext:
    """Run a callable under a strategy, tracking attempts.

    Only exceptions listed in ``retry_on`` are retried; the last one is
    re-raised once the strategy gives up. Any other exception propagates
    immediately.
    """

    strategy: RetryStrategy
    retry_on: tuple[type[BaseException], ...] = (Exception,)
    on_retry: Callable[[int, BaseException, float], None] | None = None
    sleep: Callable[[float], None] = time.sleep
    attempt: int = field(default=0, init=False)
    last_error: BaseException | None = field(default=None, init=False)

    @property
    def attempts(self) -> int:
        """Number of attempts made."""
        return self.attempt

    def run(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Execute ``func`` until it succeeds or the strategy gives up."""
        while True:
            self.attempt += 1
            try:
                return func(*args, **kwargs)
            except self.retry_on as e:
                self.last_error = e

                if not self.strategy.should_retry(self.attempt):
                    raise

                delay = self.strategy.next_delay(self.attempt)

                if self.on_retry:
                    self.on_retry(self.attempt, e, delay)

                if delay > 0:
                    self.sleep(delay)


def build_strategy(
    backoff: str,
    *,
    max_attempts: int,
    delay: float,
    max_delay: float,
) -> RetryStrategy:
    """Map a backoff name (``constant`` / ``exponential``) to a strategy."""
    if backoff == "constant":
        return ConstantBackoff(max_attempts=max_attempts, delay=delay)
    if backoff == "exponential":
        return ExponentialBackoff(
            max_attempts=max_attempts,
            base_delay=delay,
            max_delay=max_delay,
        )
    raise ValueError(f"Unknown backoff: {backoff!r}")
