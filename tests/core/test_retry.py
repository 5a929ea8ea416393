"""Tests for ``cachespine.core.retry`` — backoff strategies and RetryContext."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from cachespine.core.retry import (
    ConstantBackoff,
    ExponentialBackoff,
    RetryContext,
    build_strategy,
)


class Busy(Exception):
    pass


class TestConstantBackoff:
    def test_delay(self):
        s = ConstantBackoff(max_attempts=3, delay=0.25)
        assert [s.next_delay(n) for n in (1, 2, 3)] == [0.25, 0.25, 0.25]

    def test_should_retry(self):
        s = ConstantBackoff(max_attempts=3)
        assert s.should_retry(1)
        assert s.should_retry(2)
        assert not s.should_retry(3)


class TestExponentialBackoff:
    def test_grows_and_caps(self):
        s = ExponentialBackoff(base_delay=0.1, max_delay=0.5, multiplier=2.0, jitter=False)
        assert [s.next_delay(n) for n in (1, 2, 3, 4)] == pytest.approx([0.1, 0.2, 0.4, 0.5])

    def test_jitter_stays_in_range(self):
        s = ExponentialBackoff(base_delay=1.0, max_delay=1.0, jitter=True, jitter_range=0.25)
        for _ in range(50):
            assert 0.75 <= s.next_delay(1) <= 1.25


class TestRetryContext:
    def test_success_first_try(self):
        sleep = MagicMock()
        ctx = RetryContext(ConstantBackoff(max_attempts=3), retry_on=(Busy,), sleep=sleep)

        assert ctx.run(lambda: "ok") == "ok"
        assert ctx.attempts == 1
        sleep.assert_not_called()

    def test_retries_then_succeeds(self):
        func = MagicMock(side_effect=[Busy(), Busy(), "ok"])
        sleep = MagicMock()
        on_retry = MagicMock()
        ctx = RetryContext(
            ConstantBackoff(max_attempts=5, delay=0.1),
            retry_on=(Busy,),
            on_retry=on_retry,
            sleep=sleep,
        )

        assert ctx.run(func) == "ok"
        assert ctx.attempts == 3
        assert sleep.call_count == 2
        assert on_retry.call_count == 2
        assert on_retry.call_args.args[0] == 2

    def test_gives_up_after_max_attempts(self):
        func = MagicMock(side_effect=Busy())
        sleep = MagicMock()
        ctx = RetryContext(ConstantBackoff(max_attempts=3, delay=0.1), retry_on=(Busy,), sleep=sleep)

        with pytest.raises(Busy):
            ctx.run(func)
        assert func.call_count == 3
        assert sleep.call_count == 2
        assert isinstance(ctx.last_error, Busy)

    def test_other_errors_not_retried(self):
        func = MagicMock(side_effect=KeyError("x"))
        ctx = RetryContext(ConstantBackoff(max_attempts=5), retry_on=(Busy,), sleep=MagicMock())

        with pytest.raises(KeyError):
            ctx.run(func)
        assert func.call_count == 1

    def test_zero_delay_skips_sleep(self):
        func = MagicMock(side_effect=[Busy(), "ok"])
        sleep = MagicMock()
        ctx = RetryContext(ConstantBackoff(max_attempts=2, delay=0), retry_on=(Busy,), sleep=sleep)

        ctx.run(func)
        sleep.assert_not_called()


class TestBuildStrategy:
    def test_constant(self):
        s = build_strategy("constant", max_attempts=4, delay=0.2, max_delay=1.0)
        assert isinstance(s, ConstantBackoff)
        assert s.max_attempts == 4
        assert s.delay == 0.2

    def test_exponential(self):
        s = build_strategy("exponential", max_attempts=4, delay=0.2, max_delay=2.0)
        assert isinstance(s, ExponentialBackoff)
        assert s.base_delay == 0.2
        assert s.max_delay == 2.0

    def test_unknown(self):
        with pytest.raises(ValueError):
            build_strategy("linear", max_attempts=1, delay=0, max_delay=0)
