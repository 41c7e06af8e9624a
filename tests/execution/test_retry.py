"""Tests for the retry controller and backoff strategies."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from taskweave.core.errors import ConfigError
from taskweave.core.settings import TaskweaveSettings
from taskweave.execution.retry import (
    ConstantBackoff,
    Continue,
    ExponentialBackoff,
    LinearBackoff,
    RetryOptions,
    StopNow,
    retry,
    with_retry,
)


class _Flaky:
    """Fails ``failures`` times, then returns ``value``."""

    def __init__(self, failures: int, value: str = "ok"):
        self.failures = failures
        self.value = value
        self.calls = 0

    async def __call__(self, exit):
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError(f"attempt {self.calls}")
        return self.value


# ── Backoff strategies ───────────────────────────────────────────────────


class TestExponentialBackoff:
    def test_default_configuration(self):
        strategy = ExponentialBackoff()
        assert strategy.base_delay == 1.0
        assert strategy.max_delay == 60.0
        assert strategy.multiplier == 2.0
        assert strategy.jitter is True

    def test_delay_calculation_no_jitter(self):
        strategy = ExponentialBackoff(base_delay=1.0, multiplier=2.0, jitter=False)
        assert strategy(1) == 1.0
        assert strategy(2) == 2.0
        assert strategy(3) == 4.0
        assert strategy(4) == 8.0

    def test_delay_capped_at_max(self):
        strategy = ExponentialBackoff(base_delay=10.0, max_delay=30.0, jitter=False)
        assert strategy(2) == 20.0
        assert strategy(3) == 30.0
        assert strategy(9) == 30.0

    def test_delay_with_jitter(self):
        strategy = ExponentialBackoff(base_delay=1.0, jitter=True, jitter_range=0.5)
        delays = [strategy(2) for _ in range(20)]
        assert all(1.0 <= d <= 3.0 for d in delays)
        assert len({round(d, 3) for d in delays}) > 1


class TestLinearAndConstantBackoff:
    def test_linear(self):
        strategy = LinearBackoff(base_delay=1.0, increment=0.5, max_delay=2.0)
        assert strategy(1) == 1.0
        assert strategy(2) == 1.5
        assert strategy(5) == 2.0

    def test_constant(self):
        strategy = ConstantBackoff(delay=0.3)
        assert strategy(1) == strategy(10) == 0.3


# ── Options ──────────────────────────────────────────────────────────────


class TestRetryOptions:
    def test_defaults(self):
        opts = RetryOptions()
        assert opts.times == 3
        assert opts.delay is None
        assert opts.backoff is None

    @pytest.mark.parametrize("times", [0, -2])
    def test_times_must_be_positive(self, times):
        with pytest.raises(ConfigError):
            RetryOptions(times=times)

    def test_delay_must_be_non_negative(self):
        with pytest.raises(ConfigError):
            RetryOptions(delay=-0.1)

    def test_coerce(self):
        opts = RetryOptions(times=2)
        assert RetryOptions.coerce(opts) is opts
        assert RetryOptions.coerce(None) == RetryOptions()
        assert RetryOptions.coerce({"times": 5}).times == 5

    def test_coerce_treats_none_as_default(self):
        opts = RetryOptions.coerce({"times": None, "delay": None})
        assert opts.times == 3
        assert opts.delay is None

    @pytest.mark.parametrize("times", [None, 2.5, "3"])
    def test_times_must_be_an_int(self, times):
        with pytest.raises(ConfigError):
            RetryOptions(times=times)

    def test_from_settings(self):
        settings = TaskweaveSettings(retry_times=6, retry_delay=0.2)
        opts = RetryOptions.from_settings(settings, delay=None)
        assert opts.times == 6
        assert opts.delay is None

    def test_from_env_settings(self, monkeypatch):
        monkeypatch.setenv("TASKWEAVE_RETRY_TIMES", "4")
        assert RetryOptions.from_settings().times == 4


# ── Controller ───────────────────────────────────────────────────────────


class TestRetry:
    @pytest.mark.asyncio
    async def test_succeeds_on_third_attempt(self, no_sleep):
        op = _Flaky(failures=2)
        assert await retry({"times": 3}, op) == "ok"
        assert op.calls == 3

    @pytest.mark.asyncio
    async def test_first_attempt_success(self, no_sleep):
        op = _Flaky(failures=0)
        assert await retry(None, op) == "ok"
        assert op.calls == 1
        assert no_sleep == []

    @pytest.mark.asyncio
    async def test_exhausted_raises_last_error(self, no_sleep):
        op = _Flaky(failures=10)
        with pytest.raises(ConnectionError, match="attempt 3"):
            await retry(RetryOptions(times=3), op)
        assert op.calls == 3

    @pytest.mark.asyncio
    async def test_single_attempt(self, no_sleep):
        op = _Flaky(failures=1)
        with pytest.raises(ConnectionError):
            await retry({"times": 1, "delay": 5}, op)
        assert op.calls == 1
        assert no_sleep == []

    @pytest.mark.asyncio
    async def test_early_exit_raises_given_error_immediately(self, no_sleep):
        stop = PermissionError("stop")
        calls = 0

        async def op(exit):
            nonlocal calls
            calls += 1
            exit(stop)
            raise AssertionError("exit must not return")

        with pytest.raises(PermissionError) as info:
            await retry({"times": 3, "delay": 1}, op)
        assert info.value is stop
        assert calls == 1
        assert no_sleep == []

    @pytest.mark.asyncio
    async def test_early_exit_on_later_attempt(self, no_sleep):
        calls = 0

        def op(exit):
            nonlocal calls
            calls += 1
            if calls == 2:
                exit(LookupError("gone"))
            raise ConnectionError("flaky")

        with pytest.raises(LookupError):
            await retry({"times": 5}, op)
        assert calls == 2

    @pytest.mark.asyncio
    async def test_stop_now_result(self, no_sleep):
        stop = PermissionError("denied")
        op = MagicMock(return_value=StopNow(stop))
        with pytest.raises(PermissionError) as info:
            await retry({"times": 4}, op)
        assert info.value is stop
        assert op.call_count == 1

    @pytest.mark.asyncio
    async def test_continue_result_unwrapped(self, no_sleep):
        assert await retry(None, lambda exit: Continue("value")) == "value"

    @pytest.mark.asyncio
    async def test_sync_operation(self, no_sleep):
        assert await retry(None, lambda exit: 7) == 7

    @pytest.mark.asyncio
    async def test_delay_applied_between_attempts(self, no_sleep):
        op = _Flaky(failures=2)
        await retry({"times": 3, "delay": 0.5}, op)
        assert no_sleep == [0.5, 0.5]

    @pytest.mark.asyncio
    async def test_backoff_receives_attempt_number(self, no_sleep):
        seen = []

        def backoff(attempt):
            seen.append(attempt)
            return attempt * 0.1

        op = _Flaky(failures=3)
        await retry({"times": 4, "backoff": backoff}, op)
        assert seen == [1, 2, 3]
        assert no_sleep == pytest.approx([0.1, 0.2, 0.3])

    @pytest.mark.asyncio
    async def test_delay_and_backoff_both_apply(self, no_sleep):
        op = _Flaky(failures=1)
        await retry({"times": 2, "delay": 1.0, "backoff": lambda n: 2.0}, op)
        assert no_sleep == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_zero_delay_skipped(self, no_sleep):
        await retry({"times": 2, "delay": 0}, _Flaky(failures=1))
        assert no_sleep == []

    @pytest.mark.asyncio
    async def test_on_retry_hook(self, no_sleep):
        hook = MagicMock()
        await retry({"times": 3, "delay": 0.25, "on_retry": hook}, _Flaky(failures=2))
        assert hook.call_count == 2
        attempt, error, waited = hook.call_args_list[0].args
        assert attempt == 1
        assert isinstance(error, ConnectionError)
        assert waited == 0.25

    @pytest.mark.asyncio
    async def test_exhaustion_logged(self, no_sleep, captured_logs):
        with pytest.raises(ConnectionError):
            await retry({"times": 2}, _Flaky(failures=5))
        events = [e["event"] for e in captured_logs]
        assert events == ["retry.attempt_failed", "retry.exhausted"]
        exhausted = captured_logs[-1]
        assert exhausted["status"] == "exhausted"
        assert exhausted["error_types"] == ["ConnectionError", "ConnectionError"]
        assert exhausted["error"] == "attempt 2"

    @pytest.mark.asyncio
    async def test_none_times_uses_default(self, no_sleep):
        op = _Flaky(failures=2)
        assert await retry({"times": None}, op) == "ok"
        assert op.calls == 3

    @pytest.mark.asyncio
    async def test_success_after_failures_logged(self, no_sleep, captured_logs):
        await retry({"times": 3}, _Flaky(failures=1))
        succeeded = [e for e in captured_logs if e["event"] == "retry.succeeded"]
        assert succeeded[0]["status"] == "succeeded"
        assert succeeded[0]["failures"] == 1
        assert succeeded[0]["attempt"] == 2

    @pytest.mark.asyncio
    async def test_early_exit_logged_with_failure_count(self, no_sleep, captured_logs):
        calls = 0

        def op(exit):
            nonlocal calls
            calls += 1
            if calls == 1:
                raise ConnectionError("flaky")
            exit(LookupError("gone"))

        with pytest.raises(LookupError):
            await retry({"times": 5}, op)
        exited = [e for e in captured_logs if e["event"] == "retry.exited_early"]
        assert exited[0]["status"] == "exited_early"
        assert exited[0]["failures"] == 1


class TestWithRetry:
    @pytest.mark.asyncio
    async def test_decorator_retries(self, no_sleep):
        calls = []

        @with_retry(RetryOptions(times=3))
        async def flaky(key):
            calls.append(key)
            if len(calls) < 3:
                raise ConnectionError("again")
            return f"done:{key}"

        assert await flaky("k") == "done:k"
        assert calls == ["k", "k", "k"]
        assert flaky.__name__ == "flaky"

    @pytest.mark.asyncio
    async def test_decorator_stop_now(self, no_sleep):
        calls = []

        @with_retry({"times": 5})
        async def op():
            calls.append(1)
            return StopNow(ValueError("stop"))

        with pytest.raises(ValueError):
            await op()
        assert len(calls) == 1
