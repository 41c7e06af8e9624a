"""Retry controller with fixed delay, computed backoff and an early-exit hatch.

Example:
    >>> from taskweave.execution.retry import retry, RetryOptions, ExponentialBackoff
    >>>
    >>> async def fetch(exit):
    ...     response = await client.get(url)
    ...     if response.status == 404:
    ...         exit(NotFound(url))          # stop now, no more attempts
    ...     response.raise_for_status()      # anything else is retried
    ...     return response.json()
    >>>
    >>> data = await retry(RetryOptions(times=5, backoff=ExponentialBackoff(jitter=False)), fetch)

States of one call::

    ATTEMPTING(1) ──fail──▶ [delay] [backoff(1)] ──▶ ATTEMPTING(2) ... ATTEMPTING(times)
         │                                                              │
         ├── value / Continue(value) ──▶ SUCCEEDED                     fail ──▶ EXHAUSTED
         └── exit(err) / StopNow(err) ─▶ EXITED_EARLY (raise err)
"""

from __future__ import annotations

import functools
import random
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, NoReturn, TypeVar

from taskweave.core.errors import ConfigError
from taskweave.core.logging import get_logger
from taskweave.core.outcome import Err, Ok
from taskweave.core.settings import TaskweaveSettings, get_settings
from taskweave.execution.adapter import tryit_async
from taskweave.execution.timing import sleep

T = TypeVar("T")

logger = get_logger(__name__)


# =============================================================================
# BACKOFF STRATEGIES
# =============================================================================


@dataclass
class ExponentialBackoff:
    """Exponential backoff with optional jitter.

    Delay = min(base_delay * (multiplier ** (attempt - 1)), max_delay) + jitter

    Attributes:
        base_delay: Wait after the first failed attempt, seconds
        max_delay: Maximum delay cap in seconds
        multiplier: Exponential multiplier (default: 2)
        jitter: Add randomness to prevent thundering herd
        jitter_range: Range of jitter as fraction of delay (0.0-1.0)
    """

    base_delay: float = 1.0
    max_delay: float = 60.0
    multiplier: float = 2.0
    jitter: bool = True
    jitter_range: float = 0.25

    def next_delay(self, attempt: int) -> float:
        """Delay after failed ``attempt`` (1-based)."""
        delay = min(
            self.base_delay * (self.multiplier ** (attempt - 1)),
            self.max_delay,
        )

        if self.jitter:
            jitter_amount = delay * self.jitter_range
            delay += random.uniform(-jitter_amount, jitter_amount)
            delay = max(0, delay)

        return delay

    def __call__(self, attempt: int) -> float:
        return self.next_delay(attempt)


@dataclass
class LinearBackoff:
    """Linear backoff strategy.

    Delay = base_delay + (increment * (attempt - 1))
    """

    base_delay: float = 1.0
    increment: float = 1.0
    max_delay: float = 30.0

    def next_delay(self, attempt: int) -> float:
        return min(
            self.base_delay + (self.increment * (attempt - 1)),
            self.max_delay,
        )

    def __call__(self, attempt: int) -> float:
        return self.next_delay(attempt)


@dataclass
class ConstantBackoff:
    """Constant delay between attempts."""

    delay: float = 1.0

    def next_delay(self, attempt: int) -> float:
        return self.delay

    def __call__(self, attempt: int) -> float:
        return self.next_delay(attempt)


# =============================================================================
# OPTIONS AND STATE
# =============================================================================


@dataclass(frozen=True)
class RetryOptions:
    """How many attempts to make and how long to wait between them.

    Attributes:
        times: Total attempts, including the first (>= 1)
        delay: Fixed wait after each failed attempt, seconds
        backoff: ``attempt -> seconds`` waited after failed ``attempt``,
            in addition to ``delay``
        on_retry: Called as ``(attempt, error, waited)`` before the next attempt
    """

    times: int = 3
    delay: float | None = None
    backoff: Callable[[int], float] | None = None
    on_retry: Callable[[int, Exception, float], None] | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.times, int) or self.times < 1:
            raise ConfigError(f"retry times must be an int >= 1, got {self.times!r}").with_context(
                operation="retry"
            )
        if self.delay is not None and self.delay < 0:
            raise ConfigError(f"retry delay must be >= 0, got {self.delay}").with_context(
                operation="retry"
            )

    @classmethod
    def from_settings(
        cls, settings: TaskweaveSettings | None = None, **overrides: Any
    ) -> RetryOptions:
        """Defaults from ``TASKWEAVE_RETRY_*`` settings, with per-call overrides."""
        settings = settings or get_settings()
        values: dict[str, Any] = {
            "times": settings.retry_times,
            "delay": settings.retry_delay,
        }
        values.update(overrides)
        return cls(**values)

    @classmethod
    def coerce(cls, options: RetryOptions | Mapping[str, Any] | None) -> RetryOptions:
        if options is None:
            return cls()
        if isinstance(options, RetryOptions):
            return options
        # None in a mapping means "use the default"
        return cls(**{key: value for key, value in options.items() if value is not None})


class RetryStatus(str, Enum):
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    EXITED_EARLY = "exited_early"
    EXHAUSTED = "exhausted"


@dataclass
class RetryState:
    """Progress of one ``retry`` call; its status and failure count go into
    the call's final log event.
    """

    attempt: int = 1
    status: RetryStatus = RetryStatus.ATTEMPTING
    errors: list[Exception] = field(default_factory=list)


# =============================================================================
# EARLY EXIT
# =============================================================================


class EarlyExit(Exception):
    """Raised by the ``exit`` callback to end an attempt and stop retrying.

    ``retry`` recognises this type and raises ``error`` in its place; it never
    escapes a ``retry`` call.
    """

    def __init__(self, error: BaseException):
        super().__init__(error)
        self.error = error


@dataclass(frozen=True, slots=True)
class StopNow:
    """Return value telling ``retry`` to raise ``error`` without further attempts."""

    error: BaseException


@dataclass(frozen=True, slots=True)
class Continue(Generic[T]):
    """Return value marking an explicit success."""

    value: T


def _exit(error: BaseException) -> NoReturn:
    raise EarlyExit(error)


# =============================================================================
# CONTROLLER
# =============================================================================


async def retry(
    options: RetryOptions | Mapping[str, Any] | None,
    operation: Callable[[Callable[[BaseException], NoReturn]], Any],
) -> Any:
    """Call ``operation(exit)`` until it succeeds or attempts run out.

    Args:
        options: :class:`RetryOptions`, a mapping of its fields, or None for defaults.
        operation: Sync or async callable receiving the ``exit`` callback.

    Returns:
        The first successful result (unwrapped from ``Continue``).

    Raises:
        The error passed to ``exit``/``StopNow`` immediately, or the error of
        the final attempt once ``times`` attempts failed.
    """
    opts = RetryOptions.coerce(options)
    state = RetryState()

    while True:
        outcome = await tryit_async(operation, _exit)

        match outcome:
            case Err(EarlyExit() as signal):
                _stop_early(state, signal.error)
                raise signal.error
            case Ok(StopNow(error)):
                _stop_early(state, error)
                raise error
            case Ok(Continue(value)) | Ok(value):
                state.status = RetryStatus.SUCCEEDED
                if state.errors:
                    logger.debug(
                        "retry.succeeded",
                        attempt=state.attempt,
                        status=state.status.value,
                        failures=len(state.errors),
                    )
                return value
            case Err(error):
                state.errors.append(error)

        if state.attempt >= opts.times:
            state.status = RetryStatus.EXHAUSTED
            logger.warning(
                "retry.exhausted",
                attempts=state.attempt,
                status=state.status.value,
                error_types=[type(e).__name__ for e in state.errors],
                error=str(state.errors[-1]),
            )
            raise state.errors[-1]

        logger.debug(
            "retry.attempt_failed",
            attempt=state.attempt,
            times=opts.times,
            error_type=type(error).__name__,
        )

        waited = 0.0
        if opts.delay:
            await sleep(opts.delay)
            waited += opts.delay
        if opts.backoff:
            wait = opts.backoff(state.attempt)
            await sleep(wait)
            waited += wait
        if opts.on_retry:
            opts.on_retry(state.attempt, error, waited)

        state.attempt += 1


def _stop_early(state: RetryState, error: BaseException) -> None:
    state.status = RetryStatus.EXITED_EARLY
    logger.debug(
        "retry.exited_early",
        attempt=state.attempt,
        status=state.status.value,
        failures=len(state.errors),
        error_type=type(error).__name__,
    )


def with_retry(
    options: RetryOptions | Mapping[str, Any] | None = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorator factory retrying an async (or sync) function.

    The wrapped function does not receive ``exit``; return ``StopNow(err)``
    to stop early.

    Example:
        >>> @with_retry(RetryOptions(times=4, backoff=LinearBackoff()))
        ... async def flaky_operation(key):
        ...     return await call_api(key)
    """
    opts = RetryOptions.coerce(options)

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            return await retry(opts, lambda _exit: func(*args, **kwargs))

        return wrapper

    return decorator


__all__ = [
    "retry",
    "with_retry",
    "RetryOptions",
    "RetryState",
    "RetryStatus",
    "EarlyExit",
    "StopNow",
    "Continue",
    "ExponentialBackoff",
    "LinearBackoff",
    "ConstantBackoff",
]
