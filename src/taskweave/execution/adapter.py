"""Result-tuple adapter and guarded calls.

``tryit`` turns a raising call into a returned :data:`Outcome`; ``guard``
turns a raising call into a fallback value. Both accept sync and async
callables: when the call hands back an awaitable, they hand back a coroutine
applying the same policy once it settles.

Only ``Exception`` subclasses are captured. Cancellation and interpreter
exit (``BaseException``) always propagate.

Example::

    outcome = await tryit(client.fetch, url)
    match outcome:
        case Ok(body):
            ...
        case Err(error):
            ...

    users = await guard(load_users) or []
    cfg = guard(lambda: read_config(path), lambda e: isinstance(e, FileNotFoundError))
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from taskweave.core.logging import get_logger
from taskweave.core.outcome import Err, Ok, Outcome
from taskweave.core.typed import ABSENT, is_awaitable

T = TypeVar("T")

logger = get_logger(__name__)


def tryit(func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Call ``func(*args, **kwargs)`` and return how it settled.

    Returns:
        ``Ok(value)`` / ``Err(exc)`` for a synchronous call, or a coroutine
        resolving to one when ``func`` returned an awaitable. A call that
        raises before producing an awaitable yields ``Err`` directly; use
        :func:`tryit_async` when the caller always wants to ``await``.
    """
    try:
        result = func(*args, **kwargs)
    except Exception as exc:
        return Err(exc)
    if is_awaitable(result):
        return settle(result)
    return Ok(result)


async def tryit_async(func: Callable[..., Any], *args: Any, **kwargs: Any) -> Outcome[Any]:
    """Always-awaitable :func:`tryit`; sync results are wrapped without suspending."""
    outcome = tryit(func, *args, **kwargs)
    if is_awaitable(outcome):
        return await outcome
    return outcome


async def settle(pending: Awaitable[T]) -> Outcome[T]:
    """Await an already-created awaitable and capture its settle-state."""
    try:
        return Ok(await pending)
    except Exception as exc:
        return Err(exc)


def guard(
    func: Callable[[], Any],
    should_guard: Callable[[Exception], bool] | None = None,
    *,
    default: Any = ABSENT,
) -> Any:
    """Call ``func()`` and swallow its failure.

    Args:
        func: Zero-argument callable, sync or async.
        should_guard: Predicate deciding which failures are swallowed. A
            failure it rejects is re-raised unchanged. Without a predicate
            every ``Exception`` is swallowed.
        default: Returned on swallow. Defaults to the falsy ``ABSENT``
            marker so that ``None`` stays a real value.

    Returns:
        The call's value, ``default``, or a coroutine resolving to either.
    """
    try:
        result = func()
    except Exception as exc:
        if _swallows(should_guard, exc):
            return default
        raise
    if is_awaitable(result):
        return _guard_pending(result, should_guard, default)
    return result


async def _guard_pending(
    pending: Awaitable[T],
    should_guard: Callable[[Exception], bool] | None,
    default: Any,
) -> Any:
    try:
        return await pending
    except Exception as exc:
        if _swallows(should_guard, exc):
            return default
        raise


def _swallows(should_guard: Callable[[Exception], bool] | None, exc: Exception) -> bool:
    if should_guard is not None and not should_guard(exc):
        return False
    logger.debug("guard.swallowed", error_type=type(exc).__name__, error=str(exc))
    return True


__all__ = ["tryit", "tryit_async", "settle", "guard"]
