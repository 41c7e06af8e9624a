"""Deferred Cleanup Scope — register cleanups while working, run them all after.

Useful for script-like jobs that create several resources as they go and
must tear every one of them down whether the job succeeded or not::

    async def provision(register):
        bucket = await storage.create_bucket(name)
        register(lambda err: storage.delete_bucket(bucket))

        job = await queue.submit(bucket)
        register(lambda err: queue.cancel(job) if err else None, rethrow=True)

        return await job.wait()

    result = await defer(provision)

Rules:
    - Cleanups run in registration order, each exactly once, each receiving
      the body's failure (or None). A cancelled or interrupted body counts
      as failed: its cleanups still run and the interruption is re-raised.
    - A failing cleanup never stops the ones after it.
    - A cleanup registered with ``rethrow=True`` that fails replaces the
      failure the scope raises; the last such cleanup wins.
    - Otherwise the body's failure is raised, or its value returned.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from taskweave.core.errors import DeferError
from taskweave.core.logging import get_logger
from taskweave.core.outcome import Err
from taskweave.execution.adapter import tryit_async

logger = get_logger(__name__)

Cleanup = Callable[[BaseException | None], Any]
Register = Callable[..., None]


@dataclass(frozen=True, slots=True)
class CleanupRegistration:
    callback: Cleanup
    rethrow: bool = False


class _Registry:
    """Cleanup list open for appends only while the body runs."""

    def __init__(self) -> None:
        self.registrations: list[CleanupRegistration] = []
        self.closed = False

    def register(self, callback: Cleanup, *, rethrow: bool = False) -> None:
        if self.closed:
            raise DeferError("cleanup registered after the deferred body settled").with_context(
                operation="defer"
            )
        self.registrations.append(CleanupRegistration(callback, rethrow))


async def defer(body: Callable[[Register], Any]) -> Any:
    """Run ``body(register)`` and then every cleanup it registered.

    Args:
        body: Sync or async callable receiving ``register(callback, *, rethrow=False)``.

    Returns:
        The body's value when neither the body nor a rethrowing cleanup failed.

    Raises:
        The last failure of a ``rethrow=True`` cleanup if any, otherwise the
        body's failure.
    """
    registry = _Registry()
    try:
        outcome = await tryit_async(body, registry.register)
    except BaseException as exc:
        # Cancellation and interpreter exit settle the body too.
        outcome = Err(exc)
    registry.closed = True

    body_error = outcome.error if isinstance(outcome, Err) else None
    propagated: Exception | None = None

    for position, registration in enumerate(registry.registrations):
        cleanup = await tryit_async(registration.callback, body_error)
        if not isinstance(cleanup, Err):
            continue
        if registration.rethrow:
            logger.warning(
                "defer.cleanup_rethrown",
                position=position,
                error_type=type(cleanup.error).__name__,
                error=str(cleanup.error),
            )
            propagated = cleanup.error
        else:
            logger.warning(
                "defer.cleanup_failed",
                position=position,
                error_type=type(cleanup.error).__name__,
                error=str(cleanup.error),
            )

    if propagated is not None:
        raise propagated
    return outcome.unwrap()


__all__ = ["defer", "CleanupRegistration"]
