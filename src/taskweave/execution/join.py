"""Concurrent Join — wait for every awaitable, report every failure.

Like ``asyncio.gather(..., return_exceptions=True)`` followed by a check:
nothing is cancelled or abandoned when one entry fails, and the caller gets
either all values (same shape as the input) or one
:class:`~taskweave.core.errors.AggregateFailure`.

Example::

    user, bucket = await join_all([
        api.users.create(...),
        storage.buckets.create(...),
    ])

    created = await join_all({
        "user": api.users.create(...),
        "bucket": storage.buckets.create(...),
    })
    created["user"]
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Hashable, Mapping, Sequence
from typing import Any, overload

from taskweave.core.errors import AggregateFailure, ConfigError
from taskweave.core.logging import get_logger
from taskweave.core.outcome import partition_outcomes
from taskweave.execution.adapter import settle

logger = get_logger(__name__)


@overload
async def join_all(awaitables: Mapping[Hashable, Awaitable[Any]]) -> dict[Hashable, Any]: ...


@overload
async def join_all(awaitables: Sequence[Awaitable[Any]]) -> list[Any] | tuple[Any, ...]: ...


async def join_all(awaitables):
    """Await every entry concurrently and return results in the input's shape.

    Args:
        awaitables: A list or tuple of awaitables, or a mapping of
            key -> awaitable.

    Returns:
        ``list`` for a list, ``tuple`` for a tuple (positions preserved),
        ``dict`` for a mapping (keys preserved).

    Raises:
        AggregateFailure: At least one entry failed; members follow
            enumeration order of the input.
        ConfigError: ``awaitables`` is neither a sequence nor a mapping.
    """
    if isinstance(awaitables, Mapping):
        keys: list[Hashable | None] = list(awaitables.keys())
        pending = list(awaitables.values())
    elif isinstance(awaitables, Sequence) and not isinstance(awaitables, (str, bytes)):
        keys = [None] * len(awaitables)
        pending = list(awaitables)
    else:
        raise ConfigError(
            f"join_all expects a sequence or mapping of awaitables, got {type(awaitables).__name__}"
        ).with_context(operation="join_all")

    outcomes = await asyncio.gather(*[settle(p) for p in pending])
    values, errors = partition_outcomes(outcomes)

    logger.debug(
        "join.complete",
        entries=len(outcomes),
        failed=len(errors),
    )

    if errors:
        raise AggregateFailure(errors).with_context(operation="join_all")

    if isinstance(awaitables, Mapping):
        return dict(zip(keys, values))
    if isinstance(awaitables, tuple):
        return tuple(values)
    return values


__all__ = ["join_all"]
