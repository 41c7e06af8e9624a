"""Bounded Parallel Executor — a fixed worker pool over one shared backlog.

WHY
───
Fanning out hundreds of I/O calls with one task per item floods the
downstream service. ``parallel`` keeps at most ``limit`` calls in flight,
still runs every item, and reports every failure at once instead of
stopping at the first.

ARCHITECTURE
────────────
::

    items ──enumerate──▶ [WorkItem(0, a), WorkItem(1, b), ...]   (backlog)
                                   │
            ┌──────────────────────┼──────────────────────┐
            ▼                      ▼                      ▼
        worker #1              worker #2      ...     worker #min(L, N)
        claim → tryit(fn)      claim → tryit(fn)
            │                      │
            └────────── WorkItemResult(index, outcome) ───┘
                                   │
                        sort_by_index → partition
                                   │
                 any Err? ── yes ──▶ raise AggregateFailure(errors)
                    │
                    no ──▶ [values in input order]

The claim is a ``next()`` on a shared iterator. It never awaits, so under
asyncio no two workers can take the same item.

Example::

    pages = await parallel(5, urls, fetch_page)
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from taskweave.core.errors import AggregateFailure, ConfigError
from taskweave.core.logging import get_logger
from taskweave.core.outcome import Err, Outcome, partition_outcomes, sort_by_index
from taskweave.core.settings import get_settings
from taskweave.execution.adapter import tryit_async

T = TypeVar("T")
K = TypeVar("K")

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class WorkItem(Generic[T]):
    """One input element tagged with its position in the input."""

    index: int
    item: T


@dataclass(frozen=True, slots=True)
class WorkItemResult(Generic[K]):
    """How the work item at ``index`` settled."""

    index: int
    outcome: Outcome[K]

    @property
    def failed(self) -> bool:
        return self.outcome.is_err()


async def parallel(
    limit: int | None,
    items: Iterable[T],
    worker: Callable[[T], Any],
) -> list[K]:
    """Run ``worker`` over ``items`` with at most ``limit`` calls in flight.

    Args:
        limit: Number of concurrent workers (>= 1). None uses the
            ``parallel_limit`` setting.
        items: Inputs, consumed once.
        worker: Sync or async callable applied to each input.

    Returns:
        Worker results in input order.

    Raises:
        ConfigError: ``limit`` is below 1.
        AggregateFailure: One or more items failed. Members are ordered by
            item index; successful results are discarded.
    """
    if limit is None:
        limit = get_settings().parallel_limit
    if limit < 1:
        raise ConfigError(f"parallel limit must be >= 1, got {limit}").with_context(
            operation="parallel"
        )

    work = [WorkItem(index, item) for index, item in enumerate(items)]
    if not work:
        return []

    batch_id = str(uuid.uuid4())
    workers = min(limit, len(work))
    backlog = iter(work)

    logger.debug(
        "parallel.start",
        batch_id=batch_id,
        items=len(work),
        workers=workers,
    )

    per_worker = await asyncio.gather(
        *[_drain(backlog, worker, batch_id) for _ in range(workers)]
    )

    ordered = sort_by_index(result for results in per_worker for result in results)
    values, errors = partition_outcomes(result.outcome for result in ordered)

    logger.debug(
        "parallel.complete",
        batch_id=batch_id,
        succeeded=len(values),
        failed=len(errors),
    )

    if errors:
        raise AggregateFailure(errors).with_context(operation="parallel", batch_id=batch_id)
    return values


async def _drain(
    backlog: Iterator[WorkItem[T]],
    worker: Callable[[T], Any],
    batch_id: str,
) -> list[WorkItemResult[Any]]:
    results: list[WorkItemResult[Any]] = []
    for work_item in backlog:
        outcome = await tryit_async(worker, work_item.item)
        if isinstance(outcome, Err):
            logger.warning(
                "parallel.item_failed",
                batch_id=batch_id,
                index=work_item.index,
                error_type=type(outcome.error).__name__,
                error=str(outcome.error),
            )
        results.append(WorkItemResult(work_item.index, outcome))
    return results


__all__ = ["parallel", "WorkItem", "WorkItemResult"]
