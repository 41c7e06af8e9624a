"""Taskweave Execution — run async work with bounded fan-out, retries and cleanup.

ARCHITECTURE
────────────
::

    adapter.tryit / tryit_async / settle   ─ raise → Outcome (foundation)
      │
      ├── adapter.guard        ─ raise → fallback value
      ├── parallel.parallel    ─ worker pool, order restored, AggregateFailure
      ├── join.join_all        ─ await all, shape preserved, AggregateFailure
      ├── retry.retry          ─ attempts, delay + backoff, early exit
      └── defer.defer          ─ cleanups after the body, rethrow last-wins

    timing.sleep               ─ delay primitive
    sequential.map_async / reduce_async
"""

from taskweave.execution.adapter import guard, settle, tryit, tryit_async
from taskweave.execution.defer import CleanupRegistration, defer
from taskweave.execution.join import join_all
from taskweave.execution.parallel import WorkItem, WorkItemResult, parallel
from taskweave.execution.retry import (
    ConstantBackoff,
    Continue,
    EarlyExit,
    ExponentialBackoff,
    LinearBackoff,
    RetryOptions,
    RetryState,
    RetryStatus,
    StopNow,
    retry,
    with_retry,
)
from taskweave.execution.sequential import map_async, reduce_async
from taskweave.execution.timing import sleep

__all__ = [
    # Adapter
    "tryit",
    "tryit_async",
    "settle",
    "guard",
    # Fan-out
    "parallel",
    "WorkItem",
    "WorkItemResult",
    "join_all",
    # Retry
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
    # Cleanup
    "defer",
    "CleanupRegistration",
    # Helpers
    "sleep",
    "map_async",
    "reduce_async",
]
