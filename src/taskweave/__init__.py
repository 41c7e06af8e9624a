"""
taskweave - async task primitives that collect failures instead of failing fast.

Usage:
    from taskweave import parallel, join_all, retry, defer, tryit, guard

    pages = await parallel(5, urls, fetch_page)
    user, bucket = await join_all([create_user(), create_bucket()])
    data = await retry({"times": 4, "delay": 0.5}, lambda exit: fetch(url))
"""

from taskweave.core.errors import (
    AggregateFailure,
    ConfigError,
    DeferError,
    ErrorCategory,
    TaskweaveError,
    flatten_errors,
)
from taskweave.core.logging import configure_logging, get_logger
from taskweave.core.outcome import Err, Ok, Outcome
from taskweave.core.settings import TaskweaveSettings, get_settings
from taskweave.core.typed import ABSENT
from taskweave.execution import (
    ConstantBackoff,
    Continue,
    ExponentialBackoff,
    LinearBackoff,
    RetryOptions,
    StopNow,
    defer,
    guard,
    join_all,
    map_async,
    parallel,
    reduce_async,
    retry,
    sleep,
    tryit,
    tryit_async,
    with_retry,
)

__version__ = "0.1.0"

__all__ = [
    # Primitives
    "tryit",
    "tryit_async",
    "guard",
    "parallel",
    "join_all",
    "retry",
    "with_retry",
    "defer",
    "sleep",
    "map_async",
    "reduce_async",
    # Retry options
    "RetryOptions",
    "StopNow",
    "Continue",
    "ExponentialBackoff",
    "LinearBackoff",
    "ConstantBackoff",
    # Outcome
    "Outcome",
    "Ok",
    "Err",
    "ABSENT",
    # Errors
    "TaskweaveError",
    "AggregateFailure",
    "ConfigError",
    "DeferError",
    "ErrorCategory",
    "flatten_errors",
    # Ambient
    "configure_logging",
    "get_logger",
    "TaskweaveSettings",
    "get_settings",
]
