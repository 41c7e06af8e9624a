"""
Taskweave Core - shared building blocks for the execution primitives.

Modules:
    errors   - TaskweaveError hierarchy and AggregateFailure
    outcome  - Ok/Err envelope plus ordering and partition helpers
    typed    - ABSENT marker and pending-value predicate
    logging  - structlog configuration and context binding
    settings - pydantic-settings defaults (TASKWEAVE_* env vars)
"""

from taskweave.core.errors import (
    AggregateFailure,
    ConfigError,
    DeferError,
    ErrorCategory,
    ErrorContext,
    TaskweaveError,
    categorize_error,
    flatten_errors,
)
from taskweave.core.outcome import Err, Ok, Outcome, partition_outcomes, sort_by_index
from taskweave.core.typed import ABSENT, is_absent, is_awaitable

__all__ = [
    # Errors
    "ErrorCategory",
    "ErrorContext",
    "TaskweaveError",
    "ConfigError",
    "DeferError",
    "AggregateFailure",
    "categorize_error",
    "flatten_errors",
    # Outcome
    "Outcome",
    "Ok",
    "Err",
    "sort_by_index",
    "partition_outcomes",
    # Typed
    "ABSENT",
    "is_absent",
    "is_awaitable",
]
