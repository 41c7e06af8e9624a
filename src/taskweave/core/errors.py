"""
Structured error types for taskweave.

Provides a small hierarchy of typed errors with category metadata, error
chaining, and the aggregate failure raised by the fan-out primitives.

Every failure that crosses a taskweave primitive is either passed through
untouched (Retry, Defer) or bundled into an :class:`AggregateFailure`
(Parallel, Join). Callers can always tell the two apart with ``isinstance``
and reach every member of an aggregate through ``.errors``.

Manifesto:
    - **Never drop a failure:** Item failures are captured, then surfaced
      together as one aggregate
    - **Aggregate vs single:** One exception type marks a bundle of failures
    - **Rich Context:** Errors carry metadata for logging
    - **Error Chaining:** Preserve original exceptions while adding context

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                      TaskweaveError                          │
        │             (category, context, cause)                       │
        ├─────────────────────────────────────────────────────────────┤
        │                                                              │
        │  ConfigError          DeferError         AggregateFailure    │
        │  (CONFIG, ValueError) (EXECUTION)        (AGGREGATE)         │
        │                                          errors: tuple[...]  │
        └─────────────────────────────────────────────────────────────┘

Examples:
    Inspecting an aggregate raised by ``parallel``:

    >>> try:
    ...     await parallel(2, ids, fetch)
    ... except AggregateFailure as agg:
    ...     for err in agg.errors:
    ...         log.warning("fetch_failed", error=str(err))

Tags:
    error-handling, exception-hierarchy, aggregate-errors, taskweave

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

import traceback
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and routing.

    Attributes:
        EXECUTION: A unit of work raised while being run
        AGGREGATE: Several failures bundled together
        CONFIG: Invalid options passed to a primitive
        INTERNAL: Bugs, unexpected state
        UNKNOWN: Uncategorized errors
    """

    EXECUTION = "EXECUTION"       # Work item / body / cleanup failures
    AGGREGATE = "AGGREGATE"       # Bundles of failures
    CONFIG = "CONFIG"             # Invalid limits, attempt counts, delays
    INTERNAL = "INTERNAL"         # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"           # Uncategorized errors


@dataclass
class ErrorContext:
    """
    Structured metadata context for errors.

    Typed fields cover the metadata the primitives know about (which
    operation was running, which attempt, which batch); anything else goes
    into ``metadata``. ``to_dict()`` serializes non-None fields for logging.

    Attributes:
        operation: Name of the primitive or user operation
        batch_id: Identifier of a parallel batch
        index: Work item index within a batch
        attempt: Retry attempt number (1-based)
        metadata: Additional key-value pairs
    """

    operation: str | None = None
    batch_id: str | None = None
    index: int | None = None
    attempt: int | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["operation", "batch_id", "index", "attempt"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class TaskweaveError(Exception):
    """
    Base exception for all taskweave errors.

    All TaskweaveError instances carry:
    - **category:** ErrorCategory enum for classification
    - **context:** ErrorContext with structured metadata
    - **cause:** Optional underlying exception for chaining

    Subclasses set ``default_category`` to provide a sensible default.

    Examples:
        >>> error = TaskweaveError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>

        >>> error.with_context(operation="parallel", batch_id="b-1")
        TaskweaveError('Something went wrong', category=INTERNAL)
        >>> error.context.batch_id
        'b-1'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> TaskweaveError:
        """
        Add context to this error (fluent API).

        Usage:
            raise DeferError("late registration").with_context(operation="defer")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        if self.context:
            context_dict = self.context.to_dict()
            if context_dict:
                result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


class ConfigError(TaskweaveError, ValueError):
    """Invalid options passed to a primitive (limit < 1, times < 1, ...)."""

    default_category = ErrorCategory.CONFIG


class DeferError(TaskweaveError):
    """Misuse of a deferred cleanup scope."""

    default_category = ErrorCategory.EXECUTION


# =============================================================================
# AGGREGATE FAILURE
# =============================================================================


class AggregateFailure(TaskweaveError):
    """
    One failure bundling several underlying failures.

    Raised once per ``parallel`` or ``join_all`` call when at least one item
    failed. Members keep the order in which their items were submitted, so
    ``errors[0]`` belongs to the lowest failing index.

    The display ``name``, ``message`` and ``trace`` are synthesized from the
    members for diagnostics only: the name and trace come from the first
    member that has them, the message states the member count. Assert on
    ``errors``, never on the synthesized text.

    Architecture:
        ::

            [ValueError(a), KeyError(b)]
                        │
                        ▼
            AggregateFailure
              name    = "AggregateFailure(ValueError...)"
              message = "AggregateFailure with 2 errors"
              trace   = traceback of ValueError(a), if it was raised
              errors  = (ValueError(a), KeyError(b))

    Examples:
        >>> agg = AggregateFailure([ValueError("a"), KeyError("b")])
        >>> len(agg)
        2
        >>> [type(e).__name__ for e in agg]
        ['ValueError', 'KeyError']

    Raises:
        ValueError: if constructed with no members.
    """

    default_category = ErrorCategory.AGGREGATE

    def __init__(self, errors: Iterable[BaseException]):
        members = tuple(errors)
        if not members:
            raise ValueError("AggregateFailure requires at least one error")

        message = f"AggregateFailure with {len(members)} errors"
        super().__init__(message)
        self.errors: tuple[BaseException, ...] = members
        self.name = f"AggregateFailure({_first_name(members)}...)"
        self.trace = _first_trace(members)

    def __len__(self) -> int:
        return len(self.errors)

    def __iter__(self) -> Iterator[BaseException]:
        return iter(self.errors)

    def __reduce__(self) -> tuple[Any, ...]:
        # args holds the synthesized message, not the members
        return (type(self), (self.errors,), self.__dict__)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["name"] = self.name
        result["errors"] = [
            {"error_type": type(e).__name__, "message": str(e)} for e in self.errors
        ]
        return result


def _first_name(errors: Sequence[BaseException]) -> str:
    for error in errors:
        name = type(error).__name__
        if name:
            return name
    return ""


def _first_trace(errors: Sequence[BaseException]) -> str | None:
    for error in errors:
        if error.__traceback__ is not None:
            return "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            )
    return None


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def categorize_error(error: BaseException) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, TaskweaveError):
        return error.category
    if isinstance(error, (ValueError, TypeError)):
        return ErrorCategory.CONFIG
    return ErrorCategory.UNKNOWN


def flatten_errors(error: BaseException) -> list[BaseException]:
    """Expand nested aggregates into a flat, ordered list of leaf failures."""
    if isinstance(error, AggregateFailure):
        leaves: list[BaseException] = []
        for member in error.errors:
            leaves.extend(flatten_errors(member))
        return leaves
    return [error]


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "TaskweaveError",
    "ConfigError",
    "DeferError",
    "AggregateFailure",
    "categorize_error",
    "flatten_errors",
]
