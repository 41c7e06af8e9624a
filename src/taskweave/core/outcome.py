"""
Outcome envelope for settled work.

Provides a typed ``Outcome[T]`` (``Ok[T] | Err[T]``) that every taskweave
primitive uses to observe how a unit of work settled without letting the
failure unwind the caller. The adapter (:func:`taskweave.execution.tryit`)
produces Outcomes; parallel, join, retry and defer consume them.

Manifesto:
    - **Explicit over Implicit:** A failure is a returned value, not a jump
    - **Never discard:** An Err keeps the original exception object
    - **Functional composition:** Chain with map/flat_map without nested
      try/except blocks
    - **Batch-friendly:** Sort and partition many Outcomes once all settled

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                     Outcome[T]                               │
        │                    (Type Alias)                              │
        ├─────────────────┬─────────────────┬─────────────────────────┤
        │     Ok[T]       │     Err[T]      │     Utilities           │
        │   (Success)     │   (Failure)     │                         │
        ├─────────────────┼─────────────────┼─────────────────────────┤
        │ • value: T      │ • error: Exc    │ • as_pair()             │
        │ • map()         │ • map_err()     │ • sort_by_index()       │
        │ • flat_map()    │ • or_else()     │ • partition_outcomes()  │
        │ • unwrap()      │ • unwrap_or()   │                         │
        └─────────────────┴─────────────────┴─────────────────────────┘

Examples:
    Pattern matching:

    >>> match await tryit(fetch, url):
    ...     case Ok(data):
    ...         process(data)
    ...     case Err(error):
    ...         log.warning("fetch_failed", error=str(error))

    Pair view (failure first, like an error-first callback):

    >>> failure, value = Ok(3).as_pair()
    >>> failure is None, value
    (True, 3)

Tags:
    outcome, result-pattern, error-handling, taskweave

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Generic, Protocol, TypeVar

T = TypeVar("T")
U = TypeVar("U")
R = TypeVar("R", bound="_Indexed")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """
    Successful outcome containing a value.

    Frozen and slotted; transformations return new instances.

    Examples:
        >>> Ok(10).map(lambda x: x * 2).unwrap()
        20
        >>> Ok(5).is_ok()
        True
    """

    value: T

    @property
    def failure(self) -> None:
        return None

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def as_pair(self) -> tuple[None, T]:
        """``(failure, value)`` view; failure is always None for Ok."""
        return None, self.value

    def unwrap(self) -> T:
        """Get the value. Safe for Ok."""
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value

    def unwrap_or_else(self, f: Callable[[Exception], T]) -> T:
        return self.value

    def map(self, f: Callable[[T], U]) -> Outcome[U]:
        """Transform the value if Ok."""
        return Ok(f(self.value))

    def flat_map(self, f: Callable[[T], Outcome[U]]) -> Outcome[U]:
        """Chain to another Outcome-returning function."""
        return f(self.value)

    def map_err(self, f: Callable[[Exception], Exception]) -> Outcome[T]:
        return self

    def or_else(self, f: Callable[[Exception], Outcome[T]]) -> Outcome[T]:
        return self

    def and_then(self, f: Callable[[T], Outcome[U]]) -> Outcome[U]:
        """Alias for flat_map."""
        return f(self.value)

    def inspect(self, f: Callable[[T], None]) -> Outcome[T]:
        """Call f with value for side effects, return self."""
        f(self.value)
        return self

    def inspect_err(self, f: Callable[[Exception], None]) -> Outcome[T]:
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"ok": True, "value": self.value}

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """
    Failed outcome holding the exception that was raised.

    The exception object is kept as-is (same identity, same traceback), so
    re-raising ``err.error`` later behaves like the original raise.

    Examples:
        >>> err = Err(ValueError("bad"))
        >>> err.unwrap_or(0)
        0
        >>> err.map(lambda x: x * 2).is_err()
        True
    """

    error: Exception

    @property
    def failure(self) -> Exception:
        return self.error

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def as_pair(self) -> tuple[Exception, None]:
        """``(failure, value)`` view; value is always None for Err."""
        return self.error, None

    def unwrap(self) -> T:
        """Raise the held exception."""
        raise self.error

    def unwrap_or(self, default: T) -> T:
        return default

    def unwrap_or_else(self, f: Callable[[Exception], T]) -> T:
        return f(self.error)

    def map(self, f: Callable[[T], U]) -> Outcome[U]:
        return Err(self.error)

    def flat_map(self, f: Callable[[T], Outcome[U]]) -> Outcome[U]:
        return Err(self.error)

    def map_err(self, f: Callable[[Exception], Exception]) -> Outcome[T]:
        """Transform the error."""
        return Err(f(self.error))

    def or_else(self, f: Callable[[Exception], Outcome[T]]) -> Outcome[T]:
        """Recover by calling f with the error."""
        return f(self.error)

    def and_then(self, f: Callable[[T], Outcome[U]]) -> Outcome[U]:
        return Err(self.error)

    def inspect(self, f: Callable[[T], None]) -> Outcome[T]:
        return self

    def inspect_err(self, f: Callable[[Exception], None]) -> Outcome[T]:
        """Call f with error for side effects, return self."""
        f(self.error)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        result: dict[str, Any] = {
            "ok": False,
            "error_type": type(self.error).__name__,
            "message": str(self.error),
        }
        to_dict = getattr(self.error, "to_dict", None)
        if callable(to_dict):
            result["error"] = to_dict()
        return result

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Outcome = Ok[T] | Err[T]


# =============================================================================
# ORDERING AND PARTITION HELPERS
# =============================================================================


class _Indexed(Protocol):
    index: int


def sort_by_index(records: Iterable[R]) -> list[R]:
    """Restore submission order of records carrying an ``index``."""
    return sorted(records, key=lambda r: r.index)


def partition_outcomes(
    outcomes: Iterable[Outcome[T]],
) -> tuple[list[T], list[Exception]]:
    """
    Partition outcomes into successes and failures, keeping relative order.

    ::

        [Ok(1), Err(a), Ok(2), Err(b)]
                    │
                    ▼
        values:  [1, 2]
        errors:  [a, b]

    Examples:
        >>> values, errors = partition_outcomes([Ok(1), Err(ValueError("a")), Ok(2)])
        >>> values
        [1, 2]
        >>> len(errors)
        1
    """
    values = []
    errors = []
    for outcome in outcomes:
        match outcome:
            case Ok(value):
                values.append(value)
            case Err(error):
                errors.append(error)
    return values, errors


__all__ = [
    "Outcome",
    "Ok",
    "Err",
    "sort_by_index",
    "partition_outcomes",
]
