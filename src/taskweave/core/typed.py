"""Value-shape predicates and the ``ABSENT`` marker."""

from __future__ import annotations

import inspect
from typing import Any, Final


class _Absent:
    """Singleton marking "no value" where ``None`` is a legitimate value.

    Falsy, so ``guard(load) or []`` reads naturally.
    """

    _instance: _Absent | None = None

    def __new__(cls) -> _Absent:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"

    def __reduce__(self) -> str:
        return "ABSENT"


ABSENT: Final = _Absent()


def is_absent(value: Any) -> bool:
    return value is ABSENT


def is_awaitable(value: Any) -> bool:
    """True for a pending computation: coroutine, Task, Future or ``__await__`` object."""
    return inspect.isawaitable(value)


__all__ = ["ABSENT", "is_absent", "is_awaitable"]
