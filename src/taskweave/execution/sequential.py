"""Sequential async map and reduce.

One item at a time, in order, each awaited before the next starts. Use
:func:`~taskweave.execution.parallel.parallel` when items may overlap.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from taskweave.core.typed import ABSENT, is_awaitable

T = TypeVar("T")
K = TypeVar("K")


async def map_async(
    items: Iterable[T] | None,
    func: Callable[[T, int], Any],
) -> list[Any]:
    """Apply ``func(item, index)`` to each item in turn; ``None`` maps to ``[]``."""
    if items is None:
        return []
    results = []
    for index, item in enumerate(items):
        results.append(await _resolve(func(item, index)))
    return results


async def reduce_async(
    items: Iterable[T],
    reducer: Callable[[K, T, int], Any],
    initial: Any = ABSENT,
) -> Any:
    """Fold ``items`` with ``reducer(acc, item, index)``.

    Without ``initial`` the first item seeds the accumulator and the reducer
    starts at the second item, whose index is 0.

    Raises:
        TypeError: ``items`` is empty and no ``initial`` was given.
    """
    iterator = iter(items)
    if initial is ABSENT:
        try:
            acc = next(iterator)
        except StopIteration:
            raise TypeError("Cannot reduce empty iterable with no initial value") from None
    else:
        acc = initial

    for index, item in enumerate(iterator):
        acc = await _resolve(reducer(acc, item, index))
    return acc


async def _resolve(value: Any) -> Any:
    if is_awaitable(value):
        return await value
    return value


__all__ = ["map_async", "reduce_async"]
