"""Tests for map_async, reduce_async and sleep."""

from __future__ import annotations

import asyncio

import pytest

from taskweave.execution.sequential import map_async, reduce_async
from taskweave.execution.timing import sleep


class TestMapAsync:
    @pytest.mark.asyncio
    async def test_maps_in_order_with_index(self):
        async def label(item, index):
            await asyncio.sleep(0)
            return f"{index}:{item}"

        assert await map_async(["a", "b", "c"], label) == ["0:a", "1:b", "2:c"]

    @pytest.mark.asyncio
    async def test_none_maps_to_empty(self):
        assert await map_async(None, lambda item, index: item) == []

    @pytest.mark.asyncio
    async def test_runs_one_at_a_time(self):
        active = 0
        peak = 0

        async def work(item, index):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.001)
            active -= 1
            return item

        await map_async(range(5), work)
        assert peak == 1

    @pytest.mark.asyncio
    async def test_sync_mapper(self):
        assert await map_async([1, 2], lambda item, index: item + index) == [1, 3]

    @pytest.mark.asyncio
    async def test_failure_propagates(self):
        def fail(item, index):
            raise ValueError(item)

        with pytest.raises(ValueError):
            await map_async([1], fail)


class TestReduceAsync:
    @pytest.mark.asyncio
    async def test_with_initial(self):
        async def add(acc, item, index):
            return acc + item

        assert await reduce_async([1, 2, 3], add, 10) == 16

    @pytest.mark.asyncio
    async def test_without_initial_seeds_with_first_item(self):
        indexes = []

        def add(acc, item, index):
            indexes.append(index)
            return acc + item

        assert await reduce_async([1, 2, 3], add) == 6
        assert indexes == [0, 1]

    @pytest.mark.asyncio
    async def test_none_is_a_valid_initial(self):
        assert await reduce_async([], lambda acc, item, index: item, None) is None

    @pytest.mark.asyncio
    async def test_empty_without_initial_raises(self):
        with pytest.raises(TypeError, match="empty iterable"):
            await reduce_async([], lambda acc, item, index: acc)

    @pytest.mark.asyncio
    async def test_single_item_without_initial(self):
        assert await reduce_async(["only"], lambda acc, item, index: acc + item) == "only"


class TestSleep:
    @pytest.mark.asyncio
    async def test_zero_and_negative_return_immediately(self):
        await sleep(0)
        await sleep(-1)

    @pytest.mark.asyncio
    async def test_waits(self):
        loop = asyncio.get_running_loop()
        start = loop.time()
        await sleep(0.01)
        assert loop.time() - start >= 0.009
