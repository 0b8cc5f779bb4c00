from __future__ import annotations

import asyncio

import pytest

from tests.conftest import DELIVERY_TIMEOUT
from utils.flow import combine_latest
from utils.observable import ObservableState


async def from_queue(queue: asyncio.Queue):
    while True:
        item = await queue.get()
        if isinstance(item, Exception):
            raise item
        yield item


async def items(*values):
    for value in values:
        yield value


# ObservableState


def test_subscriber_gets_current_value_then_changes():
    state = ObservableState(0, "counter")
    seen = []

    unsubscribe = state.subscribe(seen.append)
    state.value = 1
    state.value = 1  # equal values are not re-published
    state.value = 2
    unsubscribe()
    state.value = 3

    assert seen == [0, 1, 2]
    assert state.value == 3


def test_failing_subscriber_does_not_block_others():
    state = ObservableState(0, "counter")
    seen = []

    def broken(value):
        if value:
            raise RuntimeError("widget bug")

    state.subscribe(broken)
    state.subscribe(seen.append)
    state.value = 1
    state.value = 2

    assert seen == [0, 1, 2]
    assert state.value == 2


@pytest.mark.asyncio
async def test_wait_for_returns_matching_value():
    state = ObservableState("loading")

    async def finish_later():
        await asyncio.sleep(0.01)
        state.value = "done"

    task = asyncio.create_task(finish_later())
    result = await state.wait_for(lambda value: value == "done", DELIVERY_TIMEOUT)
    await task

    assert result == "done"


@pytest.mark.asyncio
async def test_wait_for_returns_immediately_when_already_matching():
    state = ObservableState(5)
    assert await state.wait_for(lambda value: value > 1) == 5


@pytest.mark.asyncio
async def test_wait_for_times_out():
    state = ObservableState(0)
    with pytest.raises(asyncio.TimeoutError):
        await state.wait_for(lambda value: value == 1, timeout=0.05)


# combine_latest


@pytest.mark.asyncio
async def test_combine_latest_waits_for_every_stream():
    left: asyncio.Queue = asyncio.Queue()
    right: asyncio.Queue = asyncio.Queue()
    combined = combine_latest(from_queue(left), from_queue(right))

    left.put_nowait(1)
    right.put_nowait("a")
    assert await asyncio.wait_for(anext(combined), DELIVERY_TIMEOUT) == (1, "a")

    left.put_nowait(2)
    assert await asyncio.wait_for(anext(combined), DELIVERY_TIMEOUT) == (2, "a")

    right.put_nowait("b")
    assert await asyncio.wait_for(anext(combined), DELIVERY_TIMEOUT) == (2, "b")
    await combined.aclose()


@pytest.mark.asyncio
async def test_combine_latest_treats_none_as_a_delivery():
    combined = combine_latest(items({}), items(None))
    results = [value async for value in combined]
    assert results == [({}, None)]


@pytest.mark.asyncio
async def test_combine_latest_ends_when_all_streams_end():
    results = [value async for value in combine_latest(items(1, 2), items("x"))]
    assert results[-1] == (2, "x")


@pytest.mark.asyncio
async def test_combine_latest_reraises_stream_errors():
    left: asyncio.Queue = asyncio.Queue()
    right: asyncio.Queue = asyncio.Queue()
    combined = combine_latest(from_queue(left), from_queue(right))

    left.put_nowait(ValueError("boom"))
    with pytest.raises(ValueError, match="boom"):
        await asyncio.wait_for(anext(combined), DELIVERY_TIMEOUT)
