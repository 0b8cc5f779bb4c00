import asyncio
from collections.abc import AsyncIterator
from typing import Any

__all__ = ["combine_latest"]

_MISSING = object()
_DONE = object()


async def combine_latest(*streams: AsyncIterator[Any]) -> AsyncIterator[tuple]:
    """Yield a tuple of the latest item from every stream whenever any of them delivers.

    Nothing is yielded until each stream has delivered at least once. An error
    raised by any stream is re-raised to the consumer, and closing the combined
    iterator closes every source.
    """
    queue: asyncio.Queue = asyncio.Queue()

    async def pump(index: int, stream: AsyncIterator[Any]) -> None:
        try:
            async for item in stream:
                await queue.put((index, item, None))
        except Exception as e:
            await queue.put((index, None, e))
            return
        await queue.put((index, _DONE, None))

    tasks = [asyncio.create_task(pump(i, stream)) for i, stream in enumerate(streams)]
    latest = [_MISSING] * len(streams)
    finished = 0
    try:
        while finished < len(streams):
            index, item, error = await queue.get()
            if error is not None:
                raise error
            if item is _DONE:
                finished += 1
                continue
            latest[index] = item
            if all(value is not _MISSING for value in latest):
                yield tuple(latest)
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        for stream in streams:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()
