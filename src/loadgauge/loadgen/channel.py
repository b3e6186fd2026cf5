from __future__ import annotations

import asyncio
from typing import AsyncIterator

from loadgauge.metrics import Outcome


class ChannelClosedError(RuntimeError):
    """An outcome was handed off after the channel was closed."""


class ChannelFullError(RuntimeError):
    """More outcomes were produced than the channel was sized for."""


_CLOSED = object()


class ResultChannel:
    # Capacity is fixed up front, so put never waits.

    def __init__(self, capacity: int) -> None:
        if capacity < 0:
            msg = f"capacity must not be negative, got {capacity}"
            raise ValueError(msg)
        self.capacity = capacity
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=capacity + 1)
        self._closed = False
        self._count = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def put(self, outcome: Outcome) -> None:
        if self._closed:
            msg = f"Outcome from worker {outcome.worker_id} arrived after the channel was closed"
            raise ChannelClosedError(msg)
        if self._count >= self.capacity:
            msg = f"Result channel capacity {self.capacity} exceeded"
            raise ChannelFullError(msg)
        self._count += 1
        self._queue.put_nowait(outcome)

    def close(self) -> None:
        if self._closed:
            raise ChannelClosedError("Result channel closed twice")
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> AsyncIterator[Outcome]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[Outcome]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item  # type: ignore[misc]
