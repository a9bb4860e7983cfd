"""Close-able async channel.

A FIFO shared by any number of sending and receiving tasks. Closing it lets
receivers drain what was already sent and then stop, which is how the
pipeline's workers learn that the input is exhausted and how consumers learn
that the pipeline is done.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from magickmeta.errors import ChannelClosed

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

T = TypeVar("T")

_CLOSED: Any = object()


class Channel(Generic[T]):
    """Async FIFO with close semantics and optional capacity.

    With ``maxsize > 0``, ``send()`` blocks while the channel holds that many
    unreceived items. ``close()`` is synchronous and idempotent; items sent
    before it are still delivered, and ``receive()`` raises
    :class:`ChannelClosed` once they are gone.
    """

    def __init__(self, maxsize: int = 0) -> None:
        if maxsize < 0:
            raise ValueError("Channel maxsize must be >= 0")
        self._maxsize = maxsize
        # Unbounded so the close marker can always be enqueued; capacity is
        # enforced by the semaphore instead.
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._slots = asyncio.Semaphore(maxsize) if maxsize > 0 else None
        self._closed = False

    @property
    def closed(self) -> bool:
        """Whether close() has been called."""
        return self._closed

    @property
    def maxsize(self) -> int:
        return self._maxsize

    def qsize(self) -> int:
        """Number of items waiting to be received."""
        size = self._queue.qsize()
        return size - 1 if self._closed and size else size

    async def send(self, item: T) -> None:
        """Send *item*, waiting for capacity on a bounded channel.

        Raises:
            ChannelClosed: The channel was closed before the item was queued.
        """
        if self._closed:
            raise ChannelClosed("send on closed channel")
        if self._slots is not None:
            await self._slots.acquire()
            if self._closed:
                self._slots.release()
                raise ChannelClosed("send on closed channel")
        self._queue.put_nowait(item)

    async def receive(self) -> T:
        """Receive the next item, waiting while the channel is open and empty.

        Raises:
            ChannelClosed: The channel is closed and fully drained.
        """
        item = await self._queue.get()
        if item is _CLOSED:
            # Leave the marker in place for any other receivers.
            self._queue.put_nowait(_CLOSED)
            raise ChannelClosed("receive on closed channel")
        if self._slots is not None:
            self._slots.release()
        return item

    def close(self) -> None:
        """Close the channel. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> AsyncIterator[T]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[T]:
        while True:
            try:
                item = await self.receive()
            except ChannelClosed:
                return
            yield item
