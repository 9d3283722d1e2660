"""Bounded conduit of asset batches between one producer and its consumers.

Ownership rules:
- exactly one producer sends, and that producer closes the channel once,
  after its final send;
- consumers only receive, and read the close as the end of the stream once
  every batch sent before it has been taken;
- a send blocks while the channel is full, so the producer never runs ahead
  of the consumers by more than ``maxsize`` batches;
- closing never waits, also on a full channel nobody reads any more.
"""
import asyncio
import logging
from typing import AsyncIterator, Optional

from .errors import ChannelClosedError

logger = logging.getLogger(__name__)


class AssetChannel:
    """Channel of asset batches, each a ``list[Asset]``."""

    def __init__(self, maxsize: int = 1):
        if maxsize < 1:
            raise ValueError("channel size must be at least 1")
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = asyncio.Event()
        self.batches_sent = 0

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    async def send(self, batch: list) -> None:
        """Send one batch, waiting for room if the channel is full."""
        if self.closed:
            raise ChannelClosedError("send on closed asset channel")
        await self._queue.put(batch)
        self.batches_sent += 1

    async def close(self) -> None:
        """Close the channel. Only the producer calls this, and only once."""
        if self.closed:
            raise ChannelClosedError("asset channel closed twice")
        self._closed.set()
        logger.debug(f"Asset channel closed after {self.batches_sent} batches")

    async def receive(self) -> Optional[list]:
        """Next batch, or None once the channel is closed and drained."""
        while True:
            try:
                return self._queue.get_nowait()
            except asyncio.QueueEmpty:
                pass
            if self.closed:
                return None

            getter = asyncio.ensure_future(self._queue.get())
            closer = asyncio.ensure_future(self._closed.wait())
            try:
                await asyncio.wait({getter, closer}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                closer.cancel()
                if not getter.done():
                    # A cancelled get leaves its batch in the queue
                    getter.cancel()
            if getter.done() and not getter.cancelled():
                return getter.result()

    async def __aiter__(self) -> AsyncIterator[list]:
        while True:
            batch = await self.receive()
            if batch is None:
                return
            yield batch
