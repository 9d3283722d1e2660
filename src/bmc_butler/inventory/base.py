"""Inventory source abstraction.

A source turns an inventory (a file, a list of IPs, an external classifier)
into batches of assets on an AssetChannel. ``asset_retrieve`` looks at the
filter parameters and returns the producer to run for them; that producer
is the only writer of the channel and closes it when it is done, whether it
finished or failed.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Iterable, Optional

from ..channel import AssetChannel
from ..config.settings import ButlerConfig
from ..utils.metrics import MetricsRegistry, metrics as default_metrics
from .asset import Asset, chunked

logger = logging.getLogger(__name__)

Strategy = Callable[[], Awaitable[None]]


class InventorySource(ABC):
    """Abstract base class for inventory sources."""

    name = ""

    def __init__(
        self,
        config: ButlerConfig,
        channel: AssetChannel,
        stop_event: Optional[asyncio.Event] = None,
        metrics: Optional[MetricsRegistry] = None,
    ):
        self.config = config
        self.channel = channel
        self.stop_event = stop_event or asyncio.Event()
        self.metrics = metrics or default_metrics
        self.batch_size = config.batch_size
        self.filter = config.filter

    def asset_types(self) -> list[str]:
        """Asset types the run covers, as the inventory names them."""
        if self.filter.chassis:
            return ["chassis"]
        if self.filter.servers:
            return ["servers"]
        return ["chassis", "servers"]

    def select_strategy(self) -> Strategy:
        """Pick the iteration strategy for the filter parameters."""
        if self.filter.serials:
            return self.iter_by_serial
        if self.filter.ips:
            return self.iter_by_ip
        return self.iter_all

    def asset_retrieve(self) -> Strategy:
        """Return the producer to run as its own task.

        The producer runs the selected strategy and then closes the channel,
        also when the strategy raises.
        """
        strategy = self.select_strategy()

        async def produce() -> None:
            logger.debug(f"{self.name}: retrieving assets with {strategy.__name__}")
            try:
                await strategy()
            finally:
                await self.channel.close()

        return produce

    async def send(self, assets: Iterable[Asset]) -> int:
        """Send assets to the channel in batches of at most batch_size."""
        sent = 0
        for batch in chunked(assets, self.batch_size):
            await self.channel.send(batch)
            sent += len(batch)
        return sent

    @abstractmethod
    async def iter_by_serial(self) -> None:
        """Send assets for the serials in the filter."""
        pass

    @abstractmethod
    async def iter_by_ip(self) -> None:
        """Send assets for the IPs in the filter."""
        pass

    @abstractmethod
    async def iter_all(self) -> None:
        """Send every asset the source knows about."""
        pass
