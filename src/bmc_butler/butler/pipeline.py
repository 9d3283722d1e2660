"""Wire an inventory source to a pool of butlers and run them to completion.

    inventory task --AssetChannel--> butler-0 .. butler-N --> device sessions

The inventory task is the channel's only producer and closes it when done.
Butlers stop taking new work once ``stop()`` is called, while the page in
flight and the requests already made to devices complete.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from ..channel import AssetChannel
from ..config.settings import ButlerConfig
from ..devices.base import DeviceConfigurator, DeviceSession
from ..inventory import create_source
from ..inventory.base import InventorySource
from ..resources import ConfigRenderer, YamlResourceRenderer
from ..utils.metrics import MetricsRegistry, metrics as default_metrics
from .configure import ConfigurationApplier
from .dispatcher import Action, Butler
from .execute import CommandExecutor

logger = logging.getLogger(__name__)

SourceFactory = Callable[..., InventorySource]


@dataclass
class RunResult:
    """What a pipeline run went through."""
    assets_received: int = 0
    batches: int = 0
    interrupted: bool = False


class Pipeline:
    """One run: one producer, ``config.workers`` consumers."""

    def __init__(
        self,
        config: ButlerConfig,
        action: Action,
        session: DeviceSession,
        configurator: DeviceConfigurator,
        renderer: Optional[ConfigRenderer] = None,
        metrics: Optional[MetricsRegistry] = None,
        source_factory: SourceFactory = create_source,
    ):
        self.config = config
        self.action = action
        self.session = session
        self.configurator = configurator
        self.renderer = renderer or YamlResourceRenderer()
        self.metrics = metrics or default_metrics
        self.source_factory = source_factory
        self.stop_event = asyncio.Event()

    def stop(self) -> None:
        """Ask the run to wind down. Safe to call more than once."""
        if not self.stop_event.is_set():
            logger.warning("Interrupt received, finishing in-flight work")
        self.stop_event.set()

    def _butlers(self, source: InventorySource) -> list[Butler]:
        common = dict(
            dry_run=self.config.dry_run,
            stop_event=self.stop_event,
            metrics=self.metrics,
        )
        applier = ConfigurationApplier(
            self.session,
            self.config.credentials,
            renderer=self.renderer,
            configurator=self.configurator,
            chassis_state=source if hasattr(source, "set_chassis_installed") else None,
            **common,
        )
        executor = CommandExecutor(
            self.session,
            self.config.credentials,
            firmware_endpoint=self.config.firmware_endpoint,
            **common,
        )
        return [
            Butler(
                self.config,
                applier,
                executor,
                stop_event=self.stop_event,
                action=self.action,
                metrics=self.metrics,
                name=f"butler-{i}",
            )
            for i in range(self.config.workers)
        ]

    async def run(self) -> RunResult:
        """Run until the inventory is exhausted or the run is stopped.

        Raises:
            InventoryError: If the inventory could not be retrieved. The
                butlers still drain what was sent before the failure.
        """
        channel = AssetChannel(maxsize=self.config.workers)
        source = self.source_factory(
            self.config, channel, stop_event=self.stop_event, metrics=self.metrics
        )
        butlers = self._butlers(source)

        logger.info(
            f"Starting run: source={source.name} action={self.action.kind} "
            f"workers={len(butlers)} dry_run={self.config.dry_run}"
        )

        producer = asyncio.create_task(source.asset_retrieve()(), name="inventory")
        consumers = [
            asyncio.create_task(butler.run(channel), name=butler.name)
            for butler in butlers
        ]

        results = await asyncio.gather(producer, *consumers, return_exceptions=True)

        for result in results[1:]:
            if isinstance(result, BaseException):
                raise result
        if isinstance(results[0], BaseException):
            logger.error(f"Inventory retrieval failed: {results[0]}")
            raise results[0]

        run = RunResult(
            assets_received=sum(results[1:]),
            batches=channel.batches_sent,
            interrupted=self.stop_event.is_set(),
        )
        logger.info(
            f"Run complete: assets={run.assets_received} batches={run.batches} "
            f"interrupted={run.interrupted}"
        )
        return run
