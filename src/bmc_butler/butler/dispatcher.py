"""Dispatcher: decides what happens to each asset received from the inventory."""
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from ..channel import AssetChannel
from ..config.settings import ButlerConfig
from ..errors import AssetError
from ..inventory.asset import Asset
from ..utils.audit_log import log_action
from ..utils.logging_config import fields
from ..utils.metrics import MetricsRegistry, metrics as default_metrics
from .configure import ConfigurationApplier
from .execute import CommandExecutor

logger = logging.getLogger(__name__)


@dataclass
class Action:
    """The action requested for every asset of a run."""
    kind: str  # configure, execute
    config: bytes = b""
    command: str = ""

    def __post_init__(self):
        if self.kind not in ("configure", "execute"):
            raise ValueError(f"Unknown action: {self.kind}")

    def request_on(self, asset: Asset) -> None:
        if self.kind == "configure":
            asset.request_configure(self.config)
        else:
            asset.request_execute(self.command)


class Butler:
    """One consumer of the asset channel.

    Each asset is handled end to end and on its own: whatever goes wrong
    with one asset is logged and counted, and the next asset is handled
    as usual.
    """

    component = "msgHandler"

    def __init__(
        self,
        config: ButlerConfig,
        applier: ConfigurationApplier,
        executor: CommandExecutor,
        stop_event: Optional[asyncio.Event] = None,
        action: Optional[Action] = None,
        metrics: Optional[MetricsRegistry] = None,
        name: str = "butler-0",
    ):
        self.config = config
        self.applier = applier
        self.executor = executor
        self.stop_event = stop_event or asyncio.Event()
        self.action = action
        self.metrics = metrics or default_metrics
        self.name = name
        self._locations = set(config.locations)

    def my_location(self, location: str) -> bool:
        return location in self._locations

    async def run(self, channel: AssetChannel) -> int:
        """Consume batches until the producer closes the channel.

        Returns the number of assets received. Once the stop event is set the
        remaining assets are still drained, so the producer never blocks on a
        full channel, but they are not handled.
        """
        received = 0
        async for batch in channel:
            for asset in batch:
                received += 1
                if self.action is not None:
                    self.action.request_on(asset)
                await self.handle(asset)
        logger.debug(f"{self.name}: channel closed after {received} assets")
        return received

    async def handle(self, asset: Asset) -> None:
        """Invoke the appropriate action based on the asset's attributes."""
        if self.stop_event.is_set():
            return

        self.metrics.incr_counter(["butler", "asset_recvd"])

        # Without an address there is nothing to talk to
        if not asset.has_usable_address():
            logger.warning(
                "Asset was received by butler without any IP(s) info, skipped. | "
                + fields(component=self.component, serial=asset.serial, asset_type=asset.type)
            )
            self.metrics.incr_counter(["butler", "asset_recvd_noip"])
            return

        if asset.location and not self.my_location(asset.location) and not self.config.ignore_location:
            logger.warning(
                "Butler wont manage asset based on its current location. | "
                + fields(component=self.component, serial=asset.serial,
                         asset_type=asset.type, location=asset.location)
            )
            self.metrics.incr_counter(["butler", "asset_recvd_location_unmanaged"])
            return

        if asset.configure:
            await self._dispatch("configure", asset)
            return

        if asset.execute:
            await self._dispatch("execute", asset)
            return

        logger.warning(
            "Unknown action request on asset. | "
            + fields(component=self.component, **asset.context())
        )
        self.metrics.incr_counter(["butler", "asset_unknown_action"])

    async def _dispatch(self, action: str, asset: Asset) -> None:
        try:
            if action == "configure":
                await self.applier.apply(asset.config, asset)
            else:
                await self.executor.run(asset.command, asset)
        except AssetError as e:
            self._failed(action, asset, e)
            return
        except Exception as e:
            logger.exception(f"Unexpected error during {action} | " + fields(**asset.context()))
            self._failed(action, asset, e)
            return

        self.metrics.incr_counter(["butler", f"{action}_success"])
        log_action(asset, action, success=True, dry_run=self.config.dry_run)

    def _failed(self, action: str, asset: Asset, error: Exception) -> None:
        message = "Configure action returned error." if action == "configure" \
            else "Unable Execute command(s) on asset."
        logger.warning(
            f"{message} | "
            + fields(component=self.component, error=error, command=asset.command, **asset.context())
        )
        self.metrics.incr_counter(["butler", f"{action}_fail"])
        log_action(asset, action, success=False, error=str(error), dry_run=self.config.dry_run)
