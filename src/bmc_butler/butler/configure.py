"""Apply rendered configuration to an asset's controller."""
import logging
import time
from typing import Awaitable, Optional, Protocol

from ..devices.base import Bmc, Cmc, DeviceConfigurator
from ..errors import NoConfigError, UnknownDeviceError
from ..inventory.asset import Asset, CHASSIS, SERVER
from ..resources import ConfigRenderer
from ..utils.logging_config import fields, timed
from .base import DeviceAction

logger = logging.getLogger(__name__)


class ChassisStateUpdater(Protocol):
    """Inventory that tracks whether a chassis has been set up."""

    def set_chassis_installed(self, serials: list[str]) -> Awaitable[bool]:
        ...


class ConfigurationApplier(DeviceAction):
    """Log in, render the asset's resources and apply them.

    Usage:
        applier = ConfigurationApplier(session, credentials, renderer, configurator)
        await applier.apply(config_bytes, asset)
    """

    component = "configureAsset"

    def __init__(
        self,
        session,
        credentials,
        renderer: ConfigRenderer,
        configurator: DeviceConfigurator,
        chassis_state: Optional[ChassisStateUpdater] = None,
        **kwargs,
    ):
        super().__init__(session, credentials, **kwargs)
        self.renderer = renderer
        self.configurator = configurator
        self.chassis_state = chassis_state

    async def apply(self, config: bytes, asset: Asset) -> None:
        """Configure one asset. Raises an AssetError subclass on failure."""
        if self.dry_run:
            logger.info(
                "Dry run, asset configuration will be skipped. | "
                + fields(component=self.component, serial=asset.serial)
            )
            return

        start = time.perf_counter()
        try:
            await self._apply(config, asset)
        finally:
            self.metrics.measure_runtime(["butler", "configure_runtime"], start)

    @timed("configure")
    async def _apply(self, config: bytes, asset: Asset) -> None:
        handle = await self._connect(asset, check_credential=True)
        try:
            if isinstance(handle, Bmc):
                await self._configure_bmc(handle, config, asset)
            elif isinstance(handle, Cmc):
                await self._configure_cmc(handle, config, asset)
            else:
                device_type = type(handle).__name__
                logger.warning(
                    "Unknown device type. | "
                    + fields(component=self.component, type=device_type, **asset.context())
                )
                raise UnknownDeviceError(f'Unknown device type "{device_type}"!')
        finally:
            await self._close(handle, asset)

    async def _configure_bmc(self, bmc: Bmc, config: bytes, asset: Asset) -> None:
        self._record_identity(bmc, asset, SERVER)
        await self._check_serial(bmc, asset, "BMC")

        rendered = self.renderer.render(config, asset)
        if rendered is None:
            raise NoConfigError("No BMC configuration to be applied!")

        await self.configurator.apply_bmc(bmc, asset, rendered)
        logger.info("BMC configuration applied. | " + fields(**asset.context()))

    async def _configure_cmc(self, chassis: Cmc, config: bytes, asset: Asset) -> None:
        self._record_identity(chassis, asset, CHASSIS)
        await self._check_serial(chassis, asset, "CMC")

        rendered = self.renderer.render(config, asset)
        if rendered is None:
            raise NoConfigError("No CMC configuration to be applied!")

        if rendered.setup_chassis:
            await self.configurator.setup_chassis(chassis, asset, rendered.setup_chassis)
            logger.info("Chassis setup applied. | " + fields(**asset.context()))
            if self.chassis_state is not None:
                await self.chassis_state.set_chassis_installed([asset.serial])

        await self.configurator.apply_cmc(chassis, asset, rendered)
        logger.info("CMC configuration applied. | " + fields(**asset.context()))
