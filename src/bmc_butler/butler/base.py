"""Session handling shared by the configure and execute actions."""
import asyncio
import logging
from typing import Optional

from ..config.settings import Credentials
from ..devices.base import DeviceHandle, DeviceSession
from ..errors import AssetError, LoginError
from ..inventory.asset import Asset
from ..utils.logging_config import fields
from ..utils.metrics import MetricsRegistry, metrics as default_metrics

logger = logging.getLogger(__name__)


class DeviceAction:
    """Base for actions that log in to an asset's controller."""

    component = ""

    def __init__(
        self,
        session: DeviceSession,
        credentials: list[Credentials],
        dry_run: bool = False,
        stop_event: Optional[asyncio.Event] = None,
        metrics: Optional[MetricsRegistry] = None,
    ):
        self.session = session
        self.credentials = credentials
        self.dry_run = dry_run
        self.stop_event = stop_event
        self.metrics = metrics or default_metrics

    async def _connect(self, asset: Asset, check_credential: bool) -> DeviceHandle:
        """Log in to one of the asset's addresses and record the one that answered."""
        logger.debug(
            "Connecting to asset... | "
            + fields(component=self.component, serial=asset.serial, addresses=asset.usable_addresses())
        )
        try:
            result = await self.session.login(
                asset.usable_addresses(),
                self.credentials,
                retries=1,
                stop_event=self.stop_event,
                check_credential=check_credential,
            )
        except AssetError:
            raise
        except Exception as e:
            raise LoginError(f"Login failed on {', '.join(asset.usable_addresses())}: {e}") from e

        asset.ip_address = result.active_address
        return result.handle

    async def _close(self, handle: DeviceHandle, asset: Asset) -> None:
        try:
            await handle.close()
        except Exception as e:
            logger.warning(
                "Error closing device session | "
                + fields(component=self.component, error=e, **asset.context())
            )

    def _record_identity(self, handle: DeviceHandle, asset: Asset, asset_type: str) -> None:
        asset.type = asset_type
        asset.hardware_type = handle.hardware_type()
        asset.vendor = handle.vendor()

    async def _check_serial(self, handle: DeviceHandle, asset: Asset, label: str) -> None:
        """Compare the device's serial with the inventory's.

        A board swap legitimately changes the serial, so a mismatch is only
        reported.
        """
        try:
            serial = await handle.serial()
        except Exception as e:
            logger.warning(
                f"Error getting {label} serial! | "
                + fields(component=self.component, inventory_serial=asset.serial, error=e)
            )
            return

        if not asset.serial:
            asset.serial = serial
        elif serial != asset.serial:
            logger.warning(
                f"The {label} reports a different serial than the inventory source! | "
                + fields(component=self.component, device_serial=serial, inventory_serial=asset.serial)
            )
