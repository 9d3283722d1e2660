"""Execute a single named command on an asset's controller."""
import logging

from ..devices.base import Bmc, Cmc
from ..errors import CommandError, UnknownCommandError, UnknownDeviceError
from ..inventory.asset import Asset, CHASSIS, SERVER
from ..utils.logging_config import fields, timed
from .base import DeviceAction

logger = logging.getLogger(__name__)

COMMANDS = ("bmc-reset", "powercycle", "firmware-update", "firmware-version")


class CommandExecutor(DeviceAction):
    """Log in and run one command.

    Only BMCs take commands. A chassis accepts the request but nothing is
    executed on it: chassis commands are not implemented.
    """

    component = "executeCommand"

    def __init__(self, session, credentials, firmware_endpoint: str, **kwargs):
        super().__init__(session, credentials, **kwargs)
        self.firmware_endpoint = firmware_endpoint

    async def run(self, command: str, asset: Asset) -> None:
        """Run ``command`` on one asset. Raises an AssetError subclass on failure."""
        if self.dry_run:
            logger.info(
                "Dry run, won't execute cmd on asset. | "
                + fields(component=self.component, serial=asset.serial, command=command)
            )
            return

        await self._run(command, asset)

    @timed("execute")
    async def _run(self, command: str, asset: Asset) -> None:
        handle = await self._connect(asset, check_credential=False)
        try:
            if isinstance(handle, Bmc):
                self._record_identity(handle, asset, SERVER)
                await self._run_bmc(handle, command, asset)
            elif isinstance(handle, Cmc):
                self._record_identity(handle, asset, CHASSIS)
                logger.info(
                    "Command received, chassis command execution is not implemented. | "
                    + fields(component=self.component, command=command, **asset.context())
                )
            else:
                logger.warning(
                    "Unknown device type. | "
                    + fields(component=self.component, type=type(handle).__name__, **asset.context())
                )
                raise UnknownDeviceError("unknown asset type")
        finally:
            await self._close(handle, asset)

    async def _run_bmc(self, bmc: Bmc, command: str, asset: Asset) -> None:
        success, output = await self.execute_bmc(bmc, command)
        if not success:
            logger.warning(
                "Command execute returned error. | "
                + fields(component=self.component, command=command, output=output, **asset.context())
            )
            detail = f": {output}" if output else ""
            raise CommandError(f"{command} was not successful{detail}")

        logger.info(
            "Command successfully executed. | "
            + fields(component=self.component, command=command, output=output, **asset.context())
        )

    async def execute_bmc(self, bmc: Bmc, command: str) -> tuple[bool, str]:
        """Map a command name to the BMC capability.

        Returns:
            Tuple of (success, output)
        """
        if command == "bmc-reset":
            return await bmc.power_cycle_bmc(), ""
        if command == "powercycle":
            return await bmc.power_cycle(), ""
        if command == "firmware-update":
            path = f"bmc-firmware/{bmc.vendor()}/{bmc.hardware_type()}"
            return await bmc.update_firmware(self.firmware_endpoint, path)
        if command == "firmware-version":
            return True, await bmc.check_firmware_version()
        raise UnknownCommandError(f"unknown command: {command}")
