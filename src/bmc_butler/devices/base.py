"""Device interfaces for out-of-band controllers.

Butler does not speak any controller protocol itself. A session
implementation logs in to one of an asset's candidate addresses and hands
back a device handle, which is either a ``Bmc`` (one server) or a ``Cmc``
(a chassis). Configurators push rendered resources through those handles.
"""
import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from ..config.settings import Credentials


class DeviceHandle(ABC):
    """An authenticated connection to a controller."""

    @abstractmethod
    def hardware_type(self) -> str:
        """Hardware model, e.g. ``idrac8`` or ``m1000e``."""
        pass

    @abstractmethod
    def vendor(self) -> str:
        pass

    @abstractmethod
    async def serial(self) -> str:
        """Serial number as reported by the device."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Log out and release the connection."""
        pass


class Bmc(DeviceHandle):
    """Baseboard management controller of a single server."""

    @abstractmethod
    async def power_cycle(self) -> bool:
        """Power cycle the server. Returns True on success."""
        pass

    @abstractmethod
    async def power_cycle_bmc(self) -> bool:
        """Reset the BMC itself. Returns True on success."""
        pass

    @abstractmethod
    async def update_firmware(self, endpoint: str, path: str) -> tuple[bool, str]:
        """Flash firmware fetched from ``endpoint``/``path``.

        Returns:
            Tuple of (success, output)
        """
        pass

    @abstractmethod
    async def check_firmware_version(self) -> str:
        """Return the running firmware version."""
        pass


class Cmc(DeviceHandle):
    """Chassis management controller of a multi-server chassis."""


@dataclass
class LoginResult:
    """A device handle and the address that accepted the login."""
    handle: DeviceHandle
    active_address: str


class DeviceSession(ABC):
    """Establishes authenticated sessions with controllers."""

    @abstractmethod
    async def login(
        self,
        addresses: list[str],
        credentials: list[Credentials],
        retries: int = 1,
        stop_event: Optional[asyncio.Event] = None,
        check_credential: bool = True,
    ) -> LoginResult:
        """Try each candidate address with each credential.

        Args:
            addresses: Candidate addresses, in preference order
            credentials: Read-only credentials to try
            retries: Extra attempts per address
            stop_event: Abandon remaining attempts once set
            check_credential: Verify the credential can configure the device

        Raises:
            Exception: If no address accepted any credential
        """
        pass


class DeviceConfigurator(ABC):
    """Applies rendered configuration through a device handle."""

    @abstractmethod
    async def apply_bmc(self, bmc: Bmc, asset: Any, rendered: Any) -> None:
        pass

    @abstractmethod
    async def setup_chassis(self, chassis: Cmc, asset: Any, setup: dict) -> None:
        """One-time chassis setup, run before the chassis configuration."""
        pass

    @abstractmethod
    async def apply_cmc(self, chassis: Cmc, asset: Any, rendered: Any) -> None:
        pass
