"""Error taxonomy.

Callers react to the class, not the message:
InventoryError ends the run, the inventory can no longer be trusted.
AssetError is scoped to one asset, the dispatcher counts it and moves on.
"""
from typing import Optional


class ButlerError(Exception):
    """Base class for all butler exceptions."""


class ConfigError(ButlerError):
    """Raised when the butler configuration is invalid."""


class InventoryError(ButlerError):
    """Raised when the inventory cannot be retrieved. Fatal to the run."""


class InventoryDataError(InventoryError):
    """Raised for unreadable inventory files and malformed query responses."""


class InventoryQueryError(InventoryError):
    """Raised when an inventory query still fails after all its attempts."""


class EncCommandError(ButlerError):
    """A single external inventory command exited non-zero or could not start."""

    def __init__(self, cmd: list[str], returncode: Optional[int], output: str = ""):
        self.cmd = cmd
        self.returncode = returncode
        self.output = output
        super().__init__(
            f"command {' '.join(cmd)!r} failed (exit {returncode}): {output.strip()}"
        )


class ChannelClosedError(ButlerError):
    """Raised on send to, or second close of, a closed asset channel."""


class AssetError(ButlerError):
    """Failure scoped to a single asset."""


class LoginError(AssetError):
    """No candidate address accepted the credentials."""


class NoConfigError(AssetError):
    """The renderer produced nothing applicable to the asset."""


class UnknownDeviceError(AssetError):
    """The session returned a device handle that is neither a Bmc nor a Cmc."""


class UnknownCommandError(AssetError):
    """The requested command has no mapping to a device capability."""


class CommandError(AssetError):
    """The device reported that a command did not succeed."""
