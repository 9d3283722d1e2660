"""Asset model shared by inventory sources and the butler."""
from dataclasses import dataclass, field
from typing import Iterable, Iterator

UNSET_ADDRESS = "0.0.0.0"

SERVER = "server"
CHASSIS = "chassis"

# Inventory spellings of the asset type -> canonical type
_ASSET_TYPES = {
    "server": SERVER,
    "servers": SERVER,
    "discretes": SERVER,
    "chassis": CHASSIS,
}


def is_valid_bmc_address(address: str) -> bool:
    """An address is usable unless it is empty or the unset address."""
    address = (address or "").strip()
    return bool(address) and address != UNSET_ADDRESS


def normalize_asset_type(asset_type: str) -> str:
    """Map ``servers``/``discretes``/``chassis`` to ``server``/``chassis``.

    Unknown spellings are returned lower-cased as given.
    """
    asset_type = (asset_type or "").strip().lower()
    return _ASSET_TYPES.get(asset_type, asset_type)


@dataclass
class Asset:
    """A BMC or CMC endpoint.

    Built by an inventory source, enriched in place once a session is
    established (active address, resolved type, vendor and hardware type).
    """
    ip_addresses: list[str] = field(default_factory=list)
    # Active address, set when a login succeeds
    ip_address: str = ""
    serial: str = ""
    vendor: str = ""
    type: str = ""
    hardware_type: str = ""
    location: str = ""
    extra: dict[str, str] = field(default_factory=dict)
    configure: bool = False
    config: bytes = b""
    execute: bool = False
    command: str = ""

    def __post_init__(self):
        self.type = normalize_asset_type(self.type)

    def usable_addresses(self) -> list[str]:
        return [ip for ip in self.ip_addresses if is_valid_bmc_address(ip)]

    def has_usable_address(self) -> bool:
        return any(is_valid_bmc_address(ip) for ip in self.ip_addresses)

    def request_configure(self, config: bytes) -> None:
        """Mark the asset for configuration, clearing any execute request."""
        self.configure = True
        self.config = config
        self.execute = False
        self.command = ""

    def request_execute(self, command: str) -> None:
        """Mark the asset for a command, clearing any configure request."""
        self.execute = True
        self.command = command
        self.configure = False
        self.config = b""

    def context(self) -> dict[str, str]:
        """Fields identifying this asset in log lines."""
        return {
            "serial": self.serial,
            "asset_type": self.type,
            "vendor": self.vendor,
            "hardware_type": self.hardware_type,
            "location": self.location,
            "ip_address": self.ip_address,
        }


def chunked(assets: Iterable[Asset], size: int) -> Iterator[list[Asset]]:
    """Split assets into batches of at most ``size``."""
    if size < 1:
        raise ValueError("batch size must be at least 1")
    batch: list[Asset] = []
    for asset in assets:
        batch.append(asset)
        if len(batch) == size:
            yield batch
            batch = []
    if batch:
        yield batch
