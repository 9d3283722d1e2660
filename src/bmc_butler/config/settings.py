"""Butler configuration loaded from YAML.

```yaml
locations: [ams2, lhr4]
ignore_location: false
batch_size: 10
workers: 5
firmware_endpoint: https://firmware.example.net

credentials:
  - username: root
    password_env: BMC_PASSWORD
  - username: ADMIN
    password_env: BMC_PASSWORD_ALT

inventory:
  source: enc          # enc, csv, iplist
  enc:
    bin: /usr/local/bin/assetlookup
    bmc_nic_prefix: [bmc, ipmi, idrac, ilo]
    retries: 3
    retry_delay: 10
  csv:
    file: /etc/bmc-butler/inventory.csv

session: mycompany.bmc.session:BmcSession
configurator: mycompany.bmc.configure:Configurator
```
"""
import importlib
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from ..errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10
DEFAULT_WORKERS = 5
DEFAULT_FIRMWARE_ENDPOINT = "https://10.198.174.2"
DEFAULT_BMC_NIC_PREFIX = ["bmc", "ipmi", "idrac", "ilo"]


def split_csv(value: Any) -> list[str]:
    """Turn ``"a, b,,c"`` or ``["a", "b"]`` into ``["a", "b", "c"]``."""
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [str(v).strip() for v in value if str(v).strip()]


@dataclass(frozen=True)
class Credentials:
    """One username/password pair to try against a controller."""
    username: str
    password: Optional[str] = None
    password_env: str = "BMC_PASSWORD"

    def get_password(self) -> str:
        """Get password from config or environment variable."""
        if self.password:
            return self.password
        return os.environ.get(self.password_env, "")


@dataclass
class FilterParams:
    """Which assets a run is restricted to."""
    serials: list[str] = field(default_factory=list)
    ips: list[str] = field(default_factory=list)
    chassis: bool = False
    servers: bool = False


@dataclass
class EncConfig:
    bin: str = "assetlookup"
    bmc_nic_prefix: list[str] = field(default_factory=lambda: DEFAULT_BMC_NIC_PREFIX.copy())
    retries: int = 3
    retry_delay: float = 10


@dataclass
class CsvConfig:
    file: str = ""


@dataclass
class InventoryConfig:
    source: str = "enc"
    enc: EncConfig = field(default_factory=EncConfig)
    csv: CsvConfig = field(default_factory=CsvConfig)


@dataclass
class ButlerConfig:
    """Complete butler configuration."""
    locations: list[str] = field(default_factory=list)
    ignore_location: bool = False
    dry_run: bool = False
    batch_size: int = DEFAULT_BATCH_SIZE
    workers: int = DEFAULT_WORKERS
    firmware_endpoint: str = DEFAULT_FIRMWARE_ENDPOINT
    credentials: list[Credentials] = field(default_factory=list)
    inventory: InventoryConfig = field(default_factory=InventoryConfig)
    filter: FilterParams = field(default_factory=FilterParams)
    # module:attribute paths of the device collaborators
    session: str = ""
    configurator: str = ""
    renderer: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "ButlerConfig":
        data = dict(data or {})
        try:
            inventory = data.pop("inventory", {}) or {}
            enc = EncConfig(**(inventory.get("enc") or {}))
            enc.bmc_nic_prefix = [p.lower() for p in split_csv(enc.bmc_nic_prefix)]
            csv_config = CsvConfig(**(inventory.get("csv") or {}))
            credentials = [Credentials(**c) for c in data.pop("credentials", []) or []]
            filter_data = data.pop("filter", {}) or {}
            filter_params = FilterParams(
                serials=split_csv(filter_data.get("serials")),
                ips=split_csv(filter_data.get("ips")),
                chassis=bool(filter_data.get("chassis", False)),
                servers=bool(filter_data.get("servers", False)),
            )
            config = cls(
                inventory=InventoryConfig(
                    source=str(inventory.get("source", "enc")).lower(),
                    enc=enc,
                    csv=csv_config,
                ),
                credentials=credentials,
                filter=filter_params,
                **data,
            )
        except TypeError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

        config.locations = split_csv(config.locations)
        config.validate()
        return config

    @classmethod
    def load(cls, path: Optional[str] = None) -> "ButlerConfig":
        """Load the YAML config from ``path`` or the first file found on the search path."""
        path = path or find_config()
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigError(f"Unable to read config {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config {path} must be a mapping")

        logger.debug(f"Loaded config from {path}")
        return cls.from_dict(data)

    def validate(self) -> None:
        if self.batch_size < 1:
            raise ConfigError("batch_size must be at least 1")
        if self.workers < 1:
            raise ConfigError("workers must be at least 1")
        if self.filter.chassis and self.filter.servers:
            raise ConfigError("Filter on chassis or servers, not both")
        if self.filter.serials and self.filter.ips:
            raise ConfigError("Filter on serials or IPs, not both")


def find_config() -> str:
    """Find the butler.yaml config file."""
    env_path = os.environ.get("BUTLER_CONFIG")
    if env_path:
        return env_path

    search_paths = [
        Path.cwd() / "configs" / "butler.yaml",
        Path.cwd() / "butler.yaml",
        Path.home() / ".config" / "bmc-butler" / "butler.yaml",
        Path("/etc/bmc-butler/butler.yaml"),
    ]

    for path in search_paths:
        if path.exists():
            return str(path)

    raise ConfigError(
        "Could not find butler.yaml. Create one in ./configs/butler.yaml or set BUTLER_CONFIG"
    )


def load_object(path: str) -> Any:
    """Import ``package.module:attribute`` and return the attribute."""
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigError(f"Expected 'module:attribute', got {path!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"Unable to import {module_name}: {e}") from e
    try:
        return getattr(module, attr)
    except AttributeError as e:
        raise ConfigError(f"{module_name} has no attribute {attr!r}") from e
