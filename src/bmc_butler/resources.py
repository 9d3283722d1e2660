"""Render configuration resources for an asset.

The configuration document is YAML with one section per device type and
optional per-vendor overrides:

```yaml
server:
  ntp: {servers: [ntp1.example.net]}
  syslog: {server: syslog.example.net}
chassis:
  setup:                 # one-time chassis setup, applied first
    flex_address: true
  ntp: {servers: [ntp1.example.net]}
vendors:
  dell:
    server:
      bios: {boot_mode: uefi}
```

Keys in a vendor section replace the keys of the device-type section.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

import yaml

from .errors import NoConfigError
from .inventory.asset import Asset, CHASSIS

logger = logging.getLogger(__name__)


@dataclass
class RenderedConfig:
    """Configuration resources applicable to one asset."""
    resources: dict[str, Any] = field(default_factory=dict)
    setup_chassis: Optional[dict[str, Any]] = None


class ConfigRenderer(ABC):
    """Turns a raw configuration document into resources for an asset."""

    @abstractmethod
    def render(self, config: bytes, asset: Asset) -> Optional[RenderedConfig]:
        """Return the asset's resources, or None if nothing applies to it."""
        pass


class YamlResourceRenderer(ConfigRenderer):
    """Select the device-type and vendor sections of a YAML document."""

    def render(self, config: bytes, asset: Asset) -> Optional[RenderedConfig]:
        try:
            doc = yaml.safe_load(config) or {}
        except yaml.YAMLError as e:
            raise NoConfigError(f"Configuration is not valid YAML: {e}") from e
        if not isinstance(doc, dict):
            raise NoConfigError("Configuration must be a mapping of device types")

        resources = dict(doc.get(asset.type) or {})

        vendors = doc.get("vendors") or {}
        vendor_section = (vendors.get(asset.vendor.lower()) or {}).get(asset.type) or {}
        resources.update(vendor_section)

        setup = None
        if asset.type == CHASSIS:
            setup = resources.pop("setup", None) or None

        if not resources and not setup:
            logger.debug(f"No resources for type={asset.type} vendor={asset.vendor}")
            return None

        return RenderedConfig(resources=resources, setup_chassis=setup)
