"""Inventory sources that stream assets onto an AssetChannel."""
import asyncio
from typing import Optional

from ..channel import AssetChannel
from ..config.settings import ButlerConfig
from ..errors import ConfigError
from ..utils.metrics import MetricsRegistry
from .asset import Asset, chunked, is_valid_bmc_address, normalize_asset_type
from .base import InventorySource
from .csv_source import CsvSource
from .enc import EncSource
from .iplist import IpListSource
from .reconcile import ReconciliationSet

__all__ = [
    "Asset",
    "chunked",
    "is_valid_bmc_address",
    "normalize_asset_type",
    "InventorySource",
    "CsvSource",
    "EncSource",
    "IpListSource",
    "ReconciliationSet",
    "SOURCE_TYPES",
    "create_source",
]

# Inventory source registry
SOURCE_TYPES = {
    "csv": CsvSource,
    "enc": EncSource,
    "iplist": IpListSource,
}


def create_source(
    config: ButlerConfig,
    channel: AssetChannel,
    stop_event: Optional[asyncio.Event] = None,
    metrics: Optional[MetricsRegistry] = None,
) -> InventorySource:
    """Factory function to create the configured inventory source."""
    source = config.inventory.source.lower()
    if source not in SOURCE_TYPES:
        raise ConfigError(f"Unknown inventory source: {source}")

    return SOURCE_TYPES[source](config, channel, stop_event=stop_event, metrics=metrics)
