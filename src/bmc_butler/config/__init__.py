"""Butler configuration."""
from .settings import (
    ButlerConfig,
    Credentials,
    CsvConfig,
    EncConfig,
    FilterParams,
    InventoryConfig,
    find_config,
    load_object,
    split_csv,
)

__all__ = [
    "ButlerConfig",
    "Credentials",
    "CsvConfig",
    "EncConfig",
    "FilterParams",
    "InventoryConfig",
    "find_config",
    "load_object",
    "split_csv",
]
