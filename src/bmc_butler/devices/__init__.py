"""Device session and handle interfaces."""
from .base import (
    Bmc,
    Cmc,
    DeviceConfigurator,
    DeviceHandle,
    DeviceSession,
    LoginResult,
)

__all__ = [
    "Bmc",
    "Cmc",
    "DeviceConfigurator",
    "DeviceHandle",
    "DeviceSession",
    "LoginResult",
]
