"""Shared fixtures and fake devices."""
import json
from typing import Optional

import pytest

from bmc_butler.config.settings import ButlerConfig, Credentials
from bmc_butler.devices.base import Bmc, Cmc, DeviceConfigurator, DeviceHandle, DeviceSession, LoginResult
from bmc_butler.utils.metrics import MetricsRegistry


class FakeBmc(Bmc):
    def __init__(self, serial="CZ3401ABC", vendor="dell", hardware_type="idrac9", results=None):
        self._serial = serial
        self._vendor = vendor
        self._hardware_type = hardware_type
        self.results = results or {}
        self.calls = []
        self.closed = False

    def hardware_type(self):
        return self._hardware_type

    def vendor(self):
        return self._vendor

    async def serial(self):
        if isinstance(self._serial, Exception):
            raise self._serial
        return self._serial

    async def close(self):
        self.closed = True

    async def power_cycle(self):
        self.calls.append(("power_cycle",))
        return self.results.get("power_cycle", True)

    async def power_cycle_bmc(self):
        self.calls.append(("power_cycle_bmc",))
        return self.results.get("power_cycle_bmc", True)

    async def update_firmware(self, endpoint, path):
        self.calls.append(("update_firmware", endpoint, path))
        return self.results.get("update_firmware", (True, "flashed"))

    async def check_firmware_version(self):
        self.calls.append(("check_firmware_version",))
        return "2.81.81.81"


class FakeCmc(Cmc):
    def __init__(self, serial="FX2CHASSIS1", vendor="dell", hardware_type="fx2"):
        self._serial = serial
        self._vendor = vendor
        self._hardware_type = hardware_type
        self.closed = False

    def hardware_type(self):
        return self._hardware_type

    def vendor(self):
        return self._vendor

    async def serial(self):
        return self._serial

    async def close(self):
        self.closed = True


class FakeOther(DeviceHandle):
    """A handle that is neither a BMC nor a CMC."""

    def __init__(self):
        self.closed = False

    def hardware_type(self):
        return "pdu"

    def vendor(self):
        return "apc"

    async def serial(self):
        return "PDU1"

    async def close(self):
        self.closed = True


class FakeSession(DeviceSession):
    """Hands out ``handle`` on the first address, or raises ``error``."""

    def __init__(self, handle: Optional[DeviceHandle] = None, error: Optional[Exception] = None):
        self.handle = handle
        self.error = error
        self.logins = []

    async def login(self, addresses, credentials, retries=1, stop_event=None, check_credential=True):
        self.logins.append({
            "addresses": list(addresses),
            "retries": retries,
            "check_credential": check_credential,
        })
        if self.error is not None:
            raise self.error
        return LoginResult(handle=self.handle, active_address=addresses[0])


class FakeConfigurator(DeviceConfigurator):
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.calls = []

    async def apply_bmc(self, bmc, asset, rendered):
        self.calls.append(("apply_bmc", asset.serial, rendered.resources))
        if self.error is not None:
            raise self.error

    async def setup_chassis(self, chassis, asset, setup):
        self.calls.append(("setup_chassis", asset.serial, setup))

    async def apply_cmc(self, chassis, asset, rendered):
        self.calls.append(("apply_cmc", asset.serial, rendered.resources))


class FakeRunner:
    """Stands in for the ENC binary.

    ``responses`` is a list consumed in order; each item is either a dict
    (encoded as the JSON answer), raw bytes, or an exception to raise.
    """

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    async def __call__(self, binary, args):
        self.calls.append(list(args))
        if not self.responses:
            return json.dumps({"data": {}, "end_of_assets": True}).encode()
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, bytes):
            return response
        return json.dumps(response).encode()


def enc_record(ip="10.0.0.1", location="ams2", nic="bmc0", status="live"):
    return {
        "location": location,
        "network_interfaces": [{"name": nic, "mac_address": "aa:bb:cc:dd:ee:ff", "ip_address": ip}],
        "extras": {"status": status, "company": "Example", "live_assets": None},
    }


def make_config(**overrides) -> ButlerConfig:
    data = {
        "locations": ["ams2"],
        "credentials": [{"username": "root", "password": "calvin"}],
        "workers": 2,
        "batch_size": 10,
    }
    data.update(overrides)
    return ButlerConfig.from_dict(data)


@pytest.fixture
def registry():
    """Fresh metrics registry per test."""
    return MetricsRegistry()


@pytest.fixture
def credentials():
    return [Credentials(username="root", password="calvin")]
