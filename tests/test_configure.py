"""Tests for the configuration applier."""
import pytest

from bmc_butler.butler import ConfigurationApplier
from bmc_butler.errors import LoginError, NoConfigError, UnknownDeviceError
from bmc_butler.inventory.asset import Asset
from bmc_butler.resources import YamlResourceRenderer

from conftest import FakeBmc, FakeCmc, FakeConfigurator, FakeOther, FakeSession

CONFIG = b"""
server:
  ntp: {servers: [ntp1.example.net]}
chassis:
  setup: {flex_address: true}
  ntp: {servers: [ntp1.example.net]}
"""


class FakeChassisState:
    def __init__(self):
        self.installed = []

    async def set_chassis_installed(self, serials):
        self.installed.extend(serials)
        return True


def make_applier(session, credentials, registry, configurator=None, **kwargs):
    return ConfigurationApplier(
        session,
        credentials,
        renderer=YamlResourceRenderer(),
        configurator=configurator or FakeConfigurator(),
        metrics=registry,
        **kwargs,
    )


def asset(serial="CZ3401ABC"):
    return Asset(ip_addresses=["0.0.0.0", "10.0.0.1", "10.0.0.2"], serial=serial)


class TestDryRun:
    """Dry run never touches a device."""

    @pytest.mark.asyncio
    async def test_no_session_calls(self, credentials, registry):
        session = FakeSession(FakeBmc())
        applier = make_applier(session, credentials, registry, dry_run=True)

        await applier.apply(CONFIG, asset())

        assert session.logins == []
        assert applier.configurator.calls == []


class TestBmc:
    """Tests for BMC configuration."""

    @pytest.mark.asyncio
    async def test_apply(self, credentials, registry):
        bmc = FakeBmc()
        session = FakeSession(bmc)
        applier = make_applier(session, credentials, registry)
        target = asset()

        await applier.apply(CONFIG, target)

        assert session.logins == [{
            "addresses": ["10.0.0.1", "10.0.0.2"],
            "retries": 1,
            "check_credential": True,
        }]
        assert applier.configurator.calls == [
            ("apply_bmc", "CZ3401ABC", {"ntp": {"servers": ["ntp1.example.net"]}}),
        ]
        assert target.ip_address == "10.0.0.1"
        assert target.type == "server"
        assert target.vendor == "dell"
        assert target.hardware_type == "idrac9"
        assert bmc.closed
        assert len(registry.runtimes("butler.configure_runtime")) == 1

    @pytest.mark.asyncio
    async def test_serial_mismatch_is_not_fatal(self, credentials, registry):
        session = FakeSession(FakeBmc(serial="REPLACED1"))
        applier = make_applier(session, credentials, registry)
        target = asset(serial="CZ3401ABC")

        await applier.apply(CONFIG, target)

        assert target.serial == "CZ3401ABC"
        assert len(applier.configurator.calls) == 1

    @pytest.mark.asyncio
    async def test_serial_read_error_is_not_fatal(self, credentials, registry):
        session = FakeSession(FakeBmc(serial=RuntimeError("redfish timeout")))
        applier = make_applier(session, credentials, registry)

        await applier.apply(CONFIG, asset())

        assert len(applier.configurator.calls) == 1

    @pytest.mark.asyncio
    async def test_serial_adopted_for_bare_asset(self, credentials, registry):
        session = FakeSession(FakeBmc(serial="CZ3401ABC"))
        applier = make_applier(session, credentials, registry)
        target = Asset(ip_addresses=["10.0.0.1"])

        await applier.apply(CONFIG, target)

        assert target.serial == "CZ3401ABC"

    @pytest.mark.asyncio
    async def test_nothing_to_apply(self, credentials, registry):
        bmc = FakeBmc()
        applier = make_applier(FakeSession(bmc), credentials, registry)

        with pytest.raises(NoConfigError):
            await applier.apply(b"chassis: {ntp: {}}", asset())
        assert bmc.closed

    @pytest.mark.asyncio
    async def test_configurator_error_still_closes(self, credentials, registry):
        bmc = FakeBmc()
        applier = make_applier(
            FakeSession(bmc), credentials, registry, configurator=FakeConfigurator(RuntimeError("rejected"))
        )
        with pytest.raises(RuntimeError):
            await applier.apply(CONFIG, asset())
        assert bmc.closed


class TestCmc:
    """Tests for chassis configuration."""

    @pytest.mark.asyncio
    async def test_setup_then_configure(self, credentials, registry):
        chassis = FakeCmc()
        state = FakeChassisState()
        applier = make_applier(FakeSession(chassis), credentials, registry, chassis_state=state)
        target = asset(serial="FX2CHASSIS1")

        await applier.apply(CONFIG, target)

        assert [call[0] for call in applier.configurator.calls] == ["setup_chassis", "apply_cmc"]
        assert applier.configurator.calls[0][2] == {"flex_address": True}
        assert state.installed == ["FX2CHASSIS1"]
        assert target.type == "chassis"
        assert chassis.closed

    @pytest.mark.asyncio
    async def test_without_setup(self, credentials, registry):
        state = FakeChassisState()
        applier = make_applier(FakeSession(FakeCmc()), credentials, registry, chassis_state=state)

        await applier.apply(b"chassis: {ntp: {servers: [ntp1]}}", asset(serial="FX2CHASSIS1"))

        assert [call[0] for call in applier.configurator.calls] == ["apply_cmc"]
        assert state.installed == []


class TestErrors:
    """Tests for login and device type failures."""

    @pytest.mark.asyncio
    async def test_unknown_device(self, credentials, registry):
        other = FakeOther()
        applier = make_applier(FakeSession(other), credentials, registry)

        with pytest.raises(UnknownDeviceError):
            await applier.apply(CONFIG, asset())
        assert other.closed

    @pytest.mark.asyncio
    async def test_login_failure_is_wrapped(self, credentials, registry):
        session = FakeSession(error=ConnectionRefusedError("refused"))
        applier = make_applier(session, credentials, registry)

        with pytest.raises(LoginError):
            await applier.apply(CONFIG, asset())
