"""Tests for the YAML resource renderer."""
import pytest

from bmc_butler.errors import NoConfigError
from bmc_butler.inventory.asset import Asset
from bmc_butler.resources import YamlResourceRenderer

CONFIG = b"""
server:
  ntp: {servers: [ntp1.example.net]}
  syslog: {server: syslog.example.net}
chassis:
  setup: {flex_address: true}
  ntp: {servers: [ntp1.example.net]}
vendors:
  dell:
    server:
      syslog: {server: dell-syslog.example.net}
"""


class TestYamlResourceRenderer:
    """Tests for YamlResourceRenderer."""

    def test_device_type_section(self):
        rendered = YamlResourceRenderer().render(CONFIG, Asset(type="server", vendor="hp"))
        assert rendered.resources["syslog"] == {"server": "syslog.example.net"}
        assert rendered.setup_chassis is None

    def test_vendor_override(self):
        rendered = YamlResourceRenderer().render(CONFIG, Asset(type="server", vendor="Dell"))
        assert rendered.resources["syslog"] == {"server": "dell-syslog.example.net"}
        assert rendered.resources["ntp"] == {"servers": ["ntp1.example.net"]}

    def test_chassis_setup_is_split_out(self):
        rendered = YamlResourceRenderer().render(CONFIG, Asset(type="chassis"))
        assert rendered.setup_chassis == {"flex_address": True}
        assert "setup" not in rendered.resources

    def test_nothing_applies(self):
        assert YamlResourceRenderer().render(b"server: {ntp: {}}", Asset(type="chassis")) is None

    def test_invalid_yaml(self):
        with pytest.raises(NoConfigError):
            YamlResourceRenderer().render(b"server: [", Asset(type="server"))

    def test_not_a_mapping(self):
        with pytest.raises(NoConfigError):
            YamlResourceRenderer().render(b"- server", Asset(type="server"))
