"""Tests for the bmc-butler command line."""
import pytest

from bmc_butler.cli import apply_overrides, build_parser, load_collaborator, main
from bmc_butler.config.settings import ButlerConfig
from bmc_butler.errors import ConfigError


class TestParser:
    """Tests for argument parsing and overrides."""

    def test_execute(self):
        args = build_parser().parse_args(["--serials", "A,B", "execute", "powercycle"])
        assert args.action == "execute"
        assert args.command == "powercycle"

    def test_unknown_command_rejected(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["execute", "self-destruct"])

    def test_servers_and_chassis_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--servers", "--chassis", "execute", "powercycle"])

    def test_overrides(self):
        args = build_parser().parse_args([
            "--dry-run", "--ips", "10.0.0.1, 10.0.0.2", "--location", "lhr4",
            "--chassis", "--source", "IPList", "execute", "bmc-reset",
        ])
        config = apply_overrides(ButlerConfig.from_dict({"locations": ["ams2"]}), args)
        assert config.dry_run
        assert config.filter.ips == ["10.0.0.1", "10.0.0.2"]
        assert config.filter.chassis
        assert config.locations == ["lhr4"]
        assert config.inventory.source == "iplist"

    def test_zero_workers_rejected(self):
        args = build_parser().parse_args(["--workers", "0", "execute", "powercycle"])
        with pytest.raises(ConfigError):
            apply_overrides(ButlerConfig.from_dict({}), args)

    def test_overrides_are_validated(self):
        args = build_parser().parse_args(["--ips", "10.0.0.1", "execute", "powercycle"])
        config = ButlerConfig.from_dict({"filter": {"serials": "A"}})
        with pytest.raises(ConfigError):
            apply_overrides(config, args)


class TestLoadCollaborator:
    def test_missing_required(self):
        with pytest.raises(ConfigError):
            load_collaborator("", "session", required=True)

    def test_missing_optional(self):
        assert load_collaborator("", "renderer", required=False) is None

    def test_class_is_instantiated(self):
        renderer = load_collaborator("bmc_butler.resources:YamlResourceRenderer", "renderer", False)
        assert renderer.__class__.__name__ == "YamlResourceRenderer"


class TestMain:
    """Tests for main()."""

    @pytest.fixture
    def workspace(self, tmp_path, monkeypatch):
        monkeypatch.setenv("BUTLER_LOG_FILE", str(tmp_path / "logs" / "butler.log"))
        inventory = tmp_path / "inventory.csv"
        inventory.write_text("bmcaddress,serial,vendor,type\n10.0.0.1,ABC,dell,server\n")
        config = tmp_path / "butler.yaml"
        config.write_text(f"""
locations: [ams2]
inventory:
  source: csv
  csv:
    file: {inventory}
""")
        resource = tmp_path / "bmc.yaml"
        resource.write_text("server: {ntp: {servers: [ntp1]}}\n")
        return tmp_path

    def test_dry_run(self, workspace):
        code = main([
            "-c", str(workspace / "butler.yaml"), "--dry-run",
            "configure", "--resource", str(workspace / "bmc.yaml"),
        ])
        assert code == 0
        assert (workspace / "logs" / "audit.log").exists()

    def test_session_required_without_dry_run(self, workspace):
        code = main(["-c", str(workspace / "butler.yaml"), "execute", "powercycle"])
        assert code == 1

    def test_missing_resource(self, workspace):
        code = main([
            "-c", str(workspace / "butler.yaml"), "--dry-run",
            "configure", "--resource", str(workspace / "missing.yaml"),
        ])
        assert code == 1

    def test_inventory_failure(self, workspace):
        (workspace / "inventory.csv").write_text("serial\nABC\n")
        code = main(["-c", str(workspace / "butler.yaml"), "--dry-run", "execute", "powercycle"])
        assert code == 1
