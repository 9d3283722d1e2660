"""Tests for the asset model and reconciliation set."""
import pytest

from bmc_butler.inventory.asset import (
    Asset,
    chunked,
    is_valid_bmc_address,
    normalize_asset_type,
)
from bmc_butler.inventory.reconcile import ReconciliationSet


class TestAddresses:
    """Tests for BMC address validity."""

    def test_unset_address_is_invalid(self):
        assert not is_valid_bmc_address("0.0.0.0")
        assert not is_valid_bmc_address("")
        assert not is_valid_bmc_address("  ")

    def test_regular_address_is_valid(self):
        assert is_valid_bmc_address("10.0.0.1")

    def test_usable_addresses_filters_invalid(self):
        """Invalid addresses never make it to a login."""
        asset = Asset(ip_addresses=["0.0.0.0", "10.0.0.1", ""])
        assert asset.usable_addresses() == ["10.0.0.1"]
        assert asset.has_usable_address()

    def test_no_usable_address(self):
        asset = Asset(ip_addresses=["0.0.0.0"])
        assert not asset.has_usable_address()
        assert not Asset().has_usable_address()


class TestAssetType:
    """Tests for asset type normalization."""

    @pytest.mark.parametrize("raw,expected", [
        ("servers", "server"),
        ("discretes", "server"),
        ("Server", "server"),
        ("chassis", "chassis"),
        ("", ""),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_asset_type(raw) == expected

    def test_asset_normalizes_on_creation(self):
        assert Asset(type="servers").type == "server"


class TestActionRequests:
    """Configure and execute are mutually exclusive."""

    def test_configure_clears_execute(self):
        asset = Asset(ip_addresses=["10.0.0.1"])
        asset.request_execute("powercycle")
        asset.request_configure(b"server: {}")
        assert asset.configure and not asset.execute
        assert asset.command == ""
        assert asset.config == b"server: {}"

    def test_execute_clears_configure(self):
        asset = Asset(ip_addresses=["10.0.0.1"])
        asset.request_configure(b"server: {}")
        asset.request_execute("bmc-reset")
        assert asset.execute and not asset.configure
        assert asset.config == b""
        assert asset.command == "bmc-reset"


class TestChunked:
    """Tests for batching."""

    def test_batches_never_exceed_size(self):
        assets = [Asset(serial=str(i)) for i in range(25)]
        batches = list(chunked(assets, 10))
        assert [len(b) for b in batches] == [10, 10, 5]

    def test_empty(self):
        assert list(chunked([], 10)) == []

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            list(chunked([Asset()], 0))


class TestReconciliationSet:
    """Tests for ReconciliationSet."""

    def test_requested_keeps_order_and_drops_duplicates(self):
        pending = ReconciliationSet(["B", "A", "B", " ", "C"])
        assert pending.requested == ("B", "A", "C")
        assert len(pending) == 3

    def test_discard(self):
        pending = ReconciliationSet(["A", "B"])
        assert pending.discard("A") is True
        assert pending.discard("A") is False
        assert pending.discard("Z") is False
        assert pending.remaining() == ["B"]

    def test_was_requested_survives_discard(self):
        pending = ReconciliationSet(["A"])
        pending.discard("A")
        assert "A" not in pending
        assert pending.was_requested("A")
        assert not pending.was_requested("B")

    def test_remaining_is_a_snapshot(self):
        pending = ReconciliationSet(["A", "B"])
        snapshot = pending.remaining()
        pending.discard("A")
        assert snapshot == ["A", "B"]
