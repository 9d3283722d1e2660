"""CSV inventory source.

A static file listing controllers, one per row:

    bmcaddress,serial,vendor,type
    10.0.0.1,CZ3401ABC,dell,server
    10.0.0.9,FX2CHASSIS1,dell,chassis

Only ``bmcaddress`` is required. Set ``inventory.source: csv`` and
``inventory.csv.file`` in butler.yaml to use it.
"""
import asyncio
import csv
import logging
from dataclasses import dataclass

from ..errors import InventoryDataError
from .asset import Asset, normalize_asset_type
from .base import InventorySource

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("bmcaddress",)


@dataclass
class CsvRow:
    bmcaddress: str
    serial: str = ""
    vendor: str = ""
    type: str = ""

    def to_asset(self) -> Asset:
        return Asset(
            ip_addresses=[self.bmcaddress],
            serial=self.serial,
            vendor=self.vendor,
            type=self.type,
        )


class CsvSource(InventorySource):
    """Inventory read from a CSV file, once per retrieval."""

    name = "csv"

    def read_csv(self) -> list[CsvRow]:
        """Read the whole file into memory. Rows without an address are skipped.

        Blocking, the strategies run it in a worker thread.
        """
        path = self.config.inventory.csv.file
        if not path:
            raise InventoryDataError("inventory.csv.file is not set")

        try:
            with open(path, newline="", encoding="utf-8-sig") as f:
                reader = csv.DictReader(f)
                columns = [c.strip().lower() for c in (reader.fieldnames or [])]
                missing = [c for c in REQUIRED_COLUMNS if c not in columns]
                if missing:
                    raise InventoryDataError(
                        f"CSV inventory {path} is missing column(s): {', '.join(missing)}"
                    )

                rows = []
                for line in reader:
                    record = {
                        (k or "").strip().lower(): (v or "").strip()
                        for k, v in line.items()
                        if k is not None
                    }
                    if not record.get("bmcaddress"):
                        continue
                    rows.append(CsvRow(
                        bmcaddress=record["bmcaddress"],
                        serial=record.get("serial", ""),
                        vendor=record.get("vendor", ""),
                        type=record.get("type", ""),
                    ))
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            raise InventoryDataError(f"Unable to read CSV inventory {path}: {e}") from e

        logger.debug(f"Read {len(rows)} assets from {path}")
        return rows

    async def iter_by_serial(self) -> None:
        rows = await asyncio.to_thread(self.read_csv)

        assets = []
        for serial in self.filter.serials:
            matches = [row.to_asset() for row in rows if row.serial == serial]
            if not matches:
                logger.warning(f"Serial {serial} not found in CSV inventory")
            assets.extend(matches)

        await self.send(assets)

    async def iter_by_ip(self) -> None:
        """One asset per requested IP, with any attributes the file has for it."""
        rows = await asyncio.to_thread(self.read_csv)

        assets = []
        for ip in self.filter.ips:
            asset = Asset(ip_addresses=[ip])
            for row in rows:
                if row.bmcaddress == ip:
                    asset.serial = row.serial
                    asset.vendor = row.vendor
                    asset.type = normalize_asset_type(row.type)
                    break
            else:
                logger.debug(f"No attributes in CSV inventory for IP {ip}")
            assets.append(asset)

        await self.send(assets)

    async def iter_all(self) -> None:
        rows = await asyncio.to_thread(self.read_csv)
        restricted = self.filter.chassis or self.filter.servers
        wanted = {normalize_asset_type(t) for t in self.asset_types()}

        assets = []
        for row in rows:
            asset = row.to_asset()
            # Rows without a type can't be filtered out
            if restricted and asset.type and asset.type not in wanted:
                continue
            assets.append(asset)

        await self.send(assets)
