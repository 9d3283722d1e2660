"""External node classifier (ENC) inventory source.

Assets are looked up by running the ENC binary and parsing its JSON output:

    assetlookup enc --serials FOO123,BAR123
    assetlookup enc --ips 192.168.1.1,192.168.1.2
    assetlookup inventory --server --limit 10 --offset 0 --location ams2
    assetlookup inventory --set-chassis-installed FOO123

Every command answers with:

    {"data": {"<serial>": {"location": "...",
                           "network_interfaces": [{"name": "bmc0", "mac_address": "...", "ip_address": "..."}],
                           "extras": {"status": "live", "company": "...", "live_assets": ["..."]}}},
     "end_of_assets": false}
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from pydantic import BaseModel, ValidationError

from ..errors import EncCommandError, InventoryDataError, InventoryQueryError
from ..utils.logging_config import fields, timed_section
from ..utils.retry import RETRYABLE_EXCEPTIONS, retrying
from .asset import Asset, is_valid_bmc_address
from .base import InventorySource
from .reconcile import ReconciliationSet

logger = logging.getLogger(__name__)

Runner = Callable[[str, list[str]], Awaitable[bytes]]

# inventory asset type -> ENC flag
ASSET_TYPE_FLAGS = {
    "servers": "--server",
    "discretes": "--server",
    "chassis": "--chassis",
}


class NetworkInterface(BaseModel):
    name: Optional[str] = ""
    mac_address: Optional[str] = ""
    ip_address: Optional[str] = ""


class AttributesExtras(BaseModel):
    status: Optional[str] = ""
    company: Optional[str] = ""
    # For a chassis, the serials of its blades in the live state
    live_assets: Optional[list[str]] = None


class AttributesRecord(BaseModel):
    location: Optional[str] = ""
    network_interfaces: Optional[list[NetworkInterface]] = None
    extras: Optional[AttributesExtras] = None


class EncResponse(BaseModel):
    data: Optional[dict[str, AttributesRecord]] = None
    end_of_assets: bool = False

    def records(self) -> dict[str, AttributesRecord]:
        return self.data or {}


def extras_as_map(extras: Optional[AttributesExtras]) -> dict[str, str]:
    """Flatten ENC extras into the asset's string map, lower-cased."""
    if extras is None:
        return {"state": "", "company": "", "liveAssets": ""}
    return {
        "state": (extras.status or "").lower(),
        "company": (extras.company or "").lower(),
        "liveAssets": ",".join(extras.live_assets or []).lower(),
    }


async def run_command(binary: str, args: list[str]) -> bytes:
    """Run an ENC command and return its stdout.

    The command gets its own session so a SIGINT sent to butler's process
    group does not kill an in-flight query.
    """
    cmd = [binary, *args]
    logger.debug(f"Running: {' '.join(cmd)}")
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,
        )
    except OSError as e:
        raise EncCommandError(cmd, None, str(e)) from e

    stdout, stderr = await proc.communicate()
    if proc.returncode != 0:
        output = (stderr or stdout).decode("utf-8", errors="ignore")
        raise EncCommandError(cmd, proc.returncode, output)
    return stdout


class EncSource(InventorySource):
    """Inventory looked up through an external node classifier."""

    name = "enc"

    def __init__(self, *args, runner: Runner = run_command, **kwargs):
        super().__init__(*args, **kwargs)
        self.enc = self.config.inventory.enc
        self.runner = runner

    # === Command plumbing ===

    async def _exec(self, args: list[str], attempts: int = 1) -> bytes:
        """Run an ENC command, retrying failed runs with a fixed delay."""
        async for attempt in retrying(attempts, self.enc.retry_delay, RETRYABLE_EXCEPTIONS):
            with attempt:
                return await self.runner(self.enc.bin, args)
        raise AssertionError("unreachable")  # retrying re-raises the last error

    def _parse(self, out: bytes, args: list[str]) -> EncResponse:
        try:
            return EncResponse.model_validate_json(out)
        except ValidationError as e:
            logger.error(
                "ENC response could not be parsed | "
                + fields(cmd=f"{self.enc.bin} {' '.join(args)}", output=out[:500])
            )
            raise InventoryDataError(f"Malformed ENC response to {' '.join(args)}: {e}") from e

    def bmc_addresses(self, record: AttributesRecord) -> list[str]:
        """Valid addresses of the record's BMC interfaces, in interface order."""
        addresses = []
        for nic in record.network_interfaces or []:
            name = (nic.name or "").lower()
            if not any(name.startswith(prefix) for prefix in self.enc.bmc_nic_prefix):
                continue
            if is_valid_bmc_address(nic.ip_address):
                addresses.append(nic.ip_address.strip())
        return addresses

    def _asset(self, serial: str, record: AttributesRecord, addresses: list[str], asset_type: str = "") -> Asset:
        return Asset(
            ip_addresses=addresses,
            serial=serial,
            type=asset_type,
            location=record.location or "",
            extra=extras_as_map(record.extras),
        )

    # === Queries ===

    async def query_by_offset(
        self,
        asset_type: str,
        offset: int,
        limit: int,
        locations: list[str],
    ) -> tuple[list[Asset], bool]:
        """Fetch one page of assets of a type.

        Returns the page's assets and whether the ENC reached the end of
        assets. A page that can't be fetched after all retries raises
        InventoryQueryError: the scan would be incomplete.
        """
        if asset_type not in ASSET_TYPE_FLAGS:
            raise ValueError(f"Unknown inventory asset type: {asset_type}")

        args = [
            "inventory", ASSET_TYPE_FLAGS[asset_type],
            "--limit", str(limit),
            "--offset", str(offset),
        ]
        if locations:
            args.extend(["--location", ",".join(locations)])

        try:
            out = await self._exec(args, attempts=self.enc.retries)
        except EncCommandError as e:
            logger.error(
                "Inventory query failed, lookup command returned error | "
                + fields(cmd=" ".join(e.cmd), error=e.output.strip(), attempts=self.enc.retries)
            )
            raise InventoryQueryError(f"Inventory page {asset_type}@{offset} failed: {e}") from e

        response = self._parse(out, args)

        assets = []
        for serial, record in list(response.records().items()):
            addresses = self.bmc_addresses(record)
            if not addresses:
                self.metrics.incr_counter(["inventory", "assets_noip_enc"])
                continue
            assets.append(self._asset(serial, record, addresses, asset_type))

        self.metrics.incr_counter(["inventory", "assets_fetched_enc"], len(assets))
        return assets, response.end_of_assets or not response.records()

    async def query_by_serial(self, serials: list[str]) -> list[Asset]:
        """Look up serials. Returns exactly one asset per distinct serial requested.

        Serials the ENC has no reachable BMC for come back as placeholders
        with an empty address list.
        """
        pending = ReconciliationSet(serials)
        if not pending.requested:
            return []

        args = ["enc", "--serials", ",".join(pending.requested)]
        try:
            out = await self._exec(args)
        except EncCommandError as e:
            logger.error(
                "Inventory query failed, lookup command returned error | "
                + fields(cmd=" ".join(e.cmd), error=e.output.strip())
            )
            raise InventoryQueryError(f"Serial lookup failed: {e}") from e

        response = self._parse(out, args)
        if not response.records():
            logger.warning(
                "No assets returned by inventory for given serial(s) | "
                + fields(serials=",".join(pending.requested))
            )

        found = []
        for serial, record in list(response.records().items()):
            if not pending.was_requested(serial):
                logger.debug(f"ENC returned serial {serial} that was not requested, ignored")
                continue
            addresses = self.bmc_addresses(record)
            if not addresses:
                # Known but unreachable, left pending so it comes back as a placeholder
                self.metrics.incr_counter(["inventory", "assets_noip_enc"])
                continue
            if pending.discard(serial):
                found.append(self._asset(serial, record, addresses))

        placeholders = [Asset(serial=serial, ip_addresses=[]) for serial in pending.remaining()]
        if placeholders:
            logger.debug(f"{len(placeholders)} serial(s) without inventory attributes")

        assets = found + placeholders
        self.metrics.incr_counter(["inventory", "assets_fetched_enc"], len(assets))
        return assets

    async def query_by_ip(self, ips: list[str]) -> list[Asset]:
        """Look up BMC IPs. Returns one asset per distinct IP requested.

        IPs the ENC knows nothing about come back as bare assets carrying just
        that IP, which is still enough to reach the controller. A failed lookup
        is not fatal for the same reason.
        """
        pending = ReconciliationSet(ips)
        if not pending.requested:
            return []

        def bare(addresses: list[str]) -> list[Asset]:
            return [Asset(ip_addresses=[ip]) for ip in addresses]

        args = ["enc", "--ips", ",".join(pending.requested)]
        try:
            out = await self._exec(args)
        except EncCommandError as e:
            logger.warning(
                "Inventory query failed, lookup command returned error | "
                + fields(cmd=" ".join(e.cmd), error=e.output.strip())
            )
            return bare(list(pending.requested))

        response = self._parse(out, args)
        if not response.records():
            logger.debug(
                "No assets returned by inventory for given IP(s) | "
                + fields(ips=",".join(pending.requested))
            )

        found = []
        for serial, record in list(response.records().items()):
            addresses = self.bmc_addresses(record)
            if not addresses:
                self.metrics.incr_counter(["inventory", "assets_noip_enc"])
                continue
            matched = [ip for ip in addresses if ip in pending]
            if not matched:
                logger.debug(f"ENC returned {serial} for IPs that were not requested, ignored")
                continue
            for ip in matched:
                pending.discard(ip)
            found.append(self._asset(serial, record, addresses))

        assets = found + bare(pending.remaining())
        self.metrics.incr_counter(["inventory", "assets_fetched_enc"], len(assets))
        return assets

    async def set_chassis_installed(self, serials: list[str]) -> bool:
        """Mark chassis as installed in the inventory. Failures are only logged."""
        serials = [s for s in serials if s]
        if not serials:
            return False

        args = ["inventory", "--set-chassis-installed", ",".join(serials)]
        try:
            await self._exec(args)
        except EncCommandError as e:
            logger.warning(
                "Command to update chassis state returned error | "
                + fields(cmd=" ".join(e.cmd), error=e.output.strip())
            )
            return False
        return True

    # === Strategies ===

    async def iter_all(self) -> None:
        """Page through every asset type until the ENC reports the end.

        The stop event is checked between pages: the page in flight is
        always sent before the scan stops.
        """
        locations = self.config.locations
        limit = self.batch_size

        for asset_type in self.asset_types():
            offset = 0
            while True:
                async with timed_section("enc_page", asset_type=asset_type, offset=offset, limit=limit):
                    assets, end_of_assets = await self.query_by_offset(asset_type, offset, limit, locations)

                logger.debug(
                    "Assets retrieved | "
                    + fields(asset_type=asset_type, offset=offset, limit=limit,
                             count=len(assets), locations=",".join(locations))
                )
                if assets:
                    await self.send(assets)

                offset += limit

                if end_of_assets:
                    logger.debug(f"Reached end of {asset_type} assets")
                    break
                if self.stop_event.is_set():
                    logger.info(f"Interrupt received, {asset_type} scan stopped at offset {offset}")
                    return

            if self.stop_event.is_set():
                return

    async def iter_by_serial(self) -> None:
        await self.send(await self.query_by_serial(self.filter.serials))

    async def iter_by_ip(self) -> None:
        await self.send(await self.query_by_ip(self.filter.ips))
