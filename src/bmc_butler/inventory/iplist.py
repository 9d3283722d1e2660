"""IP list inventory source: the IPs given on the command line, nothing else."""
import logging

from ..errors import ConfigError
from .asset import Asset
from .base import InventorySource, Strategy

logger = logging.getLogger(__name__)


class IpListSource(InventorySource):
    """One bare asset per IP, no attribute lookups."""

    name = "iplist"

    def select_strategy(self) -> Strategy:
        if self.filter.serials:
            return self.iter_by_serial
        return self.iter_all

    async def iter_all(self) -> None:
        assets = [Asset(ip_addresses=[ip]) for ip in self.filter.ips]
        if not assets:
            logger.warning("IP list inventory used without any IPs")
        await self.send(assets)

    async def iter_by_ip(self) -> None:
        await self.iter_all()

    async def iter_by_serial(self) -> None:
        raise ConfigError("The iplist inventory source can't look up serials, use --ips or another source")
