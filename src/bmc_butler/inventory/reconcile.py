"""Track which requested identifiers an inventory query has answered."""
from typing import Iterable


class ReconciliationSet:
    """Ordered set of requested identifiers (serials or IPs).

    Seeded once from the request, identifiers are discarded as matching
    records are observed, and whatever remains is what the inventory
    could not answer for.
    """

    def __init__(self, identifiers: Iterable[str]):
        # dict keeps request order and collapses duplicates
        self._pending: dict[str, None] = {}
        for identifier in identifiers:
            identifier = identifier.strip()
            if identifier:
                self._pending[identifier] = None
        self._requested = tuple(self._pending)

    @property
    def requested(self) -> tuple[str, ...]:
        return self._requested

    def __contains__(self, identifier: str) -> bool:
        return identifier in self._pending

    def __len__(self) -> int:
        return len(self._pending)

    def was_requested(self, identifier: str) -> bool:
        return identifier in self._requested

    def discard(self, identifier: str) -> bool:
        """Mark an identifier as answered. Returns False if it was not pending."""
        return self._pending.pop(identifier, False) is None

    def remaining(self) -> list[str]:
        """Snapshot of the identifiers never answered, in request order."""
        return list(self._pending)
