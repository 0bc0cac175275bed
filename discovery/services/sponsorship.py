"""Sponsorship registry — marks operator-sponsored places.

Providers know nothing about sponsorship; the operator keeps a list of
`provider:place_id` keys with an optional expiry. The ranker decides
whether a sponsorship is still live.
"""

import logging
import threading
from datetime import datetime

from discovery.orchestrator.schemas import Place

logger = logging.getLogger(__name__)


class SponsorshipRegistry:
    def __init__(self, entries: dict[str, datetime | None] | None = None):
        self._entries: dict[str, datetime | None] = dict(entries or {})
        self._lock = threading.Lock()

    @staticmethod
    def key(provider: str, place_id: str) -> str:
        return f"{provider}:{place_id}"

    def register(self, provider: str, place_id: str, until: datetime | None = None) -> None:
        with self._lock:
            self._entries[self.key(provider, place_id)] = until
        logger.info("Sponsorship set | provider=%s | place=%s | until=%s", provider, place_id, until)

    def remove(self, provider: str, place_id: str) -> None:
        with self._lock:
            self._entries.pop(self.key(provider, place_id), None)

    def apply(self, places: list[Place]) -> list[Place]:
        """Return copies of sponsored places with the flag and expiry set."""
        with self._lock:
            entries = dict(self._entries)
        if not entries:
            return places

        stamped = []
        for place in places:
            key = self.key(place.source, place.id)
            if key in entries:
                place = place.model_copy(update={"is_sponsored": True, "sponsored_until": entries[key]})
            stamped.append(place)
        return stamped
