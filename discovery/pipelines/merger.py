"""Merger / Deduplicator.

Two candidates are the same physical place when they lie within the dedup
distance AND their normalized names are similar. The preferred record wins
whole; fields are never mixed between records.
"""

import logging
import re
import unicodedata
from difflib import SequenceMatcher

from haversine import Unit, haversine

from discovery.orchestrator.schemas import Place

logger = logging.getLogger(__name__)

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")
MIN_CONTAINMENT_LENGTH = 4


def normalize_name(name: str) -> str:
    """Casefold, strip accents and punctuation: 'Kadıköy Balıkçısı!' -> 'kadikoy balikcisi'."""
    text = (name or "").replace("ı", "i").replace("İ", "i").casefold()
    text = unicodedata.normalize("NFKD", text)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = _NON_WORD.sub(" ", text)
    return _WHITESPACE.sub(" ", text).strip()


def names_similar(a: str, b: str, threshold: float) -> bool:
    na, nb = normalize_name(a), normalize_name(b)
    if not na or not nb:
        return False
    if na == nb:
        return True
    shorter, longer = sorted((na, nb), key=len)
    if len(shorter) >= MIN_CONTAINMENT_LENGTH and shorter in longer:
        return True
    return SequenceMatcher(None, na, nb).ratio() >= threshold


def distance_meters(a: Place, b: Place) -> float:
    return haversine((a.latitude, a.longitude), (b.latitude, b.longitude), unit=Unit.METERS)


class PlaceMerger:
    """Combines provider candidate lists into one duplicate-free list."""

    def __init__(
        self,
        dedup_meters: float = 70.0,
        name_similarity: float = 0.7,
        provider_priority: tuple[str, ...] = ("google", "opentripmap", "geoapify"),
    ):
        self.dedup_meters = dedup_meters
        self.name_similarity = name_similarity
        self.provider_priority = tuple(provider_priority)

    def is_duplicate(self, a: Place, b: Place) -> bool:
        return (
            distance_meters(a, b) <= self.dedup_meters
            and names_similar(a.name, b.name, self.name_similarity)
        )

    def merge(self, *candidate_lists: list[Place]) -> list[Place]:
        """Merge any number of lists. Membership does not depend on input order."""
        candidates = [place for places in candidate_lists for place in places]
        candidates.sort(key=self._preference)

        kept: list[Place] = []
        for candidate in candidates:
            if any(self.is_duplicate(existing, candidate) for existing in kept):
                continue
            kept.append(candidate)

        logger.info("Merged | candidates=%d | kept=%d", len(candidates), len(kept))
        return kept

    def _preference(self, place: Place) -> tuple:
        try:
            priority = self.provider_priority.index(place.source)
        except ValueError:
            priority = len(self.provider_priority)
        return (
            priority,
            place.rating is None,
            -(place.rating or 0.0),
            -(place.review_count or 0),
            normalize_name(place.name),
            place.id,
        )
