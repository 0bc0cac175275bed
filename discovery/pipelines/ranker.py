"""Ranker — weighted score with a capped sponsorship boost.

base  = w_rating * rating/5
      + w_reviews * min(1, log1p(reviews) / log1p(saturation))
      + w_distance * exp(-distance / scale)
score = base + min(boost, cap) for places with a live sponsorship.

Because the boost never exceeds the cap, an organic place whose base score
beats a sponsored one by more than the cap always stays ahead of it.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from haversine import Unit, haversine

from discovery.config import Settings
from discovery.orchestrator.schemas import Place

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankingWeights:
    rating: float = 0.5
    reviews: float = 0.2
    distance: float = 0.3
    distance_scale_meters: float = 1500.0
    review_saturation: int = 500
    sponsorship_boost: float = 0.1
    sponsorship_boost_cap: float = 0.15

    @classmethod
    def from_settings(cls, cfg: Settings) -> "RankingWeights":
        return cls(
            rating=cfg.rank_weight_rating,
            reviews=cfg.rank_weight_reviews,
            distance=cfg.rank_weight_distance,
            distance_scale_meters=cfg.rank_distance_scale_meters,
            review_saturation=cfg.rank_review_saturation,
            sponsorship_boost=cfg.sponsorship_boost,
            sponsorship_boost_cap=cfg.sponsorship_boost_cap,
        )

    @property
    def effective_boost(self) -> float:
        return max(0.0, min(self.sponsorship_boost, self.sponsorship_boost_cap))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PlaceRanker:
    def __init__(
        self,
        weights: RankingWeights | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.weights = weights or RankingWeights()
        self._clock = clock

    def base_score(self, place: Place, distance: float) -> float:
        w = self.weights
        rating = max(0.0, min(place.rating or 0.0, 5.0)) / 5.0
        if place.review_count:
            confidence = min(1.0, math.log1p(place.review_count) / math.log1p(max(w.review_saturation, 1)))
        else:
            confidence = 0.0
        proximity = math.exp(-distance / w.distance_scale_meters) if w.distance_scale_meters > 0 else 0.0
        return w.rating * rating + w.reviews * confidence + w.distance * proximity

    def sponsorship_active(self, place: Place, now: datetime) -> bool:
        if not place.is_sponsored:
            return False
        if place.sponsored_until is None:
            return True
        until = place.sponsored_until
        if until.tzinfo is None:
            until = until.replace(tzinfo=timezone.utc)
        return until > now

    def rank(self, places: list[Place], latitude: float, longitude: float) -> list[Place]:
        """Score and sort. Returned copies carry score, distance and sponsorship marker."""
        now = self._clock()
        scored = []
        for place in places:
            distance = haversine((latitude, longitude), (place.latitude, place.longitude), unit=Unit.METERS)
            sponsored = self.sponsorship_active(place, now)
            score = self.base_score(place, distance)
            if sponsored:
                score += self.weights.effective_boost
            scored.append((score, distance, place.model_copy(update={
                "score": round(score, 6),
                "distance_meters": round(distance, 1),
                "is_sponsored": sponsored,
                "sponsored_until": place.sponsored_until if sponsored else None,
            })))

        scored.sort(key=lambda item: (-item[0], item[1], item[2].name.casefold(), item[2].id))
        logger.info("Ranked | places=%d | sponsored=%d", len(scored),
                    sum(1 for _, _, p in scored if p.is_sponsored))
        return [place for _, _, place in scored]
