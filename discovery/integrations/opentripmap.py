"""OpenTripMap places-by-radius integration (GeoJSON).

Docs: https://dev.opentripmap.org/docs
Endpoint: GET https://api.opentripmap.com/0.1/en/places/radius
"""

import logging
from typing import Any

from discovery.integrations.transport import ProviderRequest
from discovery.orchestrator.schemas import Place

logger = logging.getLogger(__name__)

# Canonical tag -> OpenTripMap kind
KIND_MAP = {
    "restaurant": "restaurants",
    "cafe": "cafes",
    "bakery": "foods",
    "dessert": "foods",
    "breakfast": "cafes",
    "bar": "bars,pubs",
    "pizza": "fast_food",
    "burger": "fast_food",
    "kebab": "fast_food",
    "museum": "museums",
    "historic": "historic",
    "tourist_attraction": "interesting_places",
    "point_of_interest": "interesting_places",
    "park": "gardens_and_parks",
    "art_gallery": "museums",
    "mosque": "religion",
}

# OpenTripMap "rate" is a popularity tier (1..3, optionally suffixed "h").
RATE_TO_RATING = {1: 3.0, 2: 4.0, 3: 5.0}


class OpenTripMapClient:
    """Request builder and payload parser for OpenTripMap radius search."""

    name = "opentripmap"

    def __init__(self, api_key: str, url: str, default_kinds: str, limit: int = 50):
        self.api_key = api_key
        self.url = url
        self.default_kinds = default_kinds
        self.limit = limit

    def build_request(
        self, latitude: float, longitude: float, radius_meters: int, keyword: str,
    ) -> ProviderRequest:
        return ProviderRequest(
            method="GET",
            url=self.url,
            params={
                "lat": str(latitude),
                "lon": str(longitude),
                "radius": str(radius_meters),
                "kinds": self._kinds_for(keyword),
                "limit": str(self.limit),
                "format": "geojson",
                "apikey": self.api_key,
            },
        )

    def _kinds_for(self, keyword: str) -> str:
        kinds: list[str] = []
        for term in (keyword or "").split():
            for kind in KIND_MAP.get(term, "").split(","):
                if kind and kind not in kinds:
                    kinds.append(kind)
        return ",".join(kinds) if kinds else self.default_kinds

    def parse_places(self, payload: Any) -> list[Place]:
        if not isinstance(payload, dict):
            raise TypeError(f"expected object, got {type(payload).__name__}")
        features = payload.get("features", [])
        if not isinstance(features, list):
            raise TypeError("'features' is not a list")

        places = []
        unnamed = malformed = 0
        for feature in features:
            try:
                place = self._parse_feature(feature)
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                malformed += 1
                logger.debug("OpenTripMap skipped malformed feature | %s", str(e)[:200])
                continue
            # Unnamed features are map artefacts, not suggestions
            if place is None:
                unnamed += 1
                continue
            places.append(place)
        if unnamed or malformed:
            logger.debug("OpenTripMap skipped features | unnamed=%d | malformed=%d", unnamed, malformed)
        return places

    def _parse_feature(self, feature: dict) -> Place | None:
        props = feature.get("properties") or {}
        name = (props.get("name") or "").strip()
        if not name:
            return None
        lon, lat = feature["geometry"]["coordinates"][:2]
        lat, lon = float(lat), float(lon)
        kinds = props.get("kinds") or ""
        return Place(
            id=props.get("xid") or f"otm:{lat:.6f},{lon:.6f}",
            name=name,
            latitude=lat,
            longitude=lon,
            category=kinds.split(",")[0] if kinds else "tourist_attraction",
            rating=RATE_TO_RATING.get(_parse_rate(props.get("rate"))),
            source=self.name,
        )


def _parse_rate(rate: Any) -> int:
    try:
        return int(str(rate).rstrip("h") or 0)
    except ValueError:
        return 0
