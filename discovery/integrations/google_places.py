"""Google Places API (New) — Text Search integration.

Docs: https://developers.google.com/maps/documentation/places/web-service/text-search
Endpoint: POST https://places.googleapis.com/v1/places:searchText
"""

import logging
from typing import Any

from discovery.integrations.transport import ProviderRequest
from discovery.orchestrator.schemas import Place

logger = logging.getLogger(__name__)

FIELD_MASK = ",".join([
    "places.id",
    "places.displayName",
    "places.location",
    "places.rating",
    "places.userRatingCount",
    "places.priceLevel",
    "places.types",
    "places.formattedAddress",
    "places.photos",
])

PRICE_LEVELS = {
    "PRICE_LEVEL_FREE": 0,
    "PRICE_LEVEL_INEXPENSIVE": 1,
    "PRICE_LEVEL_MODERATE": 2,
    "PRICE_LEVEL_EXPENSIVE": 3,
    "PRICE_LEVEL_VERY_EXPENSIVE": 4,
}

MAX_BIAS_RADIUS = 50000


class GooglePlacesClient:
    """Request builder and payload parser for Google Text Search."""

    name = "google"

    def __init__(self, api_key: str, url: str, max_results: int = 20):
        self.api_key = api_key
        self.url = url
        self.max_results = max_results

    def build_request(
        self, latitude: float, longitude: float, radius_meters: int, keyword: str,
    ) -> ProviderRequest:
        body = {
            "textQuery": keyword,
            "maxResultCount": min(self.max_results, 20),
            "locationBias": {
                "circle": {
                    "center": {"latitude": latitude, "longitude": longitude},
                    "radius": float(min(radius_meters, MAX_BIAS_RADIUS)),
                },
            },
        }
        return ProviderRequest(
            method="POST",
            url=self.url,
            json=body,
            headers={"X-Goog-Api-Key": self.api_key, "X-Goog-FieldMask": FIELD_MASK},
        )

    def parse_places(self, payload: Any) -> list[Place]:
        """Parse a searchText response. An empty object means no matches."""
        if not isinstance(payload, dict):
            raise TypeError(f"expected object, got {type(payload).__name__}")
        items = payload.get("places", [])
        if not isinstance(items, list):
            raise TypeError("'places' is not a list")
        places = []
        for item in items:
            try:
                places.append(self._parse_place(item))
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.debug("Google skipped malformed place | id=%s | %s", _safe_id(item), str(e)[:200])
        return places

    def _parse_place(self, item: dict) -> Place:
        location = item["location"]
        name = (item["displayName"]["text"] or "").strip()
        if not item["id"] or not name:
            raise ValueError("place without id or name")
        types = item.get("types") or []
        photos = item.get("photos") or []
        return Place(
            id=item["id"],
            name=name,
            latitude=float(location["latitude"]),
            longitude=float(location["longitude"]),
            category=types[0] if types else "",
            rating=item.get("rating"),
            review_count=item.get("userRatingCount"),
            price_level=PRICE_LEVELS.get(item.get("priceLevel", "")),
            address=item.get("formattedAddress"),
            source=self.name,
            photo_reference=photos[0].get("name") if photos else None,
        )


def _safe_id(item: Any) -> Any:
    return item.get("id") if isinstance(item, dict) else None
