"""Geoapify Places API integration.

Docs: https://apidocs.geoapify.com/docs/places/
Endpoint: GET https://api.geoapify.com/v2/places
"""

import logging
from typing import Any

from discovery.integrations.transport import ProviderRequest
from discovery.orchestrator.schemas import Place

logger = logging.getLogger(__name__)

CATEGORY_MAP = {
    "restaurant": "catering.restaurant",
    "cafe": "catering.cafe",
    "bakery": "catering.cafe",
    "breakfast": "catering.cafe",
    "dessert": "catering.ice_cream",
    "bar": "catering.bar,catering.pub",
    "pizza": "catering.restaurant.pizza",
    "burger": "catering.fast_food.burger",
    "kebab": "catering.restaurant.kebab",
    "turkish": "catering.restaurant.turkish",
    "seafood": "catering.restaurant.seafood",
    "sushi": "catering.restaurant.sushi",
    "museum": "entertainment.museum",
    "historic": "heritage,tourism.sights",
    "tourist_attraction": "tourism.attraction",
    "point_of_interest": "tourism.sights",
    "park": "leisure.park",
    "art_gallery": "entertainment.culture.gallery",
    "mosque": "religion.place_of_worship",
}

DEFAULT_CATEGORIES = "catering.restaurant"


class GeoapifyClient:
    """Request builder and payload parser for Geoapify Places."""

    name = "geoapify"

    def __init__(self, api_key: str, url: str, limit: int = 20):
        self.api_key = api_key
        self.url = url
        self.limit = limit

    def build_request(
        self, latitude: float, longitude: float, radius_meters: int, keyword: str,
    ) -> ProviderRequest:
        return ProviderRequest(
            method="GET",
            url=self.url,
            params={
                "categories": self._categories_for(keyword),
                "filter": f"circle:{longitude},{latitude},{radius_meters}",
                "bias": f"proximity:{longitude},{latitude}",
                "limit": str(self.limit),
                "apiKey": self.api_key,
            },
        )

    def _categories_for(self, keyword: str) -> str:
        cats: list[str] = []
        for term in (keyword or "").split():
            for cat in CATEGORY_MAP.get(term, "").split(","):
                if cat and cat not in cats:
                    cats.append(cat)
        return ",".join(cats) if cats else DEFAULT_CATEGORIES

    def parse_places(self, payload: Any) -> list[Place]:
        if not isinstance(payload, dict):
            raise TypeError(f"expected object, got {type(payload).__name__}")
        features = payload.get("features", [])
        if not isinstance(features, list):
            raise TypeError("'features' is not a list")

        places = []
        for feature in features:
            try:
                place = self._parse_feature(feature)
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.debug("Geoapify skipped malformed feature | %s", str(e)[:200])
                continue
            if place is not None:
                places.append(place)
        return places

    def _parse_feature(self, feature: dict) -> Place | None:
        props = feature["properties"]
        name = (props.get("name") or "").strip()
        if not name:
            return None
        lat, lon = float(props["lat"]), float(props["lon"])
        categories = props.get("categories") or []
        return Place(
            id=props.get("place_id") or f"geoapify:{lat:.6f},{lon:.6f}",
            name=name,
            latitude=lat,
            longitude=lon,
            category=categories[0] if categories else "",
            address=props.get("formatted"),
            source=self.name,
        )
