"""Shared test fixtures and configuration."""

import os

import pytest

# Provider keys must exist before discovery.config builds its singleton
os.environ.setdefault("GOOGLE_PLACES_API_KEY", "test-google-key")
os.environ.setdefault("OPENTRIPMAP_API_KEY", "test-otm-key")

from discovery.config import Settings  # noqa: E402
from discovery.orchestrator.schemas import Place  # noqa: E402
from discovery.services.cache import CacheService  # noqa: E402


@pytest.fixture
def cfg():
    """Isolated settings: two configured providers, default thresholds."""
    return Settings(
        _env_file=None,
        google_places_api_key="test-google-key",
        opentripmap_api_key="test-otm-key",
        geoapify_api_key="",
        primary_provider="google",
        secondary_provider="opentripmap",
        sponsorships={},
    )


@pytest.fixture
def cache():
    """Fresh cache service without Redis."""
    return CacheService(max_entries=256)


@pytest.fixture
def make_place():
    def _make(
        place_id: str = "p1",
        name: str = "Cafe Nero",
        latitude: float = 41.0,
        longitude: float = 29.0,
        source: str = "google",
        **kwargs,
    ) -> Place:
        return Place(id=place_id, name=name, latitude=latitude, longitude=longitude, source=source, **kwargs)
    return _make


@pytest.fixture
def sample_google_response():
    """Sample Places API (New) searchText response."""
    return {
        "places": [
            {
                "id": "ChIJ1",
                "displayName": {"text": "Hafız Mustafa 1864", "languageCode": "tr"},
                "location": {"latitude": 41.0106, "longitude": 28.9744},
                "rating": 4.5,
                "userRatingCount": 12034,
                "priceLevel": "PRICE_LEVEL_MODERATE",
                "types": ["bakery", "cafe", "food"],
                "formattedAddress": "Hobyar, Hamidiye Cd. No:84, Fatih/İstanbul",
                "photos": [{"name": "places/ChIJ1/photos/abc"}],
            },
            {
                "id": "ChIJ2",
                "displayName": {"text": "Pudding Shop"},
                "location": {"latitude": 41.0086, "longitude": 28.9772},
                "types": ["restaurant"],
            },
        ],
    }


@pytest.fixture
def sample_otm_response():
    """Sample OpenTripMap radius response (GeoJSON)."""
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "id": "1",
                "geometry": {"type": "Point", "coordinates": [28.9768, 41.0054]},
                "properties": {"xid": "W123", "name": "Hagia Sophia", "rate": "3h", "kinds": "religion,museums"},
            },
            {
                "type": "Feature",
                "id": "2",
                "geometry": {"type": "Point", "coordinates": [28.9802, 41.0082]},
                "properties": {"xid": "N456", "name": "", "rate": 1, "kinds": "interesting_places"},
            },
        ],
    }


@pytest.fixture
def sample_geoapify_response():
    """Sample Geoapify v2 places response."""
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": {
                    "place_id": "51abc",
                    "name": "Karaköy Güllüoğlu",
                    "lat": 41.0227,
                    "lon": 28.9770,
                    "categories": ["catering", "catering.cafe"],
                    "formatted": "Kemankeş Karamustafa Paşa, Karaköy, İstanbul",
                },
                "geometry": {"type": "Point", "coordinates": [28.9770, 41.0227]},
            },
        ],
    }
