"""Test doubles and payload builders shared by the test modules."""

import asyncio
import fnmatch

import httpx


class FakeTransport:
    """Scripted provider transport.

    `responses` maps provider -> httpx.Response, exception, list of those
    (consumed in order, last one repeats) or callable(radius, keyword).
    """

    def __init__(self, responses: dict | None = None, delay: float = 0.0):
        self.responses = dict(responses or {})
        self.delay = delay
        self.calls: list[tuple[str, int, str]] = []

    async def __call__(self, provider, latitude, longitude, radius_meters, keyword, timeout):
        self.calls.append((provider, radius_meters, keyword))
        await asyncio.sleep(self.delay)

        outcome = self.responses.get(provider)
        if isinstance(outcome, list):
            outcome = outcome.pop(0) if len(outcome) > 1 else outcome[0]
        if callable(outcome) and not isinstance(outcome, httpx.Response):
            outcome = outcome(radius_meters, keyword)
        if isinstance(outcome, BaseException):
            raise outcome
        if outcome is None:
            return httpx.Response(200, json={})
        return outcome

    def providers_called(self) -> list[str]:
        return [provider for provider, _, _ in self.calls]


def google_payload(count: int, lat: float = 41.0054, lng: float = 28.9768) -> dict:
    """Google searchText response with `count` distinct places spread ~200m apart."""
    return {
        "places": [
            {
                "id": f"g{i}",
                "displayName": {"text": f"Google Place {i}"},
                "location": {"latitude": lat + i * 0.002, "longitude": lng},
                "rating": 4.0 + (i % 10) / 10,
                "userRatingCount": 100 + i,
                "types": ["restaurant"],
                "priceLevel": "PRICE_LEVEL_MODERATE",
                "formattedAddress": f"Street {i}, Istanbul",
            }
            for i in range(count)
        ],
    }


def otm_payload(count: int, lat: float = 41.0054, lng: float = 28.9768) -> dict:
    """OpenTripMap GeoJSON with `count` places offset east of the google ones."""
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [lng + 0.01 + i * 0.002, lat]},
                "properties": {"xid": f"N{i}", "name": f"Museum {i}", "rate": 3, "kinds": "museums,cultural"},
            }
            for i in range(count)
        ],
    }



class FakeRedis:
    """In-process stand-in for the redis.asyncio commands the cache uses."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def ping(self):
        return True

    async def get(self, key):
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl

    async def set(self, key, value, nx=False, px=None):
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    async def eval(self, script, numkeys, key, token):
        if self.store.get(key) == token:
            del self.store[key]
            return 1
        return 0

    async def scan_iter(self, match="*"):
        for key in list(self.store):
            if fnmatch.fnmatch(key, match):
                yield key

    async def delete(self, *keys):
        for key in keys:
            self.store.pop(key, None)

    async def aclose(self):
        pass
