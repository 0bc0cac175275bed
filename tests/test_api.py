"""End-to-end API tests — the FastAPI app over a scripted provider transport."""

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

import discovery.main as main
from discovery.config import ConfigurationError
from discovery.main import app
from discovery.orchestrator.engine import build_orchestrator
from discovery.services.cache import CacheService

from tests.fakes import FakeTransport, google_payload, otm_payload

BODY = {"latitude": 41.0054, "longitude": 28.9768, "prompt": "pizza"}


@pytest.fixture
def provider_transport():
    return FakeTransport({
        "google": httpx.Response(200, json=google_payload(30)),
        "opentripmap": httpx.Response(200, json=otm_payload(5)),
    })


@pytest.fixture
def orchestrator(cfg, provider_transport, monkeypatch):
    orch = build_orchestrator(cfg, CacheService(), provider_transport)
    monkeypatch.setattr(main, "orchestrator", orch)
    return orch


@pytest.fixture
async def client(orchestrator):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


class TestHealthEndpoint:
    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["providers"] == ["google", "opentripmap"]
        assert data["redis"] is False


class TestDiscoverEndpoint:
    @pytest.mark.asyncio
    async def test_discover(self, client):
        resp = await client.post("/api/discover", json=BODY)
        assert resp.status_code == 200
        data = resp.json()
        assert len(data["places"]) == 30
        assert data["query"]["keyword"] == "pizza"
        assert data["cache_hit"] is False
        assert data["attempts"][0]["provider"] == "google"
        assert data["attempts"][0]["status"] == "Success"

    @pytest.mark.asyncio
    async def test_place_fields(self, client):
        data = (await client.post("/api/discover", json=BODY)).json()
        place = data["places"][0]
        for field in ("id", "name", "latitude", "longitude", "category", "rating",
                      "price_level", "source", "is_sponsored", "sponsored_until",
                      "photo_reference", "score", "distance_meters"):
            assert field in place

    @pytest.mark.asyncio
    async def test_pipeline_metadata(self, client):
        """Response includes pipeline metadata."""
        data = (await client.post("/api/discover", json=BODY)).json()
        assert "_pipeline" in data
        assert "ms" in data["_pipeline"]

    @pytest.mark.asyncio
    async def test_second_call_served_from_cache(self, client, provider_transport):
        await client.post("/api/discover", json=BODY)
        data = (await client.post("/api/discover", json=BODY)).json()
        assert data["cache_hit"] is True
        assert len(provider_transport.calls) == 1

    @pytest.mark.asyncio
    async def test_fallback_visible_in_attempts(self, client, provider_transport):
        provider_transport.responses["google"] = httpx.Response(429)
        data = (await client.post("/api/discover", json=BODY)).json()
        assert [a["status"] for a in data["attempts"]] == ["RateLimited", "Success"]
        assert len(data["places"]) == 5

    @pytest.mark.asyncio
    async def test_turkish_prompt(self, client):
        resp = await client.post("/api/discover", json={
            **BODY, "prompt": "Kadıköy'de ucuz kebapçı istiyorum", "locale": "tr",
        })
        assert resp.status_code == 200
        query = resp.json()["query"]
        assert query["keyword"] == "kebab"
        assert query["location_hint"] == "Kadıköy"
        assert query["price_tier"] == 1


class TestInvalidInput:
    @pytest.mark.asyncio
    async def test_invalid_json(self, client):
        resp = await client.post(
            "/api/discover", content="not json", headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_latitude_out_of_range(self, client):
        resp = await client.post("/api/discover", json={**BODY, "latitude": 95})
        assert resp.status_code == 400
        assert resp.json()["details"][0]["loc"] == ["latitude"]

    @pytest.mark.asyncio
    async def test_missing_coordinates(self, client):
        resp = await client.post("/api/discover", json={"prompt": "pizza"})
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_unsupported_locale(self, client):
        resp = await client.post("/api/discover", json={**BODY, "locale": "de"})
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_budget_out_of_range(self, client):
        resp = await client.post("/api/discover", json={**BODY, "filters": {"budget": 9}})
        assert resp.status_code == 400


class TestCostGuardEndpoint:
    @pytest.mark.asyncio
    async def test_usage_counts_calls(self, client):
        await client.post("/api/discover", json=BODY)
        data = (await client.get("/api/cost-guard")).json()
        assert data["google"]["daily_count"] == 1
        assert data["opentripmap"]["daily_count"] == 0
        assert data["google"]["estimated_cost_usd"] == pytest.approx(0.032)


class TestStartup:
    @pytest.mark.asyncio
    async def test_missing_key_is_fatal(self, monkeypatch):
        monkeypatch.setattr(main.settings, "opentripmap_api_key", "")
        with pytest.raises(ConfigurationError):
            async with main.lifespan(app):
                pass
