"""Hybrid Discovery — FastAPI application entry point.

Provides /api/discover (ranked nearby places) and /api/cost-guard diagnostics.
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from discovery.config import settings
from discovery.orchestrator.engine import build_orchestrator
from discovery.orchestrator.schemas import SearchRequest
from discovery.services.cache import cache_service

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
)
logger = logging.getLogger("discovery")

orchestrator = build_orchestrator(settings, cache_service)


# ═══════════════ LIFESPAN ═══════════════

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Fatal: every request would silently degrade with a broken provider chain
    settings.validate_providers()
    logger.info(
        "Discovery backend starting | primary=%s | secondary=%s",
        settings.primary_provider, settings.secondary_provider,
    )

    # Initialize Redis cache (graceful degradation if unavailable)
    redis_ok = await cache_service.connect()
    logger.info("Redis: %s", "connected" if redis_ok else "unavailable (using in-memory fallback)")

    yield

    await cache_service.disconnect()
    logger.info("Discovery backend shutting down")


# ═══════════════ APP ═══════════════

app = FastAPI(
    title="Hybrid Discovery API",
    description="Multi-provider nearby place discovery",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["POST", "OPTIONS", "GET"],
    allow_headers=["Content-Type"],
)


# ═══════════════ ENDPOINTS ═══════════════

@app.get("/health")
async def health():
    return {
        "status": "ok",
        "providers": list(settings.provider_order),
        "redis": cache_service.redis_available,
    }


@app.get("/api/cost-guard")
async def cost_guard_usage():
    """Per-provider quota usage (diagnostics only)."""
    snapshot = orchestrator.cost_guard.snapshot()
    return {name: usage.model_dump() for name, usage in snapshot.items()}


@app.post("/api/discover")
async def discover(request: Request):
    """Ranked, deduplicated places around a coordinate."""
    # Parse request
    try:
        body = await request.json()
    except Exception:
        return JSONResponse(status_code=400, content={"error": "Invalid request format."})

    try:
        search_req = SearchRequest.model_validate(body)
    except ValidationError as e:
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid search request.", "details": e.errors(include_url=False, include_context=False)},
        )

    start = time.monotonic()
    try:
        result = await orchestrator.discover(search_req)
    except Exception as e:
        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.error("Discovery failed | %dms | %s", elapsed_ms, str(e)[:300])
        return JSONResponse(
            status_code=500,
            content={"error": "Discovery failed. Please try again later."},
        )

    elapsed_ms = int((time.monotonic() - start) * 1000)
    logger.info(
        "Discovery completed | places=%d | cache_hit=%s | %dms",
        len(result.places), result.cache_hit, elapsed_ms,
    )
    response_data = result.model_dump(mode="json")
    response_data["_pipeline"] = {"ms": elapsed_ms, "source": "hybrid-orchestrator"}
    return JSONResponse(content=response_data)
