"""Hybrid Orchestrator — one discovery request from cache check to ranked list.

States:
  START → PRIMARY_ATTEMPT → EVALUATE_PRIMARY → [SECONDARY_ATTEMPT]
        → EVALUATE_COMBINED → [WIDEN_AND_RETRY] → FINALIZE → CACHE_WRITE → DONE

Provider calls are sequential: each step depends on the previous outcome,
and every call goes through the cost guard first. Every attempt (including
cost guard denials) lands in the attempt log returned with the response.
No provider failure is fatal; the worst case is an empty, briefly cached result.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum

from discovery.config import ConfigurationError, Settings, settings
from discovery.integrations.geoapify import GeoapifyClient
from discovery.integrations.google_places import GooglePlacesClient
from discovery.integrations.opentripmap import OpenTripMapClient
from discovery.integrations.transport import HttpProviderTransport, ProviderClient, ProviderTransport
from discovery.orchestrator.schemas import (
    DiscoveryResponse,
    DiscoveryResult,
    NormalizedQuery,
    Place,
    ProviderCallResult,
    ProviderStatus,
    SearchAttempt,
    SearchRequest,
)
from discovery.pipelines.merger import PlaceMerger
from discovery.pipelines.query_normalizer import broaden_keywords, normalize
from discovery.pipelines.ranker import PlaceRanker, RankingWeights
from discovery.services.cache import CacheOutcome, CacheService, cache_service
from discovery.services.cost_guard import CostGuard
from discovery.services.provider_adapter import ProviderAdapter
from discovery.services.sponsorship import SponsorshipRegistry

logger = logging.getLogger(__name__)


class SearchState(str, Enum):
    START = "START"
    PRIMARY_ATTEMPT = "PRIMARY_ATTEMPT"
    EVALUATE_PRIMARY = "EVALUATE_PRIMARY"
    SECONDARY_ATTEMPT = "SECONDARY_ATTEMPT"
    EVALUATE_COMBINED = "EVALUATE_COMBINED"
    WIDEN_AND_RETRY = "WIDEN_AND_RETRY"
    FINALIZE = "FINALIZE"
    CACHE_WRITE = "CACHE_WRITE"
    DONE = "DONE"


@dataclass
class _SearchRun:
    """Mutable state of one orchestration. Never shared between requests."""
    request: SearchRequest
    query: NormalizedQuery
    radius_meters: int
    keyword: str
    widened: bool = False
    attempts: list[SearchAttempt] = field(default_factory=list)
    primary_result: ProviderCallResult | None = None
    candidates: list[Place] = field(default_factory=list)
    merged: list[Place] = field(default_factory=list)
    places: list[Place] = field(default_factory=list)


class HybridOrchestrator:
    """Sequences cost guard checks, provider calls, fallback, widening, merge and rank."""

    def __init__(
        self,
        adapters: dict[str, ProviderAdapter],
        cost_guard: CostGuard,
        cache: CacheService,
        cfg: Settings | None = None,
        sponsorships: SponsorshipRegistry | None = None,
        merger: PlaceMerger | None = None,
        ranker: PlaceRanker | None = None,
    ):
        self.cfg = cfg if cfg is not None else settings
        self.primary, self.secondary = self.cfg.provider_order
        missing = [p for p in (self.primary, self.secondary) if p not in adapters]
        if missing:
            raise ConfigurationError(f"No adapter for provider(s): {', '.join(missing)}")

        self.adapters = dict(adapters)
        self.cost_guard = cost_guard
        self.cache = cache
        self.sponsorships = sponsorships if sponsorships is not None else SponsorshipRegistry(self.cfg.sponsorships)
        self.merger = merger or PlaceMerger(
            dedup_meters=self.cfg.dedup_meters,
            name_similarity=self.cfg.dedup_name_similarity,
            provider_priority=_priority(self.primary, self.secondary, self.adapters),
        )
        self.ranker = ranker or PlaceRanker(RankingWeights.from_settings(self.cfg))

    async def discover(self, request: SearchRequest) -> DiscoveryResponse:
        """START: normalize, fingerprint, then cache-aside around the provider chain."""
        start = time.time()
        query = normalize(request.prompt, request.locale, request.filters)
        key = self.cache.make_key(query, request.latitude, request.longitude, request.radius_meters)
        has_prompt = bool((request.prompt or "").strip())

        async def compute() -> dict:
            result = await self._run(request, query)
            return result.model_dump(mode="json")

        def ttl_for(value: dict) -> int:
            return self.cache.get_ttl(is_empty=not value.get("places"), has_prompt=has_prompt)

        value, outcome = await self.cache.get_or_compute(key, compute, ttl_for)

        response = DiscoveryResponse(
            **value,
            query=query,
            cache_hit=outcome is CacheOutcome.HIT,
            coalesced=outcome is CacheOutcome.COALESCED,
        )
        logger.info(
            "Discovery done | outcome=%s | places=%d | attempts=%d | widened=%s | %dms",
            outcome.value, len(response.places), len(response.attempts),
            response.widened, int((time.time() - start) * 1000),
        )
        return response

    def needs_fallback(self, result: ProviderCallResult, query: NormalizedQuery) -> bool:
        return (
            result.status is not ProviderStatus.SUCCESS
            or result.count < self.cfg.min_primary_results
            or query.tourism_intent
        )

    def widened_radius(self, radius_meters: int) -> int:
        return min(self.cfg.max_radius_meters, int(round(radius_meters * self.cfg.radius_widening_factor)))

    # ═══════════════ STATE MACHINE ═══════════════

    async def _run(self, request: SearchRequest, query: NormalizedQuery) -> DiscoveryResult:
        run = _SearchRun(
            request=request,
            query=query,
            radius_meters=request.radius_meters,
            keyword=_search_keyword(query),
        )
        state = SearchState.PRIMARY_ATTEMPT
        while state is not SearchState.CACHE_WRITE:
            logger.debug("State | %s | radius=%d", state.value, run.radius_meters)
            state = await self._step(state, run)

        return DiscoveryResult(
            places=run.places,
            attempts=run.attempts,
            radius_meters=run.radius_meters,
            widened=run.widened,
        )

    async def _step(self, state: SearchState, run: _SearchRun) -> SearchState:
        if state is SearchState.PRIMARY_ATTEMPT:
            result = await self._attempt(run, self.primary, "primary")
            run.primary_result = result
            run.candidates = result.items[: self.cfg.primary_take]
            return SearchState.EVALUATE_PRIMARY

        if state is SearchState.EVALUATE_PRIMARY:
            if self.needs_fallback(run.primary_result, run.query):
                return SearchState.SECONDARY_ATTEMPT
            run.merged = self.merger.merge(run.candidates)
            return SearchState.EVALUATE_COMBINED

        if state is SearchState.SECONDARY_ATTEMPT:
            result = await self._attempt(run, self.secondary, "secondary")
            run.merged = self.merger.merge(run.candidates, result.items)
            return SearchState.EVALUATE_COMBINED

        if state is SearchState.EVALUATE_COMBINED:
            if run.merged:
                return SearchState.FINALIZE
            if not run.widened and run.radius_meters < self.cfg.max_radius_meters:
                return SearchState.WIDEN_AND_RETRY
            return SearchState.FINALIZE

        if state is SearchState.WIDEN_AND_RETRY:
            previous = run.radius_meters
            run.radius_meters = self.widened_radius(previous)
            run.keyword = broaden_keywords(run.query.keyword)
            run.widened = True
            logger.info(
                "Widening | radius=%d->%d | keyword=%s", previous, run.radius_meters, run.keyword,
            )
            return SearchState.PRIMARY_ATTEMPT

        if state is SearchState.FINALIZE:
            run.places = self._finalize(run)
            return SearchState.CACHE_WRITE

        raise ValueError(f"Unexpected state: {state}")

    async def _attempt(self, run: _SearchRun, provider: str, role: str) -> ProviderCallResult:
        """One cost-guarded provider call, appended to the attempt log."""
        phase = f"widened_{role}" if run.widened else role
        admitted, reason = self.cost_guard.try_admit(provider)
        if admitted:
            result = await self.adapters[provider].call(
                run.request.latitude, run.request.longitude, run.radius_meters, run.keyword,
            )
        else:
            # Denial is handled like a timeout: no items, fallback continues
            result = ProviderCallResult.rate_limited(provider, reason=reason)

        run.attempts.append(SearchAttempt(
            provider=provider,
            phase=phase,
            status=result.status,
            count=result.count,
            radius_meters=run.radius_meters,
            keyword=run.keyword,
            http_status_code=result.http_status_code,
            skipped_reason=result.skipped_reason,
            elapsed_ms=result.elapsed_ms,
        ))
        return result

    def _finalize(self, run: _SearchRun) -> list[Place]:
        places = self.sponsorships.apply(run.merged)

        price_tier = run.query.price_tier
        if price_tier is not None:
            places = [p for p in places if p.price_level is None or p.price_level <= price_tier]

        ranked = self.ranker.rank(places, run.request.latitude, run.request.longitude)
        return ranked[: self.cfg.max_results]


# ═══════════════ WIRING ═══════════════

def build_clients(cfg: Settings) -> dict[str, ProviderClient]:
    return {
        "google": GooglePlacesClient(cfg.google_places_api_key, cfg.google_places_url),
        "opentripmap": OpenTripMapClient(cfg.opentripmap_api_key, cfg.opentripmap_url, cfg.opentripmap_kinds),
        "geoapify": GeoapifyClient(cfg.geoapify_api_key, cfg.geoapify_url),
    }


def build_orchestrator(
    cfg: Settings | None = None,
    cache: CacheService | None = None,
    transport: ProviderTransport | None = None,
    cost_guard: CostGuard | None = None,
) -> HybridOrchestrator:
    """Wire clients, adapters, cost guard and cache from configuration."""
    cfg = cfg if cfg is not None else settings
    clients = build_clients(cfg)
    if transport is None:
        transport = HttpProviderTransport(clients)

    adapters = {
        name: ProviderAdapter(name, transport, client.parse_places, cfg.provider_timeout(name))
        for name, client in clients.items()
    }
    return HybridOrchestrator(
        adapters,
        cost_guard if cost_guard is not None else CostGuard.from_settings(cfg),
        cache if cache is not None else cache_service,
        cfg,
    )


def _search_keyword(query: NormalizedQuery) -> str:
    if query.location_hint:
        return f"{query.keyword} {query.location_hint}"
    return query.keyword


def _priority(primary: str, secondary: str, adapters: dict[str, ProviderAdapter]) -> tuple[str, ...]:
    rest = sorted(name for name in adapters if name not in (primary, secondary))
    return (primary, secondary, *rest)
