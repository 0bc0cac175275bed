"""Pydantic models for API input/output — shared across the engine.

Split into: request inputs, provider outcomes, and final API response.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ═══════════════ REQUEST ═══════════════

class SearchFilters(BaseModel):
    model_config = ConfigDict(frozen=True)

    budget: int | None = Field(default=None, ge=0, le=4)
    categories: list[str] = Field(default_factory=list)
    dietary: list[str] = Field(default_factory=list)


class SearchRequest(BaseModel):
    """One discovery call. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    radius_meters: int = Field(default=5000, ge=1, le=50000)
    prompt: str | None = None
    locale: Literal["en", "tr"] = "en"
    filters: SearchFilters | None = None


class NormalizedQuery(BaseModel):
    """Query normalizer output. Derived deterministically from a SearchRequest."""

    model_config = ConfigDict(frozen=True)

    keyword: str
    location_hint: str | None = None
    tags: tuple[str, ...] = ()
    price_tier: int | None = None
    tourism_intent: bool = False
    is_default: bool = False


# ═══════════════ PLACES ═══════════════

class Place(BaseModel):
    """A single place from any provider.

    Provider ids are not comparable across providers; dedup works on
    coordinates and names instead.
    """

    id: str
    name: str
    latitude: float
    longitude: float
    category: str = ""
    rating: float | None = Field(default=None, ge=0, le=5)
    review_count: int | None = Field(default=None, ge=0)
    price_level: int | None = Field(default=None, ge=0, le=4)
    address: str | None = None
    source: str = ""
    is_sponsored: bool = False
    sponsored_until: datetime | None = None
    photo_reference: str | None = None

    # Filled in by the ranker
    score: float | None = None
    distance_meters: float | None = None


# ═══════════════ PROVIDER OUTCOMES ═══════════════

class ProviderStatus(str, Enum):
    SUCCESS = "Success"
    RATE_LIMITED = "RateLimited"
    API_KEY_INVALID = "ApiKeyInvalid"
    TIMEOUT = "Timeout"
    NETWORK_ERROR = "NetworkError"
    NO_RESULTS = "NoResults"
    UNKNOWN_ERROR = "UnknownError"


class ProviderCallResult(BaseModel):
    """Classified outcome of exactly one provider call."""

    provider_name: str
    status: ProviderStatus
    items: list[Place] = Field(default_factory=list)
    count: int = 0
    http_status_code: int | None = None
    skipped_reason: str | None = None
    error_message: str | None = None
    elapsed_ms: int = 0

    @model_validator(mode="after")
    def _only_success_carries_items(self) -> ProviderCallResult:
        if self.items and self.status is not ProviderStatus.SUCCESS:
            raise ValueError(f"status {self.status.value} cannot carry items")
        if self.status is ProviderStatus.SUCCESS and not self.items:
            raise ValueError("Success requires at least one item")
        if self.count != len(self.items):
            raise ValueError("count must equal len(items)")
        return self

    @property
    def is_success(self) -> bool:
        return self.status is ProviderStatus.SUCCESS

    @classmethod
    def success(cls, provider: str, items: list[Place], **kw) -> ProviderCallResult:
        return cls(provider_name=provider, status=ProviderStatus.SUCCESS,
                   items=items, count=len(items), **kw)

    @classmethod
    def rate_limited(cls, provider: str, reason: str | None = None, **kw) -> ProviderCallResult:
        return cls(provider_name=provider, status=ProviderStatus.RATE_LIMITED,
                   skipped_reason=reason or "Rate limit exceeded", **kw)

    @classmethod
    def api_key_invalid(cls, provider: str, **kw) -> ProviderCallResult:
        return cls(provider_name=provider, status=ProviderStatus.API_KEY_INVALID,
                   skipped_reason="API key is invalid or missing", **kw)

    @classmethod
    def timeout(cls, provider: str, **kw) -> ProviderCallResult:
        return cls(provider_name=provider, status=ProviderStatus.TIMEOUT,
                   skipped_reason="Timeout", **kw)

    @classmethod
    def network_error(cls, provider: str, **kw) -> ProviderCallResult:
        return cls(provider_name=provider, status=ProviderStatus.NETWORK_ERROR,
                   skipped_reason="Network error", **kw)

    @classmethod
    def no_results(cls, provider: str, **kw) -> ProviderCallResult:
        return cls(provider_name=provider, status=ProviderStatus.NO_RESULTS, **kw)

    @classmethod
    def unknown_error(cls, provider: str, **kw) -> ProviderCallResult:
        return cls(provider_name=provider, status=ProviderStatus.UNKNOWN_ERROR,
                   skipped_reason="Unknown error", **kw)


class CostGuardUsage(BaseModel):
    provider: str
    daily_count: int = 0
    daily_cap: int = 0
    rpm_count: int = 0
    rpm_cap: int = 0
    estimated_cost_usd: float = 0.0
    degraded: bool = False


# ═══════════════ FINAL API RESPONSE ═══════════════

AttemptPhase = Literal["primary", "secondary", "widened_primary", "widened_secondary"]


class SearchAttempt(BaseModel):
    """One entry of the per-call attempt log."""
    provider: str
    phase: AttemptPhase
    status: ProviderStatus
    count: int = 0
    radius_meters: int
    keyword: str
    http_status_code: int | None = None
    skipped_reason: str | None = None
    elapsed_ms: int = 0


class DiscoveryResult(BaseModel):
    """What an orchestration computes and what the cache stores."""
    places: list[Place] = Field(default_factory=list)
    attempts: list[SearchAttempt] = Field(default_factory=list)
    radius_meters: int = 0
    widened: bool = False


class DiscoveryResponse(DiscoveryResult):
    """Final response returned by the engine."""
    query: NormalizedQuery
    cache_hit: bool = False
    coalesced: bool = False
