"""Application configuration loaded from environment variables."""

from datetime import datetime

from pydantic_settings import BaseSettings

KNOWN_PROVIDERS = ("google", "opentripmap", "geoapify")


class ConfigurationError(RuntimeError):
    """Raised at startup when provider configuration cannot work."""


class Settings(BaseSettings):
    """Central configuration — reads from environment / .env file."""

    # Providers
    primary_provider: str = "google"
    secondary_provider: str = "opentripmap"

    google_places_api_key: str = ""
    google_places_url: str = "https://places.googleapis.com/v1/places:searchText"
    opentripmap_api_key: str = ""
    opentripmap_url: str = "https://api.opentripmap.com/0.1/en/places/radius"
    opentripmap_kinds: str = "interesting_places,foods,cultural,historic"
    geoapify_api_key: str = ""
    geoapify_url: str = "https://api.geoapify.com/v2/places"

    # Per-provider timeouts (seconds)
    google_timeout_seconds: float = 8.0
    opentripmap_timeout_seconds: float = 5.0
    geoapify_timeout_seconds: float = 5.0

    # Cost guard caps
    google_daily_cap: int = 4000
    google_rpm_cap: int = 60
    google_cost_per_call_usd: float = 0.032
    opentripmap_daily_cap: int = 5000
    opentripmap_rpm_cap: int = 120
    opentripmap_cost_per_call_usd: float = 0.0
    geoapify_daily_cap: int = 3000
    geoapify_rpm_cap: int = 300
    geoapify_cost_per_call_usd: float = 0.0
    degrade_threshold_pct: float = 0.85

    # Hybrid search
    min_primary_results: int = 25
    primary_take: int = 40
    dedup_meters: float = 70.0
    dedup_name_similarity: float = 0.7
    default_radius_meters: int = 5000
    max_radius_meters: int = 12000
    radius_widening_factor: float = 2.0
    max_results: int = 50

    # Ranking
    rank_weight_rating: float = 0.5
    rank_weight_reviews: float = 0.2
    rank_weight_distance: float = 0.3
    rank_distance_scale_meters: float = 1500.0
    rank_review_saturation: int = 500
    sponsorship_boost: float = 0.1
    sponsorship_boost_cap: float = 0.15

    # "provider:place_id" -> sponsored until (None = open-ended)
    sponsorships: dict[str, datetime | None] = {}

    # Redis
    redis_url: str = "redis://localhost:6379"

    # Cache TTLs (seconds)
    cache_ttl_negative: int = 45
    cache_ttl_nearby: int = 1800            # 30 minutes
    cache_ttl_prompt: int = 900             # 15 minutes
    cache_lock_ttl_seconds: int = 30
    cache_max_entries: int = 1024

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    allowed_origins: str = "*"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def provider_order(self) -> tuple[str, str]:
        return (self.primary_provider, self.secondary_provider)

    @property
    def cors_origins(self) -> list[str]:
        if self.allowed_origins == "*":
            return ["*"]
        return [o.strip() for o in self.allowed_origins.split(",")]

    def provider_api_key(self, provider: str) -> str:
        return getattr(self, f"{_setting_prefix(provider)}_api_key")

    def provider_timeout(self, provider: str) -> float:
        return getattr(self, f"{provider}_timeout_seconds")

    def validate_providers(self) -> None:
        """Fail fast when the configured provider chain cannot serve requests."""
        problems = []
        for provider in self.provider_order:
            if provider not in KNOWN_PROVIDERS:
                problems.append(f"unknown provider '{provider}'")
            elif not self.provider_api_key(provider):
                problems.append(f"missing API key for '{provider}'")
        if self.primary_provider == self.secondary_provider:
            problems.append("primary and secondary provider must differ")
        if self.max_radius_meters < 1 or self.radius_widening_factor <= 1:
            problems.append("radius widening needs max_radius_meters >= 1 and factor > 1")
        if problems:
            raise ConfigurationError("Invalid provider configuration: " + "; ".join(problems))


def _setting_prefix(provider: str) -> str:
    return "google_places" if provider == "google" else provider


settings = Settings()
