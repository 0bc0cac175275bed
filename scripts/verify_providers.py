#!/usr/bin/env python3
"""Real provider verification script — run outside sandbox with actual API keys.

Usage:
  1. Fill in GOOGLE_PLACES_API_KEY, OPENTRIPMAP_API_KEY (and optionally GEOAPIFY_API_KEY) in .env
  2. Run: python scripts/verify_providers.py

Steps:
  Step 1: Verify .env configuration
  Step 2: One adapter call per configured provider
  Step 3: Full discovery through the orchestrator
"""

import asyncio
import sys

from discovery.config import KNOWN_PROVIDERS, ConfigurationError, settings
from discovery.orchestrator.engine import build_orchestrator
from discovery.orchestrator.schemas import SearchRequest
from discovery.services.cache import CacheService

# Sultanahmet, Istanbul
LATITUDE, LONGITUDE = 41.0054, 28.9768


def step_header(n: int, title: str) -> None:
    print(f"\n{'='*60}")
    print(f"  Step {n}: {title}")
    print(f"{'='*60}\n")


def ok(msg: str) -> None:
    print(f"  ✅ {msg}")


def fail(msg: str) -> None:
    print(f"  ❌ {msg}")


def info(msg: str) -> None:
    print(f"  ℹ️  {msg}")


async def step1_verify_env():
    step_header(1, "Verify .env Configuration")

    for provider in KNOWN_PROVIDERS:
        key = settings.provider_api_key(provider)
        if key:
            ok(f"{provider}: key set ({key[:6]}...)")
        else:
            info(f"{provider}: no key")

    ok(f"Primary: {settings.primary_provider} | Secondary: {settings.secondary_provider}")
    try:
        settings.validate_providers()
    except ConfigurationError as e:
        fail(str(e))
        return False
    return True


async def step2_test_providers(orchestrator):
    step_header(2, "One call per configured provider")
    passed = True
    for provider in settings.provider_order:
        adapter = orchestrator.adapters[provider]
        result = await adapter.call(LATITUDE, LONGITUDE, 1500, "restaurant cafe")
        line = f"{provider}: {result.status.value} | count={result.count} | http={result.http_status_code} | {result.elapsed_ms}ms"
        if result.is_success:
            ok(line)
            for place in result.items[:3]:
                print(f"    - {place.name[:50]} | rating={place.rating}")
        else:
            fail(f"{line} | {result.skipped_reason or ''} {result.error_message or ''}")
            passed = False
    return passed


async def step3_discover(orchestrator):
    step_header(3, "Full discovery")
    request = SearchRequest(latitude=LATITUDE, longitude=LONGITUDE, prompt="müze ve kafe", locale="tr")
    info(f"Prompt: '{request.prompt}' radius={request.radius_meters}m")

    result = await orchestrator.discover(request)
    for attempt in result.attempts:
        print(f"    - {attempt.phase}: {attempt.provider} {attempt.status.value} count={attempt.count}")

    if result.places:
        ok(f"Discovery complete: {len(result.places)} places (keyword='{result.query.keyword}')")
        for place in result.places[:5]:
            print(f"    - {place.name[:50]} | {place.source} | score={place.score}")
        return True
    fail("No places returned")
    return False


async def main():
    print("\n🗺️  Hybrid Discovery — Real Provider Verification")
    print("=" * 60)

    results = {1: await step1_verify_env()}
    if not results[1]:
        print("\n⚠️  Provider configuration is incomplete. Fill in .env and re-run.\n")
        sys.exit(1)

    orchestrator = build_orchestrator(settings, CacheService())
    results[2] = await step2_test_providers(orchestrator)
    results[3] = await step3_discover(orchestrator)

    # Summary
    print(f"\n{'='*60}")
    print("  SUMMARY")
    print(f"{'='*60}")
    for step_n, passed in sorted(results.items()):
        status = "✅ PASS" if passed else "❌ FAIL"
        print(f"  Step {step_n}: {status}")

    total_passed = sum(1 for v in results.values() if v)
    print(f"\n  {total_passed}/{len(results)} steps passed")
    print(f"{'='*60}\n")

    sys.exit(0 if all(results.values()) else 1)


if __name__ == "__main__":
    asyncio.run(main())
