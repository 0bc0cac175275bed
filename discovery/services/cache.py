"""Cache service with Redis backend and in-memory fallback.

Adaptive TTL by outcome (from config):
  - Empty result: 45s (negative cache)
  - Prompt search: 15 min
  - Nearby search (no prompt): 30 min

Stampede guard: at most one computation per key is in flight. Inside a
process, concurrent callers share one future; across processes, a Redis
SET NX lock elects the computing process and the others poll for its value.

Graceful degradation: if Redis is unavailable, uses cachetools.TLRUCache in-memory.
"""

import asyncio
import hashlib
import json
import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable

from cachetools import TLRUCache

from discovery.config import settings
from discovery.orchestrator.schemas import NormalizedQuery

logger = logging.getLogger(__name__)

LOCK_POLL_SECONDS = 0.05

_RELEASE_LOCK = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


class CacheOutcome(str, Enum):
    MISS = "miss"
    HIT = "hit"
    COALESCED = "coalesced"


@dataclass
class CacheEntry:
    value: dict
    ttl_seconds: int
    written_at: float = field(default_factory=time.time)


def _entry_expiry(_key: str, entry: CacheEntry, now: float) -> float:
    return now + entry.ttl_seconds


class CacheService:
    """Async cache with Redis primary, in-memory fallback and single-flight computation."""

    def __init__(
        self,
        redis_url: str | None = None,
        max_entries: int | None = None,
        lock_ttl_seconds: int | None = None,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.redis_url = redis_url or settings.redis_url
        self.lock_ttl_seconds = lock_ttl_seconds or settings.cache_lock_ttl_seconds
        self._redis = None
        self._fallback = TLRUCache(
            maxsize=max_entries or settings.cache_max_entries, ttu=_entry_expiry, timer=timer,
        )
        self._available = False
        self._inflight: dict[str, asyncio.Future] = {}

    @property
    def redis_available(self) -> bool:
        return self._available

    async def connect(self) -> bool:
        """Connect to Redis. Returns True on success."""
        try:
            import redis.asyncio as aioredis

            self._redis = aioredis.from_url(
                self.redis_url,
                decode_responses=True,
                socket_connect_timeout=3,
            )
            await self._redis.ping()
            self._available = True
            return True
        except Exception as e:
            logger.warning("Redis connection failed — using in-memory fallback: %s", str(e)[:100])
            self._redis = None
            self._available = False
            return False

    async def disconnect(self):
        """Close Redis connection."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
            self._available = False

    def make_key(
        self, query: NormalizedQuery, latitude: float, longitude: float, radius_meters: int,
    ) -> str:
        """Fingerprint of the effective query. Coordinates rounded to ~100m."""
        content = json.dumps(
            {
                "q": query.model_dump(mode="json"),
                "lat": round(latitude, 3),
                "lng": round(longitude, 3),
                "r": radius_meters,
            },
            sort_keys=True,
            ensure_ascii=False,
        )
        return f"dq:{hashlib.sha256(content.encode()).hexdigest()[:32]}"

    def get_ttl(self, is_empty: bool, has_prompt: bool) -> int:
        """TTL in seconds chosen by outcome."""
        if is_empty:
            return settings.cache_ttl_negative
        return settings.cache_ttl_prompt if has_prompt else settings.cache_ttl_nearby

    async def get(self, key: str) -> dict | None:
        """Read from cache. Returns None on miss."""
        # Try Redis
        if self._available and self._redis:
            try:
                data = await self._redis.get(key)
                if data:
                    logger.info("Cache HIT (Redis) | key=%s", key[:20])
                    return json.loads(data)
            except Exception as e:
                logger.debug("Redis GET error: %s", str(e)[:100])

        # Try in-memory fallback
        entry = self._fallback.get(key)
        if entry is not None:
            logger.info("Cache HIT (memory) | key=%s", key[:20])
            return entry.value

        return None

    async def set(self, key: str, data: dict, ttl: int):
        """Write to cache with TTL."""
        # Write to Redis
        if self._available and self._redis:
            try:
                await self._redis.setex(key, ttl, json.dumps(data, ensure_ascii=False))
                logger.info("Cache SET (Redis) | key=%s | ttl=%ds", key[:20], ttl)
            except Exception as e:
                logger.debug("Redis SET error: %s", str(e)[:100])

        # Always write to in-memory fallback too
        self._fallback[key] = CacheEntry(value=data, ttl_seconds=ttl)

    async def invalidate(self, pattern: str):
        """Delete keys matching pattern."""
        if self._available and self._redis:
            try:
                keys = []
                async for key in self._redis.scan_iter(match=pattern):
                    keys.append(key)
                if keys:
                    await self._redis.delete(*keys)
                    logger.info("Cache invalidated %d keys matching '%s'", len(keys), pattern)
            except Exception as e:
                logger.debug("Redis invalidate error: %s", str(e)[:100])

        prefix = pattern.rstrip("*")
        for key in [k for k in list(self._fallback.keys()) if k.startswith(prefix)]:
            self._fallback.pop(key, None)

    async def get_or_compute(
        self,
        key: str,
        compute: Callable[[], Awaitable[dict]],
        ttl_for: Callable[[dict], int],
    ) -> tuple[dict, CacheOutcome]:
        """Cache-aside read with at most one computation in flight per key.

        A cancelled computation writes nothing; callers that were waiting on
        it retry, and one of them takes over the computation.
        """
        while True:
            pending = self._inflight.get(key)
            if pending is not None:
                await asyncio.wait([pending])
                if pending.cancelled():
                    continue
                return pending.result(), CacheOutcome.COALESCED

            cached = await self.get(key)
            if cached is not None:
                return cached, CacheOutcome.HIT
            if key not in self._inflight:
                break

        future = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        token = None
        try:
            # An earlier leader may have written between our read and our registration
            cached = await self.get(key)
            if cached is not None:
                future.set_result(cached)
                return cached, CacheOutcome.HIT

            token, cached = await self._acquire_lock(key)
            if cached is not None:
                future.set_result(cached)
                return cached, CacheOutcome.COALESCED

            value = await compute()
            ttl = ttl_for(value)
            await self.set(key, value, ttl)
            future.set_result(value)
            return value, CacheOutcome.MISS
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            future.exception()
            raise
        finally:
            if self._inflight.get(key) is future:
                del self._inflight[key]
            if token:
                await self._release_lock(key, token)

    async def _acquire_lock(self, key: str) -> tuple[str | None, dict | None]:
        """Cross-process lock. Returns (token, None) when we compute, (None, value)
        when another process finished first, (None, None) without Redis."""
        if not (self._available and self._redis):
            return None, None

        lock_key = f"{key}:lock"
        token = uuid.uuid4().hex
        deadline = time.monotonic() + self.lock_ttl_seconds
        try:
            while True:
                if await self._redis.set(lock_key, token, nx=True, px=self.lock_ttl_seconds * 1000):
                    # The previous holder may have written just before releasing
                    cached = await self.get(key)
                    if cached is None:
                        return token, None
                    await self._release_lock(key, token)
                    return None, cached
                cached = await self.get(key)
                if cached is not None:
                    return None, cached
                if time.monotonic() >= deadline:
                    logger.warning("Cache lock wait expired | key=%s", key[:20])
                    return None, None
                await asyncio.sleep(LOCK_POLL_SECONDS)
        except Exception as e:
            logger.debug("Redis lock error: %s", str(e)[:100])
            return None, None

    async def _release_lock(self, key: str, token: str):
        try:
            await self._redis.eval(_RELEASE_LOCK, 1, f"{key}:lock", token)
        except Exception as e:
            logger.debug("Redis unlock error: %s", str(e)[:100])

    def inflight_count(self) -> int:
        return len(self._inflight)

    def clear(self) -> None:
        self._fallback.clear()


# Singleton instance
cache_service = CacheService()
