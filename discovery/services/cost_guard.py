"""Cost Guard — per-provider admission control.

Each provider has a daily cap (reset at UTC midnight) and a per-minute cap
(sliding 60 s window). `try_admit` checks both and, when allowed, counts the
call in the same critical section, so concurrent callers can never jointly
exceed a cap. Denials are normal outcomes, not exceptions.
"""

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from discovery.config import ConfigurationError, Settings
from discovery.orchestrator.schemas import CostGuardUsage

logger = logging.getLogger(__name__)

RPM_WINDOW_SECONDS = 60.0


@dataclass(frozen=True)
class ProviderLimits:
    daily_cap: int
    rpm_cap: int
    cost_per_call_usd: float = 0.0


@dataclass
class _ProviderUsage:
    day: str
    daily_count: int = 0
    recent: deque = field(default_factory=deque)

    def roll(self, now: float) -> None:
        today = _utc_day(now)
        if today != self.day:
            self.day = today
            self.daily_count = 0
        cutoff = now - RPM_WINDOW_SECONDS
        while self.recent and self.recent[0] <= cutoff:
            self.recent.popleft()


class CostGuard:
    """Thread-safe windowed quota per provider. One instance per process."""

    def __init__(
        self,
        limits: dict[str, ProviderLimits],
        clock: Callable[[], float] = time.time,
        degrade_threshold_pct: float = 0.85,
    ):
        self._limits = dict(limits)
        self._clock = clock
        self._degrade_threshold = degrade_threshold_pct
        self._lock = threading.Lock()
        now = clock()
        self._usage = {name: _ProviderUsage(day=_utc_day(now)) for name in self._limits}

    @classmethod
    def from_settings(cls, cfg: Settings) -> "CostGuard":
        limits = {
            name: ProviderLimits(
                daily_cap=getattr(cfg, f"{name}_daily_cap"),
                rpm_cap=getattr(cfg, f"{name}_rpm_cap"),
                cost_per_call_usd=getattr(cfg, f"{name}_cost_per_call_usd"),
            )
            for name in ("google", "opentripmap", "geoapify")
        }
        return cls(limits, degrade_threshold_pct=cfg.degrade_threshold_pct)

    def try_admit(self, provider: str) -> tuple[bool, str | None]:
        """Admit and count one call, or deny with a human-readable reason."""
        limits = self._get_limits(provider)
        with self._lock:
            now = self._clock()
            usage = self._usage[provider]
            usage.roll(now)

            if usage.daily_count >= limits.daily_cap:
                reason = f"DailyCap ({usage.daily_count}/{limits.daily_cap})"
            elif len(usage.recent) >= limits.rpm_cap:
                reason = f"RPM ({len(usage.recent)}/{limits.rpm_cap})"
            else:
                usage.daily_count += 1
                usage.recent.append(now)
                return True, None

        logger.warning("CostGuard denied | provider=%s | reason=%s", provider, reason)
        return False, reason

    def usage(self, provider: str) -> CostGuardUsage:
        limits = self._get_limits(provider)
        with self._lock:
            usage = self._usage[provider]
            usage.roll(self._clock())
            daily, rpm = usage.daily_count, len(usage.recent)

        return CostGuardUsage(
            provider=provider,
            daily_count=daily,
            daily_cap=limits.daily_cap,
            rpm_count=rpm,
            rpm_cap=limits.rpm_cap,
            estimated_cost_usd=round(daily * limits.cost_per_call_usd, 4),
            degraded=_ratio(daily, limits.daily_cap) >= self._degrade_threshold
            or _ratio(rpm, limits.rpm_cap) >= self._degrade_threshold,
        )

    def should_degrade(self, provider: str) -> bool:
        """True once either window is past the degrade threshold."""
        return self.usage(provider).degraded

    def snapshot(self) -> dict[str, CostGuardUsage]:
        return {name: self.usage(name) for name in self._limits}

    def _get_limits(self, provider: str) -> ProviderLimits:
        try:
            return self._limits[provider]
        except KeyError:
            raise ConfigurationError(f"Unknown provider for cost guard: {provider}") from None


def _utc_day(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d")


def _ratio(used: int, cap: int) -> float:
    return used / cap if cap > 0 else 1.0
