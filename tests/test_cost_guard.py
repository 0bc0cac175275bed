"""Tests for the cost guard — windowed per-provider admission control."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from discovery.config import ConfigurationError
from discovery.services.cost_guard import CostGuard, ProviderLimits

# 2023-11-14 22:13:20 UTC
T0 = 1_700_000_000.0


class FakeClock:
    def __init__(self, now: float = T0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


def make_guard(clock, daily_cap=100, rpm_cap=10, cost=0.0):
    return CostGuard({"google": ProviderLimits(daily_cap, rpm_cap, cost)}, clock=clock)


class TestAdmission:
    def test_admits_under_caps(self, clock):
        guard = make_guard(clock)
        assert guard.try_admit("google") == (True, None)
        assert guard.usage("google").daily_count == 1
        assert guard.usage("google").rpm_count == 1

    def test_daily_cap_denial_reason(self, clock):
        guard = make_guard(clock, daily_cap=2, rpm_cap=100)
        guard.try_admit("google")
        guard.try_admit("google")
        assert guard.try_admit("google") == (False, "DailyCap (2/2)")

    def test_rpm_cap_denial_reason(self, clock):
        guard = make_guard(clock, daily_cap=100, rpm_cap=3)
        for _ in range(3):
            assert guard.try_admit("google")[0] is True
        assert guard.try_admit("google") == (False, "RPM (3/3)")

    def test_daily_checked_before_rpm(self, clock):
        guard = make_guard(clock, daily_cap=1, rpm_cap=1)
        guard.try_admit("google")
        allowed, reason = guard.try_admit("google")
        assert allowed is False
        assert reason.startswith("DailyCap")

    def test_denial_does_not_count(self, clock):
        guard = make_guard(clock, daily_cap=1, rpm_cap=10)
        guard.try_admit("google")
        for _ in range(5):
            guard.try_admit("google")
        assert guard.usage("google").daily_count == 1

    def test_unknown_provider_raises(self, clock):
        guard = make_guard(clock)
        with pytest.raises(ConfigurationError):
            guard.try_admit("yelp")


class TestWindows:
    def test_rpm_window_slides(self, clock):
        guard = make_guard(clock, daily_cap=100, rpm_cap=2)
        guard.try_admit("google")
        clock.advance(30)
        guard.try_admit("google")
        assert guard.try_admit("google")[0] is False

        clock.advance(31)  # first admission is now older than 60s
        assert guard.try_admit("google") == (True, None)
        assert guard.try_admit("google")[0] is False

    def test_daily_resets_at_utc_midnight(self, clock):
        guard = make_guard(clock, daily_cap=1, rpm_cap=10)
        guard.try_admit("google")
        clock.advance(3600)  # 23:13 UTC, same day
        assert guard.try_admit("google")[0] is False

        clock.advance(3600)  # 00:13 UTC, next day
        assert guard.try_admit("google") == (True, None)
        assert guard.usage("google").daily_count == 1

    def test_providers_are_independent(self, clock):
        guard = CostGuard(
            {"google": ProviderLimits(1, 10), "opentripmap": ProviderLimits(1, 10)},
            clock=clock,
        )
        guard.try_admit("google")
        assert guard.try_admit("google")[0] is False
        assert guard.try_admit("opentripmap") == (True, None)


class TestConcurrency:
    def test_no_overspend_under_threads(self):
        guard = CostGuard({"google": ProviderLimits(daily_cap=100, rpm_cap=10_000)})
        admitted = []
        lock = threading.Lock()

        def attempt():
            allowed, _ = guard.try_admit("google")
            if allowed:
                with lock:
                    admitted.append(1)

        with ThreadPoolExecutor(max_workers=32) as pool:
            for _ in range(1000):
                pool.submit(attempt)

        assert len(admitted) == 100
        assert guard.usage("google").daily_count == 100

    def test_no_rpm_overspend_under_threads(self):
        guard = CostGuard({"google": ProviderLimits(daily_cap=10_000, rpm_cap=25)})
        with ThreadPoolExecutor(max_workers=16) as pool:
            results = list(pool.map(lambda _: guard.try_admit("google")[0], range(400)))
        assert sum(results) == 25


class TestDiagnostics:
    def test_estimated_cost(self, clock):
        guard = make_guard(clock, cost=0.032)
        for _ in range(5):
            guard.try_admit("google")
        assert guard.usage("google").estimated_cost_usd == pytest.approx(0.16)

    def test_degrade_threshold(self, clock):
        guard = CostGuard({"google": ProviderLimits(10, 100)}, clock=clock, degrade_threshold_pct=0.8)
        for _ in range(7):
            guard.try_admit("google")
        assert guard.should_degrade("google") is False
        guard.try_admit("google")
        assert guard.should_degrade("google") is True
        # Diagnostics never change the decision
        assert guard.try_admit("google") == (True, None)

    def test_snapshot_lists_all_providers(self, cfg):
        guard = CostGuard.from_settings(cfg)
        snapshot = guard.snapshot()
        assert set(snapshot) == {"google", "opentripmap", "geoapify"}
        assert snapshot["google"].daily_cap == cfg.google_daily_cap
        assert snapshot["opentripmap"].rpm_cap == cfg.opentripmap_rpm_cap
