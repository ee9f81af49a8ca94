"""coordinator module unit tests."""

import threading

import pytest

from price_monitor.cache import SnapshotCache
from price_monitor.coordinator import ScrapeCoordinator, ScrapeInProgressError
from price_monitor.scraper import (
    FetchFailure,
    FetchSuccess,
    MonitorTarget,
    PageReading,
    ScrapeFailure,
    ScrapeSuccess,
)


class FakeClock:
    def __init__(self, now: float = 5_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class ListStore:
    def __init__(self, targets):
        self.targets = targets

    def list(self):
        return list(self.targets)


class CountingStrategy:
    name = "browser"

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.calls = 0

    def fetch(self, target):
        self.calls += 1
        if target.id in self.failing:
            return FetchFailure(error="timeout", strategy=self.name)
        return FetchSuccess(reading=PageReading(price=f"${target.id}0", stock="ok"), strategy=self.name)


def _targets(n: int = 3):
    return [MonitorTarget(id=i, name=f"T{i}", url=f"https://shop.example/{i}") for i in range(1, n + 1)]


class TestRunScrape:
    """run_scrape tests."""

    def test_installs_snapshot_in_order(self):
        clock = FakeClock()
        coordinator = ScrapeCoordinator(
            ListStore(_targets()),
            strategies=[CountingStrategy(failing={2})],
            cache=SnapshotCache(ttl=300, clock=clock),
        )

        snapshot = coordinator.run_scrape()

        assert [r.id for r in snapshot.results] == [1, 2, 3]
        assert isinstance(snapshot.results[1], ScrapeFailure)
        assert isinstance(snapshot.results[2], ScrapeSuccess)
        assert snapshot.created_at == clock.now
        assert coordinator.get_cached_snapshot() is snapshot

    def test_empty_target_list(self):
        coordinator = ScrapeCoordinator(ListStore([]), strategies=[CountingStrategy()])

        snapshot = coordinator.run_scrape()

        assert snapshot.results == ()

    def test_concurrent_request_rejected(self):
        started = threading.Event()
        release = threading.Event()

        class BlockingStrategy:
            name = "browser"

            def fetch(self, target):
                started.set()
                release.wait(5)
                return FetchSuccess(reading=PageReading(price="$1", stock="ok"), strategy=self.name)

        coordinator = ScrapeCoordinator(ListStore(_targets(1)), strategies=[BlockingStrategy()])
        worker = threading.Thread(target=coordinator.run_scrape)
        worker.start()
        try:
            assert started.wait(5)
            assert coordinator.is_running
            with pytest.raises(ScrapeInProgressError):
                coordinator.run_scrape()
        finally:
            release.set()
            worker.join(5)

        assert not coordinator.is_running
        assert coordinator.get_cached_snapshot() is not None


class TestCachedSnapshot:
    """get_cached_snapshot / current_snapshot tests."""

    def _coordinator(self, clock, strategy):
        return ScrapeCoordinator(
            ListStore(_targets()),
            strategies=[strategy],
            cache=SnapshotCache(ttl=300, clock=clock),
        )

    def test_miss_before_first_scrape(self):
        coordinator = self._coordinator(FakeClock(), CountingStrategy())
        assert coordinator.get_cached_snapshot() is None

    def test_ttl_boundary(self):
        clock = FakeClock()
        coordinator = self._coordinator(clock, CountingStrategy())
        snapshot = coordinator.run_scrape()

        clock.now = snapshot.created_at + 299.999
        assert coordinator.get_cached_snapshot() is snapshot

        clock.now = snapshot.created_at + 300.001
        assert coordinator.get_cached_snapshot() is None

    def test_current_snapshot_reuses_cache(self):
        clock = FakeClock()
        strategy = CountingStrategy()
        coordinator = self._coordinator(clock, strategy)

        first = coordinator.current_snapshot()
        clock.now += 60
        second = coordinator.current_snapshot()

        assert first is second
        assert strategy.calls == 3

    def test_current_snapshot_rescrapes_when_stale(self):
        clock = FakeClock()
        strategy = CountingStrategy()
        coordinator = self._coordinator(clock, strategy)

        first = coordinator.current_snapshot()
        clock.now += 301
        second = coordinator.current_snapshot()

        assert first is not second
        assert strategy.calls == 6
