"""Scrape coordination: one sequential pass over the target list per run,
with the result held in a TTL-bounded snapshot cache."""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional, Protocol, Sequence

from .cache import Snapshot, SnapshotCache
from .scraper import MonitorTarget, ScrapeFailure, default_strategies, scrape_all
from .utils import MonitorError

logger = logging.getLogger(__name__)


class ScrapeInProgressError(MonitorError):
    """Raised when a scrape is requested while another one is running."""


class TargetSource(Protocol):
    def list(self) -> Sequence[MonitorTarget]: ...


class ScrapeCoordinator:
    def __init__(
        self,
        store: TargetSource,
        *,
        strategies: Optional[Sequence] = None,
        cache: Optional[SnapshotCache] = None,
    ) -> None:
        self.store = store
        self.strategies = list(strategies) if strategies is not None else default_strategies()
        self.cache = cache if cache is not None else SnapshotCache()
        self._running = threading.Lock()

    def run_scrape(self, *, wait: bool = False) -> Snapshot:
        """Scrape every target in order and install the result as the current snapshot.

        Only one run may be in flight. With ``wait=False`` a concurrent caller
        gets ScrapeInProgressError; with ``wait=True`` it queues behind the
        running scrape and then performs its own.
        """
        if not self._running.acquire(blocking=wait):
            raise ScrapeInProgressError("A scrape is already running; try again shortly.")
        try:
            targets = list(self.store.list())
            logger.info("Starting scrape of %d targets", len(targets))
            start = time.time()
            results = scrape_all(targets, self.strategies)
            snapshot = self.cache.install(results)
            failed = sum(1 for r in results if isinstance(r, ScrapeFailure))
            logger.info(
                "Scrape finished: %d results, %d failed, %.1f s",
                len(results), failed, time.time() - start,
            )
            return snapshot
        finally:
            self._running.release()

    def get_cached_snapshot(self) -> Optional[Snapshot]:
        """The current snapshot if still within its TTL, otherwise None."""
        return self.cache.get()

    def current_snapshot(self) -> Snapshot:
        """Cached snapshot, scraping afresh on a miss."""
        snapshot = self.get_cached_snapshot()
        if snapshot is None:
            logger.info("Snapshot cache miss; scraping")
            snapshot = self.run_scrape()
        return snapshot

    @property
    def is_running(self) -> bool:
        return self._running.locked()
