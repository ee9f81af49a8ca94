"""Process-local TTL caches.

Two things are cached: the latest scrape snapshot and the page views bound
to rendered messages.  Both expire after a fixed TTL; a background sweeper
reaps expired records so memory stays bounded between requests.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Hashable, Iterable, List, Optional, Tuple, TypeVar

from .config import CACHE_SWEEP_INTERVAL_SECONDS, CACHE_TTL_SECONDS
from .scraper import ScrapeResult

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

Clock = Callable[[], float]


class TTLStore(Generic[K, V]):
    """
    Key/value map whose entries expire `ttl` seconds after they were last set.
    An entry exactly `ttl` old is still served; anything older is a miss.
    """

    def __init__(self, ttl: float = CACHE_TTL_SECONDS, clock: Clock = time.time) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[K, Tuple[float, V]] = {}
        self._lock = threading.Lock()

    def _fresh(self, stamped_at: float, now: float) -> bool:
        return now - stamped_at <= self.ttl

    def set(self, key: K, value: V, stamped_at: Optional[float] = None) -> None:
        if stamped_at is None:
            stamped_at = self._clock()
        with self._lock:
            self._entries[key] = (stamped_at, value)

    def get(self, key: K) -> Optional[V]:
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        stamped_at, value = entry
        if not self._fresh(stamped_at, self._clock()):
            return None
        return value

    def delete(self, key: K) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def sweep(self) -> int:
        """Drop expired entries; returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, (ts, _) in self._entries.items() if not self._fresh(ts, now)]
            for k in expired:
                del self._entries[k]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


@dataclass(frozen=True)
class Snapshot:
    results: Tuple[ScrapeResult, ...]
    created_at: float  # clock() at scrape completion


class SnapshotCache:
    """Holds the single current snapshot; superseded whole on every install."""

    _KEY = "current"

    def __init__(self, ttl: float = CACHE_TTL_SECONDS, clock: Clock = time.time) -> None:
        self._clock = clock
        self._store: TTLStore[str, Snapshot] = TTLStore(ttl=ttl, clock=clock)

    @property
    def store(self) -> TTLStore[str, Snapshot]:
        return self._store

    def install(self, results: Iterable[ScrapeResult]) -> Snapshot:
        snapshot = Snapshot(results=tuple(results), created_at=self._clock())
        self._store.set(self._KEY, snapshot, stamped_at=snapshot.created_at)
        return snapshot

    def get(self) -> Optional[Snapshot]:
        """The current snapshot, or None once it is older than the TTL."""
        return self._store.get(self._KEY)

    def clear(self) -> None:
        self._store.delete(self._KEY)


class CacheSweeper:
    """Daemon thread that periodically sweeps every registered TTL store."""

    def __init__(self, stores: Iterable[TTLStore], interval: float = CACHE_SWEEP_INTERVAL_SECONDS) -> None:
        self.stores: List[TTLStore] = list(stores)
        self.interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def sweep_once(self) -> int:
        removed = 0
        for store in self.stores:
            try:
                removed += store.sweep()
            except Exception:
                logger.exception("Cache sweep failed for %r", store)
        if removed:
            logger.debug("Cache sweep removed %d expired entries", removed)
        return removed

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.sweep_once()

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="cache-sweeper", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
