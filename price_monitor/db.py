"""SQLite persistence for the monitored target list."""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Iterable, List, Mapping, Optional

from .config import (
    DEFAULT_CHECK_TEXT,
    DEFAULT_PRICE_SELECTOR,
    DEFAULT_STOCK_SELECTOR,
    MAX_TARGETS,
    TARGETS_DB_PATH,
)
from .scraper import MonitorTarget
from .utils import MonitorError

logger = logging.getLogger(__name__)


class CapacityError(MonitorError):
    """Raised when every ID in 1..MAX_TARGETS is taken."""


class TargetNotFoundError(MonitorError):
    """Raised when removal names IDs that are not in the active set."""

    def __init__(self, ids: Iterable[int]):
        self.ids = sorted(ids)
        super().__init__(f"Unknown target IDs: {', '.join(str(i) for i in self.ids)}")


_COLUMNS = "id, name, url, price_selector, stock_selector, check_text"


class TargetStore:
    """
    Ordered list of targets with dense IDs (1..n, no gaps).
    Every removal renumbers the survivors in the same transaction, so the
    next allocation scan and the next scrape both see a gap-free list.
    """

    def __init__(self, db_path: str = TARGETS_DB_PATH, max_targets: int = MAX_TARGETS) -> None:
        self.db_path = db_path
        self.max_targets = max_targets
        self.init_db()

    def _get_connection(self) -> sqlite3.Connection:
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        return sqlite3.connect(self.db_path)

    def init_db(self) -> None:
        """Create the table if it doesn't exist."""
        with self._get_connection() as conn:
            conn.execute("""
              CREATE TABLE IF NOT EXISTS targets (
                id INTEGER PRIMARY KEY,
                name TEXT NOT NULL,
                url TEXT NOT NULL,
                price_selector TEXT NOT NULL,
                stock_selector TEXT NOT NULL,
                check_text TEXT NOT NULL
              )
            """)
            conn.commit()

    def list(self) -> List[MonitorTarget]:
        """All targets, ordered by ID."""
        with self._get_connection() as conn:
            cur = conn.execute(f"SELECT {_COLUMNS} FROM targets ORDER BY id")
            return [MonitorTarget(*row) for row in cur.fetchall()]

    def _next_free_id(self, conn: sqlite3.Connection) -> Optional[int]:
        used = {row[0] for row in conn.execute("SELECT id FROM targets")}
        for candidate in range(1, self.max_targets + 1):
            if candidate not in used:
                return candidate
        return None

    def _insert(
        self,
        conn: sqlite3.Connection,
        name: str,
        url: str,
        price_selector: Optional[str],
        stock_selector: Optional[str],
        check_text: Optional[str],
    ) -> MonitorTarget:
        new_id = self._next_free_id(conn)
        if new_id is None:
            raise CapacityError(f"Maximum target limit reached ({self.max_targets} targets)")
        target = MonitorTarget(
            id=new_id,
            name=name,
            url=url,
            price_selector=price_selector or DEFAULT_PRICE_SELECTOR,
            stock_selector=stock_selector or DEFAULT_STOCK_SELECTOR,
            check_text=check_text or DEFAULT_CHECK_TEXT,
        )
        conn.execute(
            f"INSERT INTO targets ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
            (target.id, target.name, target.url, target.price_selector,
             target.stock_selector, target.check_text),
        )
        return target

    def add(
        self,
        name: str,
        url: str,
        *,
        price_selector: Optional[str] = None,
        stock_selector: Optional[str] = None,
        check_text: Optional[str] = None,
    ) -> MonitorTarget:
        if not name or not url:
            raise ValueError("Both name and URL are required.")
        with self._get_connection() as conn:
            target = self._insert(conn, name, url, price_selector, stock_selector, check_text)
            conn.commit()
        logger.info("Added target %s (id=%d)", target.name, target.id)
        return target

    def bulk_import(self, entries: Iterable[Mapping]) -> List[MonitorTarget]:
        """
        Add every entry, filling gaps with defaults.
        On CapacityError the entries inserted before the ceiling stay saved.
        """
        added: List[MonitorTarget] = []
        with self._get_connection() as conn:
            try:
                for entry in entries:
                    added.append(self._insert(
                        conn,
                        str(entry.get("name") or "Unnamed Product"),
                        str(entry.get("url") or ""),
                        entry.get("priceSelector") or entry.get("price_selector"),
                        entry.get("stockSelector") or entry.get("stock_selector"),
                        entry.get("checkText") or entry.get("check_text"),
                    ))
            finally:
                conn.commit()
        logger.info("Bulk-imported %d targets", len(added))
        return added

    def _renumber(self, conn: sqlite3.Connection) -> None:
        rows = conn.execute("SELECT id FROM targets ORDER BY id").fetchall()
        # Shift out of the way first so the primary key never collides mid-update.
        conn.execute("UPDATE targets SET id = -id")
        for new_id, (old_id,) in enumerate(rows, start=1):
            conn.execute("UPDATE targets SET id = ? WHERE id = ?", (new_id, -old_id))

    def remove_many(self, ids: Iterable[int]) -> List[MonitorTarget]:
        """Remove the given IDs (all or nothing) and renumber the rest."""
        wanted = set(ids)
        with self._get_connection() as conn:
            present = {
                row[0]: MonitorTarget(*row)
                for row in conn.execute(f"SELECT {_COLUMNS} FROM targets")
            }
            missing = wanted - present.keys()
            if missing:
                raise TargetNotFoundError(missing)
            conn.executemany("DELETE FROM targets WHERE id = ?", [(i,) for i in sorted(wanted)])
            self._renumber(conn)
            conn.commit()
        removed = [present[i] for i in sorted(wanted)]
        logger.info("Removed %d targets; remaining IDs renumbered", len(removed))
        return removed

    def remove(self, target_id: int) -> MonitorTarget:
        return self.remove_many([target_id])[0]


def load_targets_file(path: str | Path) -> List[dict]:
    """Read a bulk-import file: a JSON array of target objects."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError("Invalid JSON format. Expected an array of targets.")
    return [entry for entry in data if isinstance(entry, dict)]
