from __future__ import annotations

import argparse
import logging
import sqlite3
import sys
import time
import uuid
from dataclasses import dataclass
from typing import List, Optional, Sequence

from . import config, notifier
from .cache import CacheSweeper
from .coordinator import ScrapeCoordinator
from .db import TargetStore, load_targets_file
from .pagination import NavigationEvent, PageViewRegistry, RenderedPage
from .ranking import price_query
from .utils import HTTPError, MonitorError


def setup_logging() -> None:
    level = getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


@dataclass
class Monitor:
    store: TargetStore
    coordinator: ScrapeCoordinator
    views: PageViewRegistry
    sweeper: CacheSweeper


def build_monitor(db_path: Optional[str] = None) -> Monitor:
    store = TargetStore(db_path or config.TARGETS_DB_PATH)
    coordinator = ScrapeCoordinator(store)
    views = PageViewRegistry(renderer=notifier.render_page)
    sweeper = CacheSweeper([coordinator.cache.store, views.store])
    return Monitor(store=store, coordinator=coordinator, views=views, sweeper=sweeper)


def _emit(message: RenderedPage | str) -> Optional[str]:
    """Print to stdout and mirror to Discord when a webhook is configured."""
    text = message.content if isinstance(message, RenderedPage) else message
    print(text, end="\n\n")
    return notifier.publish(message)


def show_products(monitor: Monitor, page: int = 1) -> None:
    """Scrape every target and show one page of the status summary."""
    logger = logging.getLogger(__name__)
    snapshot = monitor.coordinator.run_scrape(wait=True)
    view_id = f"local-{uuid.uuid4().hex}"
    rendered = monitor.views.open(view_id, list(snapshot.results))
    if rendered is None:
        _emit("No products to monitor. Add products using the `add` command.")
        return
    if page != 1:
        rendered = monitor.views.navigate(view_id, NavigationEvent(page_index=page - 1))

    message_id = _emit(rendered)
    if message_id:
        monitor.views.rebind(view_id, message_id)
        logger.info("Page view bound to Discord message %s", message_id)


def show_prices(monitor: Monitor, target: float) -> None:
    snapshot = monitor.coordinator.get_cached_snapshot()
    if snapshot is None:
        print("🔍 Prices are being updated... This might take a moment")
        snapshot = monitor.coordinator.run_scrape(wait=True)
    _emit(notifier.render_price_query(price_query(snapshot.results, target)))


def show_invalid(monitor: Monitor) -> None:
    snapshot = monitor.coordinator.current_snapshot()
    _emit(notifier.render_invalid(snapshot.results))


def _parse_ids(raw: str) -> List[int]:
    try:
        return [int(s.strip()) for s in raw.split(",") if s.strip()]
    except ValueError:
        raise MonitorError("Invalid IDs format. Please use comma-separated numbers.") from None


def publish_all_pages(monitor: Monitor) -> None:
    """Scrape once and post every page of the status summary."""
    logger = logging.getLogger(__name__)
    snapshot = monitor.coordinator.run_scrape(wait=True)
    view_id = f"watch-{uuid.uuid4().hex}"
    first = monitor.views.open(view_id, list(snapshot.results))
    if first is None:
        logger.info("No targets configured; nothing to report.")
        return
    _emit(first)
    for index in range(1, first.page_count):
        rendered = monitor.views.navigate(view_id, NavigationEvent(page_index=index))
        if rendered is not None:
            _emit(rendered)
    monitor.views.store.delete(view_id)


def watch_loop(monitor: Monitor) -> None:
    """Scrape on an interval; the cache sweeper runs alongside on its own thread."""
    logger = logging.getLogger(__name__)
    monitor.sweeper.start()
    logger.info("Starting watch loop (interval=%d min)", config.WATCH_INTERVAL_MINUTES)
    try:
        while True:
            try:
                publish_all_pages(monitor)
            except Exception:
                logger.exception("Error in watch loop")
            logger.info("Sleeping for %d minutes before next scrape.", config.WATCH_INTERVAL_MINUTES)
            time.sleep(config.WATCH_INTERVAL_MINUTES * 60)
    finally:
        monitor.sweeper.stop()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Product price & stock monitor")
    parser.add_argument("--db", default=None, help="Target database path (default: TARGETS_DB_PATH)")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("products", help="Scrape all targets and show the status summary")
    p.add_argument("--page", type=int, default=1, help="Page to show (1-based)")

    p = sub.add_parser("prices", help="Find products closest to a target price")
    p.add_argument("target", type=float)

    sub.add_parser("invalid", help="List targets whose last scrape failed")

    p = sub.add_parser("add", help="Add a target")
    p.add_argument("name")
    p.add_argument("url")
    p.add_argument("--price-selector", default=None)
    p.add_argument("--stock-selector", default=None)
    p.add_argument("--check-text", default=None)

    p = sub.add_parser("remove", help="Remove a target by ID")
    p.add_argument("id", type=int)

    p = sub.add_parser("bulk-remove", help="Remove comma-separated target IDs")
    p.add_argument("ids")

    p = sub.add_parser("bulk-import", help="Import targets from a JSON file")
    p.add_argument("file")

    sub.add_parser("list", help="List configured targets")
    sub.add_parser("watch", help="Scrape periodically and post every page")
    return parser


def run_command(monitor: Monitor, args: argparse.Namespace) -> None:
    if args.command == "products":
        show_products(monitor, page=args.page)
    elif args.command == "prices":
        show_prices(monitor, args.target)
    elif args.command == "invalid":
        show_invalid(monitor)
    elif args.command == "add":
        t = monitor.store.add(
            args.name,
            args.url,
            price_selector=args.price_selector,
            stock_selector=args.stock_selector,
            check_text=args.check_text,
        )
        print(f"✅ Added product: {t.name} (ID: {t.id})\n{t.url}")
    elif args.command == "remove":
        t = monitor.store.remove(args.id)
        print(f"✅ Removed product: {t.name} (ID: {t.id})")
    elif args.command == "bulk-remove":
        removed = monitor.store.remove_many(_parse_ids(args.ids))
        lines = "\n".join(f"{t.id}: {t.name}" for t in removed)
        print(f"✅ Removed {len(removed)} products:\n{lines}")
    elif args.command == "bulk-import":
        added = monitor.store.bulk_import(load_targets_file(args.file))
        lines = "\n".join(f"{t.id}: {t.name}" for t in added)
        print(f"✅ Added {len(added)} products:\n{lines}")
    elif args.command == "list":
        for t in monitor.store.list():
            print(f"[{t.id}] {t.name} {t.url}")
    elif args.command == "watch":
        watch_loop(monitor)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Parse arguments, run one command and return the exit status."""
    args = build_parser().parse_args(argv)
    config.validate()
    setup_logging()
    logger = logging.getLogger(__name__)

    try:
        monitor = build_monitor(args.db)
        run_command(monitor, args)
    except MonitorError as e:
        logger.error("%s", e)
        print(f"❌ {e}", file=sys.stderr)
        return 1
    except (HTTPError, sqlite3.Error, OSError, ValueError) as e:
        logger.error("Command %s failed: %s", args.command, e)
        print(f"❌ {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
