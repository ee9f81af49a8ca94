"""
Product price & stock monitor.

This package contains modules for rendering or fetching monitored product
pages, normalising and ranking their prices, caching scrape snapshots,
paginating results and posting them to Discord.  See README.md for details.
"""

__all__ = [
    "cache",
    "config",
    "coordinator",
    "db",
    "main",
    "notifier",
    "pagination",
    "ranking",
    "scraper",
    "utils",
]
