"""Configuration loader.

Reads environment variables and `.env` to configure the monitor.
"""

from __future__ import annotations

import os
from typing import Optional
from pathlib import Path

from dotenv import load_dotenv

# Load variables from a .env file if present (project root).
load_dotenv(dotenv_path=Path(__file__).resolve().parents[1] / ".env")


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(name, default)


def _parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.lower() in ("1", "true", "yes")


def _parse_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


def _parse_float(value: Optional[str], default: float) -> float:
    try:
        return float(value) if value is not None else default
    except ValueError:
        return default


# ---- Target store ------------------------------------------------------------

# Path to the SQLite file holding the monitored targets.
TARGETS_DB_PATH: str = _get_env("TARGETS_DB_PATH", "targets.db")

# IDs are allocated from 1..MAX_TARGETS; a full range refuses new targets.
MAX_TARGETS: int = _parse_int(_get_env("MAX_TARGETS", "100"), 100)

# Defaults applied when a target is added without explicit selectors.
DEFAULT_PRICE_SELECTOR: str = _get_env("DEFAULT_PRICE_SELECTOR", "b[class^='productPrice_price']")
DEFAULT_STOCK_SELECTOR: str = _get_env("DEFAULT_STOCK_SELECTOR", "button[class*='productButton_soldout']")
DEFAULT_CHECK_TEXT: str = _get_env("DEFAULT_CHECK_TEXT", "Sold Out")

# ---- Fetching ----------------------------------------------------------------

# Rendered (Playwright) navigation: attempts, fixed backoff and per-attempt timeout.
NAV_RETRIES: int = _parse_int(_get_env("NAV_RETRIES", "3"), 3)
NAV_BACKOFF_SECONDS: float = _parse_float(_get_env("NAV_BACKOFF_SECONDS", "5"), 5.0)
NAV_TIMEOUT_MS: int = _parse_int(_get_env("NAV_TIMEOUT_MS", "30000"), 30000)

BROWSER_HEADLESS: bool = _parse_bool(_get_env("BROWSER_HEADLESS", "true"), True)
BROWSER_USER_AGENT: str = _get_env(
    "BROWSER_USER_AGENT",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36",
)

# Static fallback GET timeout (seconds).
HTTP_TIMEOUT_SECONDS: float = _parse_float(_get_env("HTTP_TIMEOUT_SECONDS", "15"), 15.0)

# ---- Caches ------------------------------------------------------------------

# A snapshot older than this is treated as absent.
CACHE_TTL_SECONDS: float = _parse_float(_get_env("CACHE_TTL_SECONDS", "300"), 300.0)

# How often the background sweeper reaps expired cache entries.
CACHE_SWEEP_INTERVAL_SECONDS: float = _parse_float(_get_env("CACHE_SWEEP_INTERVAL_SECONDS", "60"), 60.0)

# Results per rendered page.
PAGE_SIZE: int = _parse_int(_get_env("PAGE_SIZE", "5"), 5)

# ---- Presentation ------------------------------------------------------------

# Discord webhook URL. Optional: without it output goes to stdout only.
DISCORD_WEBHOOK_URL: Optional[str] = _get_env("DISCORD_WEBHOOK_URL")

# Minutes between scrapes in `watch` mode.
WATCH_INTERVAL_MINUTES: int = _parse_int(_get_env("WATCH_INTERVAL_MINUTES", "10"), 10)

# Logging level: DEBUG, INFO, WARNING, ERROR.
LOG_LEVEL: str = _get_env("LOG_LEVEL", "INFO")

# ---- Validation --------------------------------------------------------------

def validate() -> None:
    """Validate configuration values that would otherwise fail late."""
    if not TARGETS_DB_PATH:
        raise RuntimeError("TARGETS_DB_PATH must be set. See .env.example for details.")
    if MAX_TARGETS < 1:
        raise RuntimeError("MAX_TARGETS must be at least 1.")
    if PAGE_SIZE < 1:
        raise RuntimeError("PAGE_SIZE must be at least 1.")
    if NAV_RETRIES < 1:
        raise RuntimeError("NAV_RETRIES must be at least 1.")
    if CACHE_TTL_SECONDS <= 0:
        raise RuntimeError("CACHE_TTL_SECONDS must be positive.")


__all__ = [
    # Target store
    "TARGETS_DB_PATH",
    "MAX_TARGETS",
    "DEFAULT_PRICE_SELECTOR",
    "DEFAULT_STOCK_SELECTOR",
    "DEFAULT_CHECK_TEXT",
    # Fetching
    "NAV_RETRIES",
    "NAV_BACKOFF_SECONDS",
    "NAV_TIMEOUT_MS",
    "BROWSER_HEADLESS",
    "BROWSER_USER_AGENT",
    "HTTP_TIMEOUT_SECONDS",
    # Caches
    "CACHE_TTL_SECONDS",
    "CACHE_SWEEP_INTERVAL_SECONDS",
    "PAGE_SIZE",
    # Presentation
    "DISCORD_WEBHOOK_URL",
    "WATCH_INTERVAL_MINUTES",
    "LOG_LEVEL",
    # Helpers
    "validate",
]
