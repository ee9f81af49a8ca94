from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Union

import requests
from bs4 import BeautifulSoup
from soupsieve import SelectorSyntaxError
from playwright.sync_api import Error as PlaywrightError, sync_playwright

from .config import (
    BROWSER_HEADLESS,
    BROWSER_USER_AGENT,
    DEFAULT_CHECK_TEXT,
    DEFAULT_PRICE_SELECTOR,
    DEFAULT_STOCK_SELECTOR,
    HTTP_TIMEOUT_SECONDS,
    NAV_TIMEOUT_MS,
)
from .utils import RetryPolicy, get_http_session

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"


@dataclass(frozen=True)
class MonitorTarget:
    id: int
    name: str
    url: str
    price_selector: str = DEFAULT_PRICE_SELECTOR
    stock_selector: str = DEFAULT_STOCK_SELECTOR
    check_text: str = DEFAULT_CHECK_TEXT


@dataclass(frozen=True)
class PageReading:
    price: str   # "N/A" when the price selector matched nothing
    stock: str   # "N/A" when the stock selector matched nothing


@dataclass(frozen=True)
class FetchSuccess:
    reading: PageReading
    strategy: str


@dataclass(frozen=True)
class FetchFailure:
    error: str
    strategy: str


FetchOutcome = Union[FetchSuccess, FetchFailure]


@dataclass(frozen=True)
class ScrapeSuccess:
    id: int
    name: str
    url: str
    price: str
    stock: str
    check_text: str = ""

    @property
    def is_out_of_stock(self) -> bool:
        # An empty check text matches everything, same as a substring test.
        return self.check_text.lower() in self.stock.lower()


@dataclass(frozen=True)
class ScrapeFailure:
    id: int
    name: str
    url: str
    error: str


ScrapeResult = Union[ScrapeSuccess, ScrapeFailure]


# Runs inside the rendered page; mirrors document.querySelector + innerText.
_EVALUATE_SELECTORS_JS = """
([priceSelector, stockSelector]) => {
    const priceEl = document.querySelector(priceSelector);
    const stockEl = document.querySelector(stockSelector);
    return {
        price: priceEl ? priceEl.innerText.trim() : "N/A",
        stock: stockEl ? stockEl.innerText.trim() : "N/A",
    };
}
"""

_BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-http2",
]


class BrowserFetchStrategy:
    """
    Render the page with headless Chromium and read both selectors from the live DOM.
    One browser per target; it is closed whether or not the read succeeded.
    """

    name = "browser"

    def __init__(
        self,
        *,
        retry_policy: Optional[RetryPolicy] = None,
        timeout_ms: int = NAV_TIMEOUT_MS,
        headless: bool = BROWSER_HEADLESS,
        user_agent: str = BROWSER_USER_AGENT,
    ) -> None:
        self.retry_policy = retry_policy or RetryPolicy()
        self.timeout_ms = timeout_ms
        self.headless = headless
        self.user_agent = user_agent

    def fetch(self, target: MonitorTarget) -> FetchOutcome:
        try:
            with sync_playwright() as p:
                browser = p.chromium.launch(headless=self.headless, args=_BROWSER_ARGS)
                try:
                    page = browser.new_page(user_agent=self.user_agent)
                    self.retry_policy.call(
                        lambda: page.goto(target.url, wait_until="networkidle", timeout=self.timeout_ms),
                        retry_on=PlaywrightError,
                    )
                    data = page.evaluate(
                        _EVALUATE_SELECTORS_JS,
                        [target.price_selector, target.stock_selector],
                    )
                finally:
                    browser.close()
        except Exception as e:
            logger.warning("Browser fetch failed for %s (id=%s): %s", target.name, target.id, e)
            return FetchFailure(error=str(e), strategy=self.name)

        return FetchSuccess(
            reading=PageReading(
                price=str(data.get("price") or NOT_AVAILABLE),
                stock=str(data.get("stock") or NOT_AVAILABLE),
            ),
            strategy=self.name,
        )


def _select_text(soup: BeautifulSoup, selector: str) -> str:
    el = soup.select_one(selector)
    if el is None:
        return NOT_AVAILABLE
    return el.get_text(strip=True) or NOT_AVAILABLE


def extract_reading(html: str, price_selector: str, stock_selector: str) -> PageReading:
    """Apply both selectors to static HTML (no script execution)."""
    soup = BeautifulSoup(html, "html.parser")
    return PageReading(
        price=_select_text(soup, price_selector),
        stock=_select_text(soup, stock_selector),
    )


class StaticFetchStrategy:
    """Plain GET + BeautifulSoup. Cheap, but blind to script-populated content."""

    name = "static"

    def __init__(
        self,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ) -> None:
        self._session = session
        self.timeout = timeout

    def fetch(self, target: MonitorTarget) -> FetchOutcome:
        session = self._session
        close_session = False
        if session is None:
            session = get_http_session()
            close_session = True

        try:
            resp = session.get(target.url, timeout=self.timeout)
            resp.raise_for_status()
            reading = extract_reading(resp.text, target.price_selector, target.stock_selector)
        except requests.RequestException as e:
            logger.warning("Static fetch failed for %s (id=%s): %s", target.name, target.id, e)
            return FetchFailure(error=str(e), strategy=self.name)
        except SelectorSyntaxError as e:
            logger.warning("Static fetch could not apply selectors for %s (id=%s): %s", target.name, target.id, e)
            return FetchFailure(error=str(e), strategy=self.name)
        finally:
            if close_session:
                session.close()

        return FetchSuccess(reading=reading, strategy=self.name)


def default_strategies() -> List[Union[BrowserFetchStrategy, StaticFetchStrategy]]:
    """Rendered first, static fallback second."""
    return [BrowserFetchStrategy(), StaticFetchStrategy()]


def fetch_target(target: MonitorTarget, strategies: Sequence) -> FetchOutcome:
    """Try each strategy in rank order and stop at the first success.

    When every strategy fails the last failure is returned, so the error
    text reflects the final method attempted.
    """
    if not strategies:
        return FetchFailure(error="no fetch strategies configured", strategy="")

    outcome: FetchOutcome = FetchFailure(error="not attempted", strategy="")
    for strategy in strategies:
        try:
            outcome = strategy.fetch(target)
        except Exception as e:
            logger.warning("%s fetch raised for %s (id=%s): %s", strategy.name, target.name, target.id, e)
            outcome = FetchFailure(error=str(e), strategy=strategy.name)
        if isinstance(outcome, FetchSuccess):
            if strategy is not strategies[0]:
                logger.info("Recovered %s (id=%s) via %s fallback", target.name, target.id, outcome.strategy)
            return outcome
    return outcome


def scrape_target(target: MonitorTarget, strategies: Sequence) -> ScrapeResult:
    """Fetch one target and convert the outcome into a ScrapeResult."""
    outcome = fetch_target(target, strategies)
    if isinstance(outcome, FetchSuccess):
        return ScrapeSuccess(
            id=target.id,
            name=target.name,
            url=target.url,
            price=outcome.reading.price,
            stock=outcome.reading.stock,
            check_text=target.check_text or "",
        )
    error = f"{outcome.strategy} fetch error: {outcome.error}" if outcome.strategy else outcome.error
    return ScrapeFailure(id=target.id, name=target.name, url=target.url, error=error)


def scrape_all(targets: Iterable[MonitorTarget], strategies: Sequence) -> List[ScrapeResult]:
    """Scrape targets strictly one after another, in the given order.

    A fault raised while handling one target is recorded in that target's
    slot and never aborts the run.
    """
    results: List[ScrapeResult] = []
    for target in targets:
        try:
            results.append(scrape_target(target, strategies))
        except Exception as e:
            logger.exception("Unexpected error scraping %s (id=%s)", target.name, target.id)
            results.append(ScrapeFailure(id=target.id, name=target.name, url=target.url, error=str(e)))
    return results
