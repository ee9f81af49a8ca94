"""Price parsing and ranking over a scrape snapshot.

Prices arrive as whatever text the product page shows (``"$1,234.56"``,
``"1.234,56 €"``, ``"N/A"``).  They are normalised here and then either
ranked by distance from a target price or summarised as a min/max/median
spread.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from .scraper import ScrapeResult, ScrapeSuccess

_NON_NUMERIC = re.compile(r"[^0-9.,]")


def parse_price(text: Optional[str]) -> float | None:
    """Normalise a free-form price string.

    Whichever of ``,`` / ``.`` appears last is the decimal separator; the
    other one, and earlier copies of the decimal one, are thousands
    separators.  Returns None when nothing numeric is left; callers must
    treat that as "no price", never as zero.
    """
    if not text:
        return None
    t = _NON_NUMERIC.sub("", str(text))
    last_comma = t.rfind(",")
    last_dot = t.rfind(".")

    if last_comma == -1 and last_dot == -1:
        digits = t
    else:
        decimal_at = max(last_comma, last_dot)
        whole = re.sub(r"[.,]", "", t[:decimal_at])
        digits = f"{whole}.{t[decimal_at + 1:]}"

    if not re.search(r"\d", digits):
        return None
    try:
        return float(digits)
    except ValueError:
        return None


@dataclass(frozen=True)
class PricedResult:
    """A successful scrape whose price text parsed to a number."""

    result: ScrapeSuccess
    price_num: float
    difference: Optional[float] = None  # |price_num - target|; None outside closest-match views

    @property
    def id(self) -> int:
        return self.result.id

    @property
    def name(self) -> str:
        return self.result.name

    @property
    def price(self) -> str:
        return self.result.price


def priced_results(results: Iterable[ScrapeResult]) -> List[PricedResult]:
    """Keep successes whose price parses; everything else is silently dropped."""
    priced: List[PricedResult] = []
    for r in results:
        if not isinstance(r, ScrapeSuccess):
            continue
        value = parse_price(r.price)
        if value is None:
            continue
        priced.append(PricedResult(result=r, price_num=value))
    return priced


def closest_by_price(priced: Sequence[PricedResult], target: float, count: int = 5) -> List[PricedResult]:
    """The `count` results nearest to `target`; ties keep scrape order."""
    with_difference = [
        PricedResult(result=p.result, price_num=p.price_num, difference=abs(p.price_num - target))
        for p in priced
    ]
    # sorted() is stable, so equal differences stay in scrape order
    with_difference.sort(key=lambda p: p.difference)
    return with_difference[:count]


def price_range(priced: Sequence[PricedResult]) -> List[PricedResult]:
    """Cheapest, most expensive and positional median (index n // 2)."""
    if not priced:
        return []
    ordered = sorted(priced, key=lambda p: p.price_num)
    spread = [ordered[0]]
    if len(ordered) > 1:
        spread.append(ordered[-1])
    if len(ordered) > 2:
        spread.append(ordered[len(ordered) // 2])
    return spread[:5]


@dataclass(frozen=True)
class PriceQuery:
    """Answer to a target-price lookup: closest matches or the price spread."""

    target: float
    items: List[PricedResult]
    is_range: bool  # True when the spread replaced the closest matches


def price_query(results: Iterable[ScrapeResult], target: float, count: int = 5) -> PriceQuery:
    """Closest matches, or the spread unless some price equals `target` exactly."""
    priced = priced_results(results)
    closest = closest_by_price(priced, target, count)
    if not closest or closest[0].difference != 0:
        return PriceQuery(target=target, items=price_range(priced), is_range=True)
    return PriceQuery(target=target, items=closest, is_range=False)
