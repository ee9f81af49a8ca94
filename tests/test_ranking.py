"""ranking module unit tests."""

import pytest

from price_monitor.ranking import (
    PricedResult,
    closest_by_price,
    parse_price,
    price_query,
    price_range,
    priced_results,
)
from price_monitor.scraper import ScrapeFailure, ScrapeSuccess


def _success(id_: int, price: str) -> ScrapeSuccess:
    return ScrapeSuccess(
        id=id_, name=f"Product {id_}", url=f"https://shop.example/p/{id_}",
        price=price, stock="In stock", check_text="Sold Out",
    )


def _priced(*values: float) -> list:
    return [PricedResult(result=_success(i, str(v)), price_num=v) for i, v in enumerate(values, start=1)]


class TestParsePrice:
    """parse_price tests."""

    def test_us_format(self):
        assert parse_price("$1,234.56") == pytest.approx(1234.56)

    def test_eu_format(self):
        assert parse_price("1.234,56") == pytest.approx(1234.56)

    def test_currency_suffix(self):
        assert parse_price("1.234,56 €") == pytest.approx(1234.56)

    def test_not_available(self):
        assert parse_price("N/A") is None

    def test_empty(self):
        assert parse_price("") is None
        assert parse_price(None) is None

    def test_separators_only(self):
        assert parse_price(",.") is None

    @pytest.mark.parametrize("text,expected", [
        ("42", 42.0),
        ("USD 1999", 1999.0),
        ("0007", 7.0),
    ])
    def test_digits_only(self, text, expected):
        """Without separators the value is the digit string itself."""
        assert parse_price(text) == expected

    def test_plain_decimal(self):
        assert parse_price("19.99") == pytest.approx(19.99)

    def test_single_comma_is_decimal(self):
        assert parse_price("12,5") == pytest.approx(12.5)

    def test_repeated_thousands_separators(self):
        assert parse_price("1,234,567.89") == pytest.approx(1234567.89)
        assert parse_price("1.234.567,89") == pytest.approx(1234567.89)


class TestPricedResults:
    """priced_results tests."""

    def test_excludes_failures_and_unparseable(self):
        results = [
            _success(1, "$10.00"),
            ScrapeFailure(id=2, name="Broken", url="https://shop.example/p/2", error="timeout"),
            _success(3, "N/A"),
            _success(4, "€ 7,50"),
        ]
        priced = priced_results(results)

        assert [p.id for p in priced] == [1, 4]
        assert priced[1].price_num == pytest.approx(7.5)

    def test_zero_price_is_kept(self):
        priced = priced_results([_success(1, "$0.00")])
        assert priced[0].price_num == 0.0


class TestClosestByPrice:
    """closest_by_price tests."""

    def test_sorted_by_difference(self):
        closest = closest_by_price(_priced(10, 50, 22, 18, 100), 20)
        diffs = [p.difference for p in closest]

        assert diffs == sorted(diffs)
        assert [p.price_num for p in closest] == [22, 18, 10, 50, 100]

    def test_length_capped_by_count(self):
        assert len(closest_by_price(_priced(1, 2, 3, 4, 5, 6, 7), 4)) == 5
        assert len(closest_by_price(_priced(1, 2), 4)) == 2
        assert len(closest_by_price(_priced(1, 2, 3), 4, count=1)) == 1

    def test_ties_keep_scrape_order(self):
        closest = closest_by_price(_priced(15, 25, 5, 35), 20)
        assert [p.id for p in closest[:2]] == [1, 2]

    def test_empty(self):
        assert closest_by_price([], 10) == []


class TestPriceRange:
    """price_range tests."""

    def test_four_items(self):
        spread = price_range(_priced(40, 10, 30, 20))
        assert [p.price_num for p in spread] == [10, 40, 30]

    def test_empty(self):
        assert price_range([]) == []

    def test_one_and_two_items(self):
        assert [p.price_num for p in price_range(_priced(5))] == [5]
        assert [p.price_num for p in price_range(_priced(9, 3))] == [3, 9]

    def test_never_more_than_three(self):
        assert len(price_range(_priced(*range(1, 20)))) == 3


class TestPriceQuery:
    """price_query tests."""

    def test_exact_match_returns_closest(self):
        results = [_success(1, "$10.00"), _success(2, "$20.00"), _success(3, "$12.00")]
        query = price_query(results, 10)

        assert query.is_range is False
        assert [p.id for p in query.items] == [1, 3, 2]
        assert query.items[0].difference == 0

    def test_near_match_falls_back_to_range(self):
        results = [_success(1, "$10.01"), _success(2, "$20.00"), _success(3, "$30.00")]
        query = price_query(results, 10)

        assert query.is_range is True
        assert [p.price_num for p in query.items] == [pytest.approx(10.01), 30.0, 20.0]

    def test_no_priced_data(self):
        results = [_success(1, "N/A"), ScrapeFailure(id=2, name="x", url="u", error="e")]
        query = price_query(results, 10)

        assert query.items == []
