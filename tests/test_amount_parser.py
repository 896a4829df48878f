"""Tests for amount parsing."""

from decimal import Decimal

import pytest

from finledger.domain.currency import Currency
from finledger.utils.amount_parser import parse_amount


@pytest.mark.parametrize(
    "text, expected",
    [
        ("123.45", Currency(Decimal("123.45"), "EUR")),
        ("-123.45", Currency(Decimal("-123.45"), "EUR")),
        ("1,234.56", Currency(Decimal("1234.56"), "EUR")),
        ("(42.00)", Currency(Decimal("-42.00"), "EUR")),
        ("€12", Currency(Decimal("12"), "EUR")),
        ("$-5", Currency(Decimal("-5"), "USD")),
        ("12.50£", Currency(Decimal("12.50"), "GBP")),
        ("100 usd", Currency(Decimal("100"), "USD")),
        ("CHF 7.5", Currency(Decimal("7.5"), "CHF")),
    ],
)
def test_parse_amount(text, expected):
    assert parse_amount(text) == expected


def test_default_currency_is_used_without_code():
    assert parse_amount("3", default_currency="SEK").currency == "SEK"


@pytest.mark.parametrize("text", ["", "   ", "abc", "12..5", "nan", "€5 USD"])
def test_invalid_amounts(text):
    with pytest.raises(ValueError):
        parse_amount(text)
