"""Tests for Currency arithmetic."""

from decimal import Decimal

import pytest

from finledger.domain.currency import Currency, total
from finledger.domain.errors import CurrencyMismatchError


def test_addition_and_subtraction_are_exact():
    a = Currency(Decimal("0.10"))
    b = Currency(Decimal("0.20"))

    assert (a + b).amount == Decimal("0.30")
    assert (b - a).amount == Decimal("0.10")


def test_negation_keeps_currency():
    value = -Currency(Decimal("5"), "usd")
    assert value.amount == Decimal("-5")
    assert value.currency == "USD"


def test_mixed_currencies_raise():
    with pytest.raises(CurrencyMismatchError):
        Currency(Decimal("1"), "EUR") + Currency(Decimal("1"), "USD")


def test_currency_mismatch_is_a_type_error():
    with pytest.raises(TypeError):
        Currency(Decimal("1"), "EUR") - Currency(Decimal("1"), "GBP")


def test_float_amounts_are_rejected():
    with pytest.raises(TypeError):
        Currency(1.5)


def test_string_and_int_amounts_become_decimal():
    assert Currency("12.34").amount == Decimal("12.34")
    assert Currency(7).amount == Decimal("7")


def test_total_of_empty_input_is_zero_in_requested_currency():
    assert total([], "USD") == Currency.zero("USD")
    assert total([]) == Currency.zero()


def test_total_sums_values():
    values = [Currency(Decimal("1.5")), Currency(Decimal("2.5")), -Currency(Decimal("1"))]
    assert total(values) == Currency(Decimal("3"))


def test_total_rejects_values_in_other_currency():
    with pytest.raises(CurrencyMismatchError):
        total([Currency(Decimal("1"), "USD")], "EUR")


def test_str_formats_two_decimals():
    assert str(Currency(Decimal("1234.5"))) == "1,234.50 EUR"
    assert Currency(Decimal("-1")).is_negative()
