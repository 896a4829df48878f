"""Decimal-exact currency amounts."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from finledger.domain.errors import CurrencyMismatchError

DEFAULT_CURRENCY = "EUR"


@dataclass(frozen=True)
class Currency:
    """An amount of money tagged with an ISO currency code.

    Arithmetic stays in ``Decimal``; combining two different codes is a
    programming error and raises ``CurrencyMismatchError``.
    """

    amount: Decimal
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            if isinstance(self.amount, float):
                raise TypeError("Currency amounts must not be floats")
            object.__setattr__(self, "amount", Decimal(self.amount))
        object.__setattr__(self, "currency", self.currency.strip().upper())

    @classmethod
    def zero(cls, currency: str = DEFAULT_CURRENCY) -> "Currency":
        return cls(Decimal("0"), currency)

    def _check(self, other: "Currency") -> None:
        if not isinstance(other, Currency):
            raise TypeError(f"Cannot combine Currency with {type(other).__name__}")
        if other.currency != self.currency:
            raise CurrencyMismatchError(
                f"Cannot combine {self.currency} with {other.currency}"
            )

    def __add__(self, other: "Currency") -> "Currency":
        self._check(other)
        return Currency(self.amount + other.amount, self.currency)

    def __sub__(self, other: "Currency") -> "Currency":
        self._check(other)
        return Currency(self.amount - other.amount, self.currency)

    def __neg__(self) -> "Currency":
        return Currency(-self.amount, self.currency)

    def is_negative(self) -> bool:
        return self.amount < 0

    def __str__(self) -> str:
        return f"{self.amount:,.2f} {self.currency}"


def total(values: Iterable[Currency], currency: Optional[str] = None) -> Currency:
    """Sum currency values.

    Args:
        values: Values to add up; all must share one currency code
        currency: Code of the zero value returned for an empty input.
            When given, every value must use this code.

    Returns:
        The sum
    """
    result: Optional[Currency] = Currency.zero(currency) if currency else None
    for value in values:
        result = value if result is None else result + value
    return result if result is not None else Currency.zero()
