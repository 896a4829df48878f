"""Domain model entities for finledger.

These are pure data classes representing ledger concepts, independent of
any storage schema. Every backend returns fresh instances of these classes,
so callers never hold references into backend-internal state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from finledger.domain.currency import Currency

Timespan = tuple[Optional[datetime], Optional[datetime]]

UNBOUNDED: Timespan = (None, None)


def in_timespan(moment: datetime, timespan: Timespan) -> bool:
    """Check whether a moment lies inside an inclusive timespan."""
    start, end = timespan
    if start is not None and moment < start:
        return False
    if end is not None and moment > end:
        return False
    return True


def normalize_identifier(value: Optional[str]) -> Optional[str]:
    """Normalize an IBAN/BIC-like identifier (upper case, no whitespace)."""
    if value is None:
        return None
    normalized = "".join(value.split()).upper()
    return normalized or None


class Sign(Enum):
    """Polarity of a transaction's association with a budget, category or bill."""

    POSITIVE = "positive"
    NEGATIVE = "negative"

    @classmethod
    def from_bool(cls, positive: bool) -> "Sign":
        return cls.POSITIVE if positive else cls.NEGATIVE

    def is_positive(self) -> bool:
        return self is Sign.POSITIVE

    def invert(self) -> "Sign":
        return Sign.NEGATIVE if self is Sign.POSITIVE else Sign.POSITIVE

    def apply(self, value: Currency) -> Currency:
        return value if self is Sign.POSITIVE else -value


@dataclass(frozen=True)
class AssetAccount:
    """Account the user owns; ``offset`` corrects the starting balance."""

    id: int
    name: str
    note: Optional[str]
    iban: Optional[str]
    bic: Optional[str]
    offset: Currency


@dataclass(frozen=True)
class BookCheckingAccount:
    """Counterparty account (shop, employer, ...) used for bookkeeping only."""

    id: int
    name: str
    note: Optional[str]
    iban: Optional[str]
    bic: Optional[str]


Account = Union[AssetAccount, BookCheckingAccount]


@dataclass(frozen=True)
class Transaction:
    """Transfer of a non-negative amount from ``source`` to ``destination``."""

    id: int
    amount: Currency
    title: str
    description: Optional[str]
    source: int
    destination: int
    budget: Optional[tuple[int, Sign]]
    timestamp: datetime
    metadata: dict[str, str] = field(default_factory=dict)
    categories: dict[int, Sign] = field(default_factory=dict)

    def touches_account(self, account_id: int) -> bool:
        return account_id in (self.source, self.destination)

    @property
    def budget_id(self) -> Optional[int]:
        return self.budget[0] if self.budget is not None else None


@dataclass(frozen=True)
class DayInMonth:
    """Period resets every month on ``day``."""

    day: int


@dataclass(frozen=True)
class Days:
    """Fixed-length windows of ``days`` days tiled from ``start``."""

    start: datetime
    days: int


@dataclass(frozen=True)
class Yearly:
    """Period resets once a year on ``month``/``day``."""

    month: int
    day: int


Recurring = Union[DayInMonth, Days, Yearly]


@dataclass(frozen=True)
class Budget:
    """Recurring spending envelope."""

    id: int
    name: str
    description: Optional[str]
    total_value: Currency
    recurring: Recurring


@dataclass(frozen=True)
class Category:
    """Free-form transaction label."""

    id: int
    name: str


@dataclass(frozen=True)
class Bill:
    """Invoice composed of transactions, each counted with a sign."""

    id: int
    name: str
    description: Optional[str]
    value: Currency
    transactions: dict[int, Sign] = field(default_factory=dict)
    due_date: Optional[datetime] = None
    closed: bool = False
