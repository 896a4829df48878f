"""Daily cumulative value series."""

from datetime import datetime, timezone
from itertools import groupby
from typing import Callable, Iterable, Optional

from finledger.domain.currency import Currency
from finledger.domain.entities import Sign, Transaction


def day_start(moment: datetime) -> datetime:
    """Return midnight UTC of the day containing ``moment``."""
    moment = moment.astimezone(timezone.utc)
    return datetime(moment.year, moment.month, moment.day, tzinfo=timezone.utc)


def sum_up_transactions_by_day(
    transactions: Iterable[Transaction],
    sign_of: Callable[[Transaction], Sign],
) -> list[tuple[datetime, Currency]]:
    """Build a cumulative, day-ordered series of signed transaction amounts.

    Args:
        transactions: Transactions in any order
        sign_of: Returns the sign each transaction contributes with

    Returns:
        One ``(day_start, running_total)`` entry per day that has at least one
        transaction. The last entry equals the total over all transactions.
    """
    ordered = sorted(transactions, key=lambda t: t.timestamp)
    series: list[tuple[datetime, Currency]] = []
    running: Optional[Currency] = None

    for day, day_transactions in groupby(ordered, key=lambda t: day_start(t.timestamp)):
        for transaction in day_transactions:
            value = sign_of(transaction).apply(transaction.amount)
            running = value if running is None else running + value
        series.append((day, running))

    return series
