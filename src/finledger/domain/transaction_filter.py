"""Declarative transaction filtering.

A ``TransactionFilter`` holds one default timespan and four independent
lists of ``Filter`` entries (accounts, categories, budgets, bills).

Each entry evaluates a dimension match: the transaction touches the account,
carries the category or budget, or is part of the bill. ``id=None`` matches
any value of the dimension. ``negated`` inverts that match. The entry only
applies to transactions inside its own timespan, or the default timespan
when it has none. An applying entry with ``include=True`` admits the
transaction, one with ``include=False`` vetoes it.

A list passes when none of its entries veto and at least one of them admits.
Excludes never admit, so a list holding only exclude entries passes nothing.
A transaction is kept when every non-empty list passes. With all lists empty
the default timespan alone decides.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Generic, Iterable, Optional, Sequence, TypeVar

from finledger.domain.entities import UNBOUNDED, Bill, Timespan, Transaction, in_timespan

T = TypeVar("T")


@dataclass(frozen=True)
class Filter(Generic[T]):
    """One filter entry for a single dimension."""

    negated: bool = False
    id: Optional[T] = None
    include: bool = True
    timespan: Optional[Timespan] = None


@dataclass
class TransactionFilter:
    """Combination of per-dimension filters plus a default timespan."""

    default_timespan: Timespan = UNBOUNDED
    accounts: list[Filter[int]] = field(default_factory=list)
    categories: list[Filter[int]] = field(default_factory=list)
    budgets: list[Filter[int]] = field(default_factory=list)
    bills: list[Filter[Bill]] = field(default_factory=list)

    def add_account(self, entry: Filter[int]) -> None:
        self.accounts.append(entry)

    def add_category(self, entry: Filter[int]) -> None:
        self.categories.append(entry)

    def add_budget(self, entry: Filter[int]) -> None:
        self.budgets.append(entry)

    def add_bill(self, entry: Filter[Bill]) -> None:
        self.bills.append(entry)

    def push_account(self, entry: Filter[int]) -> "TransactionFilter":
        self.add_account(entry)
        return self

    def push_category(self, entry: Filter[int]) -> "TransactionFilter":
        self.add_category(entry)
        return self

    def push_budget(self, entry: Filter[int]) -> "TransactionFilter":
        self.add_budget(entry)
        return self

    def push_bill(self, entry: Filter[Bill]) -> "TransactionFilter":
        self.add_bill(entry)
        return self

    def remove_account(self, entry: Filter[int]) -> None:
        self.accounts = [x for x in self.accounts if x != entry]

    def remove_category(self, entry: Filter[int]) -> None:
        self.categories = [x for x in self.categories if x != entry]

    def remove_budget(self, entry: Filter[int]) -> None:
        self.budgets = [x for x in self.budgets if x != entry]

    def remove_bill(self, entry: Filter[Bill]) -> None:
        self.bills = [x for x in self.bills if x != entry]

    def replace_account(self, old: Filter[int], new: Filter[int]) -> None:
        _replace_first(self.accounts, old, new)

    def replace_category(self, old: Filter[int], new: Filter[int]) -> None:
        _replace_first(self.categories, old, new)

    def replace_budget(self, old: Filter[int], new: Filter[int]) -> None:
        _replace_first(self.budgets, old, new)

    def replace_bill(self, old: Filter[Bill], new: Filter[Bill]) -> None:
        _replace_first(self.bills, old, new)

    def is_empty(self) -> bool:
        return not (self.accounts or self.categories or self.budgets or self.bills)

    def _all_entries(self) -> Iterable[Filter]:
        yield from self.accounts
        yield from self.categories
        yield from self.budgets
        yield from self.bills

    def total_timespan(self) -> Timespan:
        """Return the smallest timespan covering every entry's effective timespan.

        Transactions outside of it can never be part of the result, so it is
        used to fetch candidates from storage.
        """
        if self.is_empty():
            return self.default_timespan

        spans = [
            entry.timespan if entry.timespan is not None else self.default_timespan
            for entry in self._all_entries()
        ]
        starts = [span[0] for span in spans]
        ends = [span[1] for span in spans]
        start = None if any(s is None for s in starts) else min(starts)
        end = None if any(e is None for e in ends) else max(ends)
        return (start, end)

    def filter_transactions(
        self, transactions: Iterable[Transaction], bills: Sequence[Bill] = ()
    ) -> list[Transaction]:
        """Return the transactions passing this filter.

        Args:
            transactions: Candidate transactions
            bills: All bills, used by bill entries without an id

        Returns:
            Matching transactions in input order
        """
        billed_ids: set[int] = set()
        for bill in bills:
            billed_ids.update(bill.transactions)

        def account_match(entry: Filter[int], txn: Transaction) -> bool:
            return entry.id is None or txn.touches_account(entry.id)

        def category_match(entry: Filter[int], txn: Transaction) -> bool:
            if entry.id is None:
                return bool(txn.categories)
            return entry.id in txn.categories

        def budget_match(entry: Filter[int], txn: Transaction) -> bool:
            if entry.id is None:
                return txn.budget is not None
            return txn.budget_id == entry.id

        def bill_match(entry: Filter[Bill], txn: Transaction) -> bool:
            if entry.id is None:
                return txn.id in billed_ids
            return txn.id in entry.id.transactions

        dimensions: list[tuple[list, Callable[[Filter, Transaction], bool]]] = [
            (self.accounts, account_match),
            (self.categories, category_match),
            (self.budgets, budget_match),
            (self.bills, bill_match),
        ]

        if self.is_empty():
            return [t for t in transactions if in_timespan(t.timestamp, self.default_timespan)]

        result = []
        for txn in transactions:
            if all(
                self._list_passes(entries, matcher, txn)
                for entries, matcher in dimensions
                if entries
            ):
                result.append(txn)
        return result

    def _list_passes(
        self,
        entries: list[Filter],
        matcher: Callable[[Filter, Transaction], bool],
        txn: Transaction,
    ) -> bool:
        admitted = False
        for entry in entries:
            if not self._applies(entry, matcher, txn):
                continue
            if not entry.include:
                return False
            admitted = True
        return admitted

    def _applies(
        self, entry: Filter, matcher: Callable[[Filter, Transaction], bool], txn: Transaction
    ) -> bool:
        if matcher(entry, txn) == entry.negated:
            return False
        timespan = entry.timespan if entry.timespan is not None else self.default_timespan
        return in_timespan(txn.timestamp, timespan)


def _replace_first(entries: list[Filter], old: Filter, new: Filter) -> None:
    for index, entry in enumerate(entries):
        if entry == old:
            entries[index] = new
            return
