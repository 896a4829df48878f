"""Tests for the declarative transaction filter."""

from datetime import datetime, timezone
from decimal import Decimal

from finledger.domain.currency import Currency
from finledger.domain.entities import UNBOUNDED, Bill, Sign, Transaction
from finledger.domain.transaction_filter import Filter, TransactionFilter


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def _txn(txn_id, source, destination, day, budget=None, categories=None) -> Transaction:
    return Transaction(
        id=txn_id,
        amount=Currency(Decimal("10")),
        title=f"T{txn_id}",
        description=None,
        source=source,
        destination=destination,
        budget=budget,
        timestamp=utc(2024, 1, day),
        categories=categories or {},
    )


A, B, C = 1, 2, 3

TRANSACTIONS = [
    _txn(1, A, B, 1, budget=(10, Sign.POSITIVE), categories={100: Sign.POSITIVE}),
    _txn(2, B, C, 5, categories={101: Sign.NEGATIVE}),
    _txn(3, C, A, 10, budget=(11, Sign.NEGATIVE)),
    _txn(4, B, C, 20),
]


def _ids(transactions):
    return [t.id for t in transactions]


def test_single_account_entry_returns_transactions_touching_account():
    transaction_filter = TransactionFilter().push_account(Filter(id=A))
    assert _ids(transaction_filter.filter_transactions(TRANSACTIONS)) == [1, 3]


def test_empty_filter_gates_by_default_timespan():
    transaction_filter = TransactionFilter(default_timespan=(utc(2024, 1, 5), utc(2024, 1, 10)))
    assert _ids(transaction_filter.filter_transactions(TRANSACTIONS)) == [2, 3]


def test_empty_unbounded_filter_returns_everything():
    assert _ids(TransactionFilter().filter_transactions(TRANSACTIONS)) == [1, 2, 3, 4]


def test_include_entries_of_one_dimension_are_alternatives():
    transaction_filter = TransactionFilter(accounts=[Filter(id=A), Filter(id=C)])
    assert _ids(transaction_filter.filter_transactions(TRANSACTIONS)) == [1, 2, 3, 4]


def test_exclude_entry_vetoes():
    transaction_filter = TransactionFilter(
        accounts=[Filter(id=B), Filter(id=A, include=False)]
    )
    assert _ids(transaction_filter.filter_transactions(TRANSACTIONS)) == [2, 4]


def test_exclude_only_list_admits_nothing():
    transaction_filter = TransactionFilter(accounts=[Filter(id=A, include=False)])
    assert _ids(transaction_filter.filter_transactions(TRANSACTIONS)) == []


def test_exclude_does_not_widen_default_timespan():
    transaction_filter = TransactionFilter(
        default_timespan=(utc(2024, 1, 15), None),
        accounts=[Filter(id=C), Filter(id=A, include=False)],
    )
    assert _ids(transaction_filter.filter_transactions(TRANSACTIONS)) == [4]


def test_negated_entry_inverts_match():
    transaction_filter = TransactionFilter(accounts=[Filter(id=C, negated=True)])
    assert _ids(transaction_filter.filter_transactions(TRANSACTIONS)) == [1]


def test_any_id_matches_presence():
    with_budget = TransactionFilter(budgets=[Filter()])
    assert _ids(with_budget.filter_transactions(TRANSACTIONS)) == [1, 3]

    without_category = TransactionFilter(categories=[Filter(negated=True)])
    assert _ids(without_category.filter_transactions(TRANSACTIONS)) == [3, 4]


def test_dimensions_are_combined_with_and():
    transaction_filter = TransactionFilter(
        accounts=[Filter(id=B)], categories=[Filter(id=101)]
    )
    assert _ids(transaction_filter.filter_transactions(TRANSACTIONS)) == [2]


def test_budget_entry_matches_budget_id():
    transaction_filter = TransactionFilter(budgets=[Filter(id=11)])
    assert _ids(transaction_filter.filter_transactions(TRANSACTIONS)) == [3]


def test_entry_timespan_overrides_default():
    transaction_filter = TransactionFilter(
        default_timespan=(utc(2024, 1, 15), None),
        accounts=[Filter(id=B, timespan=(utc(2024, 1, 1), utc(2024, 1, 6)))],
    )
    assert _ids(transaction_filter.filter_transactions(TRANSACTIONS)) == [1, 2]


def test_entry_without_timespan_uses_default():
    transaction_filter = TransactionFilter(
        default_timespan=(utc(2024, 1, 15), None), accounts=[Filter(id=B)]
    )
    assert _ids(transaction_filter.filter_transactions(TRANSACTIONS)) == [4]


def test_exclude_applies_only_inside_its_timespan():
    transaction_filter = TransactionFilter(
        accounts=[
            Filter(id=B),
            Filter(id=B, include=False, timespan=(utc(2024, 1, 1), utc(2024, 1, 6))),
        ]
    )
    assert _ids(transaction_filter.filter_transactions(TRANSACTIONS)) == [4]

    exclude_only = TransactionFilter(
        accounts=[Filter(id=B, include=False, timespan=(utc(2024, 1, 1), utc(2024, 1, 6)))]
    )
    assert _ids(exclude_only.filter_transactions(TRANSACTIONS)) == []


def test_bill_entries():
    bill = Bill(1, "Phone", None, Currency(Decimal("20")), {2: Sign.POSITIVE, 4: Sign.POSITIVE})
    other = Bill(2, "Rent", None, Currency(Decimal("10")), {3: Sign.NEGATIVE})

    specific = TransactionFilter(bills=[Filter(id=bill)])
    assert _ids(specific.filter_transactions(TRANSACTIONS)) == [2, 4]

    any_bill = TransactionFilter(bills=[Filter()])
    assert _ids(any_bill.filter_transactions(TRANSACTIONS, [bill, other])) == [2, 3, 4]

    unbilled = TransactionFilter(bills=[Filter(negated=True)])
    assert _ids(unbilled.filter_transactions(TRANSACTIONS, [bill, other])) == [1]


def test_total_timespan_covers_all_entries():
    transaction_filter = TransactionFilter(
        default_timespan=(utc(2024, 1, 10), utc(2024, 1, 20)),
        accounts=[Filter(id=A, timespan=(utc(2024, 1, 1), utc(2024, 1, 5)))],
        categories=[Filter(id=100)],
    )
    assert transaction_filter.total_timespan() == (utc(2024, 1, 1), utc(2024, 1, 20))


def test_total_timespan_open_bound_wins():
    transaction_filter = TransactionFilter(
        default_timespan=(utc(2024, 1, 10), utc(2024, 1, 20)),
        accounts=[Filter(id=A, timespan=(None, utc(2024, 1, 5)))],
    )
    assert transaction_filter.total_timespan() == (None, utc(2024, 1, 20))


def test_total_timespan_of_empty_filter_is_default():
    assert TransactionFilter().total_timespan() == UNBOUNDED


def test_remove_and_replace_entries():
    first, second = Filter(id=A), Filter(id=B)
    transaction_filter = TransactionFilter().push_account(first).push_account(second)

    transaction_filter.replace_account(first, Filter(id=C))
    assert transaction_filter.accounts == [Filter(id=C), second]

    transaction_filter.remove_account(second)
    assert transaction_filter.accounts == [Filter(id=C)]
    assert not transaction_filter.is_empty()

    transaction_filter.remove_account(Filter(id=C))
    assert transaction_filter.is_empty()
