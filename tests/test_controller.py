"""Tests for LedgerController validation and cascades."""

import asyncio
import logging
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from finledger.database.memory import InMemoryDatabase
from finledger.domain.controller import LedgerController
from finledger.domain.currency import Currency
from finledger.domain.entities import DayInMonth, Days, Sign, Yearly
from finledger.domain.errors import (
    InvalidRecurrenceError,
    NotFoundError,
    RelatedTransactionsExistError,
    StorageError,
    ValidationError,
)
from finledger.domain.transaction_filter import Filter, TransactionFilter


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def eur(amount: str) -> Currency:
    return Currency(Decimal(amount))


@pytest.fixture
async def accounts(controller):
    """An asset account A and a book checking account B."""
    a = await controller.create_asset_account("A", offset=eur("0"))
    b = await controller.create_book_checking_account("B")
    return a, b


class TestAccounts:
    async def test_identifiers_are_normalized(self, controller):
        account = await controller.create_asset_account(
            "Checking", iban="de89 3704 0044 0532 0130 00", bic=" cobadeffxxx "
        )
        assert account.iban == "DE89370400440532013000"
        assert account.bic == "COBADEFFXXX"

        updated = await controller.update_asset_account(replace(account, iban="gb29 nwbk"))
        assert updated.iban == "GB29NWBK"

    async def test_offset_defaults_to_zero(self, controller):
        account = await controller.create_asset_account("Cash")
        assert account.offset == Currency.zero()

    async def test_asset_sum_includes_offset(self, controller):
        wallet = await controller.create_asset_account("Wallet", offset=eur("100"))
        shop = await controller.create_book_checking_account("Shop")
        await controller.create_transaction(eur("30"), "Food", None, wallet.id, shop.id)

        assert await controller.get_account_sum(wallet) == eur("70")
        assert await controller.get_account_sum(shop) == eur("30")

    async def test_account_sum_as_of(self, controller, accounts):
        a, b = accounts
        await controller.create_transaction(eur("5"), "t", None, b.id, a.id, timestamp=utc(2024, 1, 1))
        await controller.create_transaction(eur("7"), "t", None, b.id, a.id, timestamp=utc(2024, 2, 1))

        assert await controller.get_account_sum(a, utc(2024, 1, 31)) == eur("5")

    async def test_accounts_map(self, controller, accounts):
        a, b = accounts
        assert await controller.get_accounts_map() == {a.id: a, b.id: b}

    async def test_delete_account_with_transactions_is_blocked(self, controller, accounts):
        a, b = accounts
        txn = await controller.create_transaction(eur("1"), "t", None, a.id, b.id)

        with pytest.raises(RelatedTransactionsExistError):
            await controller.delete_account(a.id)

        assert await controller.get_account(a.id) == a
        assert await controller.get_transaction(txn.id) == txn

    async def test_delete_account_purges_transactions_and_bill_links(self, controller, accounts):
        a, b = accounts
        other = await controller.create_book_checking_account("Other")
        doomed = await controller.create_transaction(eur("1"), "t", None, a.id, b.id)
        kept = await controller.create_transaction(eur("2"), "t", None, other.id, b.id)
        bill = await controller.create_bill(
            "Bill", None, eur("3"), {doomed.id: Sign.POSITIVE, kept.id: Sign.POSITIVE}
        )

        await controller.delete_account(a.id, purge_transactions=True)

        assert await controller.get_account(a.id) is None
        assert await controller.get_transaction(doomed.id) is None
        assert await controller.get_transaction(kept.id) == kept
        assert (await controller.get_bill(bill.id)).transactions == {kept.id: Sign.POSITIVE}

    async def test_delete_unused_and_absent_accounts(self, controller, accounts):
        a, _ = accounts
        await controller.delete_account(a.id)
        await controller.delete_account(a.id)
        assert await controller.get_account(a.id) is None

    async def test_deleting_absent_account_is_logged(self, controller, caplog):
        caplog.set_level(logging.DEBUG, logger="finledger.domain.controller")

        await controller.delete_account(404)

        assert "Account 404 does not exist, nothing to delete" in caplog.messages


class TestTransactions:
    async def test_defaults(self, controller, accounts):
        a, b = accounts
        before = datetime.now(timezone.utc)

        txn = await controller.create_transaction(eur("3"), "Coffee", None, a.id, b.id)

        assert txn.timestamp >= before
        assert txn.metadata == {}
        assert txn.categories == {}
        assert txn.budget is None

    @pytest.mark.parametrize(
        "amount, source, destination",
        [("-1", 1, 2), ("1", 1, 1), ("1", 1, 99), ("1", 99, 2)],
        ids=["negative-amount", "same-account", "unknown-destination", "unknown-source"],
    )
    async def test_invalid_transactions_are_rejected(
        self, controller, accounts, amount, source, destination
    ):
        with pytest.raises(ValidationError):
            await controller.create_transaction(eur(amount), "t", None, source, destination)

        assert await controller.get_transactions_in_timespan((None, None)) == []

    async def test_unknown_category_or_budget_is_rejected(self, controller, accounts):
        a, b = accounts
        with pytest.raises(ValidationError):
            await controller.create_transaction(
                eur("1"), "t", None, a.id, b.id, categories={42: Sign.POSITIVE}
            )
        with pytest.raises(ValidationError):
            await controller.create_transaction(
                eur("1"), "t", None, a.id, b.id, budget=(42, Sign.POSITIVE)
            )

    async def test_update_checks_existence_then_validity(self, controller, accounts):
        a, b = accounts
        txn = await controller.create_transaction(eur("1"), "t", None, a.id, b.id)

        with pytest.raises(NotFoundError):
            await controller.update_transaction(replace(txn, id=txn.id + 1))
        with pytest.raises(ValidationError):
            await controller.update_transaction(replace(txn, destination=a.id))

        updated = await controller.update_transaction(replace(txn, title="Renamed"))
        assert (await controller.get_transaction(txn.id)).title == "Renamed"
        assert updated.title == "Renamed"

    async def test_update_transaction_categories(self, controller, accounts):
        a, b = accounts
        food = await controller.create_category("Food")
        txn = await controller.create_transaction(eur("1"), "t", None, a.id, b.id)

        updated = await controller.update_transaction_categories(txn.id, {food.id: Sign.NEGATIVE})
        assert updated.categories == {food.id: Sign.NEGATIVE}

        with pytest.raises(ValidationError):
            await controller.update_transaction_categories(txn.id, {999: Sign.POSITIVE})
        with pytest.raises(NotFoundError):
            await controller.update_transaction_categories(999, {})

    async def test_delete_transaction_strips_it_from_bills(self, controller, accounts):
        a, b = accounts
        first = await controller.create_transaction(eur("1"), "t", None, a.id, b.id)
        second = await controller.create_transaction(eur("2"), "t", None, a.id, b.id)
        bill = await controller.create_bill(
            "Bill", None, eur("3"), [(first.id, Sign.POSITIVE), (second.id, Sign.NEGATIVE)]
        )

        await controller.delete_transaction(first.id)
        await controller.delete_transaction(first.id)

        assert (await controller.get_bill(bill.id)).transactions == {second.id: Sign.NEGATIVE}
        assert await controller.get_transaction(first.id) is None

    async def test_filtered_transactions_by_account(self, controller, accounts):
        a, b = accounts
        c = await controller.create_book_checking_account("C")
        touching_a = await controller.create_transaction(eur("1"), "t", None, a.id, b.id)
        await controller.create_transaction(eur("2"), "t", None, c.id, b.id)
        into_a = await controller.create_transaction(eur("3"), "t", None, c.id, a.id)

        transaction_filter = TransactionFilter().push_account(Filter(id=a.id))
        found = await controller.get_filtered_transactions(transaction_filter)

        assert {t.id for t in found} == {touching_a.id, into_a.id}

    async def test_filtered_transactions_in_any_bill(self, controller, accounts):
        a, b = accounts
        billed = await controller.create_transaction(eur("1"), "t", None, a.id, b.id)
        await controller.create_transaction(eur("2"), "t", None, a.id, b.id)
        await controller.create_bill("Bill", None, eur("1"), {billed.id: Sign.POSITIVE})

        found = await controller.get_filtered_transactions(TransactionFilter(bills=[Filter()]))

        assert [t.id for t in found] == [billed.id]

    async def test_filtered_exclude_entry_does_not_admit_outside_default(
        self, controller, accounts
    ):
        a, b = accounts
        c = await controller.create_book_checking_account("C")
        january = await controller.create_transaction(
            eur("1"), "january", None, a.id, b.id, timestamp=utc(2024, 1, 10)
        )
        await controller.create_transaction(
            eur("2"), "june", None, a.id, b.id, timestamp=utc(2024, 6, 10)
        )
        year = (utc(2024, 1, 1), utc(2024, 12, 31))
        exclude_c = Filter(id=c.id, include=False, timespan=year)

        exclude_only = TransactionFilter(
            default_timespan=(utc(2024, 1, 1), utc(2024, 1, 31)), accounts=[exclude_c]
        )
        assert await controller.get_filtered_transactions(exclude_only) == []

        with_include = TransactionFilter(
            default_timespan=(utc(2024, 1, 1), utc(2024, 1, 31)),
            accounts=[Filter(id=a.id), exclude_c],
        )
        found = await controller.get_filtered_transactions(with_include)
        assert [t.title for t in found] == [january.title]

    async def test_transactions_in_timespan_accept_naive_bounds(self, controller, accounts):
        a, b = accounts
        txn = await controller.create_transaction(
            eur("1"), "t", None, a.id, b.id, timestamp=utc(2024, 5, 5, 12)
        )

        found = await controller.get_transactions_in_timespan(
            (datetime(2024, 5, 5), datetime(2024, 5, 6))
        )
        assert found == [txn]

    async def test_concurrent_creates_get_distinct_ids(self, controller, accounts):
        a, b = accounts
        created = await asyncio.gather(
            *(
                controller.create_transaction(eur(str(i)), f"t{i}", None, a.id, b.id)
                for i in range(20)
            )
        )
        assert len({t.id for t in created}) == 20


class TestBudgets:
    async def test_budget_value_sums_period(self, controller, accounts):
        a, b = accounts
        food = await controller.create_budget("Food", None, eur("300"), DayInMonth(1))
        for amount, day in (("10", 3), ("20", 10), ("30", 28)):
            await controller.create_transaction(
                eur(amount),
                "Groceries",
                None,
                a.id,
                b.id,
                budget=(food.id, Sign.POSITIVE),
                timestamp=utc(2024, 3, day),
            )

        value = await controller.get_budget_value(food, 0, utc(2024, 3, 15))

        assert value == eur("60")

    async def test_budget_value_respects_signs_and_offsets(self, controller, accounts):
        a, b = accounts
        fuel = await controller.create_budget(
            "Fuel", None, eur("60"), Days(utc(2024, 1, 1), 14)
        )
        await controller.create_transaction(
            eur("40"), "Fill up", None, a.id, b.id,
            budget=(fuel.id, Sign.POSITIVE), timestamp=utc(2024, 1, 3),
        )
        await controller.create_transaction(
            eur("15"), "Refund", None, b.id, a.id,
            budget=(fuel.id, Sign.NEGATIVE), timestamp=utc(2024, 1, 10),
        )
        await controller.create_transaction(
            eur("50"), "Fill up", None, a.id, b.id,
            budget=(fuel.id, Sign.POSITIVE), timestamp=utc(2024, 1, 20),
        )

        reference = utc(2024, 1, 20)
        assert await controller.get_budget_value(fuel, 0, reference) == eur("50")
        assert await controller.get_budget_value(fuel, -1, reference) == eur("25")
        assert await controller.get_budget_value(fuel, 1, reference) == eur("0")

    async def test_period_end_is_inclusive(self, controller, accounts):
        a, b = accounts
        budget = await controller.create_budget("Month", None, eur("1"), DayInMonth(1))
        last_moment = utc(2024, 3, 31, 23, 59, 59, 999999)
        await controller.create_transaction(
            eur("1"), "t", None, a.id, b.id, budget=(budget.id, Sign.POSITIVE), timestamp=last_moment
        )
        await controller.create_transaction(
            eur("2"), "t", None, a.id, b.id, budget=(budget.id, Sign.POSITIVE),
            timestamp=utc(2024, 4, 1),
        )

        found = await controller.get_budget_transactions(budget, 0, utc(2024, 3, 15))
        assert [t.timestamp for t in found] == [last_moment]

    async def test_invalid_recurrence_is_rejected_at_creation(self, controller):
        with pytest.raises(InvalidRecurrenceError):
            await controller.create_budget("Bad", None, eur("1"), DayInMonth(32))
        with pytest.raises(InvalidRecurrenceError):
            await controller.create_budget("Bad", None, eur("1"), Yearly(2, 30))

        assert await controller.get_budgets() == []

    async def test_update_budget_validates_recurrence(self, controller):
        budget = await controller.create_budget("Food", None, eur("1"), DayInMonth(1))
        with pytest.raises(InvalidRecurrenceError):
            await controller.update_budget(replace(budget, recurring=Yearly(13, 1)))
        assert await controller.get_budget(budget.id) == budget

    async def test_delete_budget_detaches_transactions(self, controller, accounts):
        a, b = accounts
        budget = await controller.create_budget("Food", None, eur("1"), DayInMonth(1))
        txn = await controller.create_transaction(
            eur("1"), "t", None, a.id, b.id, budget=(budget.id, Sign.POSITIVE)
        )

        await controller.delete_budget(budget.id)

        assert await controller.get_budget(budget.id) is None
        assert (await controller.get_transaction(txn.id)).budget is None


class TestCategories:
    async def test_delete_category_strips_transactions(self, controller, accounts):
        a, b = accounts
        food = await controller.create_category("Food")
        fun = await controller.create_category("Fun")
        txn = await controller.create_transaction(
            eur("1"), "t", None, a.id, b.id,
            categories={food.id: Sign.POSITIVE, fun.id: Sign.NEGATIVE},
        )

        await controller.delete_category(food.id)

        assert await controller.get_category(food.id) is None
        assert (await controller.get_transaction(txn.id)).categories == {fun.id: Sign.NEGATIVE}

    async def test_relative_category_values(self, controller, accounts):
        a, b = accounts
        food = await controller.create_category("Food")
        for amount, timestamp, sign in (
            ("10", utc(2024, 1, 1, 9), Sign.POSITIVE),
            ("5", utc(2024, 1, 1, 18), Sign.POSITIVE),
            ("3", utc(2024, 1, 4, 12), Sign.NEGATIVE),
        ):
            await controller.create_transaction(
                eur(amount), "t", None, a.id, b.id, timestamp=timestamp, categories={food.id: sign}
            )

        values = await controller.get_relative_category_values(food.id)

        assert values == [(utc(2024, 1, 1), eur("15")), (utc(2024, 1, 4), eur("12"))]

        limited = await controller.get_relative_category_values(
            food.id, (utc(2024, 1, 2), None)
        )
        assert limited == [(utc(2024, 1, 4), eur("-3"))]


class TestBills:
    async def test_duplicate_transaction_pairs_are_rejected(self, controller, accounts):
        a, b = accounts
        txn = await controller.create_transaction(eur("1"), "t", None, a.id, b.id)

        with pytest.raises(ValidationError):
            await controller.create_bill(
                "Bill", None, eur("1"), [(txn.id, Sign.POSITIVE), (txn.id, Sign.NEGATIVE)]
            )
        assert await controller.get_bills() == []

    async def test_bill_sum_is_signed(self, controller, accounts):
        a, b = accounts
        paid = await controller.create_transaction(eur("50"), "Pay", None, a.id, b.id)
        refund = await controller.create_transaction(eur("8"), "Refund", None, b.id, a.id)
        bill = await controller.create_bill(
            "Phone", None, eur("42"), {paid.id: Sign.POSITIVE, refund.id: Sign.NEGATIVE}
        )

        assert await controller.get_bill_sum(bill) == eur("42")

    async def test_bill_sum_with_missing_transaction_raises(self, controller):
        bill = await controller.create_bill("Ghost", None, eur("1"), {404: Sign.POSITIVE})

        with pytest.raises(NotFoundError):
            await controller.get_bill_sum(bill)

    async def test_close_bill_and_filter_by_state(self, controller):
        bill = await controller.create_bill("Rent", None, eur("900"), {})
        other = await controller.create_bill("Power", None, eur("60"), {})

        await controller.update_bill(replace(bill, closed=True))

        assert [b.id for b in await controller.get_bills(closed=True)] == [bill.id]
        assert [b.id for b in await controller.get_bills(closed=False)] == [other.id]
        assert len(await controller.get_bills()) == 2

    async def test_due_date_is_stored_in_utc(self, controller):
        bill = await controller.create_bill(
            "Rent", None, eur("900"), {}, due_date=datetime(2024, 7, 1)
        )
        assert bill.due_date == utc(2024, 7, 1)


class _BrokenDatabase(InMemoryDatabase):
    async def get_accounts(self):
        raise StorageError("disk on fire")


async def test_storage_errors_name_the_operation():
    controller = LedgerController(_BrokenDatabase())

    with pytest.raises(StorageError, match="Error while listing accounts: disk on fire") as excinfo:
        await controller.get_accounts()

    assert isinstance(excinfo.value.__cause__, StorageError)


async def test_close_closes_backend():
    closed = []

    class _Tracking(InMemoryDatabase):
        async def close(self):
            closed.append(True)

    await LedgerController(_Tracking()).close()
    assert closed == [True]


class TestCascadesUnderConcurrency:
    async def test_readers_never_see_half_stripped_category(self, controller, accounts):
        a, b = accounts
        food = await controller.create_category("Food")
        for i in range(5):
            await controller.create_transaction(
                eur("1"), f"t{i}", None, a.id, b.id, categories={food.id: Sign.POSITIVE}
            )

        async def tagged():
            found = await controller.get_transactions_in_timespan((None, None))
            return sum(1 for t in found if food.id in t.categories)

        snapshots = await asyncio.gather(
            *(tagged() for _ in range(5)),
            controller.delete_category(food.id),
            *(tagged() for _ in range(5)),
        )

        counts = snapshots[:5] + snapshots[6:]
        assert set(counts) <= {0, 5}
        assert counts[-1] == 0
        assert await controller.get_category(food.id) is None

    async def test_readers_never_see_half_purged_account(self, controller, accounts):
        a, b = accounts
        other = await controller.create_book_checking_account("Other")
        for i in range(5):
            await controller.create_transaction(eur("1"), f"t{i}", None, a.id, b.id)
        kept = await controller.create_transaction(eur("2"), "kept", None, other.id, b.id)

        async def remaining():
            return [t.id for t in await controller.get_transactions_in_timespan((None, None))]

        snapshots = await asyncio.gather(
            *(remaining() for _ in range(5)),
            controller.delete_account(a.id, purge_transactions=True),
            *(remaining() for _ in range(5)),
        )

        sizes = {len(ids) for ids in snapshots[:5] + snapshots[6:]}
        assert sizes <= {1, 6}
        assert snapshots[-1] == [kept.id]
        assert await controller.get_account(a.id) is None
