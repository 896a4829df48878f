"""Ledger controller.

The controller is the only component allowed to mutate a ledger. It wraps a
single ``Database``, validates input before touching storage and replays
the referential-integrity rules a relational schema would enforce with
foreign keys: deleting a transaction removes it from bills, deleting a
category or budget detaches it from transactions, and deleting an account
either fails or purges the account's transactions.

All public coroutines hold one ``asyncio.Lock`` for their whole unit of
work, so a cascade is never interleaved with another controller call.
"""

import asyncio
import logging
from collections.abc import Mapping
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime, timezone
from typing import AsyncIterator, Iterable, Optional, Union

from finledger.database.base import Database
from finledger.domain.budget import calculate_budget_timespan, to_utc, validate_recurrence
from finledger.domain.currency import Currency, total
from finledger.domain.entities import (
    UNBOUNDED,
    Account,
    AssetAccount,
    Bill,
    BookCheckingAccount,
    Budget,
    Category,
    Recurring,
    Sign,
    Timespan,
    Transaction,
    normalize_identifier,
)
from finledger.domain.errors import (
    NotFoundError,
    RelatedTransactionsExistError,
    StorageError,
    ValidationError,
    account_delete_blocked,
    account_not_found,
    budget_not_found,
    category_not_found,
    duplicate_bill_transaction,
    negative_amount,
    transaction_not_found,
)
from finledger.domain.summary import sum_up_transactions_by_day
from finledger.domain.transaction_filter import TransactionFilter

logger = logging.getLogger(__name__)

BillTransactions = Union[Mapping[int, Sign], Iterable[tuple[int, Sign]]]


def _normalize_timespan(timespan: Timespan) -> Timespan:
    start, end = timespan
    return (
        to_utc(start) if start is not None else None,
        to_utc(end) if end is not None else None,
    )


def _bill_transactions(transactions: BillTransactions) -> dict[int, Sign]:
    """Turn a bill's transactions into a map, rejecting duplicate ids."""
    if isinstance(transactions, Mapping):
        return dict(transactions)

    result: dict[int, Sign] = {}
    for transaction_id, sign in transactions:
        if transaction_id in result:
            raise ValidationError(duplicate_bill_transaction(transaction_id))
        result[transaction_id] = sign
    return result


def _normalized(account: Account) -> Account:
    return replace(
        account, iban=normalize_identifier(account.iban), bic=normalize_identifier(account.bic)
    )


class LedgerController:
    """Integrity-preserving front end to a storage backend."""

    def __init__(self, database: Database):
        """Initialize the controller.

        Args:
            database: Storage backend; the controller becomes its only writer
        """
        self.db = database
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def _locked(self, action: str) -> AsyncIterator[None]:
        """Hold the controller lock and add context to storage failures."""
        async with self._lock:
            try:
                yield
            except StorageError as exc:
                raise StorageError(f"Error while {action}: {exc}") from exc

    # Account operations
    async def create_asset_account(
        self,
        name: str,
        note: Optional[str] = None,
        iban: Optional[str] = None,
        bic: Optional[str] = None,
        offset: Optional[Currency] = None,
    ) -> AssetAccount:
        """Create an asset account.

        Args:
            name: Account name
            note: Optional free-form note
            iban: Optional IBAN, normalized to upper case without spaces
            bic: Optional BIC, normalized the same way
            offset: Starting balance correction, zero when omitted

        Returns:
            The stored account
        """
        async with self._locked("creating asset account"):
            logger.debug("Creating asset account %r", name)
            return await self.db.create_asset_account(
                name,
                note,
                normalize_identifier(iban),
                normalize_identifier(bic),
                offset if offset is not None else Currency.zero(),
            )

    async def create_book_checking_account(
        self,
        name: str,
        note: Optional[str] = None,
        iban: Optional[str] = None,
        bic: Optional[str] = None,
    ) -> BookCheckingAccount:
        """Create a book checking account (counterparty)."""
        async with self._locked("creating book checking account"):
            logger.debug("Creating book checking account %r", name)
            return await self.db.create_book_checking_account(
                name, note, normalize_identifier(iban), normalize_identifier(bic)
            )

    async def update_asset_account(self, account: AssetAccount) -> AssetAccount:
        """Replace an asset account.

        Raises:
            NotFoundError: If no asset account with this id exists
        """
        async with self._locked("updating asset account"):
            return await self.db.update_asset_account(_normalized(account))

    async def update_book_checking_account(
        self, account: BookCheckingAccount
    ) -> BookCheckingAccount:
        """Replace a book checking account.

        Raises:
            NotFoundError: If no book checking account with this id exists
        """
        async with self._locked("updating book checking account"):
            return await self.db.update_book_checking_account(_normalized(account))

    async def get_account(self, account_id: int) -> Optional[Account]:
        async with self._locked("loading account"):
            return await self.db.get_account(account_id)

    async def get_accounts(self) -> list[Account]:
        async with self._locked("listing accounts"):
            return await self.db.get_accounts()

    async def get_accounts_map(self) -> dict[int, Account]:
        """Return all accounts keyed by id."""
        async with self._locked("listing accounts"):
            return {account.id: account for account in await self.db.get_accounts()}

    async def get_account_sum(
        self, account: Account, as_of: Optional[datetime] = None
    ) -> Currency:
        """Return the balance of an account.

        Args:
            account: Account to sum up
            as_of: Include transactions up to this moment; all when None

        Returns:
            Sum of all movements, plus the offset for asset accounts
        """
        async with self._locked("summing up account"):
            as_of = to_utc(as_of) if as_of is not None else None
            value = await self.db.get_account_sum(account, as_of)
            if isinstance(account, AssetAccount):
                value = value + account.offset
            return value

    async def delete_account(self, account_id: int, purge_transactions: bool = False) -> None:
        """Delete an account. Deleting an absent account does nothing.

        Args:
            account_id: Account to delete
            purge_transactions: Delete the account's transactions as well

        Raises:
            RelatedTransactionsExistError: If the account still has
                transactions and ``purge_transactions`` is False. Nothing is
                changed in that case.
        """
        async with self._locked("deleting account"):
            if await self.db.get_account(account_id) is None:
                logger.debug("Account %d does not exist, nothing to delete", account_id)
                return

            transactions = await self.db.get_transactions_of_account(account_id, UNBOUNDED)
            if transactions and not purge_transactions:
                raise RelatedTransactionsExistError(
                    account_delete_blocked(account_id, len(transactions))
                )

            for transaction in transactions:
                await self._delete_transaction(transaction.id)
            if transactions:
                logger.info(
                    "Purged %d transactions of account %d", len(transactions), account_id
                )
            await self.db.delete_account(account_id)

    # Transaction operations
    async def _validate_transaction(
        self,
        amount: Currency,
        source: int,
        destination: int,
        budget: Optional[tuple[int, Sign]],
        categories: Mapping[int, Sign],
    ) -> None:
        if amount.is_negative():
            raise ValidationError(negative_amount())
        if source == destination:
            raise ValidationError("Source and destination account must differ")
        for account_id in (source, destination):
            if await self.db.get_account(account_id) is None:
                raise ValidationError(account_not_found(account_id))
        await self._validate_categories(categories)
        if budget is not None and await self.db.get_budget(budget[0]) is None:
            raise ValidationError(budget_not_found(budget[0]))

    async def _validate_categories(self, categories: Mapping[int, Sign]) -> None:
        for category_id in categories:
            if await self.db.get_category(category_id) is None:
                raise ValidationError(category_not_found(category_id))

    async def create_transaction(
        self,
        amount: Currency,
        title: str,
        description: Optional[str],
        source: int,
        destination: int,
        budget: Optional[tuple[int, Sign]] = None,
        timestamp: Optional[datetime] = None,
        metadata: Optional[Mapping[str, str]] = None,
        categories: Optional[Mapping[int, Sign]] = None,
    ) -> Transaction:
        """Create a transaction.

        Args:
            amount: Non-negative amount moved from source to destination
            title: Short title
            description: Optional longer description
            source: Account the money leaves
            destination: Account the money arrives at
            budget: Optional ``(budget_id, sign)`` assignment
            timestamp: Moment of the transfer, now when omitted
            metadata: Free-form string key/value pairs
            categories: Category ids mapped to the sign they count with

        Returns:
            The stored transaction

        Raises:
            ValidationError: If the amount is negative, source equals
                destination or a referenced account, category or budget
                does not exist
        """
        categories = dict(categories or {})
        async with self._locked("creating transaction"):
            await self._validate_transaction(amount, source, destination, budget, categories)
            timestamp = to_utc(timestamp) if timestamp is not None else datetime.now(timezone.utc)
            logger.debug("Creating transaction %r from %d to %d", title, source, destination)
            return await self.db.create_transaction(
                amount,
                title,
                description,
                source,
                destination,
                budget,
                timestamp,
                dict(metadata or {}),
                categories,
            )

    async def update_transaction(self, transaction: Transaction) -> Transaction:
        """Replace a transaction.

        Raises:
            NotFoundError: If the transaction does not exist
            ValidationError: On the same conditions as ``create_transaction``
        """
        async with self._locked("updating transaction"):
            if await self.db.get_transaction(transaction.id) is None:
                raise NotFoundError(transaction_not_found(transaction.id))
            await self._validate_transaction(
                transaction.amount,
                transaction.source,
                transaction.destination,
                transaction.budget,
                transaction.categories,
            )
            return await self.db.update_transaction(
                replace(transaction, timestamp=to_utc(transaction.timestamp))
            )

    async def update_transaction_categories(
        self, transaction_id: int, categories: Mapping[int, Sign]
    ) -> Transaction:
        """Replace only the category map of a transaction.

        Raises:
            NotFoundError: If the transaction does not exist
            ValidationError: If a category does not exist
        """
        async with self._locked("updating transaction categories"):
            transaction = await self.db.get_transaction(transaction_id)
            if transaction is None:
                raise NotFoundError(transaction_not_found(transaction_id))
            await self._validate_categories(categories)
            return await self.db.update_transaction(
                replace(transaction, categories=dict(categories))
            )

    async def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        async with self._locked("loading transaction"):
            return await self.db.get_transaction(transaction_id)

    async def get_transactions(self, transaction_ids: Iterable[int]) -> list[Transaction]:
        async with self._locked("loading transactions"):
            return await self.db.get_transactions(list(transaction_ids))

    async def get_transactions_in_timespan(self, timespan: Timespan) -> list[Transaction]:
        async with self._locked("listing transactions"):
            return await self.db.get_transactions_in_timespan(_normalize_timespan(timespan))

    async def get_transactions_of_account(
        self, account_id: int, timespan: Timespan = UNBOUNDED
    ) -> list[Transaction]:
        async with self._locked("listing transactions of account"):
            return await self.db.get_transactions_of_account(
                account_id, _normalize_timespan(timespan)
            )

    async def get_transactions_of_budget(
        self, budget_id: int, timespan: Timespan = UNBOUNDED
    ) -> list[Transaction]:
        async with self._locked("listing transactions of budget"):
            return await self.db.get_transactions_of_budget(
                budget_id, _normalize_timespan(timespan)
            )

    async def get_transactions_of_category(
        self, category_id: int, timespan: Timespan = UNBOUNDED
    ) -> list[Transaction]:
        async with self._locked("listing transactions of category"):
            return await self.db.get_transactions_of_category(
                category_id, _normalize_timespan(timespan)
            )

    async def get_filtered_transactions(
        self, transaction_filter: TransactionFilter
    ) -> list[Transaction]:
        """Return all transactions passing the filter."""
        async with self._locked("filtering transactions"):
            candidates = await self.db.get_transactions_in_timespan(
                _normalize_timespan(transaction_filter.total_timespan())
            )
            bills: list[Bill] = []
            if any(entry.id is None for entry in transaction_filter.bills):
                bills = await self.db.get_bills()
            return transaction_filter.filter_transactions(candidates, bills)

    async def delete_transaction(self, transaction_id: int) -> None:
        """Delete a transaction after removing it from every bill."""
        async with self._locked("deleting transaction"):
            await self._delete_transaction(transaction_id)

    async def _delete_transaction(self, transaction_id: int) -> None:
        for bill in await self.db.get_bills():
            if transaction_id in bill.transactions:
                remaining = {
                    tid: sign for tid, sign in bill.transactions.items() if tid != transaction_id
                }
                await self.db.update_bill(replace(bill, transactions=remaining))
                logger.info("Removed transaction %d from bill %d", transaction_id, bill.id)
        await self.db.delete_transaction(transaction_id)

    # Budget operations
    async def create_budget(
        self,
        name: str,
        description: Optional[str],
        total_value: Currency,
        recurring: Recurring,
    ) -> Budget:
        """Create a budget.

        Raises:
            InvalidRecurrenceError: If the recurrence rule is invalid
        """
        validate_recurrence(recurring)
        async with self._locked("creating budget"):
            logger.debug("Creating budget %r", name)
            return await self.db.create_budget(name, description, total_value, recurring)

    async def update_budget(self, budget: Budget) -> Budget:
        """Replace a budget.

        Raises:
            InvalidRecurrenceError: If the recurrence rule is invalid
            NotFoundError: If the budget does not exist
        """
        validate_recurrence(budget.recurring)
        async with self._locked("updating budget"):
            return await self.db.update_budget(budget)

    async def get_budget(self, budget_id: int) -> Optional[Budget]:
        async with self._locked("loading budget"):
            return await self.db.get_budget(budget_id)

    async def get_budgets(self) -> list[Budget]:
        async with self._locked("listing budgets"):
            return await self.db.get_budgets()

    async def delete_budget(self, budget_id: int) -> None:
        """Delete a budget after detaching it from its transactions."""
        async with self._locked("deleting budget"):
            transactions = await self.db.get_transactions_of_budget(budget_id, UNBOUNDED)
            for transaction in transactions:
                await self.db.update_transaction(replace(transaction, budget=None))
            if transactions:
                logger.info(
                    "Detached budget %d from %d transactions", budget_id, len(transactions)
                )
            await self.db.delete_budget(budget_id)

    async def get_budget_transactions(
        self, budget: Budget, offset: int = 0, reference: Optional[datetime] = None
    ) -> list[Transaction]:
        """Return the transactions of one budget period.

        Args:
            budget: Budget to inspect
            offset: 0 for the current period, -1 for the previous one, ...
            reference: Moment selecting the current period, now when omitted
        """
        reference = reference if reference is not None else datetime.now(timezone.utc)
        timespan = calculate_budget_timespan(budget, offset, reference)
        async with self._locked("loading budget transactions"):
            return await self.db.get_transactions_of_budget(budget.id, timespan)

    async def get_budget_value(
        self, budget: Budget, offset: int = 0, reference: Optional[datetime] = None
    ) -> Currency:
        """Return how much of a budget period has been used.

        Each transaction counts with the sign of its budget assignment.
        """
        transactions = await self.get_budget_transactions(budget, offset, reference)
        return total(
            (t.budget[1].apply(t.amount) for t in transactions if t.budget is not None),
            budget.total_value.currency,
        )

    # Category operations
    async def create_category(self, name: str) -> Category:
        async with self._locked("creating category"):
            logger.debug("Creating category %r", name)
            return await self.db.create_category(name)

    async def update_category(self, category: Category) -> Category:
        async with self._locked("updating category"):
            return await self.db.update_category(category)

    async def get_category(self, category_id: int) -> Optional[Category]:
        async with self._locked("loading category"):
            return await self.db.get_category(category_id)

    async def get_categories(self) -> list[Category]:
        async with self._locked("listing categories"):
            return await self.db.get_categories()

    async def delete_category(self, category_id: int) -> None:
        """Delete a category after removing it from every transaction."""
        async with self._locked("deleting category"):
            transactions = await self.db.get_transactions_of_category(category_id, UNBOUNDED)
            for transaction in transactions:
                categories = {
                    cid: sign for cid, sign in transaction.categories.items() if cid != category_id
                }
                await self.db.update_transaction(replace(transaction, categories=categories))
            if transactions:
                logger.info(
                    "Removed category %d from %d transactions", category_id, len(transactions)
                )
            await self.db.delete_category(category_id)

    async def get_relative_category_values(
        self, category_id: int, timespan: Timespan = UNBOUNDED
    ) -> list[tuple[datetime, Currency]]:
        """Return the cumulative daily value of a category.

        Returns:
            Day-ordered ``(day_start, running_total)`` pairs; each transaction
            counts with its sign for this category
        """
        async with self._locked("summing up category"):
            transactions = await self.db.get_transactions_of_category(
                category_id, _normalize_timespan(timespan)
            )
        return sum_up_transactions_by_day(transactions, lambda t: t.categories[category_id])

    # Bill operations
    async def create_bill(
        self,
        name: str,
        description: Optional[str],
        value: Currency,
        transactions: BillTransactions,
        due_date: Optional[datetime] = None,
        closed: bool = False,
    ) -> Bill:
        """Create a bill.

        Args:
            name: Bill name
            description: Optional description
            value: Amount the bill is issued over
            transactions: Transaction ids with their signs, as a mapping or as
                ``(id, sign)`` pairs
            due_date: Optional due date
            closed: Whether the bill is already settled

        Raises:
            ValidationError: If a transaction id is listed twice
        """
        links = _bill_transactions(transactions)
        async with self._locked("creating bill"):
            logger.debug("Creating bill %r with %d transactions", name, len(links))
            return await self.db.create_bill(
                name,
                description,
                value,
                links,
                to_utc(due_date) if due_date is not None else None,
                closed,
            )

    async def update_bill(self, bill: Bill) -> Bill:
        """Replace a bill.

        Raises:
            NotFoundError: If the bill does not exist
        """
        links = _bill_transactions(bill.transactions)
        async with self._locked("updating bill"):
            due_date = to_utc(bill.due_date) if bill.due_date is not None else None
            return await self.db.update_bill(replace(bill, transactions=links, due_date=due_date))

    async def get_bill(self, bill_id: int) -> Optional[Bill]:
        async with self._locked("loading bill"):
            return await self.db.get_bill(bill_id)

    async def get_bills(self, closed: Optional[bool] = None) -> list[Bill]:
        async with self._locked("listing bills"):
            return await self.db.get_bills(closed)

    async def delete_bill(self, bill_id: int) -> None:
        async with self._locked("deleting bill"):
            await self.db.delete_bill(bill_id)

    async def get_bill_sum(self, bill: Bill) -> Currency:
        """Return the signed sum of a bill's transactions.

        Raises:
            NotFoundError: If the bill references a missing transaction
        """
        async with self._locked("summing up bill"):
            values = []
            for transaction_id, sign in bill.transactions.items():
                transaction = await self.db.get_transaction(transaction_id)
                if transaction is None:
                    raise NotFoundError(transaction_not_found(transaction_id))
                values.append(sign.apply(transaction.amount))
            return total(values, bill.value.currency)

    async def close(self) -> None:
        """Close the storage backend."""
        async with self._locked("closing database"):
            await self.db.close()
