"""In-memory database implementation."""

import logging
from dataclasses import replace
from datetime import datetime
from itertools import count
from typing import Optional

from finledger.database.base import Database
from finledger.domain.budget import to_utc
from finledger.domain.currency import Currency
from finledger.domain.entities import (
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
    in_timespan,
)
from finledger.domain.errors import (
    NotFoundError,
    account_not_found,
    bill_not_found,
    budget_not_found,
    category_not_found,
    transaction_not_found,
)

logger = logging.getLogger(__name__)


def _detached(transaction: Transaction) -> Transaction:
    return replace(
        transaction,
        metadata=dict(transaction.metadata),
        categories=dict(transaction.categories),
    )


class InMemoryDatabase(Database):
    """Dictionary-backed implementation of the Database interface.

    Nothing is persisted. Ids come from per-entity counters and are never
    handed out twice, even after a delete.
    """

    def __init__(self) -> None:
        self._accounts: dict[int, Account] = {}
        self._transactions: dict[int, Transaction] = {}
        self._budgets: dict[int, Budget] = {}
        self._categories: dict[int, Category] = {}
        self._bills: dict[int, Bill] = {}
        self._ids = {
            name: count(1) for name in ("account", "transaction", "budget", "category", "bill")
        }

    def _next_id(self, entity: str) -> int:
        return next(self._ids[entity])

    # Account operations
    async def create_asset_account(
        self,
        name: str,
        note: Optional[str],
        iban: Optional[str],
        bic: Optional[str],
        offset: Currency,
    ) -> AssetAccount:
        account = AssetAccount(
            id=self._next_id("account"), name=name, note=note, iban=iban, bic=bic, offset=offset
        )
        self._accounts[account.id] = account
        return account

    async def create_book_checking_account(
        self,
        name: str,
        note: Optional[str],
        iban: Optional[str],
        bic: Optional[str],
    ) -> BookCheckingAccount:
        account = BookCheckingAccount(
            id=self._next_id("account"), name=name, note=note, iban=iban, bic=bic
        )
        self._accounts[account.id] = account
        return account

    async def update_asset_account(self, account: AssetAccount) -> AssetAccount:
        if not isinstance(self._accounts.get(account.id), AssetAccount):
            raise NotFoundError(account_not_found(account.id))
        self._accounts[account.id] = account
        return account

    async def update_book_checking_account(
        self, account: BookCheckingAccount
    ) -> BookCheckingAccount:
        if not isinstance(self._accounts.get(account.id), BookCheckingAccount):
            raise NotFoundError(account_not_found(account.id))
        self._accounts[account.id] = account
        return account

    async def get_account(self, account_id: int) -> Optional[Account]:
        return self._accounts.get(account_id)

    async def get_accounts(self) -> list[Account]:
        return list(self._accounts.values())

    async def delete_account(self, account_id: int) -> None:
        self._accounts.pop(account_id, None)

    # Transaction operations
    async def create_transaction(
        self,
        amount: Currency,
        title: str,
        description: Optional[str],
        source: int,
        destination: int,
        budget: Optional[tuple[int, Sign]],
        timestamp: datetime,
        metadata: dict[str, str],
        categories: dict[int, Sign],
    ) -> Transaction:
        transaction = Transaction(
            id=self._next_id("transaction"),
            amount=amount,
            title=title,
            description=description,
            source=source,
            destination=destination,
            budget=budget,
            timestamp=to_utc(timestamp),
            metadata=dict(metadata),
            categories=dict(categories),
        )
        self._transactions[transaction.id] = transaction
        return _detached(transaction)

    async def update_transaction(self, transaction: Transaction) -> Transaction:
        if transaction.id not in self._transactions:
            raise NotFoundError(transaction_not_found(transaction.id))
        stored = _detached(replace(transaction, timestamp=to_utc(transaction.timestamp)))
        self._transactions[transaction.id] = stored
        return _detached(stored)

    async def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        transaction = self._transactions.get(transaction_id)
        return _detached(transaction) if transaction is not None else None

    async def delete_transaction(self, transaction_id: int) -> None:
        self._transactions.pop(transaction_id, None)

    async def get_transactions_in_timespan(self, timespan: Timespan) -> list[Transaction]:
        return [
            _detached(t) for t in self._transactions.values() if in_timespan(t.timestamp, timespan)
        ]

    async def get_transactions_of_account(
        self, account_id: int, timespan: Timespan
    ) -> list[Transaction]:
        return [
            _detached(t)
            for t in self._transactions.values()
            if t.touches_account(account_id) and in_timespan(t.timestamp, timespan)
        ]

    async def get_transactions_of_budget(
        self, budget_id: int, timespan: Timespan
    ) -> list[Transaction]:
        return [
            _detached(t)
            for t in self._transactions.values()
            if t.budget_id == budget_id and in_timespan(t.timestamp, timespan)
        ]

    async def get_transactions_of_category(
        self, category_id: int, timespan: Timespan
    ) -> list[Transaction]:
        return [
            _detached(t)
            for t in self._transactions.values()
            if category_id in t.categories and in_timespan(t.timestamp, timespan)
        ]

    # Budget operations
    async def create_budget(
        self,
        name: str,
        description: Optional[str],
        total_value: Currency,
        recurring: Recurring,
    ) -> Budget:
        budget = Budget(
            id=self._next_id("budget"),
            name=name,
            description=description,
            total_value=total_value,
            recurring=recurring,
        )
        self._budgets[budget.id] = budget
        return budget

    async def update_budget(self, budget: Budget) -> Budget:
        if budget.id not in self._budgets:
            raise NotFoundError(budget_not_found(budget.id))
        self._budgets[budget.id] = budget
        return budget

    async def get_budget(self, budget_id: int) -> Optional[Budget]:
        return self._budgets.get(budget_id)

    async def get_budgets(self) -> list[Budget]:
        return list(self._budgets.values())

    async def delete_budget(self, budget_id: int) -> None:
        self._budgets.pop(budget_id, None)

    # Category operations
    async def create_category(self, name: str) -> Category:
        category = Category(id=self._next_id("category"), name=name)
        self._categories[category.id] = category
        return category

    async def update_category(self, category: Category) -> Category:
        if category.id not in self._categories:
            raise NotFoundError(category_not_found(category.id))
        self._categories[category.id] = category
        return category

    async def get_category(self, category_id: int) -> Optional[Category]:
        return self._categories.get(category_id)

    async def get_categories(self) -> list[Category]:
        return list(self._categories.values())

    async def delete_category(self, category_id: int) -> None:
        self._categories.pop(category_id, None)

    # Bill operations
    async def create_bill(
        self,
        name: str,
        description: Optional[str],
        value: Currency,
        transactions: dict[int, Sign],
        due_date: Optional[datetime],
        closed: bool = False,
    ) -> Bill:
        bill = Bill(
            id=self._next_id("bill"),
            name=name,
            description=description,
            value=value,
            transactions=dict(transactions),
            due_date=to_utc(due_date) if due_date is not None else None,
            closed=closed,
        )
        self._bills[bill.id] = bill
        return replace(bill, transactions=dict(bill.transactions))

    async def update_bill(self, bill: Bill) -> Bill:
        if bill.id not in self._bills:
            raise NotFoundError(bill_not_found(bill.id))
        stored = replace(bill, transactions=dict(bill.transactions))
        self._bills[bill.id] = stored
        return replace(stored, transactions=dict(stored.transactions))

    async def get_bill(self, bill_id: int) -> Optional[Bill]:
        bill = self._bills.get(bill_id)
        return replace(bill, transactions=dict(bill.transactions)) if bill is not None else None

    async def get_bills(self, closed: Optional[bool] = None) -> list[Bill]:
        return [
            replace(b, transactions=dict(b.transactions))
            for b in self._bills.values()
            if closed is None or b.closed == closed
        ]

    async def delete_bill(self, bill_id: int) -> None:
        self._bills.pop(bill_id, None)

    async def close(self) -> None:
        logger.debug("Discarding in-memory ledger")
