"""Abstract database interface."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, Optional

from finledger.domain.currency import Currency, total
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
)


class Database(ABC):
    """Abstract storage backend for finledger.

    Local backends only store and retrieve records. They never cascade
    changes across entities; that is the job of ``LedgerController``. The
    remote backend is the exception: the server runs each call through its
    own controller, so its deletes cascade and its writes are validated
    before they are stored. Getters return ``None`` for unknown ids, updates
    raise ``NotFoundError`` and deletes of unknown ids are no-ops.
    """

    # Account operations
    @abstractmethod
    async def create_asset_account(
        self,
        name: str,
        note: Optional[str],
        iban: Optional[str],
        bic: Optional[str],
        offset: Currency,
    ) -> AssetAccount:
        """Create an asset account with a fresh id."""

    @abstractmethod
    async def create_book_checking_account(
        self,
        name: str,
        note: Optional[str],
        iban: Optional[str],
        bic: Optional[str],
    ) -> BookCheckingAccount:
        """Create a book checking account with a fresh id."""

    @abstractmethod
    async def update_asset_account(self, account: AssetAccount) -> AssetAccount:
        """Replace a stored asset account."""

    @abstractmethod
    async def update_book_checking_account(
        self, account: BookCheckingAccount
    ) -> BookCheckingAccount:
        """Replace a stored book checking account."""

    @abstractmethod
    async def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""

    @abstractmethod
    async def get_accounts(self) -> list[Account]:
        """List all accounts."""

    @abstractmethod
    async def delete_account(self, account_id: int) -> None:
        """Delete an account."""

    # Transaction operations
    @abstractmethod
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
        """Create a transaction with a fresh id."""

    @abstractmethod
    async def update_transaction(self, transaction: Transaction) -> Transaction:
        """Replace a stored transaction including its category links."""

    @abstractmethod
    async def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID."""

    @abstractmethod
    async def delete_transaction(self, transaction_id: int) -> None:
        """Delete a transaction and its own category links."""

    @abstractmethod
    async def get_transactions_in_timespan(self, timespan: Timespan) -> list[Transaction]:
        """List transactions with a timestamp inside the timespan."""

    @abstractmethod
    async def get_transactions_of_account(
        self, account_id: int, timespan: Timespan
    ) -> list[Transaction]:
        """List transactions with the account as source or destination."""

    @abstractmethod
    async def get_transactions_of_budget(
        self, budget_id: int, timespan: Timespan
    ) -> list[Transaction]:
        """List transactions assigned to the budget."""

    @abstractmethod
    async def get_transactions_of_category(
        self, category_id: int, timespan: Timespan
    ) -> list[Transaction]:
        """List transactions carrying the category."""

    # Budget operations
    @abstractmethod
    async def create_budget(
        self,
        name: str,
        description: Optional[str],
        total_value: Currency,
        recurring: Recurring,
    ) -> Budget:
        """Create a budget with a fresh id."""

    @abstractmethod
    async def update_budget(self, budget: Budget) -> Budget:
        """Replace a stored budget."""

    @abstractmethod
    async def get_budget(self, budget_id: int) -> Optional[Budget]:
        """Get budget by ID."""

    @abstractmethod
    async def get_budgets(self) -> list[Budget]:
        """List all budgets."""

    @abstractmethod
    async def delete_budget(self, budget_id: int) -> None:
        """Delete a budget."""

    # Category operations
    @abstractmethod
    async def create_category(self, name: str) -> Category:
        """Create a category with a fresh id."""

    @abstractmethod
    async def update_category(self, category: Category) -> Category:
        """Replace a stored category."""

    @abstractmethod
    async def get_category(self, category_id: int) -> Optional[Category]:
        """Get category by ID."""

    @abstractmethod
    async def get_categories(self) -> list[Category]:
        """List all categories."""

    @abstractmethod
    async def delete_category(self, category_id: int) -> None:
        """Delete a category."""

    # Bill operations
    @abstractmethod
    async def create_bill(
        self,
        name: str,
        description: Optional[str],
        value: Currency,
        transactions: dict[int, Sign],
        due_date: Optional[datetime],
        closed: bool = False,
    ) -> Bill:
        """Create a bill with a fresh id."""

    @abstractmethod
    async def update_bill(self, bill: Bill) -> Bill:
        """Replace a stored bill including its transaction links."""

    @abstractmethod
    async def get_bill(self, bill_id: int) -> Optional[Bill]:
        """Get bill by ID."""

    @abstractmethod
    async def get_bills(self, closed: Optional[bool] = None) -> list[Bill]:
        """List bills, optionally only open or only closed ones."""

    @abstractmethod
    async def delete_bill(self, bill_id: int) -> None:
        """Delete a bill and its own transaction links."""

    async def get_transactions(self, transaction_ids: Iterable[int]) -> list[Transaction]:
        """Get several transactions, skipping unknown ids."""
        result = []
        for transaction_id in transaction_ids:
            transaction = await self.get_transaction(transaction_id)
            if transaction is not None:
                result.append(transaction)
        return result

    async def get_account_sum(
        self, account: Account, as_of: Optional[datetime] = None
    ) -> Currency:
        """Sum all movements of an account up to ``as_of`` (inclusive).

        Money arriving at the account counts positive, money leaving it
        negative. Asset offsets are not included.
        """
        transactions = await self.get_transactions_of_account(account.id, (None, as_of))
        currency = account.offset.currency if isinstance(account, AssetAccount) else None
        return total(
            (
                t.amount if t.destination == account.id else -t.amount
                for t in transactions
            ),
            currency,
        )

    async def close(self) -> None:
        """Release backend resources."""
