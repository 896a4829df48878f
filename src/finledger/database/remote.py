"""Remote database proxying every call to a finledger server."""

import logging
from datetime import datetime
from typing import Any, Optional

import httpx
from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from finledger.database.base import Database
from finledger.domain import errors
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
)
from finledger.server.schemas import (
    AccountIdIn,
    AccountIn,
    AccountModel,
    AccountTimespanIn,
    AssetAccountIn,
    AssetAccountModel,
    AssetAccountUpdateIn,
    BillIdIn,
    BillIn,
    BillModel,
    BillsIn,
    BillUpdateIn,
    BookCheckingAccountModel,
    BookCheckingAccountUpdateIn,
    BudgetIdIn,
    BudgetIn,
    BudgetModel,
    BudgetTimespanIn,
    BudgetUpdateIn,
    CategoryIdIn,
    CategoryIn,
    CategoryModel,
    CategoryTimespanIn,
    CategoryUpdateIn,
    CurrencyModel,
    NoArguments,
    TimespanIn,
    TransactionIdIn,
    TransactionIdsIn,
    TransactionIn,
    TransactionModel,
    TransactionUpdateIn,
    recurring_model,
)

logger = logging.getLogger(__name__)

# Error kinds a server reports, mapped back to the exceptions raised locally
ERROR_TYPES: dict[str, type[Exception]] = {
    cls.__name__: cls
    for cls in (
        errors.DomainError,
        errors.ValidationError,
        errors.InvalidRecurrenceError,
        errors.NotFoundError,
        errors.DependencyError,
        errors.RelatedTransactionsExistError,
        errors.StorageError,
        errors.CurrencyMismatchError,
    )
}

DEFAULT_TIMEOUT = 30.0

OPTIONAL_ACCOUNT = TypeAdapter(Optional[AccountModel])
ACCOUNTS = TypeAdapter(list[AccountModel])
OPTIONAL_TRANSACTION = TypeAdapter(Optional[TransactionModel])
TRANSACTIONS = TypeAdapter(list[TransactionModel])
OPTIONAL_BUDGET = TypeAdapter(Optional[BudgetModel])
BUDGETS = TypeAdapter(list[BudgetModel])
OPTIONAL_CATEGORY = TypeAdapter(Optional[CategoryModel])
CATEGORIES = TypeAdapter(list[CategoryModel])
OPTIONAL_BILL = TypeAdapter(Optional[BillModel])
BILLS = TypeAdapter(list[BillModel])


def _to_domain(found: Optional[Any]) -> Any:
    return found.to_domain() if found is not None else None


class RemoteDatabase(Database):
    """Database implementation talking HTTP/JSON to ``finledger serve``.

    Failures are never retried: transport problems and unexpected answers
    raise ``StorageError``, error answers raise the exception the server
    reported.

    The server runs every call through its own ``LedgerController``, so
    deletes cascade and writes are validated on the server side as well.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the remote database.

        Args:
            base_url: Server URL, e.g. 'http://localhost:8420'
            token: Optional bearer token sent with every request
            client: Optional preconfigured client; its lifetime stays with
                the caller
        """
        self.base_url = base_url.rstrip("/")
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._owns_client = client is None
        if client is None:
            client = httpx.AsyncClient(base_url=self.base_url, timeout=DEFAULT_TIMEOUT)
        self._client = client
        self._headers = headers

    async def _call(self, operation: str, args: Optional[BaseModel] = None) -> Any:
        """Invoke one server operation and return the raw ``result`` payload."""
        body = (args if args is not None else NoArguments()).model_dump(mode="json")
        try:
            response = await self._client.post(
                f"{self.base_url}/{operation}", json=body, headers=self._headers
            )
        except httpx.HTTPError as exc:
            logger.error("Request %s to %s failed: %s", operation, self.base_url, exc)
            raise errors.StorageError(f"Request {operation} failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise errors.StorageError(
                f"Invalid response to {operation} (HTTP {response.status_code})"
            ) from exc

        if response.is_success and isinstance(payload, dict) and "result" in payload:
            return payload["result"]

        kind = payload.get("error") if isinstance(payload, dict) else None
        detail = payload.get("detail") if isinstance(payload, dict) else None
        error_type = ERROR_TYPES.get(kind or "")
        if error_type is None:
            raise errors.StorageError(
                f"Server rejected {operation} (HTTP {response.status_code}): {detail or kind}"
            )
        raise error_type(detail)

    async def _fetch(self, operation: str, args: Optional[BaseModel], result: TypeAdapter) -> Any:
        """Invoke an operation and validate its result."""
        data = await self._call(operation, args)
        try:
            return result.validate_python(data)
        except PydanticValidationError as exc:
            raise errors.StorageError(f"Invalid response to {operation}: {exc}") from exc

    async def _fetch_model(self, operation: str, args: BaseModel, model: type[BaseModel]) -> Any:
        data = await self._call(operation, args)
        try:
            return model.model_validate(data).to_domain()
        except PydanticValidationError as exc:
            raise errors.StorageError(f"Invalid response to {operation}: {exc}") from exc

    # Account operations
    async def create_asset_account(
        self,
        name: str,
        note: Optional[str],
        iban: Optional[str],
        bic: Optional[str],
        offset: Currency,
    ) -> AssetAccount:
        args = AssetAccountIn(
            name=name, note=note, iban=iban, bic=bic, offset=CurrencyModel.from_domain(offset)
        )
        return await self._fetch_model("create_asset_account", args, AssetAccountModel)

    async def create_book_checking_account(
        self,
        name: str,
        note: Optional[str],
        iban: Optional[str],
        bic: Optional[str],
    ) -> BookCheckingAccount:
        args = AccountIn(name=name, note=note, iban=iban, bic=bic)
        return await self._fetch_model(
            "create_book_checking_account", args, BookCheckingAccountModel
        )

    async def update_asset_account(self, account: AssetAccount) -> AssetAccount:
        args = AssetAccountUpdateIn(account=AssetAccountModel.from_domain(account))
        return await self._fetch_model("update_asset_account", args, AssetAccountModel)

    async def update_book_checking_account(
        self, account: BookCheckingAccount
    ) -> BookCheckingAccount:
        args = BookCheckingAccountUpdateIn(account=BookCheckingAccountModel.from_domain(account))
        return await self._fetch_model(
            "update_book_checking_account", args, BookCheckingAccountModel
        )

    async def get_account(self, account_id: int) -> Optional[Account]:
        found = await self._fetch(
            "get_account", AccountIdIn(account_id=account_id), OPTIONAL_ACCOUNT
        )
        return _to_domain(found)

    async def get_accounts(self) -> list[Account]:
        return [a.to_domain() for a in await self._fetch("get_accounts", None, ACCOUNTS)]

    async def delete_account(self, account_id: int) -> None:
        await self._call("delete_account", AccountIdIn(account_id=account_id))

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
        args = TransactionIn(
            amount=CurrencyModel.from_domain(amount),
            title=title,
            description=description,
            source=source,
            destination=destination,
            budget=budget,
            timestamp=timestamp,
            metadata=dict(metadata),
            categories=dict(categories),
        )
        return await self._fetch_model("create_transaction", args, TransactionModel)

    async def update_transaction(self, transaction: Transaction) -> Transaction:
        args = TransactionUpdateIn(transaction=TransactionModel.from_domain(transaction))
        return await self._fetch_model("update_transaction", args, TransactionModel)

    async def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        found = await self._fetch(
            "get_transaction", TransactionIdIn(transaction_id=transaction_id), OPTIONAL_TRANSACTION
        )
        return _to_domain(found)

    async def get_transactions(self, transaction_ids) -> list[Transaction]:
        args = TransactionIdsIn(transaction_ids=list(transaction_ids))
        return [t.to_domain() for t in await self._fetch("get_transactions", args, TRANSACTIONS)]

    async def delete_transaction(self, transaction_id: int) -> None:
        await self._call("delete_transaction", TransactionIdIn(transaction_id=transaction_id))

    async def _transactions(self, operation: str, args: BaseModel) -> list[Transaction]:
        return [t.to_domain() for t in await self._fetch(operation, args, TRANSACTIONS)]

    async def get_transactions_in_timespan(self, timespan: Timespan) -> list[Transaction]:
        return await self._transactions(
            "get_transactions_in_timespan", TimespanIn(timespan=timespan)
        )

    async def get_transactions_of_account(
        self, account_id: int, timespan: Timespan
    ) -> list[Transaction]:
        return await self._transactions(
            "get_transactions_of_account",
            AccountTimespanIn(account_id=account_id, timespan=timespan),
        )

    async def get_transactions_of_budget(
        self, budget_id: int, timespan: Timespan
    ) -> list[Transaction]:
        return await self._transactions(
            "get_transactions_of_budget", BudgetTimespanIn(budget_id=budget_id, timespan=timespan)
        )

    async def get_transactions_of_category(
        self, category_id: int, timespan: Timespan
    ) -> list[Transaction]:
        return await self._transactions(
            "get_transactions_of_category",
            CategoryTimespanIn(category_id=category_id, timespan=timespan),
        )

    # Budget operations
    async def create_budget(
        self,
        name: str,
        description: Optional[str],
        total_value: Currency,
        recurring: Recurring,
    ) -> Budget:
        args = BudgetIn(
            name=name,
            description=description,
            total_value=CurrencyModel.from_domain(total_value),
            recurring=recurring_model(recurring),
        )
        return await self._fetch_model("create_budget", args, BudgetModel)

    async def update_budget(self, budget: Budget) -> Budget:
        args = BudgetUpdateIn(budget=BudgetModel.from_domain(budget))
        return await self._fetch_model("update_budget", args, BudgetModel)

    async def get_budget(self, budget_id: int) -> Optional[Budget]:
        found = await self._fetch("get_budget", BudgetIdIn(budget_id=budget_id), OPTIONAL_BUDGET)
        return _to_domain(found)

    async def get_budgets(self) -> list[Budget]:
        return [b.to_domain() for b in await self._fetch("get_budgets", None, BUDGETS)]

    async def delete_budget(self, budget_id: int) -> None:
        await self._call("delete_budget", BudgetIdIn(budget_id=budget_id))

    # Category operations
    async def create_category(self, name: str) -> Category:
        return await self._fetch_model("create_category", CategoryIn(name=name), CategoryModel)

    async def update_category(self, category: Category) -> Category:
        args = CategoryUpdateIn(category=CategoryModel.from_domain(category))
        return await self._fetch_model("update_category", args, CategoryModel)

    async def get_category(self, category_id: int) -> Optional[Category]:
        found = await self._fetch(
            "get_category", CategoryIdIn(category_id=category_id), OPTIONAL_CATEGORY
        )
        return _to_domain(found)

    async def get_categories(self) -> list[Category]:
        return [c.to_domain() for c in await self._fetch("get_categories", None, CATEGORIES)]

    async def delete_category(self, category_id: int) -> None:
        await self._call("delete_category", CategoryIdIn(category_id=category_id))

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
        args = BillIn(
            name=name,
            description=description,
            value=CurrencyModel.from_domain(value),
            transactions=dict(transactions),
            due_date=due_date,
            closed=closed,
        )
        return await self._fetch_model("create_bill", args, BillModel)

    async def update_bill(self, bill: Bill) -> Bill:
        return await self._fetch_model(
            "update_bill", BillUpdateIn(bill=BillModel.from_domain(bill)), BillModel
        )

    async def get_bill(self, bill_id: int) -> Optional[Bill]:
        return _to_domain(await self._fetch("get_bill", BillIdIn(bill_id=bill_id), OPTIONAL_BILL))

    async def get_bills(self, closed: Optional[bool] = None) -> list[Bill]:
        return [b.to_domain() for b in await self._fetch("get_bills", BillsIn(closed=closed), BILLS)]

    async def delete_bill(self, bill_id: int) -> None:
        await self._call("delete_bill", BillIdIn(bill_id=bill_id))

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
