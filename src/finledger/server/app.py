"""HTTP/JSON transport exposing a LedgerController.

Every controller operation is served as ``POST /<operation>``. The request
body is a JSON object validated against the operation's pydantic model and a
successful response is ``{"result": ...}``. Failures answer with
``{"error": <kind>, "detail": <message>}`` where ``kind`` is the exception
class name.
"""

import logging
import secrets
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from finledger.domain.controller import LedgerController
from finledger.domain.errors import (
    CurrencyMismatchError,
    DependencyError,
    DomainError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from finledger.server.schemas import (
    AccountDeleteIn,
    AccountIdIn,
    AccountIn,
    AccountSumIn,
    AccountTimespanIn,
    AssetAccountIn,
    AssetAccountUpdateIn,
    BillIdIn,
    BillIn,
    BillModel,
    BillsIn,
    BillSumIn,
    BillUpdateIn,
    BookCheckingAccountUpdateIn,
    BudgetIdIn,
    BudgetIn,
    BudgetModel,
    BudgetPeriodIn,
    BudgetTimespanIn,
    BudgetUpdateIn,
    CategoryIdIn,
    CategoryIn,
    CategoryModel,
    CategoryTimespanIn,
    CategoryUpdateIn,
    CurrencyModel,
    FilterIn,
    NoArguments,
    TimespanIn,
    TransactionCategoriesIn,
    TransactionIdIn,
    TransactionIdsIn,
    TransactionIn,
    TransactionModel,
    TransactionUpdateIn,
    account_model,
)

logger = logging.getLogger(__name__)

Handler = Callable[[LedgerController, Any], Awaitable[Any]]

# Error kinds of failures raised by routing and authentication
HTTP_ERROR_KINDS = {401: "Unauthorized", 404: "UnknownOperation", 405: "MethodNotAllowed"}


@dataclass(frozen=True)
class Operation:
    """A controller call served at ``POST /<name>``."""

    request: type[BaseModel]
    handler: Handler


OPERATIONS: dict[str, Operation] = {}


def operation(name: str, request: type[BaseModel] = NoArguments) -> Callable[[Handler], Handler]:
    """Register a handler under an operation name with its request model."""

    def register(handler: Handler) -> Handler:
        OPERATIONS[name] = Operation(request, handler)
        return handler

    return register


def status_for(error: Exception) -> int:
    """Return the HTTP status code a failure is reported with."""
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, DependencyError):
        return 409
    if isinstance(error, (ValidationError, CurrencyMismatchError)):
        return 422
    if isinstance(error, StorageError):
        return 503
    return 400


def _optional(value, convert):
    return convert(value) if value is not None else None


def _transactions(transactions) -> list[TransactionModel]:
    return [TransactionModel.from_domain(t) for t in transactions]


# Account operations
@operation("create_asset_account", AssetAccountIn)
async def _create_asset_account(controller: LedgerController, args: AssetAccountIn):
    return account_model(
        await controller.create_asset_account(
            args.name, args.note, args.iban, args.bic, args.offset.to_domain()
        )
    )


@operation("create_book_checking_account", AccountIn)
async def _create_book_checking_account(controller: LedgerController, args: AccountIn):
    return account_model(
        await controller.create_book_checking_account(args.name, args.note, args.iban, args.bic)
    )


@operation("update_asset_account", AssetAccountUpdateIn)
async def _update_asset_account(controller: LedgerController, args: AssetAccountUpdateIn):
    return account_model(await controller.update_asset_account(args.account.to_domain()))


@operation("update_book_checking_account", BookCheckingAccountUpdateIn)
async def _update_book_checking_account(
    controller: LedgerController, args: BookCheckingAccountUpdateIn
):
    return account_model(await controller.update_book_checking_account(args.account.to_domain()))


@operation("get_account", AccountIdIn)
async def _get_account(controller: LedgerController, args: AccountIdIn):
    return _optional(await controller.get_account(args.account_id), account_model)


@operation("get_accounts")
async def _get_accounts(controller: LedgerController, args: NoArguments):
    return [account_model(a) for a in await controller.get_accounts()]


@operation("get_accounts_map")
async def _get_accounts_map(controller: LedgerController, args: NoArguments):
    accounts = await controller.get_accounts_map()
    return {account_id: account_model(a) for account_id, a in accounts.items()}


@operation("get_account_sum", AccountSumIn)
async def _get_account_sum(controller: LedgerController, args: AccountSumIn):
    return CurrencyModel.from_domain(
        await controller.get_account_sum(args.account.to_domain(), args.as_of)
    )


@operation("delete_account", AccountDeleteIn)
async def _delete_account(controller: LedgerController, args: AccountDeleteIn):
    await controller.delete_account(args.account_id, args.purge_transactions)


# Transaction operations
@operation("create_transaction", TransactionIn)
async def _create_transaction(controller: LedgerController, args: TransactionIn):
    return TransactionModel.from_domain(
        await controller.create_transaction(
            args.amount.to_domain(),
            args.title,
            args.description,
            args.source,
            args.destination,
            args.budget,
            args.timestamp,
            args.metadata,
            args.categories,
        )
    )


@operation("update_transaction", TransactionUpdateIn)
async def _update_transaction(controller: LedgerController, args: TransactionUpdateIn):
    return TransactionModel.from_domain(
        await controller.update_transaction(args.transaction.to_domain())
    )


@operation("update_transaction_categories", TransactionCategoriesIn)
async def _update_transaction_categories(
    controller: LedgerController, args: TransactionCategoriesIn
):
    return TransactionModel.from_domain(
        await controller.update_transaction_categories(args.transaction_id, args.categories)
    )


@operation("get_transaction", TransactionIdIn)
async def _get_transaction(controller: LedgerController, args: TransactionIdIn):
    return _optional(
        await controller.get_transaction(args.transaction_id), TransactionModel.from_domain
    )


@operation("get_transactions", TransactionIdsIn)
async def _get_transactions(controller: LedgerController, args: TransactionIdsIn):
    return _transactions(await controller.get_transactions(args.transaction_ids))


@operation("get_transactions_in_timespan", TimespanIn)
async def _get_transactions_in_timespan(controller: LedgerController, args: TimespanIn):
    return _transactions(await controller.get_transactions_in_timespan(args.timespan))


@operation("get_transactions_of_account", AccountTimespanIn)
async def _get_transactions_of_account(controller: LedgerController, args: AccountTimespanIn):
    return _transactions(
        await controller.get_transactions_of_account(args.account_id, args.timespan)
    )


@operation("get_transactions_of_budget", BudgetTimespanIn)
async def _get_transactions_of_budget(controller: LedgerController, args: BudgetTimespanIn):
    return _transactions(
        await controller.get_transactions_of_budget(args.budget_id, args.timespan)
    )


@operation("get_transactions_of_category", CategoryTimespanIn)
async def _get_transactions_of_category(controller: LedgerController, args: CategoryTimespanIn):
    return _transactions(
        await controller.get_transactions_of_category(args.category_id, args.timespan)
    )


@operation("get_filtered_transactions", FilterIn)
async def _get_filtered_transactions(controller: LedgerController, args: FilterIn):
    return _transactions(await controller.get_filtered_transactions(args.filter.to_domain()))


@operation("delete_transaction", TransactionIdIn)
async def _delete_transaction(controller: LedgerController, args: TransactionIdIn):
    await controller.delete_transaction(args.transaction_id)


# Budget operations
@operation("create_budget", BudgetIn)
async def _create_budget(controller: LedgerController, args: BudgetIn):
    return BudgetModel.from_domain(
        await controller.create_budget(
            args.name,
            args.description,
            args.total_value.to_domain(),
            args.recurring.to_domain(),
        )
    )


@operation("update_budget", BudgetUpdateIn)
async def _update_budget(controller: LedgerController, args: BudgetUpdateIn):
    return BudgetModel.from_domain(await controller.update_budget(args.budget.to_domain()))


@operation("get_budget", BudgetIdIn)
async def _get_budget(controller: LedgerController, args: BudgetIdIn):
    return _optional(await controller.get_budget(args.budget_id), BudgetModel.from_domain)


@operation("get_budgets")
async def _get_budgets(controller: LedgerController, args: NoArguments):
    return [BudgetModel.from_domain(b) for b in await controller.get_budgets()]


@operation("delete_budget", BudgetIdIn)
async def _delete_budget(controller: LedgerController, args: BudgetIdIn):
    await controller.delete_budget(args.budget_id)


@operation("get_budget_transactions", BudgetPeriodIn)
async def _get_budget_transactions(controller: LedgerController, args: BudgetPeriodIn):
    return _transactions(
        await controller.get_budget_transactions(
            args.budget.to_domain(), args.offset, args.reference
        )
    )


@operation("get_budget_value", BudgetPeriodIn)
async def _get_budget_value(controller: LedgerController, args: BudgetPeriodIn):
    return CurrencyModel.from_domain(
        await controller.get_budget_value(args.budget.to_domain(), args.offset, args.reference)
    )


# Category operations
@operation("create_category", CategoryIn)
async def _create_category(controller: LedgerController, args: CategoryIn):
    return CategoryModel.from_domain(await controller.create_category(args.name))


@operation("update_category", CategoryUpdateIn)
async def _update_category(controller: LedgerController, args: CategoryUpdateIn):
    return CategoryModel.from_domain(await controller.update_category(args.category.to_domain()))


@operation("get_category", CategoryIdIn)
async def _get_category(controller: LedgerController, args: CategoryIdIn):
    return _optional(await controller.get_category(args.category_id), CategoryModel.from_domain)


@operation("get_categories")
async def _get_categories(controller: LedgerController, args: NoArguments):
    return [CategoryModel.from_domain(c) for c in await controller.get_categories()]


@operation("delete_category", CategoryIdIn)
async def _delete_category(controller: LedgerController, args: CategoryIdIn):
    await controller.delete_category(args.category_id)


@operation("get_relative_category_values", CategoryTimespanIn)
async def _get_relative_category_values(controller: LedgerController, args: CategoryTimespanIn):
    values = await controller.get_relative_category_values(args.category_id, args.timespan)
    return [(day, CurrencyModel.from_domain(value)) for day, value in values]


# Bill operations
@operation("create_bill", BillIn)
async def _create_bill(controller: LedgerController, args: BillIn):
    return BillModel.from_domain(
        await controller.create_bill(
            args.name,
            args.description,
            args.value.to_domain(),
            args.transactions,
            args.due_date,
            args.closed,
        )
    )


@operation("update_bill", BillUpdateIn)
async def _update_bill(controller: LedgerController, args: BillUpdateIn):
    return BillModel.from_domain(await controller.update_bill(args.bill.to_domain()))


@operation("get_bill", BillIdIn)
async def _get_bill(controller: LedgerController, args: BillIdIn):
    return _optional(await controller.get_bill(args.bill_id), BillModel.from_domain)


@operation("get_bills", BillsIn)
async def _get_bills(controller: LedgerController, args: BillsIn):
    return [BillModel.from_domain(b) for b in await controller.get_bills(args.closed)]


@operation("delete_bill", BillIdIn)
async def _delete_bill(controller: LedgerController, args: BillIdIn):
    await controller.delete_bill(args.bill_id)


@operation("get_bill_sum", BillSumIn)
async def _get_bill_sum(controller: LedgerController, args: BillSumIn):
    return CurrencyModel.from_domain(await controller.get_bill_sum(args.bill.to_domain()))


def _error_response(status_code: int, kind: str, detail: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": kind, "detail": detail})


def _endpoint(controller: LedgerController, name: str, op: Operation):
    async def endpoint(args: op.request):
        logger.debug("Dispatching %s", name)
        return {"result": await op.handler(controller, args)}

    endpoint.__name__ = name
    return endpoint


def create_app(controller: LedgerController, token: Optional[str] = None) -> FastAPI:
    """Build the FastAPI application serving a controller.

    Args:
        controller: Controller all requests are dispatched to
        token: When set, every request must send ``Authorization: Bearer <token>``

    Returns:
        FastAPI application; the controller is closed on shutdown
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await controller.close()

    async def authenticate(request: Request, authorization: Optional[str] = Header(default=None)):
        if token is None:
            return
        if authorization is None or not secrets.compare_digest(authorization, f"Bearer {token}"):
            logger.warning("Rejected unauthenticated call to %s", request.url.path)
            raise HTTPException(status_code=401, detail="Missing or invalid token")

    app = FastAPI(title="finledger", lifespan=lifespan, dependencies=[Depends(authenticate)])

    for name, op in OPERATIONS.items():
        app.add_api_route(f"/{name}", _endpoint(controller, name, op), methods=["POST"])

    @app.exception_handler(DomainError)
    @app.exception_handler(StorageError)
    @app.exception_handler(CurrencyMismatchError)
    async def ledger_error(request: Request, exc: Exception):
        logger.info("Operation %s failed: %s", request.url.path, exc)
        return _error_response(status_for(exc), type(exc).__name__, str(exc))

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        logger.warning("Malformed arguments for %s: %s", request.url.path, exc.errors())
        return _error_response(422, "RequestValidationError", str(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        kind = HTTP_ERROR_KINDS.get(exc.status_code, "HTTPError")
        return _error_response(exc.status_code, kind, exc.detail)

    return app
