"""Pydantic payloads shared by the HTTP server and the remote backend.

Entity models mirror the domain dataclasses and convert with
``from_domain``/``to_domain``. Amounts travel as decimal strings and
datetimes as ISO-8601 in UTC; accounts and recurrences carry a ``kind``
discriminator. The ``...In`` models are the request bodies of the server
operations.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Literal, Optional, Union

from pydantic import AfterValidator, BaseModel, Field

from finledger.domain.currency import DEFAULT_CURRENCY, Currency
from finledger.domain.entities import (
    Account,
    AssetAccount,
    Bill,
    BookCheckingAccount,
    Budget,
    Category,
    DayInMonth,
    Days,
    Recurring,
    Sign,
    Transaction,
    Yearly,
)
from finledger.domain.transaction_filter import Filter, TransactionFilter


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]

TimespanModel = tuple[Optional[UtcDatetime], Optional[UtcDatetime]]


class CurrencyModel(BaseModel):
    amount: Decimal
    currency: str = Field(default=DEFAULT_CURRENCY, min_length=3, max_length=3)

    @classmethod
    def from_domain(cls, value: Currency) -> "CurrencyModel":
        return cls(amount=value.amount, currency=value.currency)

    def to_domain(self) -> Currency:
        return Currency(self.amount, self.currency)


def _zero() -> CurrencyModel:
    return CurrencyModel.from_domain(Currency.zero())


# Accounts
class AccountFields(BaseModel):
    id: int
    name: str
    note: Optional[str] = None
    iban: Optional[str] = None
    bic: Optional[str] = None


class AssetAccountModel(AccountFields):
    kind: Literal["asset"] = "asset"
    offset: CurrencyModel

    @classmethod
    def from_domain(cls, account: AssetAccount) -> "AssetAccountModel":
        return cls(
            id=account.id,
            name=account.name,
            note=account.note,
            iban=account.iban,
            bic=account.bic,
            offset=CurrencyModel.from_domain(account.offset),
        )

    def to_domain(self) -> AssetAccount:
        return AssetAccount(
            self.id, self.name, self.note, self.iban, self.bic, self.offset.to_domain()
        )


class BookCheckingAccountModel(AccountFields):
    kind: Literal["book_checking"] = "book_checking"

    @classmethod
    def from_domain(cls, account: BookCheckingAccount) -> "BookCheckingAccountModel":
        return cls(
            id=account.id, name=account.name, note=account.note, iban=account.iban, bic=account.bic
        )

    def to_domain(self) -> BookCheckingAccount:
        return BookCheckingAccount(self.id, self.name, self.note, self.iban, self.bic)


AccountModel = Annotated[
    Union[AssetAccountModel, BookCheckingAccountModel], Field(discriminator="kind")
]


def account_model(account: Account) -> Union[AssetAccountModel, BookCheckingAccountModel]:
    if isinstance(account, AssetAccount):
        return AssetAccountModel.from_domain(account)
    return BookCheckingAccountModel.from_domain(account)


# Transactions
class TransactionModel(BaseModel):
    id: int
    amount: CurrencyModel
    title: str
    description: Optional[str] = None
    source: int
    destination: int
    budget: Optional[tuple[int, Sign]] = None
    timestamp: UtcDatetime
    metadata: dict[str, str] = Field(default_factory=dict)
    categories: dict[int, Sign] = Field(default_factory=dict)

    @classmethod
    def from_domain(cls, transaction: Transaction) -> "TransactionModel":
        return cls(
            id=transaction.id,
            amount=CurrencyModel.from_domain(transaction.amount),
            title=transaction.title,
            description=transaction.description,
            source=transaction.source,
            destination=transaction.destination,
            budget=transaction.budget,
            timestamp=transaction.timestamp,
            metadata=dict(transaction.metadata),
            categories=dict(transaction.categories),
        )

    def to_domain(self) -> Transaction:
        return Transaction(
            id=self.id,
            amount=self.amount.to_domain(),
            title=self.title,
            description=self.description,
            source=self.source,
            destination=self.destination,
            budget=self.budget,
            timestamp=self.timestamp,
            metadata=dict(self.metadata),
            categories=dict(self.categories),
        )


# Budgets
class DayInMonthModel(BaseModel):
    kind: Literal["day_in_month"] = "day_in_month"
    day: int

    def to_domain(self) -> DayInMonth:
        return DayInMonth(self.day)


class DaysModel(BaseModel):
    kind: Literal["days"] = "days"
    start: UtcDatetime
    days: int

    def to_domain(self) -> Days:
        return Days(self.start, self.days)


class YearlyModel(BaseModel):
    kind: Literal["yearly"] = "yearly"
    month: int
    day: int

    def to_domain(self) -> Yearly:
        return Yearly(self.month, self.day)


RecurringModel = Annotated[
    Union[DayInMonthModel, DaysModel, YearlyModel], Field(discriminator="kind")
]


def recurring_model(recurring: Recurring) -> Union[DayInMonthModel, DaysModel, YearlyModel]:
    if isinstance(recurring, DayInMonth):
        return DayInMonthModel(day=recurring.day)
    if isinstance(recurring, Days):
        return DaysModel(start=recurring.start, days=recurring.days)
    if isinstance(recurring, Yearly):
        return YearlyModel(month=recurring.month, day=recurring.day)
    raise TypeError(f"Unknown recurrence {recurring!r}")


class BudgetModel(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    total_value: CurrencyModel
    recurring: RecurringModel

    @classmethod
    def from_domain(cls, budget: Budget) -> "BudgetModel":
        return cls(
            id=budget.id,
            name=budget.name,
            description=budget.description,
            total_value=CurrencyModel.from_domain(budget.total_value),
            recurring=recurring_model(budget.recurring),
        )

    def to_domain(self) -> Budget:
        return Budget(
            self.id,
            self.name,
            self.description,
            self.total_value.to_domain(),
            self.recurring.to_domain(),
        )


# Categories
class CategoryModel(BaseModel):
    id: int
    name: str

    @classmethod
    def from_domain(cls, category: Category) -> "CategoryModel":
        return cls(id=category.id, name=category.name)

    def to_domain(self) -> Category:
        return Category(self.id, self.name)


# Bills
class BillModel(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    value: CurrencyModel
    transactions: dict[int, Sign] = Field(default_factory=dict)
    due_date: Optional[UtcDatetime] = None
    closed: bool = False

    @classmethod
    def from_domain(cls, bill: Bill) -> "BillModel":
        return cls(
            id=bill.id,
            name=bill.name,
            description=bill.description,
            value=CurrencyModel.from_domain(bill.value),
            transactions=dict(bill.transactions),
            due_date=bill.due_date,
            closed=bill.closed,
        )

    def to_domain(self) -> Bill:
        return Bill(
            id=self.id,
            name=self.name,
            description=self.description,
            value=self.value.to_domain(),
            transactions=dict(self.transactions),
            due_date=self.due_date,
            closed=self.closed,
        )


# Filters
class FilterFields(BaseModel):
    negated: bool = False
    include: bool = True
    timespan: Optional[TimespanModel] = None


class IdFilterModel(FilterFields):
    id: Optional[int] = None

    @classmethod
    def from_domain(cls, entry: Filter[int]) -> "IdFilterModel":
        return cls(
            negated=entry.negated, id=entry.id, include=entry.include, timespan=entry.timespan
        )

    def to_domain(self) -> Filter[int]:
        return Filter(self.negated, self.id, self.include, self.timespan)


class BillFilterModel(FilterFields):
    id: Optional[BillModel] = None

    @classmethod
    def from_domain(cls, entry: Filter[Bill]) -> "BillFilterModel":
        return cls(
            negated=entry.negated,
            id=BillModel.from_domain(entry.id) if entry.id is not None else None,
            include=entry.include,
            timespan=entry.timespan,
        )

    def to_domain(self) -> Filter[Bill]:
        bill = self.id.to_domain() if self.id is not None else None
        return Filter(self.negated, bill, self.include, self.timespan)


class TransactionFilterModel(BaseModel):
    default_timespan: TimespanModel = (None, None)
    accounts: list[IdFilterModel] = Field(default_factory=list)
    categories: list[IdFilterModel] = Field(default_factory=list)
    budgets: list[IdFilterModel] = Field(default_factory=list)
    bills: list[BillFilterModel] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, transaction_filter: TransactionFilter) -> "TransactionFilterModel":
        return cls(
            default_timespan=transaction_filter.default_timespan,
            accounts=[IdFilterModel.from_domain(e) for e in transaction_filter.accounts],
            categories=[IdFilterModel.from_domain(e) for e in transaction_filter.categories],
            budgets=[IdFilterModel.from_domain(e) for e in transaction_filter.budgets],
            bills=[BillFilterModel.from_domain(e) for e in transaction_filter.bills],
        )

    def to_domain(self) -> TransactionFilter:
        return TransactionFilter(
            default_timespan=self.default_timespan,
            accounts=[e.to_domain() for e in self.accounts],
            categories=[e.to_domain() for e in self.categories],
            budgets=[e.to_domain() for e in self.budgets],
            bills=[e.to_domain() for e in self.bills],
        )


# Request bodies
class NoArguments(BaseModel):
    pass


class AccountIn(BaseModel):
    name: str
    note: Optional[str] = None
    iban: Optional[str] = None
    bic: Optional[str] = None


class AssetAccountIn(AccountIn):
    offset: CurrencyModel = Field(default_factory=_zero)


class AssetAccountUpdateIn(BaseModel):
    account: AssetAccountModel


class BookCheckingAccountUpdateIn(BaseModel):
    account: BookCheckingAccountModel


class AccountIdIn(BaseModel):
    account_id: int


class AccountSumIn(BaseModel):
    account: AccountModel
    as_of: Optional[UtcDatetime] = None


class AccountDeleteIn(AccountIdIn):
    purge_transactions: bool = False


class TransactionIn(BaseModel):
    amount: CurrencyModel
    title: str
    description: Optional[str] = None
    source: int
    destination: int
    budget: Optional[tuple[int, Sign]] = None
    timestamp: Optional[UtcDatetime] = None
    metadata: dict[str, str] = Field(default_factory=dict)
    categories: dict[int, Sign] = Field(default_factory=dict)


class TransactionUpdateIn(BaseModel):
    transaction: TransactionModel


class TransactionIdIn(BaseModel):
    transaction_id: int


class TransactionIdsIn(BaseModel):
    transaction_ids: list[int]


class TransactionCategoriesIn(TransactionIdIn):
    categories: dict[int, Sign] = Field(default_factory=dict)


class TimespanIn(BaseModel):
    timespan: TimespanModel = (None, None)


class AccountTimespanIn(TimespanIn):
    account_id: int


class BudgetTimespanIn(TimespanIn):
    budget_id: int


class CategoryTimespanIn(TimespanIn):
    category_id: int


class FilterIn(BaseModel):
    filter: TransactionFilterModel


class BudgetIn(BaseModel):
    name: str
    description: Optional[str] = None
    total_value: CurrencyModel
    recurring: RecurringModel


class BudgetUpdateIn(BaseModel):
    budget: BudgetModel


class BudgetIdIn(BaseModel):
    budget_id: int


class BudgetPeriodIn(BaseModel):
    budget: BudgetModel
    offset: int = 0
    reference: Optional[UtcDatetime] = None


class CategoryIn(BaseModel):
    name: str


class CategoryUpdateIn(BaseModel):
    category: CategoryModel


class CategoryIdIn(BaseModel):
    category_id: int


class BillIn(BaseModel):
    name: str
    description: Optional[str] = None
    value: CurrencyModel
    # Pairs may repeat an id so the controller can reject the duplicate
    transactions: Union[dict[int, Sign], list[tuple[int, Sign]]] = Field(default_factory=dict)
    due_date: Optional[UtcDatetime] = None
    closed: bool = False


class BillUpdateIn(BaseModel):
    bill: BillModel


class BillIdIn(BaseModel):
    bill_id: int


class BillsIn(BaseModel):
    closed: Optional[bool] = None


class BillSumIn(BaseModel):
    bill: BillModel

