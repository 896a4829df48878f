"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so the flattened table layout
(account kind discriminator, recurrence columns, boolean signs) never leaks
into the domain.
"""

from finledger.database.models import (
    ASSET_KIND,
    BOOK_CHECKING_KIND,
    Account as ORMAccount,
    Bill as ORMBill,
    BillTransaction as ORMBillTransaction,
    Budget as ORMBudget,
    Category as ORMCategory,
    Transaction as ORMTransaction,
    TransactionCategory as ORMTransactionCategory,
)
from finledger.domain import entities as domain
from finledger.domain.currency import Currency
from finledger.domain.errors import StorageError

DAY_IN_MONTH_KIND = "day_in_month"
DAYS_KIND = "days"
YEARLY_KIND = "yearly"


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to the matching domain account variant."""
    if orm_account.kind == ASSET_KIND:
        return domain.AssetAccount(
            id=orm_account.id,
            name=orm_account.name,
            note=orm_account.note,
            iban=orm_account.iban,
            bic=orm_account.bic,
            offset=Currency(orm_account.offset_value, orm_account.offset_currency),
        )
    if orm_account.kind == BOOK_CHECKING_KIND:
        return domain.BookCheckingAccount(
            id=orm_account.id,
            name=orm_account.name,
            note=orm_account.note,
            iban=orm_account.iban,
            bic=orm_account.bic,
        )
    raise StorageError(f"Account {orm_account.id} has unknown kind '{orm_account.kind}'")


def apply_account(orm_account: ORMAccount, account: domain.Account) -> None:
    """Copy domain account fields onto a SQLAlchemy Account model."""
    orm_account.name = account.name
    orm_account.note = account.note
    orm_account.iban = account.iban
    orm_account.bic = account.bic
    if isinstance(account, domain.AssetAccount):
        orm_account.kind = ASSET_KIND
        orm_account.offset_value = account.offset.amount
        orm_account.offset_currency = account.offset.currency
    else:
        orm_account.kind = BOOK_CHECKING_KIND
        orm_account.offset_value = None
        orm_account.offset_currency = None


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    budget = None
    if orm_transaction.budget_id is not None:
        budget = (
            orm_transaction.budget_id,
            domain.Sign.from_bool(bool(orm_transaction.budget_sign)),
        )
    return domain.Transaction(
        id=orm_transaction.id,
        amount=Currency(orm_transaction.amount_value, orm_transaction.currency),
        title=orm_transaction.title,
        description=orm_transaction.description,
        source=orm_transaction.source_id,
        destination=orm_transaction.destination_id,
        budget=budget,
        timestamp=orm_transaction.timestamp,
        metadata=dict(orm_transaction.metadata_json or {}),
        categories={
            link.category_id: domain.Sign.from_bool(link.sign)
            for link in orm_transaction.category_links
        },
    )


def apply_transaction(orm_transaction: ORMTransaction, transaction: domain.Transaction) -> None:
    """Copy domain transaction fields and category links onto the model."""
    orm_transaction.amount_value = transaction.amount.amount
    orm_transaction.currency = transaction.amount.currency
    orm_transaction.title = transaction.title
    orm_transaction.description = transaction.description
    orm_transaction.source_id = transaction.source
    orm_transaction.destination_id = transaction.destination
    if transaction.budget is None:
        orm_transaction.budget_id = None
        orm_transaction.budget_sign = None
    else:
        orm_transaction.budget_id = transaction.budget[0]
        orm_transaction.budget_sign = transaction.budget[1].is_positive()
    orm_transaction.timestamp = transaction.timestamp
    orm_transaction.metadata_json = dict(transaction.metadata)
    existing = {link.category_id: link for link in orm_transaction.category_links}
    links = []
    for category_id, sign in transaction.categories.items():
        link = existing.get(category_id) or ORMTransactionCategory(category_id=category_id)
        link.sign = sign.is_positive()
        links.append(link)
    orm_transaction.category_links = links


def budget_to_domain(orm_budget: ORMBudget) -> domain.Budget:
    """Convert SQLAlchemy Budget model to domain Budget entity."""
    kind = orm_budget.recurring_kind
    if kind == DAY_IN_MONTH_KIND:
        recurring: domain.Recurring = domain.DayInMonth(orm_budget.recurring_first)
    elif kind == DAYS_KIND:
        recurring = domain.Days(orm_budget.recurring_start, orm_budget.recurring_first)
    elif kind == YEARLY_KIND:
        recurring = domain.Yearly(orm_budget.recurring_first, orm_budget.recurring_second)
    else:
        raise StorageError(f"Budget {orm_budget.id} has unknown recurrence '{kind}'")

    return domain.Budget(
        id=orm_budget.id,
        name=orm_budget.name,
        description=orm_budget.description,
        total_value=Currency(orm_budget.total_value, orm_budget.currency),
        recurring=recurring,
    )


def apply_budget(orm_budget: ORMBudget, budget: domain.Budget) -> None:
    """Copy domain budget fields onto a SQLAlchemy Budget model."""
    orm_budget.name = budget.name
    orm_budget.description = budget.description
    orm_budget.total_value = budget.total_value.amount
    orm_budget.currency = budget.total_value.currency

    recurring = budget.recurring
    orm_budget.recurring_start = None
    orm_budget.recurring_second = None
    if isinstance(recurring, domain.DayInMonth):
        orm_budget.recurring_kind = DAY_IN_MONTH_KIND
        orm_budget.recurring_first = recurring.day
    elif isinstance(recurring, domain.Days):
        orm_budget.recurring_kind = DAYS_KIND
        orm_budget.recurring_start = recurring.start
        orm_budget.recurring_first = recurring.days
    else:
        orm_budget.recurring_kind = YEARLY_KIND
        orm_budget.recurring_first = recurring.month
        orm_budget.recurring_second = recurring.day


def category_to_domain(orm_category: ORMCategory) -> domain.Category:
    """Convert SQLAlchemy Category model to domain Category entity."""
    return domain.Category(id=orm_category.id, name=orm_category.name)


def bill_to_domain(orm_bill: ORMBill) -> domain.Bill:
    """Convert SQLAlchemy Bill model to domain Bill entity."""
    return domain.Bill(
        id=orm_bill.id,
        name=orm_bill.name,
        description=orm_bill.description,
        value=Currency(orm_bill.value, orm_bill.currency),
        transactions={
            link.transaction_id: domain.Sign.from_bool(link.sign)
            for link in orm_bill.transaction_links
        },
        due_date=orm_bill.due_date,
        closed=bool(orm_bill.closed),
    )


def apply_bill(orm_bill: ORMBill, bill: domain.Bill) -> None:
    """Copy domain bill fields and transaction links onto the model."""
    orm_bill.name = bill.name
    orm_bill.description = bill.description
    orm_bill.value = bill.value.amount
    orm_bill.currency = bill.value.currency
    orm_bill.due_date = bill.due_date
    orm_bill.closed = bill.closed
    existing = {link.transaction_id: link for link in orm_bill.transaction_links}
    links = []
    for transaction_id, sign in bill.transactions.items():
        link = existing.get(transaction_id) or ORMBillTransaction(transaction_id=transaction_id)
        link.sign = sign.is_positive()
        links.append(link)
    orm_bill.transaction_links = links
