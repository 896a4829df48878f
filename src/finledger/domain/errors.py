"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class InvalidRecurrenceError(ValidationError):
    """Budget recurrence parameters are out of domain or out of date range."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class DependencyError(DomainError):
    """Operation blocked due to dependent domain data."""


class RelatedTransactionsExistError(DependencyError):
    """Account deletion blocked because transactions still reference it."""


class StorageError(RuntimeError):
    """A storage backend failed (I/O, database or connection error).

    The underlying exception is kept as ``__cause__``.
    """


class CurrencyMismatchError(TypeError):
    """Two currency values with different codes were combined."""


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def transaction_not_found(transaction_id: int) -> str:
    """Return message for missing transaction."""
    return f"Transaction {transaction_id} not found"


def budget_not_found(budget_id: int) -> str:
    """Return message for missing budget."""
    return f"Budget {budget_id} not found"


def category_not_found(category_id: int) -> str:
    """Return message for missing category by ID."""
    return f"Category {category_id} not found"


def bill_not_found(bill_id: int) -> str:
    """Return message for missing bill."""
    return f"Bill {bill_id} not found"


def negative_amount() -> str:
    """Return message for a transaction amount below zero."""
    return "Amount of a transaction cannot be negative"


def duplicate_bill_transaction(transaction_id: int) -> str:
    """Return message when a bill lists the same transaction twice."""
    return f"Bill cannot contain transaction {transaction_id} twice"


def account_delete_blocked(account_id: int, transaction_count: int) -> str:
    """Return message when account has dependent transactions."""
    return (
        f"Cannot delete account {account_id}: it has {transaction_count} "
        f"transaction{'s' if transaction_count != 1 else ''}. "
        "Delete them first or purge them with the account."
    )
