"""SQLAlchemy models for the finledger database."""

from datetime import timezone
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.types import TypeDecorator

Base = declarative_base()

ASSET_KIND = "asset"
BOOK_CHECKING_KIND = "book_checking"


class DecimalText(TypeDecorator):
    """Exact decimal stored as text, so no backend rounds amounts."""

    impl = String
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(value)


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime stored as naive UTC."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


class Account(Base):
    """Asset or book checking account, told apart by ``kind``."""

    __tablename__ = "accounts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    kind = Column(String, nullable=False)
    name = Column(String, nullable=False)
    note = Column(String, nullable=True)
    iban = Column(String, nullable=True)
    bic = Column(String, nullable=True)
    offset_value = Column(DecimalText, nullable=True)
    offset_currency = Column(String, nullable=True)


class Budget(Base):
    """Budget model with a flattened recurrence rule."""

    __tablename__ = "budgets"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    total_value = Column(DecimalText, nullable=False)
    currency = Column(String, nullable=False)
    # day_in_month: first=day; days: start + first=days; yearly: first=month, second=day
    recurring_kind = Column(String, nullable=False)
    recurring_start = Column(UTCDateTime, nullable=True)
    recurring_first = Column(Integer, nullable=False)
    recurring_second = Column(Integer, nullable=True)


class Category(Base):
    """Category model."""

    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)


class Transaction(Base):
    """Transaction model."""

    __tablename__ = "transactions"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    amount_value = Column(DecimalText, nullable=False)
    currency = Column(String, nullable=False)
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    source_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    destination_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    budget_id = Column(Integer, ForeignKey("budgets.id"), nullable=True, index=True)
    budget_sign = Column(Boolean, nullable=True)
    timestamp = Column(UTCDateTime, nullable=False, index=True)
    metadata_json = Column("metadata", JSON, nullable=False, default=dict)

    # Relationships
    category_links = relationship(
        "TransactionCategory", cascade="all, delete-orphan", lazy="selectin"
    )


class TransactionCategory(Base):
    """Signed link between a transaction and a category."""

    __tablename__ = "transaction_category"

    transaction_id = Column(Integer, ForeignKey("transactions.id"), primary_key=True)
    category_id = Column(Integer, ForeignKey("categories.id"), primary_key=True, index=True)
    sign = Column(Boolean, nullable=False)


class Bill(Base):
    """Bill model."""

    __tablename__ = "bills"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    value = Column(DecimalText, nullable=False)
    currency = Column(String, nullable=False)
    due_date = Column(UTCDateTime, nullable=True)
    closed = Column(Boolean, nullable=False, default=False)

    # Relationships
    transaction_links = relationship(
        "BillTransaction", cascade="all, delete-orphan", lazy="selectin"
    )


class BillTransaction(Base):
    """Signed link between a bill and a transaction."""

    __tablename__ = "bill_transaction"

    bill_id = Column(Integer, ForeignKey("bills.id"), primary_key=True)
    transaction_id = Column(Integer, ForeignKey("transactions.id"), primary_key=True)
    sign = Column(Boolean, nullable=False)


class DatabaseInfo(Base):
    """Key/value metadata about the database itself (schema version)."""

    __tablename__ = "database_info"

    tag = Column(String, primary_key=True)
    value = Column(String, nullable=False)