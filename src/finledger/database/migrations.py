"""Schema versioning and forward-only migrations.

The schema version is stored in the ``database_info`` table under the
``schema_version`` tag. Databases created before versioning existed have no
such table and are treated as version 1.

Migrations run one version at a time, each in its own transaction, so an
interrupted upgrade resumes from the last completed step.
"""

import logging
from typing import Callable, Optional

from sqlalchemy import inspect, text
from sqlalchemy.engine import Connection, Engine

from finledger.database.models import Base
from finledger.domain.errors import StorageError

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2
VERSION_TAG = "schema_version"


def column_exists(connection: Connection, table_name: str, column_name: str) -> bool:
    """Check if a column exists in a table.

    Args:
        connection: SQLAlchemy connection
        table_name: Name of the table
        column_name: Name of the column

    Returns:
        True if column exists, False otherwise
    """
    inspector = inspect(connection)
    columns = [col["name"] for col in inspector.get_columns(table_name)]
    return column_name in columns


def get_schema_version(connection: Connection) -> Optional[int]:
    """Return the stored schema version, or None for an empty database."""
    inspector = inspect(connection)
    if not inspector.has_table("database_info"):
        return 1 if inspector.has_table("accounts") else None

    row = connection.execute(
        text("SELECT value FROM database_info WHERE tag = :tag"), {"tag": VERSION_TAG}
    ).first()
    if row is None:
        return 1
    return int(row[0])


def set_schema_version(connection: Connection, version: int) -> None:
    connection.execute(text("DELETE FROM database_info WHERE tag = :tag"), {"tag": VERSION_TAG})
    connection.execute(
        text("INSERT INTO database_info (tag, value) VALUES (:tag, :value)"),
        {"tag": VERSION_TAG, "value": str(version)},
    )


def _add_bill_closed_flag(connection: Connection) -> None:
    """Version 1 -> 2: bills get a ``closed`` flag, existing bills stay open."""
    Base.metadata.tables["database_info"].create(connection, checkfirst=True)
    if inspect(connection).has_table("bills") and not column_exists(
        connection, "bills", "closed"
    ):
        connection.execute(
            text("ALTER TABLE bills ADD COLUMN closed BOOLEAN NOT NULL DEFAULT 0")
        )


# Maps a version to the step that upgrades from it to the next version
MIGRATIONS: dict[int, Callable[[Connection], None]] = {
    1: _add_bill_closed_flag,
}


def migrate_schema(engine: Engine) -> int:
    """Create or upgrade the schema to ``SCHEMA_VERSION``.

    Args:
        engine: SQLAlchemy engine

    Returns:
        The schema version the database had before upgrading (0 when it was
        created fresh)

    Raises:
        StorageError: If the database was written by a newer version of
            finledger or a migration step is missing
    """
    with engine.begin() as connection:
        version = get_schema_version(connection)
        if version is None:
            Base.metadata.create_all(connection)
            set_schema_version(connection, SCHEMA_VERSION)
            logger.info("Created database schema version %d", SCHEMA_VERSION)
            return 0

    if version > SCHEMA_VERSION:
        raise StorageError(
            f"Database schema version {version} is newer than supported version "
            f"{SCHEMA_VERSION}; upgrade finledger"
        )

    current = version
    while current < SCHEMA_VERSION:
        step = MIGRATIONS.get(current)
        if step is None:
            raise StorageError(f"No migration from schema version {current}")
        with engine.begin() as connection:
            step(connection)
            set_schema_version(connection, current + 1)
        logger.info("Migrated database schema from version %d to %d", current, current + 1)
        current += 1

    with engine.begin() as connection:
        Base.metadata.create_all(connection)
    return version
