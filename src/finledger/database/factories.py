"""Database factory functions for creating database instances."""

import logging
import os
from pathlib import Path
from typing import Optional

from finledger.database.base import Database
from finledger.database.memory import InMemoryDatabase
from finledger.database.remote import RemoteDatabase
from finledger.database.sqlalchemy_db import SQLAlchemyDatabase

logger = logging.getLogger(__name__)

DB_PATH_ENV = "FINLEDGER_DB_PATH"
SERVER_URL_ENV = "FINLEDGER_SERVER_URL"
TOKEN_ENV = "FINLEDGER_TOKEN"


def default_database_path() -> Path:
    """Return ~/.finledger/finledger.db, creating the directory if needed."""
    db_dir = Path.home() / ".finledger"
    db_dir.mkdir(exist_ok=True)
    return db_dir / "finledger.db"


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, checks FINLEDGER_DB_PATH
            environment variable, then defaults to ~/.finledger/finledger.db

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    if database_path is None:
        database_path = os.environ.get(DB_PATH_ENV)

    if database_path is None:
        database_path = str(default_database_path())

    logger.debug("Opening SQLite ledger at %s", database_path)
    return SQLAlchemyDatabase(f"sqlite:///{database_path}")


def create_memory_database() -> InMemoryDatabase:
    """Create an empty, non-persistent database."""
    return InMemoryDatabase()


def create_remote_database(
    server_url: Optional[str] = None, token: Optional[str] = None
) -> RemoteDatabase:
    """Create a database proxy for a finledger server.

    Args:
        server_url: Server URL. If None, FINLEDGER_SERVER_URL is used
        token: Bearer token. If None, FINLEDGER_TOKEN is used when set

    Raises:
        ValueError: If no server URL is configured
    """
    server_url = server_url or os.environ.get(SERVER_URL_ENV)
    if not server_url:
        raise ValueError(f"No server URL given and {SERVER_URL_ENV} is not set")
    token = token or os.environ.get(TOKEN_ENV)
    logger.debug("Using remote ledger at %s", server_url)
    return RemoteDatabase(server_url, token=token)


def create_database(
    database_path: Optional[str] = None,
    server_url: Optional[str] = None,
    token: Optional[str] = None,
) -> Database:
    """Create the backend selected by arguments or environment.

    A server URL (argument or FINLEDGER_SERVER_URL) selects the remote
    backend; otherwise the local SQLite file is used.
    """
    if server_url or os.environ.get(SERVER_URL_ENV):
        return create_remote_database(server_url, token)
    return create_sqlite_database(database_path)
