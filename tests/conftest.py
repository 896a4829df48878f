"""Shared pytest fixtures for finledger tests."""

import os
import tempfile

import httpx
import pytest

from finledger.database.factories import create_memory_database, create_sqlite_database
from finledger.database.remote import RemoteDatabase
from finledger.domain.controller import LedgerController
from finledger.server.app import create_app


@pytest.fixture
def db_path():
    """Path of a temporary SQLite file, removed after the test."""
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    os.unlink(path)

    yield path

    if os.path.exists(path):
        os.unlink(path)


@pytest.fixture
async def sqlite_db(db_path):
    """SQLAlchemy backend on a temporary SQLite file."""
    db = create_sqlite_database(database_path=db_path)
    yield db
    await db.close()


@pytest.fixture
async def remote_db():
    """Remote backend talking to an in-process server over ASGI."""
    app = create_app(LedgerController(create_memory_database()))
    client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://ledger")
    db = RemoteDatabase("http://ledger", client=client)
    yield db
    await db.close()
    await client.aclose()


@pytest.fixture(params=["memory", "sqlite", "remote"])
async def database(request, db_path):
    """Every storage backend, one after the other."""
    if request.param == "memory":
        db = create_memory_database()
        yield db
        await db.close()
    elif request.param == "sqlite":
        db = create_sqlite_database(database_path=db_path)
        yield db
        await db.close()
    else:
        app = create_app(LedgerController(create_memory_database()))
        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://ledger"
        ) as client:
            db = RemoteDatabase("http://ledger", client=client)
            yield db
            await db.close()


@pytest.fixture
def controller(database):
    """Controller over every storage backend."""
    return LedgerController(database)


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()

