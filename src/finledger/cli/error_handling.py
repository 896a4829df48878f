"""CLI error handling and ledger access helpers."""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

import click

from finledger.database.factories import create_database
from finledger.domain.controller import LedgerController
from finledger.domain.errors import DomainError, StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def handle_domain_error(ctx: click.Context, error: DomainError | StorageError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    ctx.exit(1)


def run_ledger(ctx: click.Context, work: Callable[[LedgerController], Awaitable[T]]) -> T:
    """Open the configured ledger, run ``work`` against it and close it again.

    Domain and storage errors are reported as ``Error: ...`` with exit code 1.
    """
    options = ctx.obj

    async def runner() -> T:
        database = create_database(
            database_path=options.get("db_path"),
            server_url=options.get("server_url"),
            token=options.get("token"),
        )
        controller = LedgerController(database)
        try:
            return await work(controller)
        finally:
            await controller.close()

    try:
        return asyncio.run(runner())
    except (DomainError, StorageError, ValueError) as exc:
        logger.debug("Command failed", exc_info=True)
        handle_domain_error(ctx, exc)
