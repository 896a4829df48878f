"""Serve a local ledger over HTTP."""

import logging

import click
import uvicorn

from finledger.database.factories import create_sqlite_database
from finledger.domain.controller import LedgerController
from finledger.server.app import create_app

logger = logging.getLogger(__name__)


@click.command("serve")
@click.option("--host", default="127.0.0.1", show_default=True, help="Interface to bind")
@click.option("--port", type=int, default=8420, show_default=True, help="Port to listen on")
@click.option("--token", help="Require this bearer token (default: the global --token)")
@click.pass_context
def serve(ctx, host: str, port: int, token: str | None):
    """Serve the local ledger database to remote finledger clients.

    Examples:
        finledger --db-path ledger.db serve --port 8420 --token s3cret
        finledger --server-url http://127.0.0.1:8420 --token s3cret account list
    """
    token = token or ctx.obj.get("token")
    controller = LedgerController(create_sqlite_database(ctx.obj.get("db_path")))
    if token is None:
        logger.warning("Serving without authentication")
    click.echo(f"Serving ledger on http://{host}:{port}")
    uvicorn.run(create_app(controller, token), host=host, port=port)


def register_commands(cli):
    """Register the serve command with main CLI."""
    cli.add_command(serve)
