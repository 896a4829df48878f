"""Main CLI entry point."""

import logging

import click

# Import and register all commands at module level
from finledger.cli.commands import (
    account,
    bill,
    budget,
    category,
    serve,
    transaction,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides FINLEDGER_DB_PATH environment variable)",
    envvar="FINLEDGER_DB_PATH",
)
@click.option(
    "--server-url",
    help="Use a finledger server instead of a local database",
    envvar="FINLEDGER_SERVER_URL",
)
@click.option(
    "--token",
    help="Bearer token for the server",
    envvar="FINLEDGER_TOKEN",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, db_path: str | None, server_url: str | None, token: str | None, verbose: bool):
    """finledger - personal finance ledger.

    Keep track of accounts, transfers between them, budgets, categories
    and bills, stored locally or on a finledger server.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db_path
    ctx.obj["server_url"] = server_url
    ctx.obj["token"] = token


# Register all commands
account.register_commands(cli)
category.register_commands(cli)
transaction.register_commands(cli)
budget.register_commands(cli)
bill.register_commands(cli)
serve.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
