"""Account management commands."""

import click

from finledger.cli.error_handling import run_ledger
from finledger.domain.entities import AssetAccount
from finledger.utils.account_resolver import resolve_account
from finledger.utils.amount_parser import parse_amount
from finledger.utils.date_parser import parse_date, to_utc_datetime


@click.group()
def account_group():
    """Manage accounts."""
    pass


@account_group.command("create-asset")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option("--note", help="Free-form note")
@click.option("--iban", help="IBAN of the account")
@click.option("--bic", help="BIC of the account's bank")
@click.option("--offset", default="0", help="Starting balance, e.g. '120.50 EUR' (default: 0)")
@click.pass_context
def create_asset_account(ctx, name: str, note: str | None, iban: str | None, bic: str | None, offset: str):
    """Create an account you own (checking, savings, cash, ...).

    Examples:
        finledger account create-asset "Checking" --iban "DE89 3704 0044 0532 0130 00"
        finledger account create-asset "Wallet" --offset "40 EUR"
    """
    try:
        offset_value = parse_amount(offset)
    except ValueError as e:
        click.echo(f"Error: Invalid offset: {e}", err=True)
        ctx.exit(1)

    created = run_ledger(
        ctx,
        lambda controller: controller.create_asset_account(
            name, note=note, iban=iban, bic=bic, offset=offset_value
        ),
    )
    click.echo(f"Created asset account '{created.name}' (ID: {created.id})")


@account_group.command("create-book")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option("--note", help="Free-form note")
@click.option("--iban", help="IBAN of the counterparty")
@click.option("--bic", help="BIC of the counterparty's bank")
@click.pass_context
def create_book_checking_account(ctx, name: str, note: str | None, iban: str | None, bic: str | None):
    """Create a counterparty account (shop, employer, landlord, ...).

    Examples:
        finledger account create-book "Supermarket"
    """
    created = run_ledger(
        ctx,
        lambda controller: controller.create_book_checking_account(
            name, note=note, iban=iban, bic=bic
        ),
    )
    click.echo(f"Created book checking account '{created.name}' (ID: {created.id})")


@account_group.command("list")
@click.pass_context
def list_accounts(ctx):
    """List all accounts."""
    accounts = run_ledger(ctx, lambda controller: controller.get_accounts())
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 60)
    for acc in sorted(accounts, key=lambda a: a.id):
        kind = "asset" if isinstance(acc, AssetAccount) else "book"
        iban = f" | IBAN: {acc.iban}" if acc.iban else ""
        click.echo(f"ID: {acc.id:3d} | {acc.name:20s} | {kind:5s}{iban}")


@account_group.command("balance")
@click.argument("account", metavar="ACCOUNT")
@click.option("--as-of", help="Only count transactions up to this date (inclusive)")
@click.pass_context
def account_balance(ctx, account: str, as_of: str | None):
    """Show the balance of an account.

    ACCOUNT can be an account name or ID. Asset accounts include their offset.
    """
    as_of_dt = None
    if as_of:
        try:
            as_of_dt = to_utc_datetime(parse_date(as_of), end_of_day=True)
        except ValueError as e:
            click.echo(f"Error: Invalid date: {e}", err=True)
            ctx.exit(1)

    async def work(controller):
        resolved = await resolve_account(controller, account)
        return resolved, await controller.get_account_sum(resolved, as_of_dt)

    resolved, balance = run_ledger(ctx, work)
    click.echo(f"{resolved.name}: {balance}")


@account_group.command("delete")
@click.argument("account", metavar="ACCOUNT")
@click.option("--purge", is_flag=True, help="Also delete all transactions of the account")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_account(ctx, account: str, purge: bool, yes: bool) -> None:
    """Delete an account.

    ACCOUNT can be an account name or ID.

    The account can only be deleted if it has no transactions, unless
    --purge is given, which deletes them together with the account.

    Examples:
        finledger account delete "Old Savings"
        finledger account delete 3 --purge --yes
    """
    resolved = run_ledger(ctx, lambda controller: resolve_account(controller, account))

    if not yes and not click.confirm(
        f"Are you sure you want to delete account '{resolved.name}' (ID: {resolved.id})?"
    ):
        click.echo("Deletion cancelled.")
        return

    run_ledger(
        ctx, lambda controller: controller.delete_account(resolved.id, purge_transactions=purge)
    )
    click.echo(f"Deleted account '{resolved.name}'")


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
