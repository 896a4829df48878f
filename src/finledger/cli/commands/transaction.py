"""Transaction management commands."""

from datetime import datetime, timezone

import click

from finledger.cli.date_filters import period_options, resolve_cli_timespan
from finledger.cli.error_handling import run_ledger
from finledger.domain.entities import Sign
from finledger.domain.errors import NotFoundError, transaction_not_found
from finledger.domain.transaction_filter import Filter, TransactionFilter
from finledger.utils.account_resolver import resolve_account
from finledger.utils.amount_parser import parse_amount
from finledger.utils.date_parser import parse_date, to_utc_datetime


@click.group()
def transaction_group():
    """Manage transactions."""
    pass


@transaction_group.command("add")
@click.option("--amount", required=True, help="Amount moved, e.g. '12.50' or '12.50 EUR'")
@click.option("--title", required=True, help="Short title")
@click.option("--from", "source", required=True, help="Source account name or ID")
@click.option("--to", "destination", required=True, help="Destination account name or ID")
@click.option("--description", help="Longer description")
@click.option("--date", "txn_date", help="Transaction date (YYYY-MM-DD or relative like 'yesterday'); default now")
@click.option("--budget", "budget_id", type=int, help="Budget ID the transaction counts against")
@click.option("--budget-negative", is_flag=True, help="Count the transaction negatively for the budget")
@click.option("--category", "categories", type=int, multiple=True, help="Category ID (repeatable)")
@click.option(
    "--negative-category", "negative_categories", type=int, multiple=True,
    help="Category ID the transaction counts negatively for (repeatable)",
)
@click.pass_context
def add_transaction(
    ctx,
    amount: str,
    title: str,
    source: str,
    destination: str,
    description: str | None,
    txn_date: str | None,
    budget_id: int | None,
    budget_negative: bool,
    categories: tuple[int, ...],
    negative_categories: tuple[int, ...],
) -> None:
    """Record a transfer between two accounts.

    Examples:
        finledger transaction add --amount 23.80 --title "Groceries" --from Checking --to Supermarket
        finledger transaction add --amount "1200 EUR" --title Salary --from Employer --to 1 --date 2024-05-01
    """
    try:
        value = parse_amount(amount)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)

    timestamp = datetime.now(timezone.utc)
    if txn_date is not None:
        try:
            timestamp = to_utc_datetime(parse_date(txn_date))
        except ValueError as e:
            click.echo(f"Error: Invalid date format: {e}", err=True)
            ctx.exit(1)

    category_signs = {category_id: Sign.POSITIVE for category_id in categories}
    category_signs.update({category_id: Sign.NEGATIVE for category_id in negative_categories})
    budget = None
    if budget_id is not None:
        budget = (budget_id, Sign.from_bool(not budget_negative))

    async def work(controller):
        source_account = await resolve_account(controller, source)
        destination_account = await resolve_account(controller, destination)
        return await controller.create_transaction(
            value,
            title,
            description,
            source_account.id,
            destination_account.id,
            budget=budget,
            timestamp=timestamp,
            categories=category_signs,
        )

    created = run_ledger(ctx, work)
    click.echo(f"Created transaction {created.id}: {created.title} ({created.amount})")


@transaction_group.command("list")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'last month', 'this year')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today', 'this month')")
@click.option("--account", help="Only transactions touching this account (name or ID)")
@click.option("--category", "category_id", type=int, help="Only transactions with this category ID")
@click.option("--budget", "budget_id", type=int, help="Only transactions of this budget ID")
@period_options
@click.pass_context
def list_transactions(
    ctx,
    start_date: str | None,
    end_date: str | None,
    account: str | None,
    category_id: int | None,
    budget_id: int | None,
    **period_flags,
) -> None:
    """List transactions.

    Examples:
        finledger transaction list --this-month
        finledger transaction list --account Checking --start-date 2024-01-01
    """
    timespan = resolve_cli_timespan(
        ctx, start_date=start_date, end_date=end_date, period_flags=period_flags
    )

    async def work(controller):
        transaction_filter = TransactionFilter(default_timespan=timespan)
        if account is not None:
            resolved = await resolve_account(controller, account)
            transaction_filter.add_account(Filter(id=resolved.id))
        if category_id is not None:
            transaction_filter.add_category(Filter(id=category_id))
        if budget_id is not None:
            transaction_filter.add_budget(Filter(id=budget_id))
        transactions = await controller.get_filtered_transactions(transaction_filter)
        return transactions, await controller.get_accounts_map()

    transactions, accounts = run_ledger(ctx, work)
    if not transactions:
        click.echo("No transactions found.")
        return

    def account_name(account_id: int) -> str:
        found = accounts.get(account_id)
        return found.name if found is not None else f"#{account_id}"

    for txn in sorted(transactions, key=lambda t: (t.timestamp, t.id)):
        click.echo(
            f"{txn.id:4d} | {txn.timestamp.date().isoformat()} | {txn.title[:24]:24s} | "
            f"{account_name(txn.source)} -> {account_name(txn.destination)} | {txn.amount}"
        )


@transaction_group.command("delete")
@click.argument("transaction_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_transaction(ctx, transaction_id: int, yes: bool) -> None:
    """Delete a transaction and remove it from all bills."""
    if not yes and not click.confirm(f"Are you sure you want to delete transaction {transaction_id}?"):
        click.echo("Deletion cancelled.")
        return

    async def work(controller):
        if await controller.get_transaction(transaction_id) is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        await controller.delete_transaction(transaction_id)

    run_ledger(ctx, work)
    click.echo(f"Deleted transaction {transaction_id}")


def register_commands(cli):
    """Register transaction commands with main CLI."""
    cli.add_command(transaction_group, name="transaction")
