"""Bill management commands."""

from dataclasses import replace

import click

from finledger.cli.error_handling import run_ledger
from finledger.domain.entities import Sign
from finledger.domain.errors import NotFoundError, bill_not_found
from finledger.utils.amount_parser import parse_amount
from finledger.utils.date_parser import parse_date, to_utc_datetime


@click.group()
def bill_group():
    """Manage bills."""
    pass


@bill_group.command("create")
@click.argument("name")
@click.option("--value", required=True, help="Amount the bill is issued over, e.g. '89.90 EUR'")
@click.option("--description", help="Bill description")
@click.option("--transaction", "transactions", type=int, multiple=True, help="Transaction ID paying the bill (repeatable)")
@click.option(
    "--negative-transaction", "negative_transactions", type=int, multiple=True,
    help="Transaction ID refunding the bill (repeatable)",
)
@click.option("--due", help="Due date (YYYY-MM-DD or relative like 'next friday')")
@click.pass_context
def create_bill(
    ctx,
    name: str,
    value: str,
    description: str | None,
    transactions: tuple[int, ...],
    negative_transactions: tuple[int, ...],
    due: str | None,
):
    """Create a bill and link the transactions that settle it.

    Examples:
        finledger bill create "Electricity Q1" --value 180 --transaction 12 --transaction 19
    """
    try:
        bill_value = parse_amount(value)
        due_date = to_utc_datetime(parse_date(due)) if due else None
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    links = [(tid, Sign.POSITIVE) for tid in transactions]
    links += [(tid, Sign.NEGATIVE) for tid in negative_transactions]

    created = run_ledger(
        ctx,
        lambda controller: controller.create_bill(name, description, bill_value, links, due_date),
    )
    click.echo(f"Created bill '{created.name}' (ID: {created.id})")


@bill_group.command("list")
@click.option("--open/--closed", "is_open", default=None, help="Only open or only closed bills")
@click.pass_context
def list_bills(ctx, is_open: bool | None):
    """List bills."""
    closed = None if is_open is None else not is_open
    bills = run_ledger(ctx, lambda controller: controller.get_bills(closed))
    if not bills:
        click.echo("No bills found.")
        return

    click.echo("\nBills:")
    for bill in sorted(bills, key=lambda b: b.id):
        due = bill.due_date.date().isoformat() if bill.due_date else "-"
        state = "closed" if bill.closed else "open"
        click.echo(f"ID: {bill.id:3d} | {bill.name:20s} | {bill.value} | due {due} | {state}")


async def _load_bill(controller, bill_id: int):
    bill = await controller.get_bill(bill_id)
    if bill is None:
        raise NotFoundError(bill_not_found(bill_id))
    return bill


@bill_group.command("sum")
@click.argument("bill_id", type=int)
@click.pass_context
def bill_sum(ctx, bill_id: int):
    """Show how much of a bill is covered by its transactions."""

    async def work(controller):
        bill = await _load_bill(controller, bill_id)
        return bill, await controller.get_bill_sum(bill)

    bill, paid = run_ledger(ctx, work)
    click.echo(f"{bill.name}: {paid} of {bill.value}")


@bill_group.command("close")
@click.argument("bill_id", type=int)
@click.pass_context
def close_bill(ctx, bill_id: int):
    """Mark a bill as settled."""

    async def work(controller):
        bill = await _load_bill(controller, bill_id)
        return await controller.update_bill(replace(bill, closed=True))

    closed = run_ledger(ctx, work)
    click.echo(f"Closed bill '{closed.name}'")


@bill_group.command("delete")
@click.argument("bill_id", type=int)
@click.pass_context
def delete_bill(ctx, bill_id: int):
    """Delete a bill. Its transactions are kept."""

    async def work(controller):
        bill = await _load_bill(controller, bill_id)
        await controller.delete_bill(bill_id)
        return bill

    deleted = run_ledger(ctx, work)
    click.echo(f"Deleted bill '{deleted.name}'")


def register_commands(cli):
    """Register bill commands with main CLI."""
    cli.add_command(bill_group, name="bill")
