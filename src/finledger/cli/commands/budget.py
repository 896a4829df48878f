"""Budget management commands."""

from datetime import datetime, timezone

import click

from finledger.cli.error_handling import run_ledger
from finledger.domain.budget import calculate_budget_timespan
from finledger.domain.entities import DayInMonth, Days, Yearly
from finledger.domain.errors import NotFoundError, budget_not_found
from finledger.utils.amount_parser import parse_amount
from finledger.utils.date_parser import parse_date, to_utc_datetime


def describe_recurring(recurring) -> str:
    """Return a short human readable description of a recurrence rule."""
    if isinstance(recurring, DayInMonth):
        return f"monthly on day {recurring.day}"
    if isinstance(recurring, Days):
        return f"every {recurring.days} days from {recurring.start.date().isoformat()}"
    return f"yearly on {recurring.month:02d}-{recurring.day:02d}"


@click.group()
def budget_group():
    """Manage budgets."""
    pass


@budget_group.command("create")
@click.argument("name")
@click.option("--value", "total_value", required=True, help="Amount available per period, e.g. '300 EUR'")
@click.option("--description", help="Budget description")
@click.option("--day-in-month", type=int, help="Period restarts every month on this day")
@click.option("--every-days", type=int, help="Period length in days (requires --start)")
@click.option("--start", help="First day of the first period for --every-days")
@click.option("--yearly", help="Period restarts every year on this date (MM-DD)")
@click.pass_context
def create_budget(
    ctx,
    name: str,
    total_value: str,
    description: str | None,
    day_in_month: int | None,
    every_days: int | None,
    start: str | None,
    yearly: str | None,
):
    """Create a recurring budget.

    Exactly one of --day-in-month, --every-days or --yearly must be given.

    Examples:
        finledger budget create Groceries --value 300 --day-in-month 1
        finledger budget create Fuel --value "60 EUR" --every-days 14 --start 2024-01-01
        finledger budget create Holidays --value 1500 --yearly 04-01
    """
    chosen = [option for option in (day_in_month, every_days, yearly) if option is not None]
    if len(chosen) != 1:
        click.echo("Error: Specify exactly one of --day-in-month, --every-days or --yearly.", err=True)
        ctx.exit(1)

    try:
        value = parse_amount(total_value)
        if day_in_month is not None:
            recurring = DayInMonth(day_in_month)
        elif every_days is not None:
            if not start:
                raise ValueError("--every-days requires --start")
            recurring = Days(to_utc_datetime(parse_date(start)), every_days)
        else:
            month, _, day = yearly.partition("-")
            recurring = Yearly(int(month), int(day))
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    created = run_ledger(
        ctx, lambda controller: controller.create_budget(name, description, value, recurring)
    )
    click.echo(f"Created budget '{created.name}' (ID: {created.id})")


@budget_group.command("list")
@click.pass_context
def list_budgets(ctx):
    """List all budgets."""
    budgets = run_ledger(ctx, lambda controller: controller.get_budgets())
    if not budgets:
        click.echo("No budgets found.")
        return

    click.echo("\nBudgets:")
    for budget in sorted(budgets, key=lambda b: b.id):
        click.echo(
            f"ID: {budget.id:3d} | {budget.name:20s} | {budget.total_value} | "
            f"{describe_recurring(budget.recurring)}"
        )


@budget_group.command("value")
@click.argument("budget_id", type=int)
@click.option("--offset", type=int, default=0, help="Period offset: 0 current, -1 previous, ...")
@click.pass_context
def budget_value(ctx, budget_id: int, offset: int):
    """Show how much of a budget period has been used."""
    now = datetime.now(timezone.utc)

    async def work(controller):
        budget = await controller.get_budget(budget_id)
        if budget is None:
            raise NotFoundError(budget_not_found(budget_id))
        used = await controller.get_budget_value(budget, offset, now)
        return budget, used

    budget, used = run_ledger(ctx, work)
    start, end = calculate_budget_timespan(budget, offset, now)
    click.echo(
        f"{budget.name} ({start.date().isoformat()} - {end.date().isoformat()}): "
        f"{used} of {budget.total_value}"
    )


@budget_group.command("delete")
@click.argument("budget_id", type=int)
@click.pass_context
def delete_budget(ctx, budget_id: int):
    """Delete a budget and detach it from its transactions."""

    async def work(controller):
        if await controller.get_budget(budget_id) is None:
            raise NotFoundError(budget_not_found(budget_id))
        await controller.delete_budget(budget_id)

    run_ledger(ctx, work)
    click.echo(f"Deleted budget {budget_id}")


def register_commands(cli):
    """Register budget commands with main CLI."""
    cli.add_command(budget_group, name="budget")
