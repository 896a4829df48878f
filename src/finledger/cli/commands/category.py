"""Category management commands."""

import click

from finledger.cli.date_filters import period_options, resolve_cli_timespan
from finledger.cli.error_handling import run_ledger
from finledger.domain.errors import NotFoundError, category_not_found


@click.group()
def category_group():
    """Manage categories."""
    pass


@category_group.command("list")
@click.pass_context
def list_categories(ctx):
    """List all categories."""
    categories = run_ledger(ctx, lambda controller: controller.get_categories())
    if not categories:
        click.echo("No categories found.")
        return

    click.echo("\nCategories:")
    for cat in sorted(categories, key=lambda c: c.name.lower()):
        click.echo(f"{cat.name} (ID: {cat.id})")


@category_group.command("create")
@click.argument("name")
@click.pass_context
def create_category(ctx, name: str):
    """Create a new category."""
    created = run_ledger(ctx, lambda controller: controller.create_category(name))
    click.echo(f"Created category '{created.name}' (ID: {created.id})")


@category_group.command("delete")
@click.argument("category_id", type=int)
@click.pass_context
def delete_category(ctx, category_id: int):
    """Delete a category and remove it from all transactions."""

    async def work(controller):
        category = await controller.get_category(category_id)
        if category is None:
            raise NotFoundError(category_not_found(category_id))
        await controller.delete_category(category_id)
        return category

    deleted = run_ledger(ctx, work)
    click.echo(f"Deleted category '{deleted.name}'")


@category_group.command("values")
@click.argument("category_id", type=int)
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'last month')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")
@period_options
@click.pass_context
def category_values(ctx, category_id: int, start_date: str | None, end_date: str | None, **period_flags):
    """Show the running total of a category, day by day."""
    timespan = resolve_cli_timespan(
        ctx, start_date=start_date, end_date=end_date, period_flags=period_flags
    )
    values = run_ledger(
        ctx, lambda controller: controller.get_relative_category_values(category_id, timespan)
    )
    if not values:
        click.echo("No transactions found.")
        return

    for day, value in values:
        click.echo(f"{day.date().isoformat()}  {value}")


def register_commands(cli):
    """Register category commands with main CLI."""
    cli.add_command(category_group, name="category")
