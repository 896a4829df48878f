"""CLI helpers for date range resolution."""

import click

from finledger.domain.entities import UNBOUNDED, Timespan
from finledger.utils.date_parser import PERIODS, get_date_range, parse_date, to_utc_datetime


def period_options(command):
    """Add the --this-month/--last-year/... flags to a command."""
    for period in reversed(PERIODS):
        command = click.option(
            f"--{period}",
            period.replace("-", "_"),
            is_flag=True,
            help=f"Limit to {period.replace('-', ' ')}",
        )(command)
    return command


def resolve_cli_timespan(
    ctx: click.Context,
    *,
    start_date: str | None,
    end_date: str | None,
    period_flags: dict[str, bool],
    default: Timespan = UNBOUNDED,
) -> Timespan:
    """Resolve a CLI timespan from period flags or explicit dates.

    Dates are whole days: the end date is included up to its last microsecond.
    """
    period_count = sum(1 for is_set in period_flags.values() if is_set)

    if period_count > 1:
        click.echo(
            "Error: Only one period option (--this-month, --this-year, --this-week, "
            "--last-month, --last-year, --last-week) can be specified at a time.",
            err=True,
        )
        ctx.exit(1)

    if period_count > 0 and (start_date or end_date):
        click.echo(
            "Error: Period options (--this-month, --this-year, etc.) cannot be combined "
            "with --start-date or --end-date.",
            err=True,
        )
        ctx.exit(1)

    if period_count == 1:
        period = next(name for name, is_set in period_flags.items() if is_set)
        start, end = get_date_range(period.replace("_", "-"))
        return (to_utc_datetime(start), to_utc_datetime(end, end_of_day=True))

    if not start_date and not end_date:
        return default

    start = end = None
    if start_date:
        try:
            start = to_utc_datetime(parse_date(start_date))
        except ValueError as e:
            click.echo(f"Error: Invalid start date: {e}", err=True)
            ctx.exit(1)

    if end_date:
        try:
            end = to_utc_datetime(parse_date(end_date), end_of_day=True)
        except ValueError as e:
            click.echo(f"Error: Invalid end date: {e}", err=True)
            ctx.exit(1)

    return (start, end)
