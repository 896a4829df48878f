"""Tests for CLI date filter helper."""

from datetime import datetime, timezone

import click
import pytest

from finledger.cli.date_filters import resolve_cli_timespan
from finledger.domain.entities import UNBOUNDED
from finledger.utils.date_parser import get_date_range, to_utc_datetime


def _ctx() -> click.Context:
    return click.Context(click.Command("test"))


def test_rejects_multiple_periods(capsys):
    with pytest.raises(click.exceptions.Exit) as excinfo:
        resolve_cli_timespan(
            _ctx(),
            start_date=None,
            end_date=None,
            period_flags={"this_month": True, "last_month": True},
        )

    assert excinfo.value.exit_code == 1
    assert "Only one period option" in capsys.readouterr().err


def test_rejects_period_with_explicit_dates(capsys):
    with pytest.raises(click.exceptions.Exit) as excinfo:
        resolve_cli_timespan(
            _ctx(),
            start_date="2024-01-01",
            end_date=None,
            period_flags={"this_month": True},
        )

    assert excinfo.value.exit_code == 1
    assert "cannot be combined" in capsys.readouterr().err


def test_period_flag_covers_whole_days():
    start, end = resolve_cli_timespan(
        _ctx(), start_date=None, end_date=None, period_flags={"last_month": True, "this_year": False}
    )

    first, last = get_date_range("last-month")
    assert start == to_utc_datetime(first)
    assert end == to_utc_datetime(last, end_of_day=True)


def test_explicit_dates():
    start, end = resolve_cli_timespan(
        _ctx(), start_date="2024-01-02", end_date="2024-01-05", period_flags={}
    )

    assert start == datetime(2024, 1, 2, tzinfo=timezone.utc)
    assert end == datetime(2024, 1, 5, 23, 59, 59, 999999, tzinfo=timezone.utc)


def test_only_end_date_leaves_start_open():
    start, end = resolve_cli_timespan(
        _ctx(), start_date=None, end_date="2024-01-05", period_flags={}
    )
    assert start is None
    assert end.date().isoformat() == "2024-01-05"


def test_default_applies_without_options():
    default = (datetime(2020, 1, 1, tzinfo=timezone.utc), None)

    assert resolve_cli_timespan(
        _ctx(), start_date=None, end_date=None, period_flags={}, default=default
    ) == default
    assert resolve_cli_timespan(_ctx(), start_date=None, end_date=None, period_flags={}) == UNBOUNDED


def test_invalid_start_date(capsys):
    with pytest.raises(click.exceptions.Exit) as excinfo:
        resolve_cli_timespan(
            _ctx(), start_date="not-a-date", end_date=None, period_flags={}
        )

    assert excinfo.value.exit_code == 1
    assert "Invalid start date" in capsys.readouterr().err
