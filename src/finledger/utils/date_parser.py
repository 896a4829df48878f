"""Date parsing utilities."""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from finledger.domain.entities import Timespan

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

PERIODS = ["this-month", "this-year", "this-week", "last-month", "last-year", "last-week"]


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    Supports various formats including relative dates:
    - Absolute dates: "2024-01-15", "January 15, 2024", etc.
    - Relative dates: "today", "yesterday", "last month", "this year", etc.

    Args:
        date_str: Date string in various formats

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    today = date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
    }
    if date_str in relative_dates:
        return relative_dates[date_str]

    direction, _, unit = date_str.partition(" ")
    if direction in ("last", "this", "next") and unit:
        step = {"last": -1, "this": 0, "next": 1}[direction]
        if unit == "month":
            return today.replace(day=1) + relativedelta(months=step)
        if unit == "year":
            return today.replace(month=1, day=1) + relativedelta(years=step)
        if unit == "week":
            # Weeks start on Monday
            return today - timedelta(days=today.weekday()) + timedelta(weeks=step)
        if direction == "last" and unit in WEEKDAYS:
            days_ago = (today.weekday() - WEEKDAYS.index(unit)) % 7 or 7
            return today - timedelta(days=days_ago)

    try:
        return date_parser.parse(date_str).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}") from e


def get_date_range(period: str) -> tuple[date, date]:
    """Get start and end dates for a specified period.

    Args:
        period: One of this-month, this-year, this-week, last-month,
            last-year, last-week

    Returns:
        Tuple of (start_date, end_date), both inclusive. "this-*" periods
        end today.

    Raises:
        ValueError: If period string is not recognized
    """
    period = period.strip().lower()
    today = date.today()
    month_start = today.replace(day=1)
    year_start = today.replace(month=1, day=1)
    week_start = today - timedelta(days=today.weekday())

    if period == "this-month":
        return (month_start, today)
    if period == "this-year":
        return (year_start, today)
    if period == "this-week":
        return (week_start, today)
    if period == "last-month":
        return (month_start - relativedelta(months=1), month_start - timedelta(days=1))
    if period == "last-year":
        return (year_start - relativedelta(years=1), year_start - timedelta(days=1))
    if period == "last-week":
        return (week_start - timedelta(days=7), week_start - timedelta(days=1))

    raise ValueError(f"Unknown period: '{period}'. Supported periods: {', '.join(PERIODS)}")


def to_utc_datetime(day: date, end_of_day: bool = False) -> datetime:
    """Turn a calendar date into a UTC datetime.

    Args:
        day: Date to convert
        end_of_day: Return the last microsecond of the day instead of midnight

    Returns:
        Timezone-aware datetime in UTC
    """
    moment = time.max if end_of_day else time.min
    return datetime.combine(day, moment, tzinfo=timezone.utc)


def parse_timespan(start: Optional[str] = None, end: Optional[str] = None) -> Timespan:
    """Parse optional start/end date strings into an inclusive timespan.

    The end date is included as a whole day.

    Raises:
        ValueError: If a date cannot be parsed or start lies after end
    """
    start_dt = to_utc_datetime(parse_date(start)) if start else None
    end_dt = to_utc_datetime(parse_date(end), end_of_day=True) if end else None
    if start_dt is not None and end_dt is not None and start_dt > end_dt:
        raise ValueError("Start date must not be after end date")
    return (start_dt, end_dt)
