"""Budget period calculation.

A budget's ``Recurring`` rule splits time into consecutive periods. Period
boundaries fall on midnight UTC (``DayInMonth``/``Yearly``) or on the
``Days`` anchor itself. Timespans are inclusive, so the returned end is the
next boundary minus ``PERIOD_END_RESOLUTION``.
"""

from calendar import monthrange
from datetime import datetime, timedelta, timezone

from dateutil.relativedelta import relativedelta

from finledger.domain.entities import Budget, DayInMonth, Days, Recurring, Timespan, Yearly
from finledger.domain.errors import InvalidRecurrenceError

PERIOD_END_RESOLUTION = timedelta(microseconds=1)

# Leap year used to decide which month/day combinations can ever exist
_LEAP_YEAR = 2000


def to_utc(moment: datetime) -> datetime:
    """Return ``moment`` in UTC, treating naive values as UTC."""
    if moment.tzinfo is None or moment.utcoffset() is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def validate_recurrence(recurring: Recurring) -> None:
    """Validate recurrence parameters.

    Raises:
        InvalidRecurrenceError: If a parameter is outside its domain
    """
    if isinstance(recurring, DayInMonth):
        if not 1 <= recurring.day <= 31:
            raise InvalidRecurrenceError(
                f"Day in month must be between 1 and 31, got {recurring.day}"
            )
    elif isinstance(recurring, Days):
        if recurring.days < 1:
            raise InvalidRecurrenceError(
                f"Period length must be at least one day, got {recurring.days}"
            )
        if recurring.start.tzinfo is None or recurring.start.utcoffset() is None:
            raise InvalidRecurrenceError("Start of a days period must be timezone-aware")
    elif isinstance(recurring, Yearly):
        if not 1 <= recurring.month <= 12:
            raise InvalidRecurrenceError(
                f"Month must be between 1 and 12, got {recurring.month}"
            )
        max_day = monthrange(_LEAP_YEAR, recurring.month)[1]
        if not 1 <= recurring.day <= max_day:
            raise InvalidRecurrenceError(
                f"Day must be between 1 and {max_day} for month {recurring.month}, "
                f"got {recurring.day}"
            )
    else:
        raise InvalidRecurrenceError(f"Unknown recurrence {recurring!r}")


def calculate_period(recurring: Recurring, offset: int, reference: datetime) -> tuple[datetime, datetime]:
    """Return the half-open ``[start, end)`` period ``offset`` periods away.

    Args:
        recurring: Recurrence rule
        offset: 0 for the period containing ``reference``, positive for later
            periods, negative for earlier ones
        reference: Moment that selects the current period

    Returns:
        Tuple of period start (inclusive) and end (exclusive) in UTC

    Raises:
        InvalidRecurrenceError: If the rule is invalid or the period cannot be
            represented
    """
    validate_recurrence(recurring)
    reference = to_utc(reference)

    try:
        if isinstance(recurring, Days):
            anchor = to_utc(recurring.start)
            length = timedelta(days=recurring.days)
            index = (reference - anchor) // length + offset
            start = anchor + length * index
            return start, start + length

        if isinstance(recurring, DayInMonth):
            base = datetime(reference.year, reference.month, 1, tzinfo=timezone.utc)
            return _shifted(base, reference, "months", relativedelta(day=recurring.day), offset)

        base = datetime(reference.year, 1, 1, tzinfo=timezone.utc)
        return _shifted(
            base, reference, "years", relativedelta(month=recurring.month, day=recurring.day), offset
        )
    except (OverflowError, ValueError) as exc:
        raise InvalidRecurrenceError(
            f"Budget period at offset {offset} is outside the representable date range"
        ) from exc


def _shifted(
    base: datetime, reference: datetime, step: str, anchor: relativedelta, offset: int
) -> tuple[datetime, datetime]:
    """Find the period around ``reference`` for calendar-anchored rules.

    ``base`` is the start of the calendar unit containing ``reference``
    (first of month or first of year) and ``anchor`` moves it onto the
    boundary inside that unit with relativedelta's month-end clamping.
    """
    boundary = base + anchor
    index = (0 if reference >= boundary else -1) + offset
    start = base + (relativedelta(**{step: index}) + anchor)
    end = base + (relativedelta(**{step: index + 1}) + anchor)
    return start, end


def calculate_budget_timespan(budget: Budget, offset: int, reference: datetime) -> Timespan:
    """Return the inclusive timespan of the budget period ``offset`` periods away.

    Example:
        A ``DayInMonth(1)`` budget referenced on 2020-05-03 with offset 0
        covers 2020-05-01 00:00 until 2020-05-31 23:59:59.999999 UTC.
    """
    start, end = calculate_period(budget.recurring, offset, reference)
    return (start, end - PERIOD_END_RESOLUTION)
