"""Utility functions for finledger."""

from finledger.utils.date_parser import get_date_range, parse_date, parse_timespan, to_utc_datetime
from finledger.utils.amount_parser import parse_amount
from finledger.utils.account_resolver import resolve_account

__all__ = [
    "get_date_range",
    "parse_amount",
    "parse_date",
    "parse_timespan",
    "resolve_account",
    "to_utc_datetime",
]
