"""Savings calendar and interest month rules.

The savings year starts on January 5th and is split into 7-day weeks.
All arithmetic happens on calendar dates normalized to UTC so the week a
timestamp falls in never depends on the local timezone.
"""
from collections import namedtuple
from datetime import date, datetime, timezone

from dateutil import parser as date_parser

from cajaledger.config import SAVINGS_YEAR_START_MONTH, SAVINGS_YEAR_START_DAY

WeekInfo = namedtuple('WeekInfo', ['week_number', 'year'])


def utc_now():
    return datetime.now(timezone.utc)


def to_utc(value):
    """Normalize a datetime, date or ISO string to an aware UTC datetime.

    Naive datetimes are taken to already be in UTC.
    """
    if isinstance(value, str):
        value = date_parser.isoparse(value.strip())
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    raise TypeError(f"Unsupported date value: {value!r}")


def parse_timestamp(value):
    """Parse a stored timestamp, returning None for empty values."""
    if value is None or value == "":
        return None
    return to_utc(value)


def format_timestamp(value):
    """Serialize a timestamp as an ISO 8601 UTC string."""
    if value is None:
        return None
    return to_utc(value).isoformat().replace("+00:00", "Z")


def _utc_date(value):
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    return to_utc(value).date()


def _savings_year_start(year):
    return date(year, SAVINGS_YEAR_START_MONTH, SAVINGS_YEAR_START_DAY)


def week_info(value):
    """Return the savings (week_number, year) a date belongs to.

    Dates before January 5th belong to the previous savings year. The anchor
    day itself is week 1, and every 7 days start a new week.
    """
    day = _utc_date(value)
    savings_year = day.year
    anchor = _savings_year_start(savings_year)

    if day < anchor:
        savings_year -= 1
        anchor = _savings_year_start(savings_year)

    days_passed = (day - anchor).days
    return WeekInfo(days_passed // 7 + 1, savings_year)


def current_savings_year(now=None):
    return week_info(now or utc_now()).year


def months_elapsed(start, end=None):
    """Count interest months between two dates.

    Whole calendar months are counted, minus one when the end day-of-month
    has not yet reached the start day-of-month. Interest for the first month
    is charged upfront, so the result is always at least 1.
    """
    start_dt = to_utc(start)
    end_dt = to_utc(end) if end is not None else utc_now()

    months = (end_dt.year - start_dt.year) * 12
    months -= start_dt.month
    months += end_dt.month

    if end_dt.day < start_dt.day:
        months -= 1

    return max(months, 0) + 1


def resolve_now(now=None):
    """The given moment as UTC, or the current UTC time when omitted."""
    return to_utc(now) if now is not None else utc_now()
