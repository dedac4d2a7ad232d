"""Date parsing utilities."""

import re
from datetime import date, timedelta
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

_DAYS_AGO = re.compile(r"^(\d+)\s+days?\s+ago$")

PERIODS = ("this-week", "this-month", "this-year", "last-week", "last-month", "last-year")


def _period_start(period: str, today: date) -> date | None:
    """Return the first day of "week", "month" or "year" containing ``today``."""
    if period == "week":
        return today - timedelta(days=today.weekday())
    if period == "month":
        return today.replace(day=1)
    if period == "year":
        return today.replace(month=1, day=1)
    return None


def _period_step(period: str) -> relativedelta:
    return {
        "week": relativedelta(weeks=1),
        "month": relativedelta(months=1),
        "year": relativedelta(years=1),
    }[period]


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    Supports absolute dates ("2024-01-15", "January 15, 2024") and relative
    ones: "today", "yesterday", "tomorrow", "3 days ago", and the first day of
    "this/last/next week|month|year".

    Args:
        date_str: Date string in various formats

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    text = date_str.strip().lower()
    today = date.today()

    simple = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
    }
    if text in simple:
        return simple[text]

    days_ago = _DAYS_AGO.match(text)
    if days_ago:
        return today - timedelta(days=int(days_ago.group(1)))

    which, _, period = text.partition(" ")
    start = _period_start(period, today)
    if start is not None and which in ("this", "last", "next"):
        if which == "last":
            return start - _period_step(period)
        if which == "next":
            return start + _period_step(period)
        return start

    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}") from e


def get_date_range(period: str) -> tuple[date, date]:
    """Get start and end dates for a named period.

    "this-*" periods end today; "last-*" periods cover the whole previous
    week, month or year.

    Args:
        period: One of ``PERIODS``

    Returns:
        Tuple of (start_date, end_date)

    Raises:
        ValueError: If period string is not recognized
    """
    which, _, unit = period.strip().lower().partition("-")
    today = date.today()
    start = _period_start(unit, today)
    if start is None or which not in ("this", "last"):
        raise ValueError(
            f"Unknown period: '{period}'. Supported periods: {', '.join(PERIODS)}"
        )

    if which == "this":
        return start, today
    previous = start - _period_step(unit)
    return previous, start - timedelta(days=1)
