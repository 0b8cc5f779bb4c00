"""Utility functions for date handling.

Expense dates are stored as epoch milliseconds. Month boundaries follow the
local calendar: a month starts at 00:00:00.000 local time on its first day and
ends (exclusive) at the first instant of the following month.
"""

from datetime import datetime

from constants import DATE_FORMAT, MONTH_YEAR_FORMAT
from utils.logging import logger


def to_millis(moment: datetime) -> int:
    """Convert a datetime to epoch milliseconds (naive values are local time)."""
    return int(round(moment.timestamp() * 1000))


def from_millis(timestamp: int) -> datetime:
    """Convert epoch milliseconds to a naive local datetime."""
    return datetime.fromtimestamp(timestamp / 1000)


def _normalize_month(year: int, month: int) -> tuple[int, int]:
    """Turn a zero-based, possibly out-of-range month into (year, 1-12).

    Out-of-range months roll into neighbouring years, so month 12 of 2024 is
    January 2025 and month -1 is December of the previous year.
    """
    extra_years, month_index = divmod(month, 12)
    return year + extra_years, month_index + 1


def get_start_of_month(year: int, month: int) -> int:
    """Get the first instant of a month as epoch milliseconds.

    Args:
        year: Calendar year
        month: Zero-based month index (0 = January)

    Returns:
        Epoch milliseconds of the 1st of the month at 00:00:00.000 local time
    """
    norm_year, norm_month = _normalize_month(year, month)
    start = to_millis(datetime(norm_year, norm_month, 1))
    logger.debug(f"Start of month {norm_month}/{norm_year}: {start}")
    return start


def get_end_of_month(year: int, month: int) -> int:
    """Get the exclusive end of a month as epoch milliseconds.

    Args:
        year: Calendar year
        month: Zero-based month index (0 = January)

    Returns:
        Epoch milliseconds of the first instant of the following month
    """
    return get_start_of_month(year, month + 1)


def get_current_month_start(now: datetime | None = None) -> int:
    now = now or datetime.now()
    return get_start_of_month(now.year, now.month - 1)


def get_current_month_end(now: datetime | None = None) -> int:
    now = now or datetime.now()
    return get_end_of_month(now.year, now.month - 1)


def format_date(timestamp: int) -> str:
    """Format epoch milliseconds as e.g. '05 Mar 2024'."""
    return from_millis(timestamp).strftime(DATE_FORMAT)


def format_month_year(timestamp: int) -> str:
    """Format epoch milliseconds as e.g. 'March 2024'."""
    return from_millis(timestamp).strftime(MONTH_YEAR_FORMAT)
