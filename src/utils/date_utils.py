"""
Date utility functions for the harvester.

Date formatting, compact stamps for artifact names, and the
"yesterday" bounds used by the funnel date filter.
"""

from datetime import date, datetime, timedelta
from typing import Optional, Tuple

# ddMMyyyyHHmmss, e.g. 06112025225301
FILENAME_TIMESTAMP_FORMAT = "%d%m%Y%H%M%S"

# Date inputs on the console use the Russian day-first format
FILTER_DATE_FORMAT = "%d.%m.%Y"


def format_date(dt: datetime, fmt: str = "%Y-%m-%d") -> str:
    """
    Format datetime object to string.

    Args:
        dt: Datetime object to format
        fmt: Format string (default: YYYY-MM-DD)

    Returns:
        Formatted date string

    Example:
        >>> format_date(datetime(2026, 1, 8, 12, 0, 0))
        '2026-01-08'
    """
    return dt.strftime(fmt)


def filename_timestamp(dt: Optional[datetime] = None) -> str:
    """
    Compact local timestamp for artifact file names.

    Example:
        >>> filename_timestamp(datetime(2025, 11, 6, 22, 53, 1))
        '06112025225301'
    """
    return format_date(dt or datetime.now(), FILENAME_TIMESTAMP_FORMAT)


def yesterday(today: Optional[date] = None) -> date:
    """Return the calendar day before ``today`` (local date by default)."""
    return (today or date.today()) - timedelta(days=1)


def yesterday_range(today: Optional[date] = None, fmt: str = FILTER_DATE_FORMAT) -> Tuple[str, str]:
    """
    Both bounds of a date-range filter pinned to yesterday.

    Example:
        >>> yesterday_range(date(2026, 3, 1))
        ('28.02.2026', '28.02.2026')
    """
    day = yesterday(today).strftime(fmt)
    return day, day
