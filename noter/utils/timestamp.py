"""Timestamp formatting utilities."""

from datetime import date, datetime, timezone


def today() -> date:
    """Current local calendar date."""
    return datetime.now().date()


def now_exact() -> str:
    """Current UTC time as an ISO 8601 string (used for config metadata)."""
    return datetime.now(timezone.utc).isoformat()


def now_compact() -> str:
    """Current local time as YYYYmmdd_HHMMSS (used for backup suffixes)."""
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def iso_date(day: date) -> str:
    """Format a date as YYYY-MM-DD."""
    return day.strftime("%Y-%m-%d")


def long_date(day: date) -> str:
    """
    Format a date for human-readable titles.

    Examples:
        long_date(date(2026, 10, 19))
        # "October 19, 2026"
    """
    return day.strftime("%B %d, %Y")

