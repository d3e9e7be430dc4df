"""
UTC-first date and datetime utilities for Patient Service API.

Design Principles:
- Internal timestamps: Always datetime with UTC timezone
- Calendar dates (date of birth, registration date): plain ``date`` objects
- Database storage: ISO 8601 strings (SQLite stores as TEXT)
- API exchange: calendar dates as ``YYYY-MM-DD``

Usage:
    from core.datetime_utils import utc_now, parse_calendar_date, format_date

    dob = parse_calendar_date("1990-05-15")
    format_date(dob)  # "1990-05-15"
"""
import logging
import re
from datetime import date, datetime, timezone
from typing import Optional, Union

logger = logging.getLogger(__name__)

CALENDAR_DATE_FORMAT = "%Y-%m-%d"
CALENDAR_DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}", re.ASCII)


# =============================================================================
# CORE UTILITIES
# =============================================================================

def utc_now() -> datetime:
    """
    Get current datetime in UTC with timezone info.

    Returns:
        datetime: Current time as timezone-aware datetime in UTC.
    """
    return datetime.now(timezone.utc)


def utc_today() -> date:
    """Get the current calendar date in UTC."""
    return utc_now().date()


def to_utc(dt: datetime) -> datetime:
    """
    Convert a datetime to UTC.

    - If datetime is naive (no timezone), assumes it's already UTC
    - If datetime has timezone, converts to UTC
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


# =============================================================================
# PARSING
# =============================================================================

def parse_calendar_date(value: Union[str, date]) -> date:
    """
    Parse a calendar date in strict ``YYYY-MM-DD`` form.

    Args:
        value: Date string or ``date`` object.

    Returns:
        date: The parsed calendar date.

    Raises:
        ValueError: If the value is not a well-formed, existing calendar date.

    Examples:
        >>> parse_calendar_date("1990-05-15")
        datetime.date(1990, 5, 15)
    """
    # datetime is a subclass of date; only accept pure dates here
    if isinstance(value, date) and not isinstance(value, datetime):
        return value

    if not isinstance(value, str):
        raise ValueError(f"Expected date string, got {type(value).__name__}")

    value = value.strip()
    # strptime also takes single-digit, space-padded and non-ASCII digits
    if not CALENDAR_DATE_PATTERN.fullmatch(value):
        raise ValueError(f"Cannot parse date: '{value}'")

    return datetime.strptime(value, CALENDAR_DATE_FORMAT).date()


def parse_datetime_safe(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO 8601 timestamp with graceful error handling.

    Args:
        value: Timestamp string, or None.

    Returns:
        Parsed datetime in UTC, or None if parsing fails or input is None.
    """
    if value is None:
        return None
    try:
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        return to_utc(datetime.fromisoformat(value))
    except ValueError as e:
        logger.warning(f"Failed to parse datetime '{value}': {e}")
        return None


# =============================================================================
# FORMATTING
# =============================================================================

def format_iso(dt: datetime) -> str:
    """
    Format datetime to ISO 8601 string with UTC timezone.

    Example:
        >>> format_iso(datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc))
        '2024-01-15T10:30:00Z'
    """
    utc_dt = to_utc(dt)
    return utc_dt.strftime("%Y-%m-%dT%H:%M:%SZ")


def format_date(value: date) -> str:
    """Format a calendar date as ``YYYY-MM-DD``."""
    return value.strftime(CALENDAR_DATE_FORMAT)
