"""
Datetime utilities for consistent timezone handling across the application.
Audit timestamps are timezone-aware UTC; slot dates and appointment
times are naive wall-clock values in the clinic's local time.
"""

from datetime import date, datetime, time, timedelta, timezone


def utc_now() -> datetime:
    """
    Get current UTC time as timezone-aware datetime.

    Returns:
        Current UTC datetime with timezone info
    """
    return datetime.now(timezone.utc)


def parse_iso_datetime(iso_string: str) -> datetime:
    """
    Parse ISO format datetime string to timezone-aware datetime.
    Handles both 'Z' suffix and '+00:00' timezone formats.

    Args:
        iso_string: ISO format datetime string

    Returns:
        Timezone-aware datetime object

    Raises:
        ValueError: If datetime string cannot be parsed
    """
    normalized = iso_string.replace("Z", "+00:00")

    try:
        dt = datetime.fromisoformat(normalized)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt
    except ValueError as e:
        raise ValueError(f"Invalid datetime string: {iso_string}") from e


def add_minutes(start: time, minutes: int) -> time:
    """
    Shift a time of day by a number of minutes.

    Wraps past midnight the way a wall clock does.
    """
    anchor = datetime.combine(date.min, start)
    return (anchor + timedelta(minutes=minutes)).time()
