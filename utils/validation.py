"""
Input validation utilities for booking requests.
"""

import re
from datetime import date
from typing import Optional

from utils.constants import (
    MAX_BOOKINGS_PER_DAY_LIMIT,
    MAX_MINUTES_PER_PATIENT,
    MAX_NOTES_LENGTH,
)
from utils.exceptions import ValidationError


def validate_identifier(value: str, name: str = "id") -> str:
    """
    Validate a record identifier.

    Raises:
        ValidationError: If the identifier is empty or not a string
    """
    if not value or not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Invalid {name}: {value!r}")
    return value.strip()


def sanitize_text(text: Optional[str], max_length: Optional[int] = None) -> str:
    """
    Sanitize user input text.

    Args:
        text: Input text
        max_length: Optional maximum length

    Returns:
        Sanitized text
    """
    if not text:
        return ""

    # Remove control characters except newlines and tabs
    sanitized = re.sub(r"[\x00-\x08\x0B-\x0C\x0E-\x1F\x7F]", "", str(text))

    sanitized = sanitized.strip()

    if max_length and len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized


def clean_notes(notes: Optional[str]) -> Optional[str]:
    """
    Normalize patient notes.

    Returns None for blank notes.

    Raises:
        ValidationError: If notes exceed MAX_NOTES_LENGTH after sanitizing
    """
    cleaned = sanitize_text(notes)
    if not cleaned:
        return None
    if len(cleaned) > MAX_NOTES_LENGTH:
        raise ValidationError(
            f"Notes too long: {len(cleaned)} characters (max {MAX_NOTES_LENGTH})"
        )
    return cleaned


def validate_slot_policy(max_bookings_per_day: int, minutes_per_patient: int) -> None:
    """
    Validate capacity and per-patient duration of a new slot.

    Raises:
        ValidationError: If either value is out of range
    """
    if not 1 <= max_bookings_per_day <= MAX_BOOKINGS_PER_DAY_LIMIT:
        raise ValidationError(
            f"max_bookings_per_day must be between 1 and {MAX_BOOKINGS_PER_DAY_LIMIT}"
        )
    if not 1 <= minutes_per_patient <= MAX_MINUTES_PER_PATIENT:
        raise ValidationError(
            f"minutes_per_patient must be between 1 and {MAX_MINUTES_PER_PATIENT}"
        )


def validate_slot_date(slot_date: date, today: date) -> None:
    """
    Reject slots for days that have already passed.

    Raises:
        ValidationError: If slot_date is before today
    """
    if slot_date < today:
        raise ValidationError(f"Cannot create slots for past dates: {slot_date}")
