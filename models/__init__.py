"""Pydantic models for data validation and serialization."""

from .booking import Booking, BookingStatus
from .directory import Doctor, User
from .slot import Slot, SlotCreate

__all__ = [
    "Booking",
    "BookingStatus",
    "Doctor",
    "Slot",
    "SlotCreate",
    "User",
]
