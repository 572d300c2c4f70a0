"""Booking and slot services wired to the configured store and guard."""

from typing import Optional

from db import get_db_client
from scheduling.guard import get_slot_guard

from .booking_service import BookingService
from .slot_service import SlotService

__all__ = ["BookingService", "SlotService", "get_booking_service", "get_slot_service"]

_booking_service: Optional[BookingService] = None
_slot_service: Optional[SlotService] = None


def get_booking_service() -> BookingService:
    """Get or create the booking service."""
    global _booking_service
    if _booking_service is None:
        _booking_service = BookingService(get_db_client(), get_slot_guard())
    return _booking_service


def get_slot_service() -> SlotService:
    """Get or create the slot service."""
    global _slot_service
    if _slot_service is None:
        _slot_service = SlotService(get_db_client())
    return _slot_service
