"""Booking models for doctor appointments."""

from datetime import date, datetime, time
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class BookingStatus(str, Enum):
    """Booking status."""

    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"


class Booking(BaseModel):
    """
    One patient's reservation against a slot.

    appointment_time is assigned once, when the booking is made, and is
    frozen on the model.
    """

    id: Optional[str] = None
    user_id: str = Field(..., description="Owning user ID")
    slot_id: str = Field(..., description="Slot ID")
    booking_time: datetime = Field(..., description="When the reservation was made (UTC)")
    appointment_date: date
    appointment_time: time = Field(..., frozen=True)
    status: BookingStatus = BookingStatus.CONFIRMED
    notes: Optional[str] = None
    amount_paid: Optional[float] = Field(default=None, ge=0)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        use_enum_values = True
        json_schema_extra = {
            "example": {
                "user_id": "uuid-here",
                "slot_id": "uuid-here",
                "booking_time": "2026-01-14T18:03:11+00:00",
                "appointment_date": "2026-01-15",
                "appointment_time": "09:20:00",
                "status": "confirmed",
                "amount_paid": 500.0,
            }
        }

    @property
    def is_confirmed(self) -> bool:
        return self.status == BookingStatus.CONFIRMED

