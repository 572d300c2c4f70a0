"""Slot models: one doctor's bookable day."""

from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from utils.constants import DEFAULT_MAX_BOOKINGS_PER_DAY, DEFAULT_MINUTES_PER_PATIENT


class Slot(BaseModel):
    """
    A doctor's bookable day with a fixed daily capacity.

    is_available is derived from the occupancy counter on every validation,
    so a stored value that disagrees with the counter is corrected on load.
    """

    id: Optional[str] = None
    doctor_id: str
    slot_date: date
    consultation_start_time: time
    max_bookings_per_day: int = Field(default=DEFAULT_MAX_BOOKINGS_PER_DAY, ge=1)
    current_bookings: int = Field(default=0, ge=0)
    minutes_per_patient: int = Field(default=DEFAULT_MINUTES_PER_PATIENT, ge=1)
    is_available: bool = True
    version: int = Field(default=0, ge=0, description="Bumped on every committed mutation")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        json_schema_extra = {
            "example": {
                "doctor_id": "uuid-here",
                "slot_date": "2026-01-15",
                "consultation_start_time": "09:00:00",
                "max_bookings_per_day": 30,
                "current_bookings": 0,
                "minutes_per_patient": 10,
            }
        }

    @model_validator(mode="after")
    def _check_occupancy(self) -> "Slot":
        if self.current_bookings > self.max_bookings_per_day:
            raise ValueError(
                f"current_bookings ({self.current_bookings}) exceeds "
                f"max_bookings_per_day ({self.max_bookings_per_day})"
            )
        self.is_available = self.current_bookings < self.max_bookings_per_day
        return self

    @property
    def remaining_capacity(self) -> int:
        return self.max_bookings_per_day - self.current_bookings


class SlotCreate(BaseModel):
    """Slot creation model (admin scheduling)."""

    doctor_id: str
    slot_date: date
    consultation_start_time: time
    max_bookings_per_day: int = Field(default=DEFAULT_MAX_BOOKINGS_PER_DAY, ge=1)
    minutes_per_patient: int = Field(default=DEFAULT_MINUTES_PER_PATIENT, ge=1)
