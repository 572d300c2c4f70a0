"""Directory records read by the booking engine but owned elsewhere."""

from typing import Optional

from pydantic import BaseModel, Field


class User(BaseModel):
    """Patient account."""

    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None


class Doctor(BaseModel):
    """Doctor summary attached to bookings."""

    id: str
    name: str
    specialization: Optional[str] = None
    consultation_fee: float = Field(default=0.0, ge=0)
    hospital_name: Optional[str] = None
