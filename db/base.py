"""
Storage interface shared by the in-memory and Supabase backends.

Lookups raise the matching NotFoundError subclass instead of returning
None. The two commit methods are the only writes that touch a slot's
occupancy; each writes the slot and one booking as a single unit and
refuses to write when the stored slot version is not the expected one.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import List

from models.booking import Booking
from models.directory import Doctor, User
from models.slot import Slot


class SlotStore(ABC):
    """Persistence boundary for slots, bookings and directory reads."""

    # ========== Directory ==========

    @abstractmethod
    async def get_user(self, user_id: str) -> User:
        """Raises UserNotFoundError."""

    @abstractmethod
    async def get_doctor(self, doctor_id: str) -> Doctor:
        """Raises DoctorNotFoundError."""

    # ========== Slots ==========

    @abstractmethod
    async def get_slot(self, slot_id: str) -> Slot:
        """Raises SlotNotFoundError."""

    @abstractmethod
    async def get_slot_by_doctor_and_date(self, doctor_id: str, slot_date: date) -> Slot:
        """Raises SlotNotFoundError."""

    @abstractmethod
    async def list_available_slots(self, slot_date: date) -> List[Slot]:
        """Available slots on slot_date, ordered by consultation start time."""

    @abstractmethod
    async def list_slots_by_doctor(
        self, doctor_id: str, start_date: date, end_date: date
    ) -> List[Slot]:
        """Doctor's slots in [start_date, end_date], ordered by date."""

    @abstractmethod
    async def insert_slot(self, slot: Slot) -> Slot:
        """Raises DuplicateSlotError for a second slot on the same doctor-day."""

    # ========== Bookings ==========

    @abstractmethod
    async def get_booking(self, booking_id: str) -> Booking:
        """Raises BookingNotFoundError."""

    @abstractmethod
    async def list_bookings_by_user(self, user_id: str) -> List[Booking]:
        """User's bookings, most recent booking_time first."""

    # ========== Atomic writes ==========

    @abstractmethod
    async def commit_booking(
        self, slot: Slot, booking: Booking, expected_version: int
    ) -> Booking:
        """
        Persist the occupied slot and insert the new booking together.

        Returns the stored booking (with its id).

        Raises:
            StaleSlotError: stored slot version != expected_version
            DatabaseError: storage failure; nothing was written
        """

    @abstractmethod
    async def commit_cancellation(
        self, slot: Slot, booking: Booking, expected_version: int
    ) -> Booking:
        """
        Persist the released slot and the booking's new status together.

        Raises:
            StaleSlotError: stored slot version != expected_version
            DatabaseError: storage failure; nothing was written
        """
