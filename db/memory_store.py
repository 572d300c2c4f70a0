"""
In-memory slot store for single-process deployments and tests.

Records are copied on the way in and out so callers never share
mutable state with the store. Every operation yields to the event loop
once, the way a network round trip would, which keeps concurrent
callers interleaving realistically.
"""

import asyncio
import logging
import uuid
from datetime import date
from typing import Dict, List, Optional, Tuple

from db.base import SlotStore
from models.booking import Booking
from models.directory import Doctor, User
from models.slot import Slot
from utils.datetime_utils import utc_now
from utils.exceptions import (
    BookingNotFoundError,
    DatabaseError,
    DoctorNotFoundError,
    DuplicateSlotError,
    SlotNotFoundError,
    StaleSlotError,
    UserNotFoundError,
)

logger = logging.getLogger(__name__)


def generate_id() -> str:
    return str(uuid.uuid4())


class InMemoryStore(SlotStore):
    """Dictionary-backed store with all-or-nothing commits."""

    def __init__(self, io_delay: float = 0.0):
        self.io_delay = io_delay
        self._users: Dict[str, User] = {}
        self._doctors: Dict[str, Doctor] = {}
        self._slots: Dict[str, Slot] = {}
        self._slot_index: Dict[Tuple[str, date], str] = {}
        self._bookings: Dict[str, Booking] = {}

    async def _round_trip(self) -> None:
        await asyncio.sleep(self.io_delay)

    # ========== Directory ==========

    def add_user(self, user: User) -> User:
        self._users[user.id] = user.model_copy()
        return user

    def add_doctor(self, doctor: Doctor) -> Doctor:
        self._doctors[doctor.id] = doctor.model_copy()
        return doctor

    async def get_user(self, user_id: str) -> User:
        await self._round_trip()
        user = self._users.get(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user.model_copy()

    async def get_doctor(self, doctor_id: str) -> Doctor:
        await self._round_trip()
        doctor = self._doctors.get(doctor_id)
        if doctor is None:
            raise DoctorNotFoundError(doctor_id)
        return doctor.model_copy()

    # ========== Slots ==========

    async def get_slot(self, slot_id: str) -> Slot:
        await self._round_trip()
        slot = self._slots.get(slot_id)
        if slot is None:
            raise SlotNotFoundError(slot_id)
        return slot.model_copy()

    async def get_slot_by_doctor_and_date(self, doctor_id: str, slot_date: date) -> Slot:
        await self._round_trip()
        slot_id = self._slot_index.get((doctor_id, slot_date))
        if slot_id is None:
            raise SlotNotFoundError(
                f"{doctor_id}@{slot_date.isoformat()}",
                f"No slot for doctor {doctor_id} on {slot_date.isoformat()}",
            )
        return self._slots[slot_id].model_copy()

    async def list_available_slots(self, slot_date: date) -> List[Slot]:
        await self._round_trip()
        slots = [
            slot.model_copy()
            for slot in self._slots.values()
            if slot.slot_date == slot_date and slot.is_available
        ]
        return sorted(slots, key=lambda s: s.consultation_start_time)

    async def list_slots_by_doctor(
        self, doctor_id: str, start_date: date, end_date: date
    ) -> List[Slot]:
        await self._round_trip()
        slots = [
            slot.model_copy()
            for slot in self._slots.values()
            if slot.doctor_id == doctor_id and start_date <= slot.slot_date <= end_date
        ]
        return sorted(slots, key=lambda s: (s.slot_date, s.consultation_start_time))

    async def insert_slot(self, slot: Slot) -> Slot:
        await self._round_trip()
        return self.add_slot(slot)

    def add_slot(self, slot: Slot) -> Slot:
        key = (slot.doctor_id, slot.slot_date)
        if key in self._slot_index:
            raise DuplicateSlotError(
                f"Doctor {slot.doctor_id} already has a slot on {slot.slot_date.isoformat()}"
            )

        now = utc_now()
        stored = slot.model_copy(
            update={"id": slot.id or generate_id(), "created_at": now, "updated_at": now}
        )
        self._slots[stored.id] = stored
        self._slot_index[key] = stored.id
        return stored.model_copy()

    # ========== Bookings ==========

    async def get_booking(self, booking_id: str) -> Booking:
        await self._round_trip()
        booking = self._bookings.get(booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        return booking.model_copy()

    async def list_bookings_by_user(self, user_id: str) -> List[Booking]:
        await self._round_trip()
        bookings = [
            booking.model_copy()
            for booking in self._bookings.values()
            if booking.user_id == user_id
        ]
        return sorted(bookings, key=lambda b: b.booking_time, reverse=True)

    # ========== Atomic writes ==========

    def _check_version(self, slot: Slot, expected_version: int) -> None:
        stored = self._slots.get(slot.id)
        if stored is None:
            raise SlotNotFoundError(slot.id)
        if stored.version != expected_version:
            raise StaleSlotError(slot.id, expected_version)

    def _write_slot(self, slot: Slot) -> None:
        self._slots[slot.id] = slot.model_copy(update={"updated_at": utc_now()})

    def _write_booking(self, booking: Booking) -> None:
        self._bookings[booking.id] = booking.model_copy()

    def _apply(
        self, slot: Slot, booking: Booking, previous_booking: Optional[Booking]
    ) -> None:
        previous_slot = self._slots[slot.id]
        try:
            self._write_slot(slot)
            self._write_booking(booking)
        except Exception as e:
            self._slots[slot.id] = previous_slot
            if previous_booking is None:
                self._bookings.pop(booking.id, None)
            else:
                self._bookings[booking.id] = previous_booking
            logger.error(f"Rolled back write for slot {slot.id}: {e}", exc_info=True)
            raise DatabaseError(f"Failed to commit slot {slot.id}: {e}") from e

    async def commit_booking(
        self, slot: Slot, booking: Booking, expected_version: int
    ) -> Booking:
        await self._round_trip()
        # No awaits below: the check and both writes happen in one step
        self._check_version(slot, expected_version)

        now = utc_now()
        stored = booking.model_copy(
            update={"id": booking.id or generate_id(), "created_at": now, "updated_at": now}
        )
        self._apply(slot, stored, previous_booking=None)
        return stored.model_copy()

    async def commit_cancellation(
        self, slot: Slot, booking: Booking, expected_version: int
    ) -> Booking:
        await self._round_trip()
        self._check_version(slot, expected_version)

        previous = self._bookings.get(booking.id)
        if previous is None:
            raise BookingNotFoundError(booking.id)

        # Only the status moves; appointment_time stays as first assigned
        stored = previous.model_copy(
            update={"status": booking.status, "updated_at": utc_now()}
        )
        self._apply(slot, stored, previous_booking=previous)
        return stored.model_copy()
