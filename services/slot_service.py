"""Slot reads and admin slot creation."""

from datetime import date, time
from typing import List, Optional

from config import settings
from db.base import SlotStore
from models.slot import Slot, SlotCreate
from scheduling.time_allocator import estimated_end_time_for
from utils.exceptions import ValidationError
from utils.logging_config import setup_logging
from utils.validation import validate_slot_date, validate_slot_policy

logger = setup_logging(name=__name__, log_file="slots.log")


class SlotService:
    """
    Lock-free slot queries plus creation of new doctor-days.

    Nothing here changes occupancy; that belongs to BookingService.
    """

    def __init__(self, store: SlotStore):
        self.store = store

    async def get_slot(self, slot_id: str) -> Slot:
        return await self.store.get_slot(slot_id)

    async def get_slot_for_doctor(self, doctor_id: str, slot_date: date) -> Slot:
        return await self.store.get_slot_by_doctor_and_date(doctor_id, slot_date)

    async def list_available_slots(self, slot_date: date) -> List[Slot]:
        return await self.store.list_available_slots(slot_date)

    async def list_doctor_slots(
        self, doctor_id: str, start_date: date, end_date: date
    ) -> List[Slot]:
        """
        A doctor's slots between two dates, inclusive.

        Raises:
            DoctorNotFoundError: unknown doctor
            ValidationError: end_date before start_date
        """
        if end_date < start_date:
            raise ValidationError(
                f"end_date {end_date.isoformat()} is before start_date {start_date.isoformat()}"
            )
        await self.store.get_doctor(doctor_id)
        return await self.store.list_slots_by_doctor(doctor_id, start_date, end_date)

    async def estimated_end_time(self, slot_id: str) -> time:
        slot = await self.store.get_slot(slot_id)
        return estimated_end_time_for(slot)

    async def create_slot(
        self,
        doctor_id: str,
        slot_date: date,
        consultation_start_time: time,
        max_bookings_per_day: Optional[int] = None,
        minutes_per_patient: Optional[int] = None,
        today: Optional[date] = None,
    ) -> Slot:
        """
        Open a new bookable day for a doctor.

        Capacity and per-patient duration default to the configured policy.

        Raises:
            DoctorNotFoundError: unknown doctor
            ValidationError: date in the past or policy values out of range
            DuplicateSlotError: the doctor already has a slot that day
        """
        if max_bookings_per_day is None:
            max_bookings_per_day = settings.default_max_bookings_per_day
        if minutes_per_patient is None:
            minutes_per_patient = settings.default_minutes_per_patient

        validate_slot_date(slot_date, today or date.today())
        validate_slot_policy(max_bookings_per_day, minutes_per_patient)
        await self.store.get_doctor(doctor_id)

        request = SlotCreate(
            doctor_id=doctor_id,
            slot_date=slot_date,
            consultation_start_time=consultation_start_time,
            max_bookings_per_day=max_bookings_per_day,
            minutes_per_patient=minutes_per_patient,
        )
        slot = await self.store.insert_slot(Slot(**request.model_dump()))

        logger.info(
            f"Created slot {slot.id} for doctor {doctor_id} on {slot_date.isoformat()} "
            f"from {consultation_start_time.isoformat(timespec='minutes')} "
            f"({max_bookings_per_day} x {minutes_per_patient} min)"
        )
        return slot
