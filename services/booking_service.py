"""
Booking transactions.

This is the only place that changes a slot's occupancy. Every change
follows the same path:

1. resolve the records involved (no guard held, lookups fail fast)
2. take the slot guard
3. re-read the slot (and booking) under the guard
4. check the business rule, compute the new slot state
5. commit slot + booking as one unit through the store
6. release the guard (the ``async with`` does this on every path)

The commit carries the slot version read in step 3. If another writer
slipped in without going through the same guard the store reports the
version as stale, and the whole guarded section is retried.
"""

from datetime import date, datetime
from typing import Callable, List, Optional

from config import settings
from db.base import SlotStore
from models.booking import Booking, BookingStatus
from models.directory import Doctor
from models.slot import Slot
from scheduling.guard import SlotGuard
from scheduling.time_allocator import appointment_time_for
from utils.datetime_utils import utc_now
from utils.exceptions import (
    CapacityExceededError,
    InvalidStateTransitionError,
    OwnershipViolationError,
    SlotConflictError,
    StaleSlotError,
)
from utils.logging_config import setup_logging
from utils.validation import clean_notes, validate_identifier

logger = setup_logging(name=__name__, log_file="bookings.log")


def _occupy(slot: Slot) -> Slot:
    return Slot.model_validate(
        {
            **slot.model_dump(),
            "current_bookings": slot.current_bookings + 1,
            "version": slot.version + 1,
        }
    )


def _release(slot: Slot) -> Slot:
    return Slot.model_validate(
        {
            **slot.model_dump(),
            "current_bookings": max(slot.current_bookings - 1, 0),
            "version": slot.version + 1,
        }
    )


class BookingService:
    """Creates and cancels bookings under the per-slot guard."""

    def __init__(
        self,
        store: SlotStore,
        guard: SlotGuard,
        conflict_retries: Optional[int] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.guard = guard
        if conflict_retries is None:
            conflict_retries = settings.commit_conflict_retries
        self.conflict_retries = max(conflict_retries, 1)
        self.clock = clock

    # ========== Create ==========

    async def create_booking(
        self, user_id: str, slot_id: str, notes: Optional[str] = None
    ) -> Booking:
        """
        Reserve the next place on a slot for a user.

        The appointment time is computed from the slot's occupancy at the
        moment the guard is granted, so guard order decides time order.

        Raises:
            ValidationError: bad identifiers or notes
            UserNotFoundError, SlotNotFoundError, DoctorNotFoundError
            CapacityExceededError: slot already full
            GuardTimeoutError: guard not acquired in time (retryable)
            SlotConflictError: version kept changing (retryable)
            DatabaseError: storage failure, nothing written
        """
        user_id = validate_identifier(user_id, "user_id")
        slot_id = validate_identifier(slot_id, "slot_id")
        notes = clean_notes(notes)

        await self.store.get_user(user_id)
        slot = await self.store.get_slot(slot_id)
        doctor = await self.store.get_doctor(slot.doctor_id)

        for attempt in range(1, self.conflict_retries + 1):
            try:
                async with self.guard.hold(slot_id):
                    return await self._book(user_id, slot_id, notes, doctor)
            except StaleSlotError:
                logger.warning(
                    f"Slot {slot_id} changed during booking "
                    f"(attempt {attempt}/{self.conflict_retries})"
                )

        raise SlotConflictError(slot_id, self.conflict_retries)

    async def _book(
        self, user_id: str, slot_id: str, notes: Optional[str], doctor: Doctor
    ) -> Booking:
        slot = await self.store.get_slot(slot_id)

        if slot.current_bookings >= slot.max_bookings_per_day:
            logger.info(f"Slot {slot_id} is full, rejecting booking for user {user_id}")
            raise CapacityExceededError(slot_id, slot.max_bookings_per_day)

        booking = Booking(
            user_id=user_id,
            slot_id=slot_id,
            booking_time=self.clock(),
            appointment_date=slot.slot_date,
            appointment_time=appointment_time_for(slot, slot.current_bookings),
            status=BookingStatus.CONFIRMED,
            notes=notes,
            amount_paid=doctor.consultation_fee,
        )
        saved = await self.store.commit_booking(
            _occupy(slot), booking, expected_version=slot.version
        )

        logger.info(
            f"Booked {saved.id} for user {user_id} on slot {slot_id} at "
            f"{saved.appointment_time.isoformat(timespec='minutes')} "
            f"({slot.current_bookings + 1}/{slot.max_bookings_per_day})"
        )
        return saved

    # ========== Cancel ==========

    async def cancel_booking(self, booking_id: str, user_id: str) -> Booking:
        """
        Cancel a confirmed booking owned by user_id and free its place.

        Other bookings on the slot keep the appointment times they were
        given.

        Raises:
            BookingNotFoundError
            OwnershipViolationError: user_id is not the owner
            InvalidStateTransitionError: booking is not CONFIRMED
            GuardTimeoutError, SlotConflictError (retryable)
            DatabaseError: storage failure, nothing written
        """
        booking_id = validate_identifier(booking_id, "booking_id")
        user_id = validate_identifier(user_id, "user_id")

        booking = await self.store.get_booking(booking_id)
        self._check_cancellable(booking, user_id)

        for attempt in range(1, self.conflict_retries + 1):
            try:
                async with self.guard.hold(booking.slot_id):
                    return await self._cancel(booking_id, user_id)
            except StaleSlotError:
                logger.warning(
                    f"Slot {booking.slot_id} changed during cancellation of {booking_id} "
                    f"(attempt {attempt}/{self.conflict_retries})"
                )

        raise SlotConflictError(booking.slot_id, self.conflict_retries)

    def _check_cancellable(self, booking: Booking, user_id: str) -> None:
        if booking.user_id != user_id:
            raise OwnershipViolationError(booking.id, user_id)
        if booking.status != BookingStatus.CONFIRMED:
            raise InvalidStateTransitionError(
                booking.id,
                BookingStatus(booking.status).value,
                BookingStatus.CANCELLED.value,
            )

    async def _cancel(self, booking_id: str, user_id: str) -> Booking:
        # A concurrent cancel of the same booking may have won the guard first
        booking = await self.store.get_booking(booking_id)
        self._check_cancellable(booking, user_id)

        slot = await self.store.get_slot(booking.slot_id)
        cancelled = booking.model_copy(update={"status": BookingStatus.CANCELLED})
        saved = await self.store.commit_cancellation(
            _release(slot), cancelled, expected_version=slot.version
        )

        logger.info(
            f"Cancelled {booking_id} for user {user_id}; slot {slot.id} now "
            f"{max(slot.current_bookings - 1, 0)}/{slot.max_bookings_per_day}"
        )
        return saved

    # ========== Reads ==========

    async def get_booking(self, booking_id: str) -> Booking:
        return await self.store.get_booking(validate_identifier(booking_id, "booking_id"))

    async def list_user_bookings(self, user_id: str) -> List[Booking]:
        """All of a user's bookings, most recent first."""
        user_id = validate_identifier(user_id, "user_id")
        await self.store.get_user(user_id)
        return await self.store.list_bookings_by_user(user_id)

    async def list_upcoming_bookings(
        self, user_id: str, today: Optional[date] = None
    ) -> List[Booking]:
        """Confirmed bookings from today on, soonest first."""
        today = today or date.today()
        bookings = [
            b
            for b in await self.list_user_bookings(user_id)
            if b.status == BookingStatus.CONFIRMED and b.appointment_date >= today
        ]
        return sorted(bookings, key=lambda b: (b.appointment_date, b.appointment_time))

    async def list_past_bookings(
        self, user_id: str, today: Optional[date] = None
    ) -> List[Booking]:
        """Bookings before today in any status, most recent first."""
        today = today or date.today()
        bookings = [
            b for b in await self.list_user_bookings(user_id) if b.appointment_date < today
        ]
        return sorted(
            bookings,
            key=lambda b: (b.appointment_date, b.appointment_time),
            reverse=True,
        )
