"""
Unit tests for the in-memory slot store.
"""

from datetime import date, datetime, time, timedelta, timezone

import pytest

from models.booking import Booking, BookingStatus
from models.slot import Slot
from utils.exceptions import (
    BookingNotFoundError,
    DatabaseError,
    DoctorNotFoundError,
    DuplicateSlotError,
    SlotNotFoundError,
    StaleSlotError,
    UserNotFoundError,
)

SLOT_DATE = date(2030, 1, 15)


def new_booking(slot, user_id="user_1", minutes=0, booked_at=None):
    return Booking(
        user_id=user_id,
        slot_id=slot.id,
        booking_time=booked_at or datetime(2030, 1, 10, 8, 0, tzinfo=timezone.utc),
        appointment_date=slot.slot_date,
        appointment_time=time(9, minutes),
    )


def occupied(slot):
    return Slot.model_validate(
        {
            **slot.model_dump(),
            "current_bookings": slot.current_bookings + 1,
            "version": slot.version + 1,
        }
    )


class TestLookups:
    @pytest.mark.asyncio
    async def test_missing_records_raise_not_found(self, store):
        with pytest.raises(UserNotFoundError):
            await store.get_user("nobody")
        with pytest.raises(DoctorNotFoundError):
            await store.get_doctor("nobody")
        with pytest.raises(SlotNotFoundError):
            await store.get_slot("nowhere")
        with pytest.raises(BookingNotFoundError):
            await store.get_booking("nothing")

    @pytest.mark.asyncio
    async def test_get_slot_by_doctor_and_date(self, store, slot):
        found = await store.get_slot_by_doctor_and_date("doctor_1", SLOT_DATE)
        assert found.id == slot.id

        with pytest.raises(SlotNotFoundError):
            await store.get_slot_by_doctor_and_date("doctor_1", SLOT_DATE + timedelta(days=1))

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, store, slot):
        fetched = await store.get_slot(slot.id)
        fetched.current_bookings = 29

        again = await store.get_slot(slot.id)
        assert again.current_bookings == 0

    @pytest.mark.asyncio
    async def test_list_available_slots_ordered_and_filtered(self, store):
        store.add_slot(
            Slot(id="late", doctor_id="d_late", slot_date=SLOT_DATE,
                 consultation_start_time=time(14, 0))
        )
        store.add_slot(
            Slot(id="early", doctor_id="d_early", slot_date=SLOT_DATE,
                 consultation_start_time=time(8, 0))
        )
        store.add_slot(
            Slot(id="full", doctor_id="d_full", slot_date=SLOT_DATE,
                 consultation_start_time=time(7, 0),
                 max_bookings_per_day=1, current_bookings=1)
        )
        store.add_slot(
            Slot(id="other_day", doctor_id="d_late", slot_date=SLOT_DATE + timedelta(days=1),
                 consultation_start_time=time(9, 0))
        )

        slots = await store.list_available_slots(SLOT_DATE)

        assert [s.id for s in slots] == ["early", "late"]

    @pytest.mark.asyncio
    async def test_duplicate_slot_rejected(self, store, slot):
        with pytest.raises(DuplicateSlotError):
            await store.insert_slot(
                Slot(doctor_id="doctor_1", slot_date=SLOT_DATE,
                     consultation_start_time=time(10, 0))
            )

    @pytest.mark.asyncio
    async def test_insert_slot_assigns_id(self, store):
        created = await store.insert_slot(
            Slot(doctor_id="doctor_1", slot_date=SLOT_DATE,
                 consultation_start_time=time(10, 0))
        )
        assert created.id
        assert created.created_at is not None


class TestCommits:
    @pytest.mark.asyncio
    async def test_commit_booking_writes_slot_and_booking(self, store, slot):
        saved = await store.commit_booking(occupied(slot), new_booking(slot), expected_version=0)

        assert saved.id
        stored_slot = await store.get_slot(slot.id)
        assert stored_slot.current_bookings == 1
        assert stored_slot.version == 1
        assert (await store.get_booking(saved.id)).appointment_time == time(9, 0)

    @pytest.mark.asyncio
    async def test_commit_with_stale_version_writes_nothing(self, store, slot):
        await store.commit_booking(occupied(slot), new_booking(slot), expected_version=0)

        with pytest.raises(StaleSlotError):
            await store.commit_booking(occupied(slot), new_booking(slot), expected_version=0)

        assert (await store.get_slot(slot.id)).current_bookings == 1
        assert len(await store.list_bookings_by_user("user_1")) == 1

    @pytest.mark.asyncio
    async def test_failed_booking_write_rolls_back_slot(self, store, slot, monkeypatch):
        def broken_write(booking):
            raise OSError("disk full")

        monkeypatch.setattr(store, "_write_booking", broken_write)

        with pytest.raises(DatabaseError):
            await store.commit_booking(occupied(slot), new_booking(slot), expected_version=0)

        stored = await store.get_slot(slot.id)
        assert stored.current_bookings == 0
        assert stored.version == 0
        assert await store.list_bookings_by_user("user_1") == []

    @pytest.mark.asyncio
    async def test_cancellation_only_changes_status(self, store, slot):
        saved = await store.commit_booking(
            occupied(slot), new_booking(slot, minutes=0), expected_version=0
        )
        current = await store.get_slot(slot.id)
        released = Slot.model_validate(
            {**current.model_dump(), "current_bookings": 0, "version": current.version + 1}
        )
        request = saved.model_copy(
            update={"status": BookingStatus.CANCELLED, "appointment_time": time(11, 0)}
        )

        cancelled = await store.commit_cancellation(released, request, expected_version=1)

        assert cancelled.status == BookingStatus.CANCELLED
        assert cancelled.appointment_time == time(9, 0)
        assert (await store.get_slot(slot.id)).current_bookings == 0

    @pytest.mark.asyncio
    async def test_failed_cancellation_restores_booking(self, store, slot, monkeypatch):
        saved = await store.commit_booking(occupied(slot), new_booking(slot), expected_version=0)
        current = await store.get_slot(slot.id)
        released = Slot.model_validate(
            {**current.model_dump(), "current_bookings": 0, "version": 2}
        )

        def broken_write(booking):
            raise OSError("disk full")

        monkeypatch.setattr(store, "_write_booking", broken_write)

        with pytest.raises(DatabaseError):
            await store.commit_cancellation(
                released,
                saved.model_copy(update={"status": BookingStatus.CANCELLED}),
                expected_version=1,
            )

        assert (await store.get_slot(slot.id)).current_bookings == 1
        assert (await store.get_booking(saved.id)).status == BookingStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_list_bookings_by_user_newest_first(self, store, slot):
        first = await store.commit_booking(
            occupied(slot),
            new_booking(slot, booked_at=datetime(2030, 1, 1, tzinfo=timezone.utc)),
            expected_version=0,
        )
        current = await store.get_slot(slot.id)
        second = await store.commit_booking(
            occupied(current),
            new_booking(slot, minutes=10, booked_at=datetime(2030, 1, 2, tzinfo=timezone.utc)),
            expected_version=1,
        )

        bookings = await store.list_bookings_by_user("user_1")

        assert [b.id for b in bookings] == [second.id, first.id]
        assert await store.list_bookings_by_user("user_2") == []
