"""
Unit tests for slot queries and slot creation.
"""

from datetime import date, time

import pytest

from utils.exceptions import (
    DoctorNotFoundError,
    DuplicateSlotError,
    SlotNotFoundError,
    ValidationError,
)

TODAY = date(2030, 1, 1)


class TestCreateSlot:
    @pytest.mark.asyncio
    async def test_defaults_from_settings(self, slot_service):
        slot = await slot_service.create_slot(
            "doctor_1", date(2030, 1, 20), time(10, 0), today=TODAY
        )

        assert slot.id
        assert slot.max_bookings_per_day == 30
        assert slot.minutes_per_patient == 10
        assert slot.current_bookings == 0
        assert slot.is_available is True
        assert slot.version == 0

    @pytest.mark.asyncio
    async def test_custom_policy(self, slot_service):
        slot = await slot_service.create_slot(
            "doctor_1", date(2030, 1, 20), time(14, 0),
            max_bookings_per_day=8, minutes_per_patient=20, today=TODAY,
        )

        assert slot.max_bookings_per_day == 8
        assert await slot_service.estimated_end_time(slot.id) == time(16, 40)

    @pytest.mark.asyncio
    async def test_today_is_allowed(self, slot_service):
        slot = await slot_service.create_slot("doctor_1", TODAY, time(9, 0), today=TODAY)
        assert slot.slot_date == TODAY

    @pytest.mark.asyncio
    async def test_past_date_rejected(self, slot_service):
        with pytest.raises(ValidationError):
            await slot_service.create_slot(
                "doctor_1", date(2029, 12, 31), time(9, 0), today=TODAY
            )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("capacity,minutes", [(0, 10), (30, 0), (501, 10), (30, 241)])
    async def test_bad_policy_rejected(self, slot_service, capacity, minutes):
        with pytest.raises(ValidationError):
            await slot_service.create_slot(
                "doctor_1", date(2030, 1, 20), time(9, 0),
                max_bookings_per_day=capacity, minutes_per_patient=minutes, today=TODAY,
            )

    @pytest.mark.asyncio
    async def test_unknown_doctor(self, slot_service):
        with pytest.raises(DoctorNotFoundError):
            await slot_service.create_slot("ghost", date(2030, 1, 20), time(9, 0), today=TODAY)

    @pytest.mark.asyncio
    async def test_one_slot_per_doctor_per_day(self, slot_service, slot):
        with pytest.raises(DuplicateSlotError):
            await slot_service.create_slot(
                "doctor_1", slot.slot_date, time(15, 0), today=TODAY
            )


class TestSlotReads:
    @pytest.mark.asyncio
    async def test_get_slot(self, slot_service, slot):
        assert (await slot_service.get_slot(slot.id)).doctor_id == "doctor_1"

        with pytest.raises(SlotNotFoundError):
            await slot_service.get_slot("missing")

    @pytest.mark.asyncio
    async def test_get_slot_for_doctor(self, slot_service, slot):
        found = await slot_service.get_slot_for_doctor("doctor_1", slot.slot_date)
        assert found.id == slot.id

    @pytest.mark.asyncio
    async def test_list_available_slots(self, slot_service, slot):
        slots = await slot_service.list_available_slots(slot.slot_date)
        assert [s.id for s in slots] == [slot.id]
        assert await slot_service.list_available_slots(date(2030, 3, 1)) == []

    @pytest.mark.asyncio
    async def test_list_doctor_slots_in_range(self, slot_service, slot):
        later = await slot_service.create_slot(
            "doctor_1", date(2030, 2, 10), time(9, 0), today=TODAY
        )

        january = await slot_service.list_doctor_slots(
            "doctor_1", date(2030, 1, 1), date(2030, 1, 31)
        )
        both = await slot_service.list_doctor_slots(
            "doctor_1", date(2030, 1, 15), date(2030, 2, 10)
        )

        assert [s.id for s in january] == [slot.id]
        assert [s.id for s in both] == [slot.id, later.id]

    @pytest.mark.asyncio
    async def test_list_doctor_slots_invalid_range(self, slot_service):
        with pytest.raises(ValidationError):
            await slot_service.list_doctor_slots(
                "doctor_1", date(2030, 2, 1), date(2030, 1, 1)
            )

    @pytest.mark.asyncio
    async def test_list_doctor_slots_unknown_doctor(self, slot_service):
        with pytest.raises(DoctorNotFoundError):
            await slot_service.list_doctor_slots("ghost", date(2030, 1, 1), date(2030, 1, 31))

    @pytest.mark.asyncio
    async def test_estimated_end_time(self, slot_service, slot):
        assert await slot_service.estimated_end_time(slot.id) == time(14, 0)
