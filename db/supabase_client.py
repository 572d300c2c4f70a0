"""
Supabase slot store.

Reads go through PostgREST table queries. The two occupancy writes go
through PostgreSQL functions (see db/migrations/001_slot_booking.sql)
called with ``client.rpc``: each runs in one transaction, locks the slot
row with SELECT ... FOR UPDATE, checks the expected version, updates the
slot and writes the booking. PostgREST cannot span a transaction across
two table calls, so nothing else may write current_bookings.

Row Level Security (RLS) Notes:
==============================
This client uses the service key, which bypasses RLS. Policies for
user-facing reads belong in the Supabase dashboard:

-- Bookings: users can only see their own bookings
CREATE POLICY "Users can view own bookings"
ON bookings FOR SELECT
USING (user_id::text = auth.uid()::text);

-- Slots: everyone can view slots
CREATE POLICY "Users can view slots"
ON slots FOR SELECT
USING (true);
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from postgrest.exceptions import APIError
from supabase import Client as SupabaseClientType
from supabase import create_client

from config import settings
from db.base import SlotStore
from models.booking import Booking
from models.directory import Doctor, User
from models.slot import Slot
from utils.constants import (
    BOOKINGS_TABLE,
    COMMIT_BOOKING_RPC,
    COMMIT_CANCELLATION_RPC,
    DOCTORS_TABLE,
    SLOTS_TABLE,
    USERS_TABLE,
)
from utils.datetime_utils import parse_iso_datetime
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

UNIQUE_VIOLATION = "23505"


class SupabaseClient(SlotStore):
    """Supabase-backed slot store."""

    def __init__(self, client: Optional[SupabaseClientType] = None):
        if client is None:
            client = create_client(settings.supabase_url, settings.supabase_key)
        self.client: SupabaseClientType = client

    def _execute(self, query, action: str):
        try:
            return query.execute()
        except Exception as e:
            logger.error(f"Failed to {action}: {e}", exc_info=True)
            raise DatabaseError(f"Failed to {action}: {e}") from e

    # ========== Directory ==========

    async def get_user(self, user_id: str) -> User:
        response = self._execute(
            self.client.table(USERS_TABLE).select("*").eq("id", user_id),
            "get user",
        )
        if not response.data:
            raise UserNotFoundError(user_id)
        return User(**response.data[0])

    async def get_doctor(self, doctor_id: str) -> Doctor:
        response = self._execute(
            self.client.table(DOCTORS_TABLE).select("*").eq("id", doctor_id),
            "get doctor",
        )
        if not response.data:
            raise DoctorNotFoundError(doctor_id)
        return Doctor(**response.data[0])

    # ========== Slots ==========

    async def get_slot(self, slot_id: str) -> Slot:
        response = self._execute(
            self.client.table(SLOTS_TABLE).select("*").eq("id", slot_id),
            "get slot",
        )
        if not response.data:
            raise SlotNotFoundError(slot_id)
        return self._parse_slot(response.data[0])

    async def get_slot_by_doctor_and_date(self, doctor_id: str, slot_date: date) -> Slot:
        response = self._execute(
            self.client.table(SLOTS_TABLE)
            .select("*")
            .eq("doctor_id", doctor_id)
            .eq("slot_date", slot_date.isoformat()),
            "get slot by doctor and date",
        )
        if not response.data:
            raise SlotNotFoundError(
                f"{doctor_id}@{slot_date.isoformat()}",
                f"No slot for doctor {doctor_id} on {slot_date.isoformat()}",
            )
        return self._parse_slot(response.data[0])

    async def list_available_slots(self, slot_date: date) -> List[Slot]:
        response = self._execute(
            self.client.table(SLOTS_TABLE)
            .select("*")
            .eq("slot_date", slot_date.isoformat())
            .eq("is_available", True)
            .order("consultation_start_time", desc=False),
            "list available slots",
        )
        return [self._parse_slot(item) for item in response.data]

    async def list_slots_by_doctor(
        self, doctor_id: str, start_date: date, end_date: date
    ) -> List[Slot]:
        response = self._execute(
            self.client.table(SLOTS_TABLE)
            .select("*")
            .eq("doctor_id", doctor_id)
            .gte("slot_date", start_date.isoformat())
            .lte("slot_date", end_date.isoformat())
            .order("slot_date", desc=False),
            "list doctor slots",
        )
        return [self._parse_slot(item) for item in response.data]

    async def insert_slot(self, slot: Slot) -> Slot:
        data = slot.model_dump(
            mode="json",
            exclude_none=True,
            exclude={"created_at", "updated_at"},
        )
        try:
            response = self.client.table(SLOTS_TABLE).insert(data).execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise DuplicateSlotError(
                    f"Doctor {slot.doctor_id} already has a slot on "
                    f"{slot.slot_date.isoformat()}"
                ) from e
            raise DatabaseError(f"Failed to create slot: {e}") from e

        if not response.data:
            raise DatabaseError("Failed to create slot: no data returned")
        return self._parse_slot(response.data[0])

    # ========== Bookings ==========

    async def get_booking(self, booking_id: str) -> Booking:
        response = self._execute(
            self.client.table(BOOKINGS_TABLE).select("*").eq("id", booking_id),
            "get booking",
        )
        if not response.data:
            raise BookingNotFoundError(booking_id)
        return self._parse_booking(response.data[0])

    async def list_bookings_by_user(self, user_id: str) -> List[Booking]:
        response = self._execute(
            self.client.table(BOOKINGS_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .order("booking_time", desc=True),
            "list user bookings",
        )
        return [self._parse_booking(item) for item in response.data]

    # ========== Atomic writes ==========

    def _slot_params(self, slot: Slot, expected_version: int) -> Dict[str, Any]:
        return {
            "p_slot_id": slot.id,
            "p_expected_version": expected_version,
            "p_current_bookings": slot.current_bookings,
            "p_is_available": slot.is_available,
        }

    def _unwrap_commit(self, result: Any, slot: Slot, expected_version: int) -> Dict:
        if not isinstance(result, dict) or "status" not in result:
            raise DatabaseError(f"Unexpected commit response for slot {slot.id}: {result!r}")

        status = result["status"]
        if status == "stale":
            raise StaleSlotError(slot.id, expected_version)
        if status == "slot_not_found":
            raise SlotNotFoundError(slot.id)
        if status == "booking_not_found":
            raise BookingNotFoundError(result.get("booking_id", ""))
        if status != "ok":
            raise DatabaseError(f"Commit for slot {slot.id} failed: {status}")
        return result["booking"]

    async def commit_booking(
        self, slot: Slot, booking: Booking, expected_version: int
    ) -> Booking:
        params = self._slot_params(slot, expected_version)
        params["p_booking"] = booking.model_dump(
            mode="json",
            exclude_none=True,
            exclude={"id", "created_at", "updated_at"},
        )
        response = self._execute(
            self.client.rpc(COMMIT_BOOKING_RPC, params), "commit booking"
        )
        return self._parse_booking(
            self._unwrap_commit(response.data, slot, expected_version)
        )

    async def commit_cancellation(
        self, slot: Slot, booking: Booking, expected_version: int
    ) -> Booking:
        params = self._slot_params(slot, expected_version)
        params["p_booking_id"] = booking.id
        params["p_status"] = booking.model_dump(mode="json")["status"]
        response = self._execute(
            self.client.rpc(COMMIT_CANCELLATION_RPC, params), "commit cancellation"
        )
        return self._parse_booking(
            self._unwrap_commit(response.data, slot, expected_version)
        )

    # ========== Helper Methods ==========

    def _parse_slot(self, item: dict) -> Slot:
        item = item.copy()
        for field in ["created_at", "updated_at"]:
            if item.get(field):
                item[field] = parse_iso_datetime(item[field])
        return Slot(**item)

    def _parse_booking(self, item: dict) -> Booking:
        item = item.copy()
        for field in ["booking_time", "created_at", "updated_at"]:
            if item.get(field):
                item[field] = parse_iso_datetime(item[field])
        return Booking(**item)
