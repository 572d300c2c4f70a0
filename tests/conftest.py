"""
Pytest configuration and shared fixtures.
"""

from datetime import date, time
from unittest.mock import MagicMock

import pytest

from db.memory_store import InMemoryStore
from models.directory import Doctor, User
from models.slot import Slot
from scheduling.guard import LocalSlotGuard
from services.booking_service import BookingService
from services.slot_service import SlotService

SLOT_DATE = date(2030, 1, 15)


@pytest.fixture
def store():
    """In-memory store with two patients and one doctor."""
    store = InMemoryStore()
    store.add_user(User(id="user_1", name="Asha Patel", email="asha@example.com"))
    store.add_user(User(id="user_2", name="Ben Okafor"))
    store.add_doctor(
        Doctor(
            id="doctor_1",
            name="Dr. Rao",
            specialization="Cardiology",
            consultation_fee=500.0,
            hospital_name="City Hospital",
        )
    )
    return store


@pytest.fixture
def slot(store):
    """Fresh 09:00 slot, 30 places of 10 minutes."""
    return store.add_slot(
        Slot(
            id="slot_1",
            doctor_id="doctor_1",
            slot_date=SLOT_DATE,
            consultation_start_time=time(9, 0),
            max_bookings_per_day=30,
            minutes_per_patient=10,
        )
    )


@pytest.fixture
def guard():
    return LocalSlotGuard(acquire_timeout=5.0)


@pytest.fixture
def booking_service(store, guard):
    return BookingService(store, guard, conflict_retries=3)


@pytest.fixture
def slot_service(store):
    return SlotService(store)


@pytest.fixture
def mock_supabase_client():
    """Create a mock Supabase client."""
    mock_client = MagicMock()
    mock_table = MagicMock()
    mock_client.table.return_value = mock_table
    return mock_client, mock_table
