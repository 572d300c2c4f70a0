"""
Appointment time allocation.

Maps an occupancy position within a slot to a wall-clock time. The
index is the occupancy count before the new booking is added, so the
first booking of the day gets the consultation start time itself.
"""

from datetime import time

from models.slot import Slot
from utils.datetime_utils import add_minutes


def appointment_time_for(slot: Slot, occupancy_index: int) -> time:
    """Time assigned to the booking at position occupancy_index (0-based)."""
    return add_minutes(
        slot.consultation_start_time, occupancy_index * slot.minutes_per_patient
    )


def estimated_end_time_for(slot: Slot) -> time:
    """Projected end of the day if every place is taken. Display only."""
    return add_minutes(
        slot.consultation_start_time,
        slot.max_bookings_per_day * slot.minutes_per_patient,
    )
