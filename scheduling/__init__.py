"""Slot guards and appointment time allocation."""

from .guard import LocalSlotGuard, RedisSlotGuard, SlotGuard, get_slot_guard
from .time_allocator import appointment_time_for, estimated_end_time_for

__all__ = [
    "LocalSlotGuard",
    "RedisSlotGuard",
    "SlotGuard",
    "appointment_time_for",
    "estimated_end_time_for",
    "get_slot_guard",
]
