"""
Custom exception classes for the booking engine.
Every expected failure has its own type so callers can tell
"fully booked" apart from "unknown slot".
"""

from typing import Optional


class BookingEngineError(Exception):
    """Base exception for booking engine operations."""

    pass


# ========== Lookups ==========


class NotFoundError(BookingEngineError):
    """Raised when a referenced record does not exist."""

    entity = "record"

    def __init__(self, entity_id: str, message: Optional[str] = None):
        self.entity_id = entity_id
        super().__init__(message or f"{self.entity.capitalize()} not found: {entity_id}")


class UserNotFoundError(NotFoundError):
    """Raised when a user is not found in the directory."""

    entity = "user"


class DoctorNotFoundError(NotFoundError):
    """Raised when a doctor is not found in the directory."""

    entity = "doctor"


class SlotNotFoundError(NotFoundError):
    """Raised when a slot is not found."""

    entity = "slot"


class BookingNotFoundError(NotFoundError):
    """Raised when a booking is not found."""

    entity = "booking"


# ========== Booking rules ==========


class CapacityExceededError(BookingEngineError):
    """Raised when a slot is already at its daily capacity."""

    def __init__(self, slot_id: str, max_bookings_per_day: int):
        self.slot_id = slot_id
        self.max_bookings_per_day = max_bookings_per_day
        super().__init__(
            f"Slot {slot_id} is fully booked "
            f"({max_bookings_per_day}/{max_bookings_per_day})"
        )


class OwnershipViolationError(BookingEngineError):
    """Raised when a user tries to cancel someone else's booking."""

    def __init__(self, booking_id: str, user_id: str):
        self.booking_id = booking_id
        self.user_id = user_id
        super().__init__(f"User {user_id} does not own booking {booking_id}")


class InvalidStateTransitionError(BookingEngineError):
    """Raised when a booking cannot move to the requested status."""

    def __init__(self, booking_id: str, current_status: str, target_status: str):
        self.booking_id = booking_id
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(
            f"Cannot move booking {booking_id} from {current_status} to {target_status}"
        )


class ValidationError(BookingEngineError):
    """Raised when input validation fails."""

    pass


# ========== Retryable ==========


class RetryableError(BookingEngineError):
    """Base for failures the caller may retry unchanged."""

    pass


class GuardTimeoutError(RetryableError):
    """Raised when the slot guard could not be acquired in time."""

    def __init__(self, slot_id: str, timeout: Optional[float]):
        self.slot_id = slot_id
        self.timeout = timeout
        super().__init__(f"Timed out after {timeout}s waiting for slot {slot_id}")


class SlotConflictError(RetryableError):
    """Raised when concurrent writers kept invalidating the slot version."""

    def __init__(self, slot_id: str, attempts: int):
        self.slot_id = slot_id
        self.attempts = attempts
        super().__init__(
            f"Slot {slot_id} changed concurrently on each of {attempts} attempts"
        )


# ========== Storage ==========


class DatabaseError(BookingEngineError):
    """Base exception for database operations."""

    pass


class StaleSlotError(DatabaseError):
    """Raised when a slot write is based on an outdated version."""

    def __init__(self, slot_id: str, expected_version: int):
        self.slot_id = slot_id
        self.expected_version = expected_version
        super().__init__(
            f"Slot {slot_id} is no longer at version {expected_version}"
        )


class DuplicateSlotError(DatabaseError):
    """Raised when a doctor already has a slot on the given date."""

    pass
