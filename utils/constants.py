"""
Application-wide constants.
Centralizes magic numbers and configuration values.
"""

# Slot policy defaults (overridable via settings)
DEFAULT_MAX_BOOKINGS_PER_DAY = 30
DEFAULT_MINUTES_PER_PATIENT = 10

# Validation limits
MAX_NOTES_LENGTH = 1000
MAX_BOOKINGS_PER_DAY_LIMIT = 500
MAX_MINUTES_PER_PATIENT = 240

# Storage
SLOTS_TABLE = "slots"
BOOKINGS_TABLE = "bookings"
USERS_TABLE = "users"
DOCTORS_TABLE = "doctors"
COMMIT_BOOKING_RPC = "commit_booking"
COMMIT_CANCELLATION_RPC = "commit_cancellation"

# Guard
GUARD_KEY_PREFIX = "slot-guard"
