OUTSIDE_BUSINESS_HOURS = "OUTSIDE_BUSINESS_HOURS"
PAST_START_TIME = "PAST_START_TIME"
NO_OP_CHANGE = "NO_OP_CHANGE"
TIME_CONFLICT = "TIME_CONFLICT"
NO_STAFF_AVAILABLE = "NO_STAFF_AVAILABLE"

HUMAN_MESSAGES = {
    OUTSIDE_BUSINESS_HOURS: "Requested time is outside business hours ({open_hour}:00-{close_hour}:00).",
    PAST_START_TIME: "Bookings cannot be made in the past.",
    NO_OP_CHANGE: "The new date, time and menu are the same as the current booking.",
    TIME_CONFLICT: "The selected staff member is not available at this time (booked, off or outside their hours).",
    NO_STAFF_AVAILABLE: "No staff member is available at the requested time.",
}


class StorageError(RuntimeError):
    """Raised when the record store cannot be read or written."""


class BookingConflictError(RuntimeError):
    """A concurrent write claimed the interval first. Safe to retry."""

    retryable = True
