from clinic.scheduling.availability import (
    StaffAvailability,
    WorkWindow,
    get_staff_availability,
    resolve_work_window,
)
from clinic.scheduling.errors import BookingConflictError, StorageError
from clinic.scheduling.guard import GuardDecision, check_booking, staff_can_take
from clinic.scheduling.load_balancer import find_best_staff
from clinic.scheduling.locks import StaffLockRegistry
from clinic.scheduling.overlap import overlaps
from clinic.scheduling.slots import TimeSlot, generate_slots
from clinic.scheduling.store import ClinicStore

__all__ = [
    "BookingConflictError",
    "ClinicStore",
    "GuardDecision",
    "StaffAvailability",
    "StaffLockRegistry",
    "StorageError",
    "TimeSlot",
    "WorkWindow",
    "check_booking",
    "find_best_staff",
    "generate_slots",
    "get_staff_availability",
    "overlaps",
    "resolve_work_window",
    "staff_can_take",
]
