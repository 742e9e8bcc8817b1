from clinic.db.base import Base
from clinic.db.models import (
    Booking,
    BusinessHour,
    Menu,
    NotificationLog,
    Patient,
    Staff,
    StaffSchedule,
)

__all__ = [
    "Base",
    "Booking",
    "BusinessHour",
    "Menu",
    "NotificationLog",
    "Patient",
    "Staff",
    "StaffSchedule",
]
