"""
Slot generation for the booking form.

Candidate slots start at each staff member's window start and advance by a
fixed cadence while the whole slot still fits inside the window. Every slot
is returned, taken or not; callers decide whether to hide unavailable ones.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any
from zoneinfo import ZoneInfo

from pydantic import BaseModel

from clinic.scheduling.availability import booking_interval, get_staff_availability
from clinic.scheduling.overlap import overlaps


DEFAULT_SLOT_INTERVAL_MINUTES = 30


class TimeSlot(BaseModel):
    start: datetime
    end: datetime
    staff_id: int
    staff_name: str
    available: bool

    def to_payload(self) -> dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "staff_id": self.staff_id,
            "staff_name": self.staff_name,
            "available": self.available,
        }


def eligible_staff(store: Any, staff_id: int | None = None) -> list[Any]:
    if staff_id is not None:
        staff = store.get_staff(staff_id)
        if staff is None or not staff.is_active:
            return []
        return [staff]
    return store.list_staff(is_active=True, is_public=True)


def generate_slots(
    store: Any,
    target_date: date,
    duration_minutes: int,
    tz: ZoneInfo,
    staff_id: int | None = None,
    interval_minutes: int = DEFAULT_SLOT_INTERVAL_MINUTES,
) -> list[TimeSlot]:
    if duration_minutes <= 0:
        raise ValueError("duration_minutes must be positive")
    if interval_minutes <= 0:
        raise ValueError("interval_minutes must be positive")

    duration = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=interval_minutes)
    slots: list[TimeSlot] = []

    for staff in eligible_staff(store, staff_id):
        availability = get_staff_availability(store, staff.id, target_date, tz)
        if availability.window is None:
            continue

        occupied = [booking_interval(booking) for booking in availability.bookings]
        current = availability.window.start
        while current + duration <= availability.window.end:
            slot_end = current + duration
            taken = any(
                overlaps(current, slot_end, busy_start, busy_end)
                for busy_start, busy_end in occupied
            )
            slots.append(
                TimeSlot(
                    start=current,
                    end=slot_end,
                    staff_id=staff.id,
                    staff_name=staff.name,
                    available=not taken,
                )
            )
            current += step

    # stable: ties keep staff order, then generation order
    slots.sort(key=lambda slot: slot.start)
    return slots
