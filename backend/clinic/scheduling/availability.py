"""
Availability calculation for a single staff member on a single date.

The working window comes from a per-day staff schedule override when one
exists, falling back to the clinic's weekly business hours. Occupancy is the
list of the staff member's confirmed bookings on the clinic-local calendar
day. Both are read fresh on every call.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Protocol
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict

from clinic.scheduling.timeutils import (
    clinic_weekday,
    day_bounds,
    ensure_aware,
    local_datetime,
    to_time,
)


class AvailabilityStore(Protocol):
    def get_business_hours(self, weekday: int) -> Any: ...

    def get_staff_schedule(self, staff_id: int, target_date: date) -> Any: ...

    def list_confirmed_bookings(
        self, staff_id: int, range_start: datetime, range_end: datetime
    ) -> list[Any]: ...

    def get_staff(self, staff_id: int) -> Any: ...


class WorkWindow(BaseModel):
    start: datetime
    end: datetime

    def contains(self, start: datetime, end: datetime) -> bool:
        return self.start <= start and end <= self.end


class StaffAvailability(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    staff_id: int
    target_date: date
    window: WorkWindow | None = None
    bookings: list[Any] = []

    @property
    def is_working(self) -> bool:
        return self.window is not None


def resolve_work_window(
    store: AvailabilityStore,
    staff_id: int,
    target_date: date,
    tz: ZoneInfo,
) -> WorkWindow | None:
    """
    Effective working window for staff_id on target_date, or None.

    - schedule.is_off: no window
    - schedule.work_start / work_end: used per bound when present
    - missing bounds fall back to business hours for the weekday;
      a closed (or unconfigured) weekday then yields no window
    """
    schedule = store.get_staff_schedule(staff_id, target_date)
    if schedule is not None and getattr(schedule, "is_off", False):
        return None

    work_start = getattr(schedule, "work_start", None) if schedule is not None else None
    work_end = getattr(schedule, "work_end", None) if schedule is not None else None

    if work_start is None or work_end is None:
        hours = store.get_business_hours(clinic_weekday(target_date))
        if hours is None or getattr(hours, "is_closed", True):
            return None
        work_start = work_start if work_start is not None else hours.open_time
        work_end = work_end if work_end is not None else hours.close_time

    window_start = local_datetime(target_date, to_time(work_start), tz)
    window_end = local_datetime(target_date, to_time(work_end), tz)
    if window_end <= window_start:
        return None
    return WorkWindow(start=window_start, end=window_end)


def get_staff_availability(
    store: AvailabilityStore,
    staff_id: int,
    target_date: date,
    tz: ZoneInfo,
    exclude_booking_id: int | None = None,
) -> StaffAvailability:
    if store.get_staff(staff_id) is None:
        return StaffAvailability(staff_id=staff_id, target_date=target_date)

    window = resolve_work_window(store, staff_id, target_date, tz)
    day_start, day_end = day_bounds(target_date, tz)
    bookings = [
        booking
        for booking in store.list_confirmed_bookings(staff_id, day_start, day_end)
        if exclude_booking_id is None or booking.id != exclude_booking_id
    ]
    return StaffAvailability(
        staff_id=staff_id,
        target_date=target_date,
        window=window,
        bookings=bookings,
    )


def booking_interval(booking: Any) -> tuple[datetime, datetime]:
    return ensure_aware(booking.start_time), ensure_aware(booking.end_time)
