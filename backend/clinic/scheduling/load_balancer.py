from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any
from zoneinfo import ZoneInfo

from clinic.scheduling.availability import booking_interval, get_staff_availability
from clinic.scheduling.overlap import overlaps
from clinic.scheduling.timeutils import ensure_aware, local_date_of

logger = logging.getLogger("clinic.scheduling.load_balancer")


def find_best_staff(
    store: Any,
    start_time: datetime,
    duration_minutes: int,
    tz: ZoneInfo,
    exclude_booking_id: int | None = None,
    exclude_staff_ids: set[int] | None = None,
) -> Any | None:
    """
    Pick the active staff member with the fewest confirmed bookings that day.

    A staff member is a candidate only if working at the requested interval,
    free of overlapping confirmed bookings and below max_parallel bookings
    for the day. Ties go to the first candidate in store order. Returns None
    when nobody qualifies.
    """
    start = ensure_aware(start_time)
    end = start + timedelta(minutes=duration_minutes)
    target_date = local_date_of(start, tz)

    best: Any | None = None
    best_load: int | None = None
    for staff in store.list_staff(is_active=True):
        if exclude_staff_ids and staff.id in exclude_staff_ids:
            continue

        availability = get_staff_availability(
            store,
            staff.id,
            target_date,
            tz,
            exclude_booking_id=exclude_booking_id,
        )
        if availability.window is None or not availability.window.contains(start, end):
            continue

        if any(
            overlaps(start, end, busy_start, busy_end)
            for busy_start, busy_end in map(booking_interval, availability.bookings)
        ):
            continue

        load = len(availability.bookings)
        if load >= int(staff.max_parallel or 0):
            continue

        if best_load is None or load < best_load:
            best, best_load = staff, load

    if best is None:
        logger.info("No staff available for %s (%s min)", start.isoformat(), duration_minutes)
    return best
