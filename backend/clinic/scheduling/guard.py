"""
Business-rule validation for creating or rescheduling a booking.

Checks run in a fixed order and stop at the first failure:
opening-hours gate, past start, no-op reschedule, then the target staff
member's window and existing bookings. A staff conflict is recoverable: the
load balancer is asked for another staff member before giving up.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any
from zoneinfo import ZoneInfo

from pydantic import BaseModel

from clinic.config import SchedulingSettings
from clinic.scheduling.availability import booking_interval, get_staff_availability
from clinic.scheduling.errors import (
    HUMAN_MESSAGES,
    NO_OP_CHANGE,
    NO_STAFF_AVAILABLE,
    OUTSIDE_BUSINESS_HOURS,
    PAST_START_TIME,
    TIME_CONFLICT,
)
from clinic.scheduling.load_balancer import find_best_staff
from clinic.scheduling.overlap import overlaps
from clinic.scheduling.timeutils import ensure_aware, local_date_of


class GuardDecision(BaseModel):
    ok: bool
    staff_id: int | None = None
    reassigned: bool = False
    # staff picked by the load balancer, so max_parallel applies
    balanced: bool = False
    error_code: str | None = None
    human_message: str | None = None

    @classmethod
    def reject(cls, error_code: str, **fmt: Any) -> "GuardDecision":
        return cls(ok=False, error_code=error_code, human_message=HUMAN_MESSAGES[error_code].format(**fmt))


def staff_can_take(
    store: Any,
    staff_id: int,
    start: datetime,
    end: datetime,
    tz: ZoneInfo,
    exclude_booking_id: int | None = None,
    enforce_capacity: bool = False,
) -> bool:
    staff = store.get_staff(staff_id)
    if staff is None or not staff.is_active:
        return False

    availability = get_staff_availability(
        store,
        staff_id,
        local_date_of(start, tz),
        tz,
        exclude_booking_id=exclude_booking_id,
    )
    if availability.window is None or not availability.window.contains(start, end):
        return False
    if enforce_capacity and len(availability.bookings) >= int(staff.max_parallel or 0):
        return False

    return not any(
        overlaps(start, end, busy_start, busy_end)
        for busy_start, busy_end in map(booking_interval, availability.bookings)
    )


def check_booking(
    store: Any,
    start_time: datetime,
    duration_minutes: int,
    settings: SchedulingSettings,
    now: datetime | None = None,
    staff_id: int | None = None,
    current_booking: Any | None = None,
    menu_id: int | None = None,
    allow_reassignment: bool = True,
) -> GuardDecision:
    tz = ZoneInfo(settings.timezone)
    start = ensure_aware(start_time)
    end = start + timedelta(minutes=duration_minutes)
    now_utc = ensure_aware(now or datetime.now(timezone.utc))

    local_hour = start.astimezone(tz).hour
    if local_hour < settings.open_hour or local_hour >= settings.close_hour:
        return GuardDecision.reject(
            OUTSIDE_BUSINESS_HOURS,
            open_hour=settings.open_hour,
            close_hour=settings.close_hour,
        )

    if start < now_utc:
        return GuardDecision.reject(PAST_START_TIME)

    exclude_booking_id = None
    if current_booking is not None:
        exclude_booking_id = current_booking.id
        same_start = ensure_aware(current_booking.start_time) == start
        same_menu = menu_id is None or menu_id == current_booking.menu_id
        if same_start and same_menu:
            return GuardDecision.reject(NO_OP_CHANGE)

    target_staff_id = staff_id
    if target_staff_id is None and current_booking is not None:
        target_staff_id = current_booking.staff_id

    if target_staff_id is not None:
        if staff_can_take(store, target_staff_id, start, end, tz, exclude_booking_id):
            return GuardDecision(ok=True, staff_id=target_staff_id)
        if not allow_reassignment:
            return GuardDecision.reject(TIME_CONFLICT)

    alternative = find_best_staff(
        store,
        start,
        duration_minutes,
        tz,
        exclude_booking_id=exclude_booking_id,
        exclude_staff_ids={target_staff_id} if target_staff_id is not None else None,
    )
    if alternative is None:
        return GuardDecision.reject(NO_STAFF_AVAILABLE)
    return GuardDecision(
        ok=True,
        staff_id=alternative.id,
        reassigned=target_staff_id is not None,
        balanced=True,
    )
