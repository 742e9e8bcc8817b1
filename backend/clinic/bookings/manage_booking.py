from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any
from zoneinfo import ZoneInfo

from pydantic import AwareDatetime, BaseModel, Field

from clinic.bookings.serializers import (
    error_response,
    serialize_booking,
    serialize_booking_with_relations,
)
from clinic.config import SchedulingSettings
from clinic.db.models import BOOKING_STATUS_CANCELED, BOOKING_STATUS_CONFIRMED
from clinic.notifications import EVENT_CANCELED, EVENT_CHANGED
from clinic.scheduling.errors import BookingConflictError
from clinic.scheduling.guard import check_booking, staff_can_take
from clinic.scheduling.locks import StaffLockRegistry
from clinic.scheduling.timeutils import ensure_aware
from clinic.security.magic_links import verify_magic_token

logger = logging.getLogger("clinic.bookings.manage_booking")


class RescheduleBookingArgs(BaseModel):
    token: str = Field(min_length=1)
    start_time: AwareDatetime
    menu_id: int | None = None
    staff_id: int | None = None


class CancelBookingArgs(BaseModel):
    token: str = Field(min_length=1)


def _invalid_link() -> dict[str, Any]:
    return error_response("INVALID_MAGIC_LINK", "This link is invalid or has expired.")


def _not_found() -> dict[str, Any]:
    return error_response("BOOKING_NOT_FOUND", "Booking not found.")


def _already_canceled() -> dict[str, Any]:
    return error_response("BOOKING_ALREADY_CANCELED", "This booking has already been canceled.")


def _token_allows(token: str, booking_id: int, actions: tuple[str, ...]) -> bool:
    return any(verify_magic_token(token, booking_id, action) for action in actions)


def get_booking_details(
    store: Any,
    booking_id: int,
    token: str,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Booking view behind a cancel or reschedule link."""
    if not _token_allows(token, booking_id, ("cancel", "reschedule")):
        return _invalid_link()

    booking = store.get_booking(booking_id)
    if booking is None:
        return _not_found()

    now_utc = ensure_aware(now or datetime.now(timezone.utc))
    is_upcoming = (
        booking.status == BOOKING_STATUS_CONFIRMED
        and ensure_aware(booking.start_time) > now_utc
    )
    data = serialize_booking_with_relations(store, booking)
    data["can_cancel"] = is_upcoming
    data["can_reschedule"] = is_upcoming
    data["menus"] = [
        {"id": menu.id, "name": menu.name, "duration_min": menu.duration_min}
        for menu in store.list_menus()
    ]
    return {"ok": True, "data": data}


def reschedule_booking(
    store: Any,
    booking_id: int,
    args: RescheduleBookingArgs,
    settings: SchedulingSettings,
    locks: StaffLockRegistry,
    notifier: Any,
    now: datetime | None = None,
) -> dict[str, Any]:
    if not verify_magic_token(args.token, booking_id, "reschedule"):
        return _invalid_link()

    booking = store.get_booking(booking_id)
    if booking is None:
        return _not_found()
    if booking.status == BOOKING_STATUS_CANCELED:
        return _already_canceled()

    menu_id = args.menu_id if args.menu_id is not None else booking.menu_id
    menu = store.get_menu(menu_id)
    if menu is None:
        return error_response("MENU_NOT_FOUND", "Menu not found.")

    decision = check_booking(
        store,
        args.start_time,
        menu.duration_min,
        settings,
        now=now,
        staff_id=args.staff_id,
        current_booking=booking,
        menu_id=menu.id,
    )
    if not decision.ok:
        return error_response(decision.error_code, decision.human_message)

    start = args.start_time
    end = start + timedelta(minutes=menu.duration_min)
    tz = ZoneInfo(settings.timezone)
    previous_staff_id = booking.staff_id
    previous_start = ensure_aware(booking.start_time)

    with locks.hold(previous_staff_id, decision.staff_id):
        if not staff_can_take(
            store,
            decision.staff_id,
            start,
            end,
            tz,
            exclude_booking_id=booking.id,
            enforce_capacity=decision.balanced,
        ):
            raise BookingConflictError("Interval was claimed while the change was validated.")
        store.update_booking(
            booking,
            start_time=start,
            end_time=end,
            menu_id=menu.id,
            staff_id=decision.staff_id,
        )

    logger.info(
        json.dumps(
            {
                "event": "booking_rescheduled",
                "booking_id": booking.id,
                "from_start_time": previous_start.isoformat(),
                "to_start_time": start.isoformat(),
                "from_staff_id": previous_staff_id,
                "to_staff_id": decision.staff_id,
            }
        )
    )

    notifier.notify(store, booking, EVENT_CHANGED)

    data = serialize_booking(booking, menu=menu)
    data["changed_staff"] = decision.staff_id != previous_staff_id
    return {"ok": True, "data": data}


def cancel_booking(
    store: Any,
    booking_id: int,
    args: CancelBookingArgs,
    notifier: Any,
    now: datetime | None = None,
) -> dict[str, Any]:
    if not verify_magic_token(args.token, booking_id, "cancel"):
        return _invalid_link()

    booking = store.get_booking(booking_id)
    if booking is None:
        return _not_found()
    if booking.status == BOOKING_STATUS_CANCELED:
        return _already_canceled()

    store.update_booking(booking, status=BOOKING_STATUS_CANCELED)
    canceled_at = ensure_aware(now or datetime.now(timezone.utc))

    logger.info(
        json.dumps(
            {
                "event": "booking_canceled",
                "booking_id": booking.id,
                "staff_id": booking.staff_id,
                "start_time": ensure_aware(booking.start_time).isoformat(),
            }
        )
    )

    notifier.notify(store, booking, EVENT_CANCELED)

    data = serialize_booking(booking)
    data["canceled_at"] = canceled_at.isoformat()
    return {"ok": True, "data": data}
