from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta
from typing import Any, Literal
from zoneinfo import ZoneInfo

from pydantic import AwareDatetime, BaseModel, Field, model_validator

from clinic.bookings.serializers import error_response, serialize_booking
from clinic.config import SchedulingSettings
from clinic.notifications import EVENT_CONFIRM
from clinic.scheduling.errors import BookingConflictError
from clinic.scheduling.guard import check_booking, staff_can_take
from clinic.scheduling.locks import StaffLockRegistry

logger = logging.getLogger("clinic.bookings.create_booking")


class CreateBookingArgs(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    email: str | None = None
    phone: str | None = None
    menu_id: int
    start_time: AwareDatetime
    staff_id: int | None = None
    contact_channels: list[Literal["email", "sms"]] = Field(min_length=1)
    allow_staff_change: bool = True

    @model_validator(mode="after")
    def validate_contact_details(self) -> "CreateBookingArgs":
        if "email" in self.contact_channels and not self.email:
            raise ValueError("An email address is required for email notices.")
        if "sms" in self.contact_channels and not self.phone:
            raise ValueError("A phone number is required for SMS notices.")
        if self.email is not None and "@" not in self.email:
            raise ValueError("Invalid email address.")
        return self


def parse_create_booking_args(raw_args: dict[str, Any]) -> CreateBookingArgs:
    return CreateBookingArgs.model_validate(raw_args)


def create_booking(
    store: Any,
    args: CreateBookingArgs,
    settings: SchedulingSettings,
    locks: StaffLockRegistry,
    notifier: Any,
    now: datetime | None = None,
) -> dict[str, Any]:
    menu = store.get_menu(args.menu_id)
    if menu is None:
        return error_response("MENU_NOT_FOUND", "Menu not found.")

    if args.staff_id is not None:
        staff = store.get_staff(args.staff_id)
        if staff is None or not staff.is_active:
            return error_response("STAFF_NOT_FOUND", "Staff member not found.")

    decision = check_booking(
        store,
        args.start_time,
        menu.duration_min,
        settings,
        now=now,
        staff_id=args.staff_id,
        allow_reassignment=args.allow_staff_change,
    )
    if not decision.ok:
        return error_response(decision.error_code, decision.human_message)

    start = args.start_time
    end = start + timedelta(minutes=menu.duration_min)
    tz = ZoneInfo(settings.timezone)

    with locks.hold(decision.staff_id):
        if not staff_can_take(store, decision.staff_id, start, end, tz, enforce_capacity=decision.balanced):
            raise BookingConflictError("Interval was claimed while the booking was validated.")

        patient = store.upsert_patient(
            name=args.name,
            email=args.email,
            phone=args.phone,
            preferred_contact=args.contact_channels[0],
        )
        booking = store.create_booking(
            patient_id=patient.id,
            menu_id=menu.id,
            staff_id=decision.staff_id,
            start_time=start,
            end_time=end,
            contact_channels=args.contact_channels,
        )

    logger.info(
        json.dumps(
            {
                "event": "booking_created",
                "booking_id": booking.id,
                "staff_id": booking.staff_id,
                "staff_reassigned": decision.reassigned,
                "start_time": start.isoformat(),
            }
        )
    )

    notifier.notify(store, booking, EVENT_CONFIRM)

    data = serialize_booking(booking, menu=menu, patient=patient)
    data["assigned_staff_id"] = decision.staff_id
    data["staff_reassigned"] = decision.reassigned
    return {"ok": True, "data": data}
