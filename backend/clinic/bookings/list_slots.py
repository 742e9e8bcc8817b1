from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo

import dateparser
from pydantic import BaseModel, Field, ValidationError

from clinic.bookings.serializers import error_response
from clinic.config import SchedulingSettings
from clinic.scheduling.slots import generate_slots


class SlotQueryArgs(BaseModel):
    date: str = Field(min_length=1)
    menu_id: int
    staff_id: int | None = None
    available_only: bool = False


def parse_slot_query_args(raw_args: dict[str, Any]) -> SlotQueryArgs:
    return SlotQueryArgs.model_validate(raw_args)


def map_validation_error(error: ValidationError) -> dict[str, str]:
    return {
        "error_code": "INVALID_ARGS",
        "human_message": f"Invalid args: {error.errors()[0]['msg']}",
    }


def resolve_requested_date(
    text: str,
    clinic_timezone: str,
    now_dt: datetime | None = None,
) -> date | None:
    """Accept YYYY-MM-DD or phrases such as "tomorrow" or "next friday"."""
    cleaned = text.strip()
    try:
        return date.fromisoformat(cleaned)
    except ValueError:
        pass

    reference = (now_dt or datetime.now(timezone.utc)).astimezone(ZoneInfo(clinic_timezone))
    parsed = dateparser.parse(
        cleaned,
        settings={
            "TIMEZONE": clinic_timezone,
            "TO_TIMEZONE": clinic_timezone,
            "RETURN_AS_TIMEZONE_AWARE": True,
            "RELATIVE_BASE": reference.replace(tzinfo=None),
            "PREFER_DATES_FROM": "future",
        },
    )
    if parsed is None:
        return None
    return parsed.date()


def list_available_slots(
    store: Any,
    args: SlotQueryArgs,
    settings: SchedulingSettings,
    now_dt: datetime | None = None,
) -> dict[str, Any]:
    target_date = resolve_requested_date(args.date, settings.timezone, now_dt=now_dt)
    if target_date is None:
        return error_response(
            "INVALID_DATE",
            "I couldn't understand the requested date. Please use YYYY-MM-DD.",
        )

    menu = store.get_menu(args.menu_id)
    if menu is None:
        return error_response("MENU_NOT_FOUND", "Menu not found.")

    slots = generate_slots(
        store,
        target_date,
        menu.duration_min,
        ZoneInfo(settings.timezone),
        staff_id=args.staff_id,
        interval_minutes=settings.slot_interval_minutes,
    )
    if args.available_only:
        slots = [slot for slot in slots if slot.available]

    return {
        "ok": True,
        "data": {
            "date": target_date.isoformat(),
            "menu": {"id": menu.id, "name": menu.name, "duration_min": menu.duration_min},
            "slots": [slot.to_payload() for slot in slots],
        },
    }
