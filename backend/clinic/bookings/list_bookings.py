from __future__ import annotations

import datetime as dt
from typing import Any, Literal
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field

from clinic.bookings.serializers import serialize_booking_with_relations
from clinic.config import SchedulingSettings
from clinic.scheduling.timeutils import day_bounds


class ListBookingsArgs(BaseModel):
    status: Literal["all", "confirmed", "canceled"] = "all"
    date: dt.date | None = None
    staff_id: int | None = None
    limit: int = Field(default=50, ge=1, le=200)
    offset: int = Field(default=0, ge=0)


def parse_list_bookings_args(raw_args: dict[str, Any]) -> ListBookingsArgs:
    return ListBookingsArgs.model_validate(raw_args)


def list_bookings(store: Any, args: ListBookingsArgs, settings: SchedulingSettings) -> dict[str, Any]:
    range_start = range_end = None
    if args.date is not None:
        range_start, range_end = day_bounds(args.date, ZoneInfo(settings.timezone))

    bookings = store.list_bookings(
        status=None if args.status == "all" else args.status,
        range_start=range_start,
        range_end=range_end,
        staff_id=args.staff_id,
        limit=args.limit,
        offset=args.offset,
        newest_first=args.date is None,
    )
    return {
        "ok": True,
        "data": {
            "bookings": [serialize_booking_with_relations(store, booking) for booking in bookings],
            "limit": args.limit,
            "offset": args.offset,
        },
    }
