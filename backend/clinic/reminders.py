from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any
from zoneinfo import ZoneInfo

from clinic.config import SchedulingSettings
from clinic.db.models import BOOKING_STATUS_CONFIRMED
from clinic.notifications import EVENT_REMINDER
from clinic.scheduling.timeutils import day_bounds, ensure_aware

logger = logging.getLogger("clinic.reminders")

REMINDER_BATCH_LIMIT = 500


def send_reminders(
    store: Any,
    notifier: Any,
    settings: SchedulingSettings,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Send reminder notices for every confirmed booking tomorrow (clinic-local).

    Bookings that already have a reminder log since the start of today are
    skipped, so the job can be re-run safely.
    """
    tz = ZoneInfo(settings.timezone)
    now_utc = ensure_aware(now or datetime.now(timezone.utc))
    today = now_utc.astimezone(tz).date()
    today_start, _ = day_bounds(today, tz)
    range_start, range_end = day_bounds(today + timedelta(days=1), tz)

    bookings: list[Any] = []
    while True:
        batch = store.list_bookings(
            status=BOOKING_STATUS_CONFIRMED,
            range_start=range_start,
            range_end=range_end,
            limit=REMINDER_BATCH_LIMIT,
            offset=len(bookings),
            newest_first=False,
        )
        bookings.extend(batch)
        if len(batch) < REMINDER_BATCH_LIMIT:
            break

    results: list[dict[str, Any]] = []
    skipped = 0
    for booking in bookings:
        if store.has_notification_log(booking.id, EVENT_REMINDER, since=today_start):
            skipped += 1
            continue

        sent = notifier.notify(store, booking, EVENT_REMINDER)
        results.append(
            {
                "booking_id": booking.id,
                "success": any(item.success for item in sent),
                "channels": [item.channel for item in sent if item.success],
            }
        )

    success_count = sum(1 for item in results if item["success"])
    summary = {
        "date": (today + timedelta(days=1)).isoformat(),
        "total": len(bookings),
        "success_count": success_count,
        "error_count": len(results) - success_count,
        "skipped": skipped,
        "results": results,
    }
    logger.info(
        json.dumps(
            {
                "event": "reminders_sent",
                "date": summary["date"],
                "total": summary["total"],
                "success_count": success_count,
                "error_count": summary["error_count"],
                "skipped": skipped,
            }
        )
    )
    return summary
