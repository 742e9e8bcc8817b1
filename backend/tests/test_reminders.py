from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from clinic.notifications.dispatcher import NotificationResult
import clinic.reminders as reminders_module
from clinic.reminders import send_reminders


TOKYO = ZoneInfo("Asia/Tokyo")
# Sunday evening in Tokyo; "tomorrow" is Monday 2030-01-14
NOW = datetime(2030, 1, 13, 20, 0, tzinfo=TOKYO)


class StubNotifier:
    def __init__(self, failing_booking_ids=()):
        self.calls = []
        self.failing_booking_ids = set(failing_booking_ids)

    def notify(self, store, booking, event):
        self.calls.append((booking.id, event))
        success = booking.id not in self.failing_booking_ids
        return [NotificationResult(success=success, channel="email", event=event)]


def _local(day: int, hour: int) -> datetime:
    return datetime(2030, 1, day, hour, 0, tzinfo=TOKYO)


def test_reminds_confirmed_bookings_for_tomorrow_only(clinic_store, settings):
    clinic_store.add_staff(1, "Aoki")
    first = clinic_store.add_booking(1, _local(14, 9), 60)
    second = clinic_store.add_booking(1, _local(14, 17), 60)
    clinic_store.add_booking(1, _local(14, 11), 60, status="canceled")
    clinic_store.add_booking(1, _local(13, 21), 60)
    clinic_store.add_booking(1, _local(15, 9), 60)
    notifier = StubNotifier()

    summary = send_reminders(clinic_store, notifier, settings, now=NOW)

    assert notifier.calls == [(first.id, "reminder"), (second.id, "reminder")]
    assert summary["date"] == "2030-01-14"
    assert summary["total"] == 2
    assert summary["success_count"] == 2
    assert summary["error_count"] == 0
    assert summary["skipped"] == 0


def test_skips_bookings_already_reminded_today(clinic_store, settings):
    clinic_store.add_staff(1, "Aoki")
    reminded = clinic_store.add_booking(1, _local(14, 9), 60)
    pending = clinic_store.add_booking(1, _local(14, 10), 60)
    clinic_store.notification_logs.append(
        {
            "booking_id": reminded.id,
            "channel": "email",
            "event": "reminder",
            "result": "success",
            "provider_msg_id": None,
            "sent_at": datetime(2030, 1, 13, 8, 0, tzinfo=timezone.utc),
        }
    )
    notifier = StubNotifier()

    summary = send_reminders(clinic_store, notifier, settings, now=NOW)

    assert notifier.calls == [(pending.id, "reminder")]
    assert summary["skipped"] == 1


def test_reminder_from_an_earlier_day_does_not_block(clinic_store, settings):
    clinic_store.add_staff(1, "Aoki")
    booking = clinic_store.add_booking(1, _local(14, 9), 60)
    clinic_store.notification_logs.append(
        {
            "booking_id": booking.id,
            "channel": "email",
            "event": "reminder",
            "result": "success",
            "provider_msg_id": None,
            "sent_at": datetime(2030, 1, 12, 8, 0, tzinfo=timezone.utc),
        }
    )
    notifier = StubNotifier()

    summary = send_reminders(clinic_store, notifier, settings, now=NOW)

    assert notifier.calls == [(booking.id, "reminder")]
    assert summary["skipped"] == 0


def test_failed_notices_are_counted(clinic_store, settings):
    clinic_store.add_staff(1, "Aoki")
    ok = clinic_store.add_booking(1, _local(14, 9), 60)
    failing = clinic_store.add_booking(1, _local(14, 10), 60)

    summary = send_reminders(clinic_store, StubNotifier(failing_booking_ids={failing.id}), settings, now=NOW)

    assert summary["success_count"] == 1
    assert summary["error_count"] == 1
    assert {item["booking_id"]: item["success"] for item in summary["results"]} == {ok.id: True, failing.id: False}


def test_reminds_every_booking_beyond_one_batch(clinic_store, settings, monkeypatch):
    monkeypatch.setattr(reminders_module, "REMINDER_BATCH_LIMIT", 2)
    for staff_id, name in ((1, "Aoki"), (2, "Kato")):
        clinic_store.add_staff(staff_id, name)
    bookings = [
        clinic_store.add_booking(staff_id, _local(14, hour), 60)
        for hour in (9, 10)
        for staff_id in (1, 2)
    ]
    bookings.append(clinic_store.add_booking(1, _local(14, 11), 60))
    notifier = StubNotifier()

    summary = send_reminders(clinic_store, notifier, settings, now=NOW)

    assert sorted(booking_id for booking_id, _event in notifier.calls) == [booking.id for booking in bookings]
    assert summary["total"] == 5
    assert summary["success_count"] == 5
