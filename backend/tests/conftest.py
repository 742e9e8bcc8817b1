from datetime import datetime, time, timedelta, timezone
from types import SimpleNamespace

import pytest

from clinic.config import SchedulingSettings
from clinic.scheduling.errors import BookingConflictError
from clinic.scheduling.timeutils import ensure_aware, to_utc


class FakeStore:
    """In-memory stand-in for ClinicStore."""

    def __init__(self):
        self.business_hours = {}
        self.staff = []
        self.schedules = []
        self.menus = []
        self.patients = []
        self.bookings = []
        self.notification_logs = []
        self.rollbacks = 0

    # fixtures

    def set_hours(self, weekday, open_time=time(9, 0), close_time=time(18, 0), is_closed=False):
        self.business_hours[weekday] = SimpleNamespace(
            weekday=weekday,
            open_time=open_time,
            close_time=close_time,
            is_closed=is_closed,
        )

    def set_weekly_hours(self):
        # Monday-Saturday 09:00-18:00, Sunday closed
        for weekday in range(7):
            self.set_hours(weekday, is_closed=weekday == 0)

    def add_staff(self, staff_id, name, is_active=True, is_public=True, max_parallel=8):
        staff = SimpleNamespace(
            id=staff_id,
            name=name,
            is_active=is_active,
            is_public=is_public,
            max_parallel=max_parallel,
            created_at=None,
        )
        self.staff.append(staff)
        return staff

    def add_schedule(self, staff_id, target_date, is_off=False, work_start=None, work_end=None):
        schedule = SimpleNamespace(
            staff_id=staff_id,
            date=target_date,
            is_off=is_off,
            work_start=work_start,
            work_end=work_end,
        )
        self.schedules.append(schedule)
        return schedule

    def add_menu(self, menu_id, name, duration_min, description=None):
        menu = SimpleNamespace(id=menu_id, name=name, duration_min=duration_min, description=description)
        self.menus.append(menu)
        return menu

    def add_patient(self, name="Hanako Yamada", email="hanako@example.com", phone=None, line_user_id=None, preferred_contact="email"):
        patient = SimpleNamespace(
            id=len(self.patients) + 1,
            name=name,
            email=email,
            phone=phone,
            line_user_id=line_user_id,
            preferred_contact=preferred_contact,
        )
        self.patients.append(patient)
        return patient

    def add_booking(self, staff_id, start, minutes, status="confirmed", menu_id=1, patient_id=None, contact_channels=None):
        booking = SimpleNamespace(
            id=len(self.bookings) + 1,
            patient_id=patient_id,
            menu_id=menu_id,
            staff_id=staff_id,
            start_time=start,
            end_time=start + timedelta(minutes=minutes),
            status=status,
            contact_channels=list(contact_channels or []),
            updated_at=None,
        )
        self.bookings.append(booking)
        return booking

    # ClinicStore interface

    def get_business_hours(self, weekday):
        return self.business_hours.get(weekday)

    def list_all_business_hours(self):
        return [self.business_hours[key] for key in sorted(self.business_hours)]

    def get_staff_schedule(self, staff_id, target_date):
        for schedule in self.schedules:
            if schedule.staff_id == staff_id and schedule.date == target_date:
                return schedule
        return None

    def list_confirmed_bookings(self, staff_id, range_start, range_end):
        rows = [
            booking
            for booking in self.bookings
            if booking.staff_id == staff_id
            and booking.status == "confirmed"
            and range_start <= ensure_aware(booking.start_time) < range_end
        ]
        return sorted(rows, key=lambda booking: booking.start_time)

    def list_staff(self, is_active=None, is_public=None):
        rows = [
            staff
            for staff in self.staff
            if (is_active is None or staff.is_active == is_active)
            and (is_public is None or staff.is_public == is_public)
        ]
        return sorted(rows, key=lambda staff: (staff.name, staff.id))

    def get_staff(self, staff_id):
        return next((staff for staff in self.staff if staff.id == staff_id), None)

    def get_menu(self, menu_id):
        return next((menu for menu in self.menus if menu.id == menu_id), None)

    def list_menus(self):
        return sorted(self.menus, key=lambda menu: menu.name)

    def get_patient(self, patient_id):
        return next((patient for patient in self.patients if patient.id == patient_id), None)

    def get_booking(self, booking_id):
        return next((booking for booking in self.bookings if booking.id == booking_id), None)

    def list_bookings(self, status=None, range_start=None, range_end=None, staff_id=None, limit=50, offset=0, newest_first=True):
        rows = [
            booking
            for booking in self.bookings
            if (not status or booking.status == status)
            and (range_start is None or ensure_aware(booking.start_time) >= range_start)
            and (range_end is None or ensure_aware(booking.start_time) < range_end)
            and (staff_id is None or booking.staff_id == staff_id)
        ]
        rows.sort(key=lambda booking: (booking.start_time, booking.id), reverse=newest_first)
        return rows[offset : offset + limit]

    def has_notification_log(self, booking_id, event, since):
        return any(
            log["booking_id"] == booking_id and log["event"] == event and log["sent_at"] >= since
            for log in self.notification_logs
        )

    def upsert_patient(self, name, email, phone, preferred_contact):
        patient = None
        if email:
            patient = next((row for row in self.patients if row.email == email), None)
        if patient is None:
            patient = self.add_patient(name=name, email=email, phone=phone, preferred_contact=preferred_contact)
        else:
            patient.name = name
            patient.phone = phone or patient.phone
            patient.preferred_contact = preferred_contact
        return patient

    def create_booking(self, patient_id, menu_id, staff_id, start_time, end_time, contact_channels):
        for booking in self.bookings:
            if booking.status == "confirmed" and booking.staff_id == staff_id and ensure_aware(booking.start_time) == start_time:
                raise BookingConflictError("duplicate confirmed start")
        booking = self.add_booking(
            staff_id,
            to_utc(start_time),
            int((end_time - start_time).total_seconds() // 60),
            menu_id=menu_id,
            patient_id=patient_id,
            contact_channels=contact_channels,
        )
        return booking

    def update_booking(self, booking, **changes):
        for field, value in changes.items():
            if isinstance(value, datetime):
                value = to_utc(value)
            setattr(booking, field, value)
        booking.updated_at = datetime.now(timezone.utc)
        return booking

    def add_notification_log(self, booking_id, channel, event, result, provider_msg_id=None, details=None):
        self.notification_logs.append(
            {
                "booking_id": booking_id,
                "channel": channel,
                "event": event,
                "result": result,
                "provider_msg_id": provider_msg_id,
                "sent_at": datetime.now(timezone.utc),
            }
        )

    def rollback(self):
        self.rollbacks += 1


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def notify(self, store, booking, event):
        self.sent.append((booking.id, event))
        return []


class FakeSession:
    def close(self):
        return None

    def rollback(self):
        return None


@pytest.fixture
def clinic_store():
    store = FakeStore()
    store.set_weekly_hours()
    store.add_menu(1, "Consultation", 60)
    store.add_menu(2, "Quick check", 30)
    return store


@pytest.fixture
def settings():
    return SchedulingSettings(timezone="Asia/Tokyo", slot_interval_minutes=30, open_hour=9, close_hour=18)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def api_store(monkeypatch, clinic_store, notifier):
    import clinic.main as main_module

    monkeypatch.setattr(main_module, "SessionLocal", lambda: FakeSession())
    monkeypatch.setattr(main_module, "ClinicStore", lambda _db: clinic_store)
    monkeypatch.setattr(main_module, "notifier", notifier)
    return clinic_store
