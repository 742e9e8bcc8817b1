from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Any, Iterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from clinic.db.models import (
    BOOKING_STATUS_CONFIRMED,
    Booking,
    BusinessHour,
    Menu,
    NotificationLog,
    Patient,
    Staff,
    StaffSchedule,
)
from clinic.scheduling.errors import BookingConflictError, StorageError
from clinic.scheduling.timeutils import to_utc

logger = logging.getLogger("clinic.scheduling.store")


@contextmanager
def _reading(what: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Storage read failed: %s", what)
        raise StorageError(f"Failed to load {what}.") from exc


class ClinicStore:
    """Record store queries used by the scheduling engine and booking flows."""

    def __init__(self, db: Session):
        self.db = db

    def get_business_hours(self, weekday: int) -> BusinessHour | None:
        with _reading("business hours"):
            return self.db.query(BusinessHour).filter(BusinessHour.weekday == weekday).first()

    def list_all_business_hours(self) -> list[BusinessHour]:
        with _reading("business hours"):
            return self.db.query(BusinessHour).order_by(BusinessHour.weekday).all()

    def get_staff_schedule(self, staff_id: int, target_date: date) -> StaffSchedule | None:
        with _reading("staff schedule"):
            return (
                self.db.query(StaffSchedule)
                .filter(StaffSchedule.staff_id == staff_id)
                .filter(StaffSchedule.date == target_date)
                .first()
            )

    def list_confirmed_bookings(
        self,
        staff_id: int,
        range_start: datetime,
        range_end: datetime,
    ) -> list[Booking]:
        with _reading("bookings"):
            return (
                self.db.query(Booking)
                .filter(Booking.staff_id == staff_id)
                .filter(Booking.status == BOOKING_STATUS_CONFIRMED)
                .filter(Booking.start_time >= to_utc(range_start))
                .filter(Booking.start_time < to_utc(range_end))
                .order_by(Booking.start_time)
                .all()
            )

    def list_staff(
        self,
        is_active: bool | None = None,
        is_public: bool | None = None,
    ) -> list[Staff]:
        with _reading("staff"):
            query = self.db.query(Staff)
            if is_active is not None:
                query = query.filter(Staff.is_active == is_active)
            if is_public is not None:
                query = query.filter(Staff.is_public == is_public)
            return query.order_by(Staff.name, Staff.id).all()

    def get_staff(self, staff_id: int) -> Staff | None:
        with _reading("staff"):
            return self.db.get(Staff, staff_id)

    def get_menu(self, menu_id: int) -> Menu | None:
        with _reading("menu"):
            return self.db.get(Menu, menu_id)

    def list_menus(self) -> list[Menu]:
        with _reading("menus"):
            return self.db.query(Menu).order_by(Menu.name).all()

    def get_patient(self, patient_id: int | None) -> Patient | None:
        if patient_id is None:
            return None
        with _reading("patient"):
            return self.db.get(Patient, patient_id)

    def get_booking(self, booking_id: int) -> Booking | None:
        with _reading("booking"):
            return self.db.get(Booking, booking_id)

    def list_bookings(
        self,
        status: str | None = None,
        range_start: datetime | None = None,
        range_end: datetime | None = None,
        staff_id: int | None = None,
        limit: int = 50,
        offset: int = 0,
        newest_first: bool = True,
    ) -> list[Booking]:
        with _reading("bookings"):
            query = self.db.query(Booking)
            if status:
                query = query.filter(Booking.status == status)
            if range_start is not None:
                query = query.filter(Booking.start_time >= to_utc(range_start))
            if range_end is not None:
                query = query.filter(Booking.start_time < to_utc(range_end))
            if staff_id is not None:
                query = query.filter(Booking.staff_id == staff_id)
            if newest_first:
                query = query.order_by(Booking.start_time.desc(), Booking.id.desc())
            else:
                query = query.order_by(Booking.start_time.asc(), Booking.id.asc())
            return query.offset(offset).limit(limit).all()

    def has_notification_log(self, booking_id: int, event: str, since: datetime) -> bool:
        with _reading("notification logs"):
            row = (
                self.db.query(NotificationLog.id)
                .filter(NotificationLog.booking_id == booking_id)
                .filter(NotificationLog.event == event)
                .filter(NotificationLog.sent_at >= to_utc(since))
                .first()
            )
            return row is not None

    def upsert_patient(
        self,
        name: str,
        email: str | None,
        phone: str | None,
        preferred_contact: str,
    ) -> Patient:
        patient = None
        if email:
            with _reading("patient"):
                patient = self.db.query(Patient).filter(Patient.email == email).first()
        if patient is None:
            patient = Patient(
                name=name,
                email=email or None,
                phone=phone or None,
                preferred_contact=preferred_contact,
            )
            self.db.add(patient)
        else:
            patient.name = name
            patient.phone = phone or patient.phone
            patient.preferred_contact = preferred_contact
        self._flush("patient")
        return patient

    def create_booking(
        self,
        patient_id: int | None,
        menu_id: int,
        staff_id: int,
        start_time: datetime,
        end_time: datetime,
        contact_channels: list[str],
    ) -> Booking:
        booking = Booking(
            patient_id=patient_id,
            menu_id=menu_id,
            staff_id=staff_id,
            start_time=to_utc(start_time),
            end_time=to_utc(end_time),
            status=BOOKING_STATUS_CONFIRMED,
            contact_channels=list(contact_channels),
        )
        self.db.add(booking)
        self._commit_booking_write()
        return booking

    def update_booking(self, booking: Booking, **changes: Any) -> Booking:
        for field, value in changes.items():
            if isinstance(value, datetime):
                value = to_utc(value)
            setattr(booking, field, value)
        booking.updated_at = datetime.now(timezone.utc)
        self._commit_booking_write()
        return booking

    def add_notification_log(
        self,
        booking_id: int,
        channel: str,
        event: str,
        result: str,
        provider_msg_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.db.add(
            NotificationLog(
                booking_id=booking_id,
                channel=channel,
                event=event,
                sent_at=datetime.now(timezone.utc),
                result=result,
                provider_msg_id=provider_msg_id,
                details_json=details,
            )
        )
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError("Failed to write notification log.") from exc

    def rollback(self) -> None:
        self.db.rollback()

    def _flush(self, what: str) -> None:
        try:
            self.db.flush()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError(f"Failed to write {what}.") from exc

    def _commit_booking_write(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise BookingConflictError("Interval was claimed by a concurrent booking.") from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError("Failed to write booking.") from exc
