from __future__ import annotations

from datetime import date, time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic.db.models import BusinessHour, Staff, StaffSchedule
from clinic.scheduling.errors import StorageError


class CreateStaffArgs(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    is_active: bool = True
    is_public: bool = True
    max_parallel: int = Field(default=8, ge=1)


class UpdateStaffArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=255)
    is_active: bool | None = None
    is_public: bool | None = None
    max_parallel: int | None = Field(default=None, ge=1)


class StaffScheduleArgs(BaseModel):
    is_off: bool = False
    work_start: time | None = None
    work_end: time | None = None

    @model_validator(mode="after")
    def validate_bounds(self) -> "StaffScheduleArgs":
        if self.work_start is not None and self.work_end is not None and self.work_end <= self.work_start:
            raise ValueError("work_end must be after work_start.")
        return self


class BusinessHoursArgs(BaseModel):
    open_time: time
    close_time: time
    is_closed: bool = False

    @model_validator(mode="after")
    def validate_bounds(self) -> "BusinessHoursArgs":
        if not self.is_closed and self.close_time <= self.open_time:
            raise ValueError("close_time must be after open_time.")
        return self


def create_staff(db: Session, args: CreateStaffArgs) -> Staff:
    staff = Staff(
        name=args.name,
        is_active=args.is_active,
        is_public=args.is_public,
        max_parallel=args.max_parallel,
    )
    db.add(staff)
    _commit(db, "staff")
    return staff


def list_staff(db: Session, include_inactive: bool = True) -> list[Staff]:
    staff = db.query(Staff).all()
    if not include_inactive:
        staff = [member for member in staff if member.is_active]
    return sorted(staff, key=lambda member: (member.name, member.id))


def update_staff(db: Session, staff_id: int, args: UpdateStaffArgs) -> Staff | None:
    staff = _find_staff(db, staff_id=staff_id)
    if staff is None:
        return None

    for field, value in args.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        setattr(staff, field, value)

    _commit(db, "staff")
    return staff


def upsert_staff_schedule(
    db: Session,
    staff_id: int,
    target_date: date,
    args: StaffScheduleArgs,
) -> StaffSchedule | None:
    if _find_staff(db, staff_id=staff_id) is None:
        return None

    schedule = None
    for row in db.query(StaffSchedule).all():
        if row.staff_id == staff_id and row.date == target_date:
            schedule = row
            break

    if schedule is None:
        schedule = StaffSchedule(staff_id=staff_id, date=target_date)
        db.add(schedule)
    schedule.is_off = args.is_off
    schedule.work_start = args.work_start
    schedule.work_end = args.work_end

    _commit(db, "staff schedule")
    return schedule


def upsert_business_hours(db: Session, weekday: int, args: BusinessHoursArgs) -> BusinessHour:
    if weekday < 0 or weekday > 6:
        raise ValueError("weekday must be between 0 (Sunday) and 6 (Saturday).")

    hours = None
    for row in db.query(BusinessHour).all():
        if row.weekday == weekday:
            hours = row
            break

    if hours is None:
        hours = BusinessHour(weekday=weekday)
        db.add(hours)
    hours.open_time = args.open_time
    hours.close_time = args.close_time
    hours.is_closed = args.is_closed

    _commit(db, "business hours")
    return hours


def serialize_staff(staff: Staff) -> dict[str, Any]:
    created_at = getattr(staff, "created_at", None)
    return {
        "id": staff.id,
        "name": staff.name,
        "is_active": staff.is_active,
        "is_public": staff.is_public,
        "max_parallel": staff.max_parallel,
        "created_at": created_at.isoformat() if created_at else None,
    }


def serialize_staff_schedule(schedule: StaffSchedule) -> dict[str, Any]:
    return {
        "staff_id": schedule.staff_id,
        "date": schedule.date.isoformat(),
        "is_off": schedule.is_off,
        "work_start": schedule.work_start.strftime("%H:%M") if schedule.work_start else None,
        "work_end": schedule.work_end.strftime("%H:%M") if schedule.work_end else None,
    }


def serialize_business_hours(hours: BusinessHour) -> dict[str, Any]:
    return {
        "weekday": hours.weekday,
        "open_time": hours.open_time.strftime("%H:%M"),
        "close_time": hours.close_time.strftime("%H:%M"),
        "is_closed": hours.is_closed,
    }


def _find_staff(db: Session, staff_id: int) -> Staff | None:
    for staff in db.query(Staff).all():
        if staff.id == staff_id:
            return staff
    return None


def _commit(db: Session, what: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError(f"Failed to write {what}.") from exc
