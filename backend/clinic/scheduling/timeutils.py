from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo


def ensure_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_utc(value: datetime) -> datetime:
    return ensure_aware(value).astimezone(timezone.utc)


def to_time(value: time | timedelta | str) -> time:
    if isinstance(value, time):
        return value
    if isinstance(value, timedelta):
        return (datetime.min + value).time()
    if isinstance(value, str):
        return time.fromisoformat(value.strip())
    raise ValueError(f"Cannot convert {type(value)} to time")


def local_datetime(target_date: date, at: time, tz: ZoneInfo) -> datetime:
    return datetime.combine(target_date, at, tzinfo=tz).astimezone(timezone.utc)


def day_bounds(target_date: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """UTC bounds of the clinic-local calendar day, half-open."""
    start = datetime.combine(target_date, time.min, tzinfo=tz)
    end = datetime.combine(target_date + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def clinic_weekday(target_date: date) -> int:
    # Python's Monday=0; business hours are keyed Sunday=0.
    return (target_date.weekday() + 1) % 7


def local_date_of(value: datetime, tz: ZoneInfo) -> date:
    return ensure_aware(value).astimezone(tz).date()
