import json
import logging
import time
import uuid
from datetime import date
from typing import Any, Callable

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from clinic import config
from clinic.admin.staff import (
    BusinessHoursArgs,
    CreateStaffArgs,
    StaffScheduleArgs,
    UpdateStaffArgs,
    create_staff,
    list_staff,
    serialize_business_hours,
    serialize_staff,
    serialize_staff_schedule,
    update_staff,
    upsert_business_hours,
    upsert_staff_schedule,
)
from clinic.bookings.create_booking import create_booking, parse_create_booking_args
from clinic.bookings.list_bookings import list_bookings, parse_list_bookings_args
from clinic.bookings.list_slots import (
    list_available_slots,
    map_validation_error,
    parse_slot_query_args,
)
from clinic.bookings.manage_booking import (
    CancelBookingArgs,
    RescheduleBookingArgs,
    cancel_booking,
    get_booking_details,
    reschedule_booking,
)
from clinic.db.session import SessionLocal
from clinic.notifications import build_dispatcher
from clinic.reminders import send_reminders
from clinic.scheduling.errors import BookingConflictError, StorageError
from clinic.scheduling.locks import StaffLockRegistry
from clinic.scheduling.store import ClinicStore
from clinic.security.dependencies import require_admin_api_key, require_cron_secret
from clinic.security.magic_links import build_magic_link


def configure_logging() -> logging.Logger:
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    return logging.getLogger("clinic.backend")


logger = configure_logging()
app = FastAPI(title="Clinic Booking Backend")

settings = config.load_scheduling_settings()
notifier = build_dispatcher(link_builder=build_magic_link)
staff_locks = StaffLockRegistry()

ERROR_STATUS = {
    "INVALID_ARGS": 400,
    "INVALID_DATE": 400,
    "OUTSIDE_BUSINESS_HOURS": 400,
    "PAST_START_TIME": 400,
    "NO_OP_CHANGE": 400,
    "TIME_CONFLICT": 400,
    "NO_STAFF_AVAILABLE": 400,
    "BOOKING_ALREADY_CANCELED": 400,
    "INVALID_MAGIC_LINK": 401,
    "BOOKING_NOT_FOUND": 404,
    "MENU_NOT_FOUND": 404,
    "STAFF_NOT_FOUND": 404,
    "BOOKING_CONFLICT": 409,
    "STORAGE_UNAVAILABLE": 503,
    "SYSTEM_DOWN": 500,
}


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    start_time = time.perf_counter()

    response = await call_next(request)

    duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
    response.headers["x-request-id"] = request_id

    logger.info(
        json.dumps(
            {
                "event": "http_request",
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            }
        )
    )
    return response


def _error(error_code: str, human_message: str) -> JSONResponse:
    return JSONResponse(
        status_code=ERROR_STATUS.get(error_code, 400),
        content={"ok": False, "error_code": error_code, "human_message": human_message},
    )


def _invalid_args(exc: ValidationError) -> JSONResponse:
    return JSONResponse(content={"ok": False, **map_validation_error(exc)}, status_code=400)


def _respond(result: dict[str, Any]) -> JSONResponse:
    if result.get("ok"):
        return JSONResponse(content=result)
    return JSONResponse(status_code=ERROR_STATUS.get(result.get("error_code"), 400), content=result)


def _run_with_store(action: str, handler: Callable[[ClinicStore], dict[str, Any]]) -> JSONResponse:
    db = SessionLocal()
    try:
        return _respond(handler(ClinicStore(db)))
    except BookingConflictError:
        logger.info(json.dumps({"event": "booking_conflict", "action": action}))
        return _error(
            "BOOKING_CONFLICT",
            "That time was just taken by another booking. Please choose another slot.",
        )
    except StorageError:
        logger.exception("Storage unavailable while trying to %s", action)
        return _error("STORAGE_UNAVAILABLE", f"Temporary issue trying to {action}. Please retry.")
    except Exception:
        logger.exception("Unexpected failure while trying to %s", action)
        db.rollback()
        return _error("SYSTEM_DOWN", f"Temporary issue trying to {action}.")
    finally:
        db.close()


@app.get("/health")
async def health():
    return JSONResponse(content={"ok": True})


@app.get("/v1/menus")
def public_list_menus() -> JSONResponse:
    def handler(store: ClinicStore) -> dict[str, Any]:
        menus = [
            {
                "id": menu.id,
                "name": menu.name,
                "duration_min": menu.duration_min,
                "description": menu.description,
            }
            for menu in store.list_menus()
        ]
        return {"ok": True, "data": {"menus": menus}}

    return _run_with_store("load menus", handler)


@app.get("/v1/staff")
def public_list_staff() -> JSONResponse:
    def handler(store: ClinicStore) -> dict[str, Any]:
        staff = [
            {"id": member.id, "name": member.name}
            for member in store.list_staff(is_active=True, is_public=True)
        ]
        return {"ok": True, "data": {"staff": staff}}

    return _run_with_store("load staff", handler)


@app.get("/v1/business-hours")
def public_business_hours() -> JSONResponse:
    def handler(store: ClinicStore) -> dict[str, Any]:
        hours = [serialize_business_hours(row) for row in store.list_all_business_hours()]
        return {"ok": True, "data": {"business_hours": hours}}

    return _run_with_store("load business hours", handler)


@app.get("/v1/slots")
def public_list_slots(request: Request) -> JSONResponse:
    try:
        args = parse_slot_query_args(dict(request.query_params))
    except ValidationError as exc:
        return _invalid_args(exc)

    return _run_with_store(
        "load available slots",
        lambda store: list_available_slots(store, args, settings),
    )


@app.post("/v1/bookings")
def public_create_booking(payload: dict[str, Any]) -> JSONResponse:
    try:
        args = parse_create_booking_args(payload)
    except ValidationError as exc:
        return _invalid_args(exc)

    return _run_with_store(
        "create booking",
        lambda store: create_booking(store, args, settings, staff_locks, notifier),
    )


@app.get("/v1/bookings/{booking_id}")
def public_get_booking(booking_id: int, token: str = "") -> JSONResponse:
    return _run_with_store(
        "load booking",
        lambda store: get_booking_details(store, booking_id, token),
    )


@app.post("/v1/bookings/{booking_id}/reschedule")
def public_reschedule_booking(booking_id: int, payload: dict[str, Any]) -> JSONResponse:
    try:
        args = RescheduleBookingArgs.model_validate(payload)
    except ValidationError as exc:
        return _invalid_args(exc)

    return _run_with_store(
        "reschedule booking",
        lambda store: reschedule_booking(store, booking_id, args, settings, staff_locks, notifier),
    )


@app.post("/v1/bookings/{booking_id}/cancel")
def public_cancel_booking(booking_id: int, payload: dict[str, Any]) -> JSONResponse:
    try:
        args = CancelBookingArgs.model_validate(payload)
    except ValidationError as exc:
        return _invalid_args(exc)

    return _run_with_store(
        "cancel booking",
        lambda store: cancel_booking(store, booking_id, args, notifier),
    )


@app.get("/v1/admin/bookings", dependencies=[Depends(require_admin_api_key)])
def admin_list_bookings(request: Request) -> JSONResponse:
    try:
        args = parse_list_bookings_args(dict(request.query_params))
    except ValidationError as exc:
        return _invalid_args(exc)

    return _run_with_store("list bookings", lambda store: list_bookings(store, args, settings))


@app.post("/v1/admin/staff", dependencies=[Depends(require_admin_api_key)])
def admin_create_staff(payload: dict[str, Any]) -> JSONResponse:
    try:
        args = CreateStaffArgs.model_validate(payload)
    except ValidationError as exc:
        return _invalid_args(exc)

    def handler(store: ClinicStore) -> dict[str, Any]:
        staff = create_staff(db=store.db, args=args)
        return {"ok": True, "data": {"staff": serialize_staff(staff)}}

    return _run_with_store("create staff", handler)


@app.get("/v1/admin/staff", dependencies=[Depends(require_admin_api_key)])
def admin_list_staff() -> JSONResponse:
    def handler(store: ClinicStore) -> dict[str, Any]:
        staff = list_staff(db=store.db)
        return {"ok": True, "data": {"staff": [serialize_staff(member) for member in staff]}}

    return _run_with_store("list staff", handler)


@app.patch("/v1/admin/staff/{staff_id}", dependencies=[Depends(require_admin_api_key)])
def admin_update_staff(staff_id: int, payload: dict[str, Any]) -> JSONResponse:
    try:
        args = UpdateStaffArgs.model_validate(payload)
    except ValidationError as exc:
        return _invalid_args(exc)

    def handler(store: ClinicStore) -> dict[str, Any]:
        staff = update_staff(db=store.db, staff_id=staff_id, args=args)
        if staff is None:
            return {"ok": False, "error_code": "STAFF_NOT_FOUND", "human_message": "Staff member not found."}
        return {"ok": True, "data": {"staff": serialize_staff(staff)}}

    return _run_with_store("update staff", handler)


@app.put(
    "/v1/admin/staff/{staff_id}/schedules/{schedule_date}",
    dependencies=[Depends(require_admin_api_key)],
)
def admin_upsert_staff_schedule(staff_id: int, schedule_date: str, payload: dict[str, Any]) -> JSONResponse:
    try:
        args = StaffScheduleArgs.model_validate(payload)
    except ValidationError as exc:
        return _invalid_args(exc)

    try:
        target_date = date.fromisoformat(schedule_date)
    except ValueError:
        return _error("INVALID_DATE", "Schedule date must be YYYY-MM-DD.")

    def handler(store: ClinicStore) -> dict[str, Any]:
        schedule = upsert_staff_schedule(db=store.db, staff_id=staff_id, target_date=target_date, args=args)
        if schedule is None:
            return {"ok": False, "error_code": "STAFF_NOT_FOUND", "human_message": "Staff member not found."}
        return {"ok": True, "data": {"schedule": serialize_staff_schedule(schedule)}}

    return _run_with_store("save staff schedule", handler)


@app.put("/v1/admin/business-hours/{weekday}", dependencies=[Depends(require_admin_api_key)])
def admin_upsert_business_hours(weekday: int, payload: dict[str, Any]) -> JSONResponse:
    if weekday < 0 or weekday > 6:
        return _error("INVALID_ARGS", "Invalid args: weekday must be between 0 (Sunday) and 6 (Saturday).")
    try:
        args = BusinessHoursArgs.model_validate(payload)
    except ValidationError as exc:
        return _invalid_args(exc)

    def handler(store: ClinicStore) -> dict[str, Any]:
        hours = upsert_business_hours(db=store.db, weekday=weekday, args=args)
        return {"ok": True, "data": {"business_hours": serialize_business_hours(hours)}}

    return _run_with_store("save business hours", handler)


@app.post("/v1/cron/reminders", dependencies=[Depends(require_cron_secret)])
def cron_send_reminders() -> JSONResponse:
    return _run_with_store(
        "send reminders",
        lambda store: {"ok": True, "data": send_reminders(store, notifier, settings)},
    )
