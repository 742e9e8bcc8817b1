from __future__ import annotations

from typing import Any

from clinic.scheduling.timeutils import ensure_aware


def serialize_booking(
    booking: Any,
    menu: Any | None = None,
    staff: Any | None = None,
    patient: Any | None = None,
) -> dict[str, Any]:
    payload = {
        "booking_id": booking.id,
        "patient_id": booking.patient_id,
        "menu_id": booking.menu_id,
        "staff_id": booking.staff_id,
        "start_time": ensure_aware(booking.start_time).isoformat(),
        "end_time": ensure_aware(booking.end_time).isoformat(),
        "status": booking.status,
        "contact_channels": list(booking.contact_channels or []),
    }
    if menu is not None:
        payload["menu_name"] = menu.name
        payload["duration_min"] = menu.duration_min
    if staff is not None:
        payload["staff_name"] = staff.name
    if patient is not None:
        payload["patient_name"] = patient.name
    return payload


def serialize_booking_with_relations(store: Any, booking: Any) -> dict[str, Any]:
    return serialize_booking(
        booking,
        menu=store.get_menu(booking.menu_id),
        staff=store.get_staff(booking.staff_id),
        patient=store.get_patient(booking.patient_id),
    )


def error_response(error_code: str, human_message: str, **extra: Any) -> dict[str, Any]:
    return {"ok": False, "error_code": error_code, "human_message": human_message, **extra}
