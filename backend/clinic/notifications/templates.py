from __future__ import annotations

from typing import Any


EVENT_CONFIRM = "confirm"
EVENT_REMINDER = "reminder"
EVENT_CHANGED = "changed"
EVENT_CANCELED = "canceled"

_SUBJECTS = {
    EVENT_CONFIRM: "Booking confirmed - {clinic_name}",
    EVENT_REMINDER: "Your appointment tomorrow - {clinic_name}",
    EVENT_CHANGED: "Booking changed - {clinic_name}",
    EVENT_CANCELED: "Booking canceled - {clinic_name}",
}

_EMAIL_BODIES = {
    EVENT_CONFIRM: (
        "Dear {patient_name},\n\n"
        "Thank you for booking with {clinic_name}. Your appointment is confirmed.\n\n"
        "Date: {datetime}\n"
        "Menu: {menu_name}\n"
        "Staff: {staff_name}\n\n"
        "Please arrive 10 minutes early.\n"
        "Cancel: {cancel_url}\n"
        "Change: {reschedule_url}\n\n"
        "{clinic_name}"
    ),
    EVENT_REMINDER: (
        "Dear {patient_name},\n\n"
        "This is a reminder of your appointment tomorrow.\n\n"
        "Date: {datetime}\n"
        "Menu: {menu_name}\n"
        "Staff: {staff_name}\n\n"
        "We look forward to seeing you.\n\n"
        "{clinic_name}"
    ),
    EVENT_CHANGED: (
        "Dear {patient_name},\n\n"
        "Your appointment has been changed.\n\n"
        "New date: {datetime}\n"
        "Menu: {menu_name}\n"
        "Staff: {staff_name}\n\n"
        "Cancel: {cancel_url}\n"
        "Change: {reschedule_url}\n\n"
        "{clinic_name}"
    ),
    EVENT_CANCELED: (
        "Dear {patient_name},\n\n"
        "Your appointment on {datetime} has been canceled.\n"
        "We hope to see you again.\n\n"
        "{clinic_name}"
    ),
}

_SHORT_BODIES = {
    EVENT_CONFIRM: "[{clinic_name}] Booking confirmed\n{patient_name}\n{datetime} {menu_name} ({staff_name})\nCancel/change: {cancel_url}",
    EVENT_REMINDER: "[{clinic_name}] Appointment tomorrow\n{patient_name}\n{datetime} {menu_name} ({staff_name})",
    EVENT_CHANGED: "[{clinic_name}] Booking changed\n{patient_name}\nNew: {datetime} {menu_name} ({staff_name})",
    EVENT_CANCELED: "[{clinic_name}] Booking canceled\n{patient_name}\n{datetime} has been canceled.",
}


def render_message(event: str, channel: str, context: dict[str, Any]) -> dict[str, str]:
    values = {"cancel_url": "", "reschedule_url": "", **context}
    if channel == "email":
        return {
            "subject": _SUBJECTS[event].format(**values),
            "body": _EMAIL_BODIES[event].format(**values),
        }
    return {"subject": "", "body": _SHORT_BODIES[event].format(**values)}
