from clinic.notifications.channels import contact_capabilities, plan_channels
from clinic.notifications.dispatcher import (
    NotificationDispatcher,
    NotificationResult,
    build_dispatcher,
)
from clinic.notifications.templates import (
    EVENT_CANCELED,
    EVENT_CHANGED,
    EVENT_CONFIRM,
    EVENT_REMINDER,
    render_message,
)

__all__ = [
    "EVENT_CANCELED",
    "EVENT_CHANGED",
    "EVENT_CONFIRM",
    "EVENT_REMINDER",
    "NotificationDispatcher",
    "NotificationResult",
    "build_dispatcher",
    "contact_capabilities",
    "plan_channels",
    "render_message",
]
