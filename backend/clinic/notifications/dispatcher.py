from __future__ import annotations

import json
import logging
from typing import Any, Callable, Protocol
from zoneinfo import ZoneInfo

from pydantic import BaseModel

from clinic import config
from clinic.notifications.channels import (
    CHANNEL_EMAIL,
    CHANNEL_LINE,
    CHANNEL_SMS,
    MODE_ALL,
    MODE_FALLBACK,
    contact_capabilities,
    plan_channels,
)
from clinic.notifications.senders import (
    LinePushSender,
    LoggingSender,
    SendResult,
    SmtpEmailSender,
    TwilioSmsSender,
)
from clinic.notifications.templates import EVENT_CHANGED, EVENT_CONFIRM, render_message
from clinic.scheduling.timeutils import ensure_aware

logger = logging.getLogger("clinic.notifications")


class Sender(Protocol):
    def send(self, to: str, subject: str, body: str) -> SendResult: ...


class NotificationResult(BaseModel):
    success: bool
    channel: str
    event: str
    provider_msg_id: str | None = None
    error: str | None = None


class NotificationDispatcher:
    """Sends booking notices over the patient's channels and logs each attempt."""

    def __init__(
        self,
        senders: dict[str, Sender],
        clinic_name: str,
        timezone: str,
        link_builder: Callable[[int, str], str] | None = None,
        mode: str = MODE_ALL,
    ):
        self.senders = senders
        self.clinic_name = clinic_name
        self.tz = ZoneInfo(timezone)
        self.link_builder = link_builder
        self.mode = mode

    def notify(self, store: Any, booking: Any, event: str) -> list[NotificationResult]:
        """Never raises; failures are logged and reported in the results."""
        try:
            return self._notify(store, booking, event)
        except Exception:
            logger.exception(
                "Notification dispatch failed for booking_id=%s event=%s",
                getattr(booking, "id", None),
                event,
            )
            return []

    def _notify(self, store: Any, booking: Any, event: str) -> list[NotificationResult]:
        patient = store.get_patient(booking.patient_id)
        if patient is None:
            logger.warning("Booking %s has no patient; skipping %s notice", booking.id, event)
            return []

        available = contact_capabilities(patient)
        requested = set(booking.contact_channels or [])
        if requested:
            # LINE is opt-in through the patient profile rather than per booking
            available &= requested | {CHANNEL_LINE}

        channels = plan_channels(available, patient.preferred_contact, self.mode)
        if not channels:
            logger.warning("No notification channel for booking_id=%s", booking.id)
            return []

        context = self._build_context(store, booking, patient, event)
        results: list[NotificationResult] = []
        for channel in channels:
            result = self._send_one(channel, patient, event, context)
            results.append(result)
            self._log_attempt(store, booking.id, result)
            if self.mode == MODE_FALLBACK and result.success:
                break
        return results

    def _send_one(
        self,
        channel: str,
        patient: Any,
        event: str,
        context: dict[str, Any],
    ) -> NotificationResult:
        sender = self.senders.get(channel)
        recipient = _recipient_for(channel, patient)
        if sender is None or not recipient:
            return NotificationResult(
                success=False,
                channel=channel,
                event=event,
                error="Channel not configured",
            )

        message = render_message(event, channel, context)
        try:
            sent = sender.send(recipient, message["subject"], message["body"])
        except Exception as exc:
            logger.exception("Sending %s notice over %s failed", event, channel)
            return NotificationResult(success=False, channel=channel, event=event, error=str(exc))

        return NotificationResult(
            success=sent.success,
            channel=channel,
            event=event,
            provider_msg_id=sent.provider_msg_id,
            error=sent.error,
        )

    def _log_attempt(self, store: Any, booking_id: int, result: NotificationResult) -> None:
        try:
            store.add_notification_log(
                booking_id=booking_id,
                channel=result.channel,
                event=result.event,
                result="success" if result.success else f"error: {result.error}",
                provider_msg_id=result.provider_msg_id,
            )
        except Exception:
            logger.exception("Failed to record notification log for booking_id=%s", booking_id)

    def _build_context(self, store: Any, booking: Any, patient: Any, event: str) -> dict[str, Any]:
        menu = store.get_menu(booking.menu_id)
        staff = store.get_staff(booking.staff_id)
        local_start = ensure_aware(booking.start_time).astimezone(self.tz)
        context = {
            "clinic_name": self.clinic_name,
            "patient_name": patient.name,
            "datetime": local_start.strftime("%Y-%m-%d (%a) %H:%M"),
            "menu_name": getattr(menu, "name", None) or "Treatment",
            "staff_name": getattr(staff, "name", None) or "Staff",
        }
        if self.link_builder is not None and event in {EVENT_CONFIRM, EVENT_CHANGED}:
            context["cancel_url"] = self.link_builder(booking.id, "cancel")
            context["reschedule_url"] = self.link_builder(booking.id, "reschedule")
        return context


def _recipient_for(channel: str, patient: Any) -> str | None:
    if channel == CHANNEL_EMAIL:
        return getattr(patient, "email", None)
    if channel == CHANNEL_SMS:
        return getattr(patient, "phone", None)
    if channel == CHANNEL_LINE:
        return getattr(patient, "line_user_id", None)
    return None


def build_senders() -> dict[str, Sender]:
    senders: dict[str, Sender] = {
        CHANNEL_EMAIL: LoggingSender(CHANNEL_EMAIL),
        CHANNEL_SMS: LoggingSender(CHANNEL_SMS),
        CHANNEL_LINE: LoggingSender(CHANNEL_LINE),
    }
    if config.is_dev_env():
        return senders

    if config.SMTP_HOST:
        senders[CHANNEL_EMAIL] = SmtpEmailSender(
            host=config.SMTP_HOST,
            port=config.SMTP_PORT,
            username=config.SMTP_USERNAME,
            password=config.SMTP_PASSWORD,
            mail_from=config.MAIL_FROM,
        )
    if config.TWILIO_ACCOUNT_SID and config.TWILIO_AUTH_TOKEN and config.TWILIO_FROM_NUMBER:
        senders[CHANNEL_SMS] = TwilioSmsSender(
            account_sid=config.TWILIO_ACCOUNT_SID,
            auth_token=config.TWILIO_AUTH_TOKEN,
            from_number=config.TWILIO_FROM_NUMBER,
        )
    if config.LINE_CHANNEL_ACCESS_TOKEN:
        senders[CHANNEL_LINE] = LinePushSender(config.LINE_CHANNEL_ACCESS_TOKEN)

    logger.info(
        json.dumps(
            {
                "event": "notification_senders_configured",
                "senders": {channel: type(sender).__name__ for channel, sender in senders.items()},
            }
        )
    )
    return senders


def build_dispatcher(link_builder: Callable[[int, str], str] | None = None) -> NotificationDispatcher:
    return NotificationDispatcher(
        senders=build_senders(),
        clinic_name=config.CLINIC_NAME,
        timezone=config.CLINIC_TIMEZONE,
        link_builder=link_builder,
    )
