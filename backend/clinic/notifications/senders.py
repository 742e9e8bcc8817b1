from __future__ import annotations

import base64
import json
import logging
import smtplib
from email.message import EmailMessage
from typing import Any
from urllib import parse, request

from pydantic import BaseModel

logger = logging.getLogger("clinic.notifications.senders")

TWILIO_MESSAGES_ENDPOINT_TEMPLATE = (
    "https://api.twilio.com/2010-04-01/Accounts/{account_sid}/Messages.json"
)
LINE_PUSH_ENDPOINT = "https://api.line.me/v2/bot/message/push"


class SendResult(BaseModel):
    success: bool
    provider_msg_id: str | None = None
    error: str | None = None


class LoggingSender:
    """Writes the message to the log instead of delivering it."""

    def __init__(self, channel: str):
        self.channel = channel

    def send(self, to: str, subject: str, body: str) -> SendResult:
        logger.info(
            json.dumps(
                {
                    "event": "notification_logged",
                    "channel": self.channel,
                    "to": to,
                    "subject": subject,
                    "body": body,
                },
                ensure_ascii=False,
            )
        )
        return SendResult(success=True)


class SmtpEmailSender:
    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        mail_from: str,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.mail_from = mail_from

    def send(self, to: str, subject: str, body: str) -> SendResult:
        message = EmailMessage()
        message["From"] = self.mail_from
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)

        with smtplib.SMTP(self.host, self.port, timeout=15) as smtp:
            smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password)
            smtp.send_message(message)
        return SendResult(success=True, provider_msg_id=message.get("Message-ID"))


class TwilioSmsSender:
    def __init__(self, account_sid: str, auth_token: str, from_number: str):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number

    def send(self, to: str, subject: str, body: str) -> SendResult:
        endpoint = TWILIO_MESSAGES_ENDPOINT_TEMPLATE.format(
            account_sid=parse.quote(self.account_sid, safe="")
        )
        form_payload = parse.urlencode(
            {"To": to, "From": self.from_number, "Body": body}
        ).encode("utf-8")
        credentials = base64.b64encode(
            f"{self.account_sid}:{self.auth_token}".encode("utf-8")
        ).decode("ascii")

        req = request.Request(
            endpoint,
            data=form_payload,
            headers={
                "Content-Type": "application/x-www-form-urlencoded",
                "Authorization": f"Basic {credentials}",
            },
            method="POST",
        )
        payload = _read_json(req, "Twilio message send failed.")
        sid = payload.get("sid")
        if not isinstance(sid, str) or not sid:
            raise ValueError("Twilio response missing sid.")
        return SendResult(success=True, provider_msg_id=sid)


class LinePushSender:
    def __init__(self, channel_access_token: str):
        self.channel_access_token = channel_access_token

    def send(self, to: str, subject: str, body: str) -> SendResult:
        payload = {"to": to, "messages": [{"type": "text", "text": body}]}
        req = request.Request(
            LINE_PUSH_ENDPOINT,
            data=json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8"),
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.channel_access_token}",
            },
            method="POST",
        )
        _read_json(req, "LINE push failed.")
        return SendResult(success=True)


def _read_json(req: request.Request, failure_message: str) -> dict[str, Any]:
    try:
        with request.urlopen(req, timeout=15) as resp:
            body = resp.read().decode("utf-8")
    except Exception as exc:
        raise ValueError(failure_message) from exc

    if not body.strip():
        return {}
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as exc:
        raise ValueError(f"{failure_message} Invalid JSON response.") from exc
    return payload if isinstance(payload, dict) else {}
