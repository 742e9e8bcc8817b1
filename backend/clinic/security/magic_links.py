from __future__ import annotations

import base64
import hashlib
import hmac
import json
from datetime import datetime, timedelta, timezone

from clinic import config

MAGIC_LINK_ACTIONS = {"cancel", "reschedule"}
MAGIC_LINK_TTL = timedelta(days=7)


def build_magic_token(
    booking_id: int,
    action: str,
    secret: str,
    now: datetime | None = None,
    ttl: timedelta = MAGIC_LINK_TTL,
) -> str:
    if action not in MAGIC_LINK_ACTIONS:
        raise ValueError(f"Unsupported magic link action: {action}")

    now_utc = now or datetime.now(timezone.utc)
    payload = {
        "booking_id": booking_id,
        "action": action,
        "exp": int((now_utc + ttl).timestamp()),
    }
    payload_json = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    payload_b64 = _urlsafe_b64encode(payload_json.encode("utf-8"))
    signature = hmac.new(secret.encode("utf-8"), payload_b64.encode("utf-8"), hashlib.sha256)
    return f"{payload_b64}.{signature.hexdigest()}"


def parse_magic_token(
    token: str,
    secret: str,
    now: datetime | None = None,
) -> tuple[int, str]:
    try:
        payload_b64, provided_sig = token.split(".", 1)
    except ValueError as exc:
        raise ValueError("Invalid magic link format.") from exc

    expected_sig = hmac.new(
        secret.encode("utf-8"),
        payload_b64.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    if not hmac.compare_digest(expected_sig.encode("utf-8"), provided_sig.encode("utf-8")):
        raise ValueError("Invalid magic link signature.")

    try:
        payload = json.loads(_urlsafe_b64decode(payload_b64).decode("utf-8"))
        booking_id = int(payload.get("booking_id", 0))
        action = str(payload.get("action", ""))
        exp = int(payload.get("exp", 0))
    except (ValueError, TypeError, AttributeError) as exc:
        raise ValueError("Invalid magic link payload.") from exc

    if booking_id <= 0 or action not in MAGIC_LINK_ACTIONS:
        raise ValueError("Invalid magic link payload.")

    now_utc = now or datetime.now(timezone.utc)
    if int(now_utc.timestamp()) > exp:
        raise ValueError("Magic link expired.")
    return booking_id, action


def verify_magic_token(token: str, booking_id: int, action: str, secret: str | None = None) -> bool:
    try:
        token_booking_id, token_action = parse_magic_token(token, secret or config.MAGIC_LINK_SECRET)
    except ValueError:
        return False
    return token_booking_id == booking_id and token_action == action


def build_magic_link(booking_id: int, action: str) -> str:
    token = build_magic_token(booking_id, action, secret=config.MAGIC_LINK_SECRET)
    base_url = config.APP_BASE_URL.rstrip("/")
    return f"{base_url}/{action}?token={token}&booking_id={booking_id}"


def _urlsafe_b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _urlsafe_b64decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)
