from __future__ import annotations

from typing import Iterable


CHANNEL_LINE = "line"
CHANNEL_EMAIL = "email"
CHANNEL_SMS = "sms"

CHANNEL_PRIORITY = (CHANNEL_LINE, CHANNEL_EMAIL, CHANNEL_SMS)

MODE_FALLBACK = "fallback"
MODE_ALL = "all"


def contact_capabilities(patient) -> set[str]:
    capabilities = set()
    if getattr(patient, "line_user_id", None):
        capabilities.add(CHANNEL_LINE)
    if getattr(patient, "email", None):
        capabilities.add(CHANNEL_EMAIL)
    if getattr(patient, "phone", None):
        capabilities.add(CHANNEL_SMS)
    return capabilities


def plan_channels(
    available: Iterable[str],
    preference: str | None = None,
    mode: str = MODE_FALLBACK,
) -> list[str]:
    """
    Ordered channels to attempt.

    Priority is line > email > sms; an available preferred channel moves to
    the front. In fallback mode the caller stops at the first success, in
    "all" mode it sends on every returned channel.
    """
    if mode not in {MODE_FALLBACK, MODE_ALL}:
        raise ValueError(f"Unknown notification mode: {mode}")

    present = set(available)
    ordered = [channel for channel in CHANNEL_PRIORITY if channel in present]
    if preference in present:
        ordered.remove(preference)
        ordered.insert(0, preference)
    return ordered
