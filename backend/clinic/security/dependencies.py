import logging
import os

from fastapi import Header, HTTPException, status

from clinic.config import is_dev_env

logger = logging.getLogger("clinic.security")


def require_admin_api_key(
    x_admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
) -> None:
    configured_key = os.getenv("ADMIN_API_KEY", "")

    if not configured_key:
        if is_dev_env():
            logger.warning(
                "ADMIN_API_KEY is not set in dev; allowing admin request without key."
            )
            return
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error_code": "ADMIN_AUTH_NOT_CONFIGURED",
                "human_message": "Admin API key is not configured.",
            },
        )

    if x_admin_key != configured_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error_code": "INVALID_ADMIN_API_KEY",
                "human_message": "Invalid admin API key.",
            },
        )


def require_cron_secret(
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> None:
    configured_secret = os.getenv("CRON_SECRET", "")

    if not configured_secret:
        if is_dev_env():
            logger.warning("CRON_SECRET is not set in dev; allowing cron request.")
            return
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error_code": "CRON_AUTH_NOT_CONFIGURED",
                "human_message": "Cron secret is not configured.",
            },
        )

    if authorization != f"Bearer {configured_secret}":
        logger.warning("Rejected cron request with invalid authorization header.")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error_code": "INVALID_CRON_SECRET",
                "human_message": "Invalid cron secret.",
            },
        )
