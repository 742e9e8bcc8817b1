from clinic.security.dependencies import require_admin_api_key, require_cron_secret
from clinic.security.magic_links import (
    build_magic_link,
    build_magic_token,
    parse_magic_token,
    verify_magic_token,
)

__all__ = [
    "build_magic_link",
    "build_magic_token",
    "parse_magic_token",
    "require_admin_api_key",
    "require_cron_secret",
    "verify_magic_token",
]
