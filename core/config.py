"""
Process-level configuration helpers for the reminder service.

Dispatch settings live in core.reminders.config.DispatchConfig; this module
only covers what the entry point needs at startup (mode, CORS, operator
warnings about missing environment variables).
"""

import os

DEFAULT_APP_URL = "https://app.thekingezekielacademy.com"


def is_dev_mode() -> bool:
    """Check if running in development mode (DEV_MODE env)."""
    return os.getenv("DEV_MODE", "").lower() in ("true", "1", "yes")


def is_production() -> bool:
    """Check if running on Vercel/production (VERCEL_ENV=production)."""
    return os.environ.get("VERCEL_ENV", "").lower() == "production"


def get_api_port() -> int:
    """Get API server port from env or default."""
    return int(os.getenv("API_PORT", "8000"))


def get_app_url() -> str:
    """Base URL of the academy web app, used for deep links."""
    url = os.environ.get("APP_URL") or os.environ.get("REACT_APP_URL")
    return (url or DEFAULT_APP_URL).rstrip("/")


def get_allowed_origins() -> list[str]:
    """
    Get list of allowed CORS origins.

    Includes localhost variants for dev and the production app URL.
    """
    hosts = ["localhost", "127.0.0.1"]
    origins = [f"http://{host}:{port}" for host in hosts for port in (3000, 8000)]

    app_url = get_app_url()
    if app_url not in origins:
        origins.append(app_url)

    return origins


# Required environment variables
# Format: (name, description, required_in_dev)
REQUIRED_ENV_VARS = [
    ("DATABASE_URL", "PostgreSQL connection string", True),
    ("TELEGRAM_BOT_TOKEN", "Telegram bot token for broadcast reminders", True),
    ("CRON_SECRET", "Shared secret for the cron trigger", False),
    ("SENDGRID_API_KEY", "SendGrid key for the email relay", False),
]


def check_required_env_vars() -> tuple[bool, list[str]]:
    """
    Check that required environment variables are set.

    Returns:
        (all_ok, warnings): Tuple of success flag and list of warning messages
    """
    warnings = []
    errors = []
    in_dev = is_dev_mode()

    for name, description, required_in_dev in REQUIRED_ENV_VARS:
        if os.environ.get(name):
            continue
        if is_production() and required_in_dev:
            errors.append(f"  ✗ {name}: Not set ({description})")
        elif required_in_dev or not in_dev:
            warnings.append(f"  ⚠ {name}: Not set ({description})")

    if not os.environ.get("CRON_SECRET"):
        warnings.append(
            "  ⚠ CRON_SECRET not set: the reminder trigger accepts ANY caller"
        )

    if errors:
        for error in errors:
            print(error)
        return False, warnings

    return True, warnings
