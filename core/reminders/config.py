"""
Dispatch configuration.

Built once per invocation from the environment and passed explicitly to the
engine; nothing below this module reads os.environ.
"""

import os
from dataclasses import dataclass, field
from datetime import timedelta

from core.config import DEFAULT_APP_URL

from .kinds import DEFAULT_TOLERANCE, ReminderKind

DEFAULT_TELEGRAM_CHANNEL = "@LIVECLASSREMINDER"
DEFAULT_TELEGRAM_API_BASE = "https://api.telegram.org"

AUTH_MODES = ("cron", "signed", "any")


class ConfigurationError(Exception):
    """Raised when required dispatch configuration is missing or invalid."""

    pass


def _split_ids(raw: str | None) -> tuple[str, ...]:
    """Parse a comma-separated destination list, dropping blanks."""
    if not raw:
        return ()
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def _env_flag(env: dict, name: str) -> bool:
    return env.get(name, "").lower() in ("true", "1", "yes")


def _env_number(env: dict, name: str, default: float) -> float:
    raw = env.get(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")
    if value < 0:
        raise ConfigurationError(f"{name} must not be negative")
    return value


def _tolerance_overrides(raw: str | None) -> dict:
    """
    Parse per-kind tolerances such as "2m_before=1,start=3" (minutes).

    Raises:
        ConfigurationError: On an unknown kind or a bad number
    """
    overrides = {}
    for item in _split_ids(raw):
        key, sep, minutes = item.partition("=")
        if not sep:
            raise ConfigurationError(
                f"REMINDER_TOLERANCE_OVERRIDES entry {item!r} must look like kind=minutes"
            )
        try:
            kind = ReminderKind.from_key(key.strip())
        except ValueError:
            raise ConfigurationError(f"Unknown reminder kind {key.strip()!r}")
        try:
            value = float(minutes)
        except ValueError:
            raise ConfigurationError(
                f"Tolerance for {kind.key} must be a number, got {minutes.strip()!r}"
            )
        if value < 0:
            raise ConfigurationError(f"Tolerance for {kind.key} must not be negative")
        overrides[kind] = timedelta(minutes=value)
    return overrides


@dataclass(frozen=True)
class DispatchConfig:
    """Immutable settings for one reminder dispatch run."""

    telegram_bot_token: str
    app_url: str
    email_endpoint_url: str
    telegram_group_ids: tuple[str, ...] = ()
    telegram_channel_id: str = DEFAULT_TELEGRAM_CHANNEL
    telegram_api_base: str = DEFAULT_TELEGRAM_API_BASE
    lookahead: timedelta = timedelta(hours=48)
    tolerance: timedelta = DEFAULT_TOLERANCE
    display_timezone: str = "UTC"
    cron_secret: str | None = None
    signing_keys: tuple[str, ...] = ()
    auth_mode: str = "any"
    strict_signature: bool = False
    run_lock: bool = False
    http_timeout: float = 15.0
    # Per-kind overrides of the shared tolerance
    tolerance_overrides: dict = field(default_factory=dict)

    def __post_init__(self):
        if self.auth_mode not in AUTH_MODES:
            raise ConfigurationError(
                f"REMINDER_AUTH_MODE must be one of {', '.join(AUTH_MODES)}"
            )

    def tolerance_for(self, kind: ReminderKind) -> timedelta:
        return self.tolerance_overrides.get(kind, self.tolerance)

    @property
    def narrowest_tolerance(self) -> timedelta:
        """Smallest tolerance of any kind; bounds the safe trigger interval."""
        return min([self.tolerance, *self.tolerance_overrides.values()])

    def broadcast_destinations(self, kind: ReminderKind) -> tuple[str, ...]:
        """
        Destinations for a broadcast kind.

        Class start goes to every configured group; countdowns go to the
        single default channel. Direct kinds have no broadcast destinations.
        """
        if not kind.is_broadcast:
            return ()
        if kind is ReminderKind.start:
            return self.telegram_group_ids
        return (self.telegram_channel_id,)

    @property
    def has_cron_secret(self) -> bool:
        return bool(self.cron_secret)

    @classmethod
    def from_env(cls, env: dict | None = None) -> "DispatchConfig":
        """
        Build configuration from environment variables.

        Raises:
            ConfigurationError: If DATABASE_URL or TELEGRAM_BOT_TOKEN is missing
        """
        env = dict(os.environ if env is None else env)

        missing = [
            name for name in ("DATABASE_URL", "TELEGRAM_BOT_TOKEN") if not env.get(name)
        ]
        if missing:
            raise ConfigurationError(
                "Missing required environment variables: " + ", ".join(missing)
            )

        app_url = (env.get("APP_URL") or env.get("REACT_APP_URL") or "").rstrip("/")
        if not app_url:
            app_url = DEFAULT_APP_URL

        signing_keys = tuple(
            key
            for key in (
                env.get("QSTASH_CURRENT_SIGNING_KEY"),
                env.get("QSTASH_NEXT_SIGNING_KEY"),
            )
            if key
        )

        return cls(
            telegram_bot_token=env["TELEGRAM_BOT_TOKEN"],
            app_url=app_url,
            email_endpoint_url=env.get("EMAIL_ENDPOINT_URL")
            or f"{app_url}/api/send-email",
            telegram_group_ids=_split_ids(
                env.get("TELEGRAM_GROUP_IDS") or env.get("TELEGRAM_GROUP_ID")
            ),
            telegram_channel_id=env.get("TELEGRAM_CHANNEL_ID")
            or env.get("TELEGRAM_CHANNEL")
            or DEFAULT_TELEGRAM_CHANNEL,
            telegram_api_base=(
                env.get("TELEGRAM_API_BASE") or DEFAULT_TELEGRAM_API_BASE
            ).rstrip("/"),
            lookahead=timedelta(hours=_env_number(env, "REMINDER_LOOKAHEAD_HOURS", 48)),
            tolerance=timedelta(
                minutes=_env_number(env, "REMINDER_TOLERANCE_MINUTES", 5)
            ),
            display_timezone=env.get("REMINDER_DISPLAY_TIMEZONE") or "UTC",
            cron_secret=env.get("CRON_SECRET") or None,
            signing_keys=signing_keys,
            auth_mode=(env.get("REMINDER_AUTH_MODE") or "any").lower(),
            strict_signature=_env_flag(env, "REMINDER_STRICT_SIGNATURE"),
            run_lock=_env_flag(env, "REMINDER_RUN_LOCK"),
            tolerance_overrides=_tolerance_overrides(
                env.get("REMINDER_TOLERANCE_OVERRIDES")
            ),
        )
