import logging
import os
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger("push.config")

DEFAULT_VAPID_SUBJECT = "mailto:admin@lifehabits.app"
DEFAULT_SCHEDULE_TIMEZONE = "Europe/Rome"
DEFAULT_TITLE = "LifeHabits"
DEFAULT_REMINDER_TITLE = "Time for your habits! \U0001F4AA"
DEFAULT_REMINDER_BODY = "Remember to complete your habits today."


@dataclass(frozen=True)
class PushConfig:
    vapid_public_key: str
    vapid_private_key: str
    vapid_subject: str
    schedule_timezone: str
    send_timeout_seconds: float
    dispatch_timeout_seconds: float
    max_workers: int
    ttl_seconds: int
    default_title: str
    reminder_title: str
    reminder_body: str
    dispatch_key: str | None

    @property
    def IsConfigured(self) -> bool:
        return bool(self.vapid_public_key and self.vapid_private_key)

    @property
    def ScheduleZone(self) -> ZoneInfo:
        return ZoneInfo(self.schedule_timezone)


def _ReadStrEnv(name: str, default: str = "") -> str:
    return os.getenv(name, "").strip() or default


def _ReadFloatEnv(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _ReadIntEnv(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _NormalizeVapidSubject(raw: str) -> str:
    if raw.startswith(("mailto:", "https://")):
        return raw
    if "@" in raw:
        return f"mailto:{raw}"
    return DEFAULT_VAPID_SUBJECT


def _ResolveScheduleTimezone(raw: str) -> str:
    try:
        ZoneInfo(raw)
        return raw
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown PUSH_SCHEDULE_TIMEZONE=%s, using %s", raw, DEFAULT_SCHEDULE_TIMEZONE)
        return DEFAULT_SCHEDULE_TIMEZONE


def LoadPushConfig() -> PushConfig:
    config = PushConfig(
        vapid_public_key=_ReadStrEnv("VAPID_PUBLIC_KEY"),
        vapid_private_key=_ReadStrEnv("VAPID_PRIVATE_KEY").replace("\\n", "\n"),
        vapid_subject=_NormalizeVapidSubject(_ReadStrEnv("VAPID_SUBJECT", DEFAULT_VAPID_SUBJECT)),
        schedule_timezone=_ResolveScheduleTimezone(
            _ReadStrEnv("PUSH_SCHEDULE_TIMEZONE", DEFAULT_SCHEDULE_TIMEZONE)
        ),
        send_timeout_seconds=_ReadFloatEnv("PUSH_SEND_TIMEOUT_SECONDS", 10.0),
        dispatch_timeout_seconds=_ReadFloatEnv("PUSH_DISPATCH_TIMEOUT_SECONDS", 60.0),
        max_workers=_ReadIntEnv("PUSH_MAX_WORKERS", 16),
        ttl_seconds=_ReadIntEnv("PUSH_TTL_SECONDS", 86400),
        default_title=_ReadStrEnv("PUSH_DEFAULT_TITLE", DEFAULT_TITLE),
        reminder_title=_ReadStrEnv("PUSH_REMINDER_TITLE", DEFAULT_REMINDER_TITLE),
        reminder_body=_ReadStrEnv("PUSH_REMINDER_BODY", DEFAULT_REMINDER_BODY),
        dispatch_key=_ReadStrEnv("PUSH_DISPATCH_KEY") or None,
    )
    if not config.IsConfigured:
        logger.warning("VAPID keys are not set; push delivery will fail until configured")
    return config
