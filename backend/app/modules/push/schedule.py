from __future__ import annotations

import json
import re
from datetime import datetime
from zoneinfo import ZoneInfo


def IsValidTime(value: str | None) -> bool:
    if not value:
        return False
    if not re.fullmatch(r"\d{2}:\d{2}", value):
        return False
    try:
        datetime.strptime(value, "%H:%M")
        return True
    except ValueError:
        return False


def NormalizeTime(value: str | None) -> str | None:
    """Return HH:MM for a valid 24h time string, accepting HH:MM:SS from the store."""
    if value and re.fullmatch(r"\d{2}:\d{2}:\d{2}", value):
        value = value[:5]
    if not IsValidTime(value):
        return None
    return datetime.strptime(value, "%H:%M").strftime("%H:%M")


def TimeMatches(run_time: str, target_time: str | None) -> bool:
    normalized_run = NormalizeTime(run_time)
    normalized_target = NormalizeTime(target_time)
    if not normalized_run or not normalized_target:
        return False
    return normalized_run == normalized_target


def HourMatches(run_time: str, target_time: str | None) -> bool:
    normalized_run = NormalizeTime(run_time)
    normalized_target = NormalizeTime(target_time)
    if not normalized_run or not normalized_target:
        return False
    return normalized_run[:2] == normalized_target[:2]


def CurrentScheduleTime(zone: ZoneInfo, now: datetime | None = None) -> str:
    moment = now.astimezone(zone) if now else datetime.now(tz=zone)
    return moment.strftime("%H:%M")


def ResolveRunTime(simulated_time: str | None, zone: ZoneInfo) -> str:
    """Simulated time wins over the clock; raises ValueError when it is malformed."""
    if simulated_time is not None and simulated_time != "":
        normalized = NormalizeTime(simulated_time)
        if not normalized:
            raise ValueError("simulated_time must be in HH:MM format.")
        return normalized
    return CurrentScheduleTime(zone)


def ParseAlertTimes(value: str | None) -> list[str]:
    if not value:
        return []
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        return []
    if not isinstance(parsed, list):
        return []
    times = {NormalizeTime(str(item)) for item in parsed}
    return sorted(item for item in times if item)


def SerializeAlertTimes(values: list[str]) -> str:
    return json.dumps(values, separators=(",", ":"))
