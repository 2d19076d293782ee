from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.modules.auth.deps import NowUtc
from app.modules.push.models import AlertPreference, PushSubscription
from app.modules.push.push_transport import ShortEndpoint
from app.modules.push.schedule import NormalizeTime, ParseAlertTimes, SerializeAlertTimes

logger = logging.getLogger("push.subscriptions")

DEFAULT_ALERTS_ENABLED = True


def _NormalizeEndpoint(value: str | None) -> str:
    endpoint = (value or "").strip()
    if not endpoint.startswith("https://"):
        raise ValueError("Subscription endpoint is invalid.")
    return endpoint


def _FindSubscription(db: Session, user_id: str, endpoint: str) -> PushSubscription | None:
    return (
        db.query(PushSubscription)
        .filter(PushSubscription.UserId == user_id, PushSubscription.Endpoint == endpoint)
        .first()
    )


def RegisterSubscription(
    db: Session,
    *,
    user_id: str,
    endpoint: str,
    p256dh_key: str,
    auth_key: str,
    user_agent: str | None = None,
) -> PushSubscription:
    """Upsert by (user, endpoint); registering the same device twice keeps one row."""
    normalized_endpoint = _NormalizeEndpoint(endpoint)
    p256dh = (p256dh_key or "").strip()
    auth = (auth_key or "").strip()
    if not p256dh or not auth:
        raise ValueError("Subscription keys are required.")

    now = NowUtc()
    record = _FindSubscription(db, user_id, normalized_endpoint)
    created = record is None
    if created:
        record = PushSubscription(UserId=user_id, Endpoint=normalized_endpoint, CreatedAt=now)

    record.P256dhKey = p256dh
    record.AuthKey = auth
    record.UserAgent = (user_agent or "").strip()[:400] or None
    record.UpdatedAt = now
    db.add(record)
    try:
        db.commit()
    except IntegrityError:
        # A concurrent registration of the same endpoint won the insert.
        db.rollback()
        record = _FindSubscription(db, user_id, normalized_endpoint)
        if record is None:
            raise
        record.P256dhKey = p256dh
        record.AuthKey = auth
        record.UpdatedAt = now
        db.add(record)
        db.commit()
        created = False
    db.refresh(record)

    EnsureAlertPreference(db, user_id)
    logger.info(
        "push subscription %s user_id=%s endpoint=%s",
        "registered" if created else "refreshed",
        user_id,
        ShortEndpoint(normalized_endpoint),
    )
    return record


def UnregisterSubscription(db: Session, *, user_id: str, endpoint: str) -> int:
    normalized_endpoint = (endpoint or "").strip()
    if not normalized_endpoint:
        raise ValueError("Subscription endpoint is required.")
    deleted = (
        db.query(PushSubscription)
        .filter(
            PushSubscription.UserId == user_id,
            PushSubscription.Endpoint == normalized_endpoint,
        )
        .delete(synchronize_session=False)
    )
    db.commit()
    return int(deleted or 0)


def ListSubscriptions(db: Session, *, user_id: str) -> list[PushSubscription]:
    return (
        db.query(PushSubscription)
        .filter(PushSubscription.UserId == user_id)
        .order_by(PushSubscription.CreatedAt.desc())
        .all()
    )


def GetAlertPreference(db: Session, user_id: str) -> AlertPreference | None:
    return db.query(AlertPreference).filter(AlertPreference.UserId == user_id).first()


def EnsureAlertPreference(db: Session, user_id: str) -> AlertPreference:
    existing = GetAlertPreference(db, user_id)
    if existing:
        return existing

    now = NowUtc()
    created = AlertPreference(
        UserId=user_id,
        IsEnabled=DEFAULT_ALERTS_ENABLED,
        AlertTimesJson=None,
        CreatedAt=now,
        UpdatedAt=now,
    )
    db.add(created)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = GetAlertPreference(db, user_id)
        if existing is None:
            raise
        return existing
    db.refresh(created)
    return created


def _NormalizeAlertTimes(values: list) -> list[str]:
    times: set[str] = set()
    for value in values:
        normalized = NormalizeTime(str(value).strip())
        if not normalized:
            raise ValueError("Alert times must be in HH:MM format.")
        times.add(normalized)
    return sorted(times)


def UpdateAlertPreference(db: Session, user_id: str, payload: dict) -> AlertPreference:
    alert_times = None
    if payload.get("AlertTimes") is not None:
        alert_times = _NormalizeAlertTimes(payload.get("AlertTimes") or [])

    record = EnsureAlertPreference(db, user_id)

    if payload.get("IsEnabled") is not None:
        record.IsEnabled = bool(payload.get("IsEnabled"))
    if alert_times is not None:
        record.AlertTimesJson = SerializeAlertTimes(alert_times)

    record.UpdatedAt = NowUtc()
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def BuildAlertPreferencePayload(record: AlertPreference | None) -> dict:
    """A missing row reads as the row EnsureAlertPreference would create."""
    if record is None:
        return {"IsEnabled": DEFAULT_ALERTS_ENABLED, "AlertTimes": [], "UpdatedAt": None}
    return {
        "IsEnabled": bool(record.IsEnabled),
        "AlertTimes": ParseAlertTimes(record.AlertTimesJson),
        "UpdatedAt": record.UpdatedAt,
    }
