from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from app.modules.auth.deps import NowUtc
from app.modules.push.eligibility import FilterEligibleUserIds
from app.modules.push.models import NotificationRule
from app.modules.push.resolver import IsCoachClient, ResolveCoachClientIds
from app.modules.push.schedule import NormalizeTime
from app.modules.push.store import PushStore

logger = logging.getLogger("push.rules")


def MatchRulesForTime(store: PushStore, run_time: str) -> list[NotificationRule]:
    """Rules whose scheduled time equals run_time exactly (minute granularity)."""
    return store.ListRulesForTime(run_time)


def ResolveRuleRecipients(store: PushStore, rule: NotificationRule) -> set[str]:
    if rule.ClientId:
        candidates = {rule.ClientId}
    else:
        candidates = ResolveCoachClientIds(store, rule.CoachId)
    if not candidates:
        return set()
    return FilterEligibleUserIds(store, candidates)


def _RequireTime(value: str) -> str:
    normalized = NormalizeTime((value or "").strip())
    if not normalized:
        raise ValueError("Scheduled time must be in HH:MM format.")
    return normalized


def _RequireMessage(value: str) -> str:
    message = (value or "").strip()
    if not message:
        raise ValueError("Message is required.")
    return message


def ListRulesForCoach(
    db: Session,
    *,
    coach_id: str,
    client_id: str | None = None,
    global_only: bool = False,
) -> list[NotificationRule]:
    query = db.query(NotificationRule).filter(NotificationRule.CoachId == coach_id)
    if global_only:
        query = query.filter(NotificationRule.ClientId.is_(None))
    elif client_id:
        query = query.filter(NotificationRule.ClientId == client_id)
    return query.order_by(NotificationRule.ScheduledTime, NotificationRule.Id).all()


def CreateRule(
    db: Session,
    *,
    coach_id: str,
    scheduled_time: str,
    message: str,
    client_id: str | None = None,
) -> NotificationRule:
    normalized_time = _RequireTime(scheduled_time)
    normalized_message = _RequireMessage(message)
    normalized_client_id = (client_id or "").strip() or None
    if normalized_client_id and not IsCoachClient(PushStore(db), coach_id, normalized_client_id):
        raise ValueError("Client not found")

    now = NowUtc()
    record = NotificationRule(
        CoachId=coach_id,
        ClientId=normalized_client_id,
        ScheduledTime=normalized_time,
        Message=normalized_message,
        CreatedAt=now,
        UpdatedAt=now,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info(
        "notification rule created id=%s coach_id=%s scope=%s time=%s",
        record.Id,
        coach_id,
        "personal" if normalized_client_id else "global",
        normalized_time,
    )
    return record


def _GetOwnedRule(db: Session, coach_id: str, rule_id: int) -> NotificationRule | None:
    return (
        db.query(NotificationRule)
        .filter(NotificationRule.Id == rule_id, NotificationRule.CoachId == coach_id)
        .first()
    )


def UpdateRule(
    db: Session,
    *,
    coach_id: str,
    rule_id: int,
    scheduled_time: str | None = None,
    message: str | None = None,
) -> NotificationRule | None:
    record = _GetOwnedRule(db, coach_id, rule_id)
    if record is None:
        return None
    if scheduled_time is not None:
        record.ScheduledTime = _RequireTime(scheduled_time)
    if message is not None:
        record.Message = _RequireMessage(message)
    record.UpdatedAt = NowUtc()
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def DeleteRule(db: Session, *, coach_id: str, rule_id: int) -> bool:
    record = _GetOwnedRule(db, coach_id, rule_id)
    if record is None:
        return False
    db.delete(record)
    db.commit()
    logger.info("notification rule deleted id=%s coach_id=%s", rule_id, coach_id)
    return True


def BuildRulePayload(record: NotificationRule) -> dict:
    return {
        "Id": record.Id,
        "CoachId": record.CoachId,
        "ClientId": record.ClientId,
        "IsGlobal": record.ClientId is None,
        "ScheduledTime": record.ScheduledTime,
        "Message": record.Message,
        "CreatedAt": record.CreatedAt,
        "UpdatedAt": record.UpdatedAt,
    }
