from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.modules.coaching.models import ClientCoachLink, ClientProfile
from app.modules.push.errors import StoreError
from app.modules.push.models import AlertPreference, NotificationRule, PushSubscription

logger = logging.getLogger("push.store")


@dataclass(frozen=True)
class SubscriptionTarget:
    Id: int
    UserId: str
    Endpoint: str
    P256dhKey: str
    AuthKey: str

    def AsSubscriptionInfo(self) -> dict:
        return {
            "endpoint": self.Endpoint,
            "keys": {"p256dh": self.P256dhKey, "auth": self.AuthKey},
        }


def _ToTarget(record: PushSubscription) -> SubscriptionTarget:
    return SubscriptionTarget(
        Id=record.Id,
        UserId=record.UserId,
        Endpoint=record.Endpoint,
        P256dhKey=record.P256dhKey,
        AuthKey=record.AuthKey,
    )


class PushStore:
    """Read/delete access to the push tables used by dispatch."""

    def __init__(self, db: Session) -> None:
        self.db = db

    @contextmanager
    def _Guard(self, operation: str):
        try:
            yield
        except SQLAlchemyError as exc:
            logger.exception("push store %s failed", operation)
            self.db.rollback()
            raise StoreError(f"Failed to {operation}") from exc

    def ListRulesForTime(self, scheduled_time: str) -> list[NotificationRule]:
        with self._Guard("load notification rules"):
            return (
                self.db.query(NotificationRule)
                .filter(NotificationRule.ScheduledTime == scheduled_time)
                .order_by(NotificationRule.Id)
                .all()
            )

    def ListPrimaryClientIds(self, coach_id: str) -> list[str]:
        with self._Guard("load primary clients"):
            rows = self.db.query(ClientProfile.Id).filter(ClientProfile.CoachId == coach_id).all()
            return [row.Id for row in rows]

    def ListLinkedClientIds(self, coach_id: str) -> list[str]:
        with self._Guard("load linked clients"):
            rows = (
                self.db.query(ClientCoachLink.ClientId)
                .filter(ClientCoachLink.CoachId == coach_id)
                .all()
            )
            return [row.ClientId for row in rows]

    def ListEnabledUserIds(self, user_ids: set[str]) -> set[str]:
        if not user_ids:
            return set()
        with self._Guard("load alert preferences"):
            rows = (
                self.db.query(AlertPreference.UserId)
                .filter(
                    AlertPreference.UserId.in_(user_ids),
                    AlertPreference.IsEnabled == True,  # noqa: E712
                )
                .all()
            )
            return {row.UserId for row in rows}

    def ListEnabledPreferences(self) -> list[AlertPreference]:
        with self._Guard("load alert preferences"):
            return (
                self.db.query(AlertPreference)
                .filter(AlertPreference.IsEnabled == True)  # noqa: E712
                .all()
            )

    def ListSubscriptionsForUsers(self, user_ids: set[str]) -> list[SubscriptionTarget]:
        if not user_ids:
            return []
        with self._Guard("load push subscriptions"):
            records = (
                self.db.query(PushSubscription)
                .filter(PushSubscription.UserId.in_(user_ids))
                .order_by(PushSubscription.Id)
                .all()
            )
            return [_ToTarget(record) for record in records]

    def ListAllSubscriptions(self) -> list[SubscriptionTarget]:
        with self._Guard("load push subscriptions"):
            records = self.db.query(PushSubscription).order_by(PushSubscription.Id).all()
            return [_ToTarget(record) for record in records]

    def DeleteSubscription(self, subscription_id: int) -> int:
        with self._Guard("delete push subscription"):
            deleted = (
                self.db.query(PushSubscription)
                .filter(PushSubscription.Id == subscription_id)
                .delete(synchronize_session=False)
            )
            self.db.commit()
            return int(deleted or 0)
