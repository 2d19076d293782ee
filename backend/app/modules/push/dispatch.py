"""Dispatch invocations.

Each call is a single, stateless request classified by its type:

* ``direct``       one user, explicit title/body; no preference check.
* ``broadcast``    every stored subscription; bypasses alert preferences on
                   purpose, it is the administrative override.
* ``announcement`` a coach's clients (or explicit ids taken verbatim); always
                   attempted, no preference check.
* ``sweep``        every rule scheduled at the current HH:MM; recipients
                   narrowed by alert preferences.
* ``cron``         daily habit reminder for users whose own alert times fall
                   in the current hour.

Field validation happens before any store access. Summaries only ever carry
counts, never recipient ids.
"""

from __future__ import annotations

import logging
import threading

from app.modules.push.config import LoadPushConfig, PushConfig
from app.modules.push.delivery import DeliveryEngine, DeliveryResult
from app.modules.push.errors import ValidationError
from app.modules.push.push_transport import PushPayload, PushTransport, WebPushTransport
from app.modules.push.resolver import ResolveCoachClientIds
from app.modules.push.rules_service import MatchRulesForTime, ResolveRuleRecipients
from app.modules.push.schedule import HourMatches, ParseAlertTimes, ResolveRunTime
from app.modules.push.schemas import DispatchRequest, DispatchSummary, DispatchType
from app.modules.push.store import PushStore

logger = logging.getLogger("push.dispatch")

SWEEP_LINK_URL = "/client/dashboard"
REMINDER_LINK_URL = "/dashboard"

_REQUIRED_FIELDS: dict[DispatchType, tuple[str, ...]] = {
    DispatchType.Direct: ("user_id", "title", "body"),
    DispatchType.Broadcast: ("title", "body"),
    DispatchType.Announcement: ("owner_id", "title", "body"),
    DispatchType.Sweep: (),
    DispatchType.Cron: (),
}


def _IsBlank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def ValidateDispatchRequest(request: DispatchRequest) -> DispatchType:
    try:
        dispatch_type = DispatchType((request.type or "").strip().lower())
    except ValueError as exc:
        raise ValidationError("Invalid type") from exc

    missing = [name for name in _REQUIRED_FIELDS[dispatch_type] if _IsBlank(getattr(request, name))]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    return dispatch_type


def _BuildPayload(request: DispatchRequest) -> PushPayload:
    return PushPayload(
        title=request.title.strip(),
        body=request.body.strip(),
        url=(request.url or "").strip() or None,
    )


class Dispatcher:
    def __init__(self, engine: DeliveryEngine, config: PushConfig) -> None:
        self.engine = engine
        self.config = config

    def Dispatch(self, store: PushStore, request: DispatchRequest) -> DispatchSummary:
        dispatch_type = ValidateDispatchRequest(request)

        if dispatch_type in (DispatchType.Sweep, DispatchType.Cron):
            try:
                run_time = ResolveRunTime(request.simulated_time, self.config.ScheduleZone)
            except ValueError as exc:
                raise ValidationError(str(exc)) from exc
            if dispatch_type == DispatchType.Sweep:
                return self.RunSweep(store, run_time)
            return self.RunCron(store, run_time)

        payload = _BuildPayload(request)
        if dispatch_type == DispatchType.Direct:
            return self.RunDirect(store, request.user_id.strip(), payload)
        if dispatch_type == DispatchType.Broadcast:
            return self.RunBroadcast(store, payload)
        return self.RunAnnouncement(
            store,
            request.owner_id.strip(),
            payload,
            target_ids=request.target_client_ids,
        )

    def RunDirect(self, store: PushStore, user_id: str, payload: PushPayload) -> DispatchSummary:
        result = self.engine.DeliverToUsers(store, {user_id}, payload)
        logger.info(
            "direct dispatch user_id=%s devices=%s sent=%s failed=%s",
            user_id,
            result.Devices,
            result.Sent,
            result.Failed,
        )
        message = "Notification sent" if result.Devices else "No subscriptions found"
        return DispatchSummary(message=message, sent=result.Sent, failed=result.Failed)

    def RunBroadcast(self, store: PushStore, payload: PushPayload) -> DispatchSummary:
        targets = store.ListAllSubscriptions()
        result = self.engine.DeliverToSubscriptions(store, targets, payload)
        logger.info(
            "broadcast dispatch devices=%s sent=%s failed=%s removed=%s",
            result.Devices,
            result.Sent,
            result.Failed,
            result.Removed,
        )
        return DispatchSummary(
            message=f"Broadcast sent to {result.Devices} devices",
            sent=result.Sent,
            failed=result.Failed,
        )

    def RunAnnouncement(
        self,
        store: PushStore,
        owner_id: str,
        payload: PushPayload,
        target_ids: list[str] | None = None,
    ) -> DispatchSummary:
        explicit_ids = {value.strip() for value in (target_ids or []) if value and value.strip()}
        recipients = explicit_ids or ResolveCoachClientIds(store, owner_id)
        if not recipients:
            logger.info("announcement owner_id=%s has no recipients", owner_id)
            return DispatchSummary(message="No recipients found", sent=0, failed=0)

        targets = store.ListSubscriptionsForUsers(recipients)
        if not targets:
            logger.info(
                "announcement owner_id=%s recipients=%s without subscriptions",
                owner_id,
                len(recipients),
            )
            return DispatchSummary(message="No subscriptions found for recipients", sent=0, failed=0)

        result = self.engine.DeliverToSubscriptions(store, targets, payload)
        logger.info(
            "announcement dispatch owner_id=%s recipients=%s devices=%s sent=%s failed=%s",
            owner_id,
            len(recipients),
            result.Devices,
            result.Sent,
            result.Failed,
        )
        return DispatchSummary(
            message=f"Announcement sent to {result.Devices} devices",
            sent=result.Sent,
            failed=result.Failed,
        )

    def RunSweep(self, store: PushStore, run_time: str) -> DispatchSummary:
        logger.info("processing notification rules for time=%s", run_time)
        rules = MatchRulesForTime(store, run_time)
        if not rules:
            return DispatchSummary(message="No rules for this time", sent=0, failed=0)

        total = DeliveryResult()
        for rule in rules:
            recipients = ResolveRuleRecipients(store, rule)
            if not recipients:
                continue
            payload = PushPayload(
                title=self.config.default_title,
                body=rule.Message,
                url=SWEEP_LINK_URL,
            )
            total = total.Merge(self.engine.DeliverToUsers(store, recipients, payload))

        logger.info(
            "sweep complete time=%s rules=%s sent=%s failed=%s removed=%s",
            run_time,
            len(rules),
            total.Sent,
            total.Failed,
            total.Removed,
        )
        return DispatchSummary(message="Notifications processed", sent=total.Sent, failed=total.Failed)

    def RunCron(self, store: PushStore, run_time: str) -> DispatchSummary:
        logger.info("running daily reminders for time=%s", run_time)
        due_user_ids = {
            preference.UserId
            for preference in store.ListEnabledPreferences()
            if any(HourMatches(run_time, value) for value in ParseAlertTimes(preference.AlertTimesJson))
        }
        if not due_user_ids:
            return DispatchSummary(message="Cron processed. No reminders due.", sent=0, failed=0)

        payload = PushPayload(
            title=self.config.reminder_title,
            body=self.config.reminder_body,
            url=REMINDER_LINK_URL,
        )
        result = self.engine.DeliverToUsers(store, due_user_ids, payload)
        return DispatchSummary(
            message=f"Cron processed. Sent {result.Sent} notifications.",
            sent=result.Sent,
            failed=result.Failed,
        )


def BuildDispatcher(config: PushConfig, transport: PushTransport | None = None) -> Dispatcher:
    engine = DeliveryEngine(
        transport or WebPushTransport(config),
        max_workers=config.max_workers,
        dispatch_timeout_seconds=config.dispatch_timeout_seconds,
    )
    return Dispatcher(engine, config)


_dispatcher: Dispatcher | None = None
_dispatcher_lock = threading.Lock()


def GetDispatcher() -> Dispatcher:
    global _dispatcher
    with _dispatcher_lock:
        if _dispatcher is None:
            _dispatcher = BuildDispatcher(LoadPushConfig())
        return _dispatcher
