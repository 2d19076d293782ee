from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass

from app.modules.push.errors import (
    DeliveryError,
    PermanentDeliveryError,
    StoreError,
    TransientDeliveryError,
)
from app.modules.push.push_transport import PushPayload, PushTransport, ShortEndpoint
from app.modules.push.store import PushStore, SubscriptionTarget

logger = logging.getLogger("push.delivery")


@dataclass
class DeliveryResult:
    Devices: int = 0
    Sent: int = 0
    Failed: int = 0
    Removed: int = 0

    def Merge(self, other: "DeliveryResult") -> "DeliveryResult":
        return DeliveryResult(
            Devices=self.Devices + other.Devices,
            Sent=self.Sent + other.Sent,
            Failed=self.Failed + other.Failed,
            Removed=self.Removed + other.Removed,
        )


class DeliveryEngine:
    """Fans a payload out to subscription endpoints in parallel.

    One endpoint failing never stops the others. Gone endpoints are deleted
    from the store after all sends have been joined; every other failure is
    only counted, the next sweep acts as the retry.
    """

    def __init__(
        self,
        transport: PushTransport,
        *,
        max_workers: int = 16,
        dispatch_timeout_seconds: float = 60.0,
    ) -> None:
        self.transport = transport
        self.max_workers = max(1, max_workers)
        self.dispatch_timeout_seconds = dispatch_timeout_seconds

    def DeliverToUsers(
        self,
        store: PushStore,
        user_ids: set[str],
        payload: PushPayload,
    ) -> DeliveryResult:
        if not user_ids:
            return DeliveryResult()
        targets = store.ListSubscriptionsForUsers(user_ids)
        return self.DeliverToSubscriptions(store, targets, payload)

    def DeliverToSubscriptions(
        self,
        store: PushStore,
        targets: list[SubscriptionTarget],
        payload: PushPayload,
    ) -> DeliveryResult:
        if not targets:
            return DeliveryResult()

        outcomes = self._SendAll(targets, payload)
        result = DeliveryResult(Devices=len(targets))
        for target, outcome in zip(targets, outcomes):
            if outcome is None:
                result.Sent += 1
                continue
            result.Failed += 1
            if isinstance(outcome, PermanentDeliveryError):
                logger.info(
                    "Removing expired push subscription id=%s user_id=%s endpoint=%s status=%s",
                    target.Id,
                    target.UserId,
                    ShortEndpoint(target.Endpoint),
                    outcome.status_code,
                )
                if self._RemoveSubscription(store, target):
                    result.Removed += 1
            else:
                logger.warning(
                    "Push delivery failed id=%s user_id=%s endpoint=%s status=%s reason=%s",
                    target.Id,
                    target.UserId,
                    ShortEndpoint(target.Endpoint),
                    outcome.status_code,
                    outcome,
                )

        if result.Failed:
            logger.info(
                "Push delivery summary devices=%s sent=%s failed=%s removed=%s",
                result.Devices,
                result.Sent,
                result.Failed,
                result.Removed,
            )
        return result

    def _SendOne(self, target: SubscriptionTarget, payload: PushPayload) -> DeliveryError | None:
        try:
            self.transport.Send(target.AsSubscriptionInfo(), payload)
            return None
        except DeliveryError as exc:
            return exc
        except Exception as exc:  # noqa: BLE001
            return TransientDeliveryError(str(exc)[:255] or exc.__class__.__name__)

    def _SendAll(
        self,
        targets: list[SubscriptionTarget],
        payload: PushPayload,
    ) -> list[DeliveryError | None]:
        executor = ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(targets)),
            thread_name_prefix="push-send",
        )
        try:
            futures = [executor.submit(self._SendOne, target, payload) for target in targets]
            _, pending = wait(futures, timeout=self.dispatch_timeout_seconds)
            if pending:
                logger.warning(
                    "Push dispatch deadline reached pending=%s timeout=%ss",
                    len(pending),
                    self.dispatch_timeout_seconds,
                )
            outcomes: list[DeliveryError | None] = []
            for future in futures:
                if future in pending:
                    future.cancel()
                    outcomes.append(TransientDeliveryError("Push send timed out"))
                else:
                    outcomes.append(future.result())
            return outcomes
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def _RemoveSubscription(self, store: PushStore, target: SubscriptionTarget) -> bool:
        try:
            return store.DeleteSubscription(target.Id) > 0
        except StoreError:
            logger.warning("Failed to remove expired push subscription id=%s", target.Id)
            return False
        except Exception:  # noqa: BLE001
            logger.exception("Unexpected error removing push subscription id=%s", target.Id)
            return False
