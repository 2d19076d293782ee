import json
import logging
from dataclasses import asdict, dataclass
from typing import Protocol

from pywebpush import WebPushException, webpush

from app.modules.push.config import PushConfig
from app.modules.push.errors import PermanentDeliveryError, TransientDeliveryError

logger = logging.getLogger("push.transport")

_GONE_STATUS_CODES = {404, 410}


@dataclass(frozen=True)
class PushPayload:
    title: str
    body: str
    url: str | None = None

    def ToJson(self) -> str:
        data = {key: value for key, value in asdict(self).items() if value is not None}
        return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


class PushTransport(Protocol):
    def Send(self, subscription_info: dict, payload: PushPayload) -> None:
        """Deliver or raise PermanentDeliveryError / TransientDeliveryError."""


def ShortEndpoint(endpoint: str | None) -> str:
    return (endpoint or "?")[:60]


def _ExtractStatusCode(exc: WebPushException) -> int | None:
    response = getattr(exc, "response", None)
    if response is None:
        return None
    return getattr(response, "status_code", None)


def IsGoneStatus(status_code: int | None) -> bool:
    return status_code in _GONE_STATUS_CODES


class WebPushTransport:
    """Web Push sender; VAPID credentials are fixed at construction."""

    def __init__(self, config: PushConfig) -> None:
        self._private_key = config.vapid_private_key
        self._subject = config.vapid_subject
        self._timeout = config.send_timeout_seconds
        self._ttl = config.ttl_seconds

    def Send(self, subscription_info: dict, payload: PushPayload) -> None:
        if not self._private_key:
            raise TransientDeliveryError("VAPID private key is not configured")

        endpoint = subscription_info.get("endpoint")
        try:
            webpush(
                subscription_info=subscription_info,
                data=payload.ToJson(),
                vapid_private_key=self._private_key,
                # webpush fills aud/exp into the claims dict, so each call gets its own
                vapid_claims={"sub": self._subject},
                timeout=self._timeout,
                ttl=self._ttl,
                headers={"Urgency": "high"},
            )
        except WebPushException as exc:
            status_code = _ExtractStatusCode(exc)
            if IsGoneStatus(status_code):
                raise PermanentDeliveryError(
                    f"Endpoint gone ({status_code})", status_code=status_code
                ) from exc
            logger.debug("web push rejected endpoint=%s status=%s", ShortEndpoint(endpoint), status_code)
            raise TransientDeliveryError(str(exc)[:255], status_code=status_code) from exc
        except Exception as exc:  # noqa: BLE001
            raise TransientDeliveryError(str(exc)[:255] or exc.__class__.__name__) from exc
