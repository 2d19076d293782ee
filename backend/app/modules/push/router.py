import json
import logging
import secrets

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import ProgrammingError
from sqlalchemy.orm import Session

from app.db import GetDb
from app.modules.auth.deps import ROLE_ADMIN, ROLE_COACH, RequireAuthenticated, RequireRole, UserContext
from app.modules.push.dispatch import Dispatcher, GetDispatcher
from app.modules.push.errors import StoreError, ValidationError
from app.modules.push.rules_service import (
    BuildRulePayload,
    CreateRule,
    DeleteRule,
    ListRulesForCoach,
    UpdateRule,
)
from app.modules.push.schemas import (
    AlertPreferenceOut,
    AlertPreferenceUpdate,
    DispatchRequest,
    DispatchSummary,
    NotificationRuleCreate,
    NotificationRuleOut,
    NotificationRuleUpdate,
    PushSubscriptionOut,
    PushSubscriptionRegisterRequest,
    PushSubscriptionUnregisterRequest,
    PushSubscriptionUnregisterResponse,
    VapidPublicKeyResponse,
)
from app.modules.push.store import PushStore
from app.modules.push.subscriptions_service import (
    BuildAlertPreferencePayload,
    EnsureAlertPreference,
    ListSubscriptions,
    RegisterSubscription,
    UnregisterSubscription,
    UpdateAlertPreference,
)

router = APIRouter(prefix="/api/push", tags=["push"])
logger = logging.getLogger("push")

TEST_NOTIFICATION_TITLE = "Test notification \U0001F514"
TEST_NOTIFICATION_BODY = "If you can read this, notifications are working!"
TEST_NOTIFICATION_URL = "/profile"


def _handle_db_error(exc: Exception) -> None:
    logger.exception("push database error")
    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Push storage not initialized. Run alembic upgrade head.",
    ) from exc


def _ErrorResponse(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _SummaryResponse(summary: DispatchSummary) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_200_OK, content=summary.model_dump(exclude_none=True))


def _IsDispatchCallerAllowed(request: Request, dispatcher: Dispatcher) -> bool:
    expected = dispatcher.config.dispatch_key
    if not expected:
        return True
    provided = request.headers.get("X-Dispatch-Key", "")
    return secrets.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def RunDispatch(db: Session, dispatcher: Dispatcher, payload: DispatchRequest) -> JSONResponse:
    try:
        summary = dispatcher.Dispatch(PushStore(db), payload)
    except ValidationError as exc:
        logger.info("dispatch rejected type=%s reason=%s", payload.type, exc)
        return _ErrorResponse(status.HTTP_400_BAD_REQUEST, str(exc))
    except StoreError as exc:
        return _ErrorResponse(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))
    except Exception:  # noqa: BLE001
        logger.exception("dispatch failed type=%s", payload.type)
        return _ErrorResponse(status.HTTP_500_INTERNAL_SERVER_ERROR, "Dispatch failed")
    return _SummaryResponse(summary)


@router.post("/dispatch")
async def DispatchPush(
    request: Request,
    db: Session = Depends(GetDb),
    dispatcher: Dispatcher = Depends(GetDispatcher),
):
    if not _IsDispatchCallerAllowed(request, dispatcher):
        return _ErrorResponse(status.HTTP_401_UNAUTHORIZED, "Invalid dispatch key")

    raw_body = await request.body()
    try:
        data = json.loads(raw_body) if raw_body else {}
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _ErrorResponse(status.HTTP_400_BAD_REQUEST, "Request body must be JSON")
    if not isinstance(data, dict):
        return _ErrorResponse(status.HTTP_400_BAD_REQUEST, "Request body must be a JSON object")

    try:
        payload = DispatchRequest.model_validate(data)
    except PydanticValidationError as exc:
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(part) for part in first.get("loc", ()))
        return _ErrorResponse(status.HTTP_400_BAD_REQUEST, f"Invalid field: {field}" if field else "Invalid request")

    return await run_in_threadpool(RunDispatch, db, dispatcher, payload)


@router.get("/vapid-public-key", response_model=VapidPublicKeyResponse)
def GetVapidPublicKey(dispatcher: Dispatcher = Depends(GetDispatcher)) -> VapidPublicKeyResponse:
    return VapidPublicKeyResponse(PublicKey=dispatcher.config.vapid_public_key)


def _BuildSubscriptionOut(record) -> PushSubscriptionOut:
    return PushSubscriptionOut(
        Id=record.Id,
        Endpoint=record.Endpoint,
        UserAgent=record.UserAgent,
        CreatedAt=record.CreatedAt,
        UpdatedAt=record.UpdatedAt,
    )


@router.get("/subscriptions", response_model=list[PushSubscriptionOut])
def ListPushSubscriptions(
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> list[PushSubscriptionOut]:
    try:
        return [_BuildSubscriptionOut(record) for record in ListSubscriptions(db, user_id=user.Id)]
    except ProgrammingError as exc:
        _handle_db_error(exc)


@router.post("/subscriptions", response_model=PushSubscriptionOut)
def RegisterPushSubscription(
    payload: PushSubscriptionRegisterRequest,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> PushSubscriptionOut:
    try:
        record = RegisterSubscription(
            db,
            user_id=user.Id,
            endpoint=payload.Subscription.endpoint,
            p256dh_key=payload.Subscription.keys.p256dh,
            auth_key=payload.Subscription.keys.auth,
            user_agent=payload.UserAgent,
        )
        return _BuildSubscriptionOut(record)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ProgrammingError as exc:
        _handle_db_error(exc)


@router.post("/subscriptions/unregister", response_model=PushSubscriptionUnregisterResponse)
def UnregisterPushSubscription(
    payload: PushSubscriptionUnregisterRequest,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> PushSubscriptionUnregisterResponse:
    try:
        deleted = UnregisterSubscription(db, user_id=user.Id, endpoint=payload.Endpoint)
        return PushSubscriptionUnregisterResponse(DeletedCount=deleted)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ProgrammingError as exc:
        _handle_db_error(exc)


@router.get("/preferences", response_model=AlertPreferenceOut)
def GetPushPreferences(
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> AlertPreferenceOut:
    try:
        return AlertPreferenceOut(**BuildAlertPreferencePayload(EnsureAlertPreference(db, user.Id)))
    except ProgrammingError as exc:
        _handle_db_error(exc)


@router.put("/preferences", response_model=AlertPreferenceOut)
def UpdatePushPreferences(
    payload: AlertPreferenceUpdate,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> AlertPreferenceOut:
    try:
        record = UpdateAlertPreference(db, user.Id, payload.model_dump(exclude_unset=True))
        return AlertPreferenceOut(**BuildAlertPreferencePayload(record))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ProgrammingError as exc:
        _handle_db_error(exc)


@router.post("/test")
def SendTestPush(
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
    dispatcher: Dispatcher = Depends(GetDispatcher),
):
    payload = DispatchRequest(
        type="direct",
        user_id=user.Id,
        title=TEST_NOTIFICATION_TITLE,
        body=TEST_NOTIFICATION_BODY,
        url=TEST_NOTIFICATION_URL,
    )
    return RunDispatch(db, dispatcher, payload)


@router.get("/rules", response_model=list[NotificationRuleOut])
def ListNotificationRules(
    client_id: str | None = None,
    global_only: bool = False,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireRole(ROLE_COACH, ROLE_ADMIN)),
) -> list[NotificationRuleOut]:
    try:
        records = ListRulesForCoach(db, coach_id=user.Id, client_id=client_id, global_only=global_only)
        return [NotificationRuleOut(**BuildRulePayload(record)) for record in records]
    except ProgrammingError as exc:
        _handle_db_error(exc)


@router.post("/rules", response_model=NotificationRuleOut, status_code=status.HTTP_201_CREATED)
def CreateNotificationRule(
    payload: NotificationRuleCreate,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireRole(ROLE_COACH, ROLE_ADMIN)),
) -> NotificationRuleOut:
    try:
        record = CreateRule(
            db,
            coach_id=user.Id,
            scheduled_time=payload.ScheduledTime,
            message=payload.Message,
            client_id=payload.ClientId,
        )
        return NotificationRuleOut(**BuildRulePayload(record))
    except StoreError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    except ValueError as exc:
        detail = str(exc)
        status_code = status.HTTP_404_NOT_FOUND if "not found" in detail.lower() else status.HTTP_400_BAD_REQUEST
        raise HTTPException(status_code=status_code, detail=detail) from exc
    except ProgrammingError as exc:
        _handle_db_error(exc)


@router.put("/rules/{rule_id}", response_model=NotificationRuleOut)
def UpdateNotificationRule(
    rule_id: int,
    payload: NotificationRuleUpdate,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireRole(ROLE_COACH, ROLE_ADMIN)),
) -> NotificationRuleOut:
    try:
        record = UpdateRule(
            db,
            coach_id=user.Id,
            rule_id=rule_id,
            scheduled_time=payload.ScheduledTime,
            message=payload.Message,
        )
        if record is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Rule not found")
        return NotificationRuleOut(**BuildRulePayload(record))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ProgrammingError as exc:
        _handle_db_error(exc)


@router.delete("/rules/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
def DeleteNotificationRule(
    rule_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireRole(ROLE_COACH, ROLE_ADMIN)),
) -> None:
    try:
        if not DeleteRule(db, coach_id=user.Id, rule_id=rule_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Rule not found")
    except ProgrammingError as exc:
        _handle_db_error(exc)
