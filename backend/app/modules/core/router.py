import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from app.db import GetDb
from app.modules.push.config import PushConfig
from app.modules.push.dispatch import Dispatcher, GetDispatcher

router = APIRouter(prefix="/api", tags=["health"])
logger = logging.getLogger("core.health")


@router.get("/health")
def api_health() -> dict:
    logger.debug("health check ok")
    return {"status": "ok"}


@router.get("/health/db")
def api_health_db(db: Session = Depends(GetDb)) -> dict:
    try:
        db.execute(text("SELECT 1")).scalar()
        logger.debug("db check ok")
        return {"status": "ok"}
    except Exception:  # noqa: BLE001
        logger.exception("db check failed")
        return {"status": "error", "detail": "database unavailable"}


@router.get("/health/push")
def api_health_push(dispatcher: Dispatcher = Depends(GetDispatcher)) -> dict:
    config: PushConfig = dispatcher.config
    if not config.IsConfigured:
        logger.warning("push check failed: VAPID keys missing")
        return {"status": "error", "detail": "push not configured"}
    return {"status": "ok", "timezone": config.schedule_timezone}
