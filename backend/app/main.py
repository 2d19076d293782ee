import logging
import os
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from app.core.logging import setup_logging
from app.core.migrations import MigrationsEnabledOnStartup, RunMigrations
from app.modules.board.router import router as board_router
from app.modules.core.router import router as core_router
from app.modules.push.router import router as push_router

setup_logging()

if MigrationsEnabledOnStartup():
    RunMigrations()

app = FastAPI(title="LifeHabits Push API")
logger = logging.getLogger("app.request")
logging.getLogger("app.startup").info("startup complete")

origin_list = [origin.strip() for origin in os.getenv("ALLOWED_ORIGINS", "").split(",") if origin.strip()]
if origin_list:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def _StatusLabel(status: int) -> str | None:
    if status >= 500:
        return "server error"
    if status == 404:
        return "endpoint not found"
    if status >= 400:
        return "client error"
    return None


@app.middleware("http")
async def request_logger(request: Request, call_next):
    request_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex[:12]
    start = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        logger.exception("%s %s | request_id=%s | unhandled error", request.method, request.url.path, request_id)
        raise
    duration_ms = int((time.perf_counter() - start) * 1000)

    status = response.status_code
    parts = [f"{request.method} {request.url.path}", f"request_id={request_id}"]
    label = _StatusLabel(status)
    if label:
        parts.append(f"ERROR: {label}")
    parts.append(f"status={status}")
    parts.append(f"{duration_ms}ms")

    log_msg = " | ".join(parts)
    if status >= 500:
        logger.error(log_msg)
    elif status >= 400:
        logger.warning(log_msg)
    else:
        logger.info(log_msg)

    response.headers["X-Request-Id"] = request_id
    return response


app.include_router(core_router)
app.include_router(push_router)
app.include_router(board_router)
