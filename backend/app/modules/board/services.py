from __future__ import annotations

import json
import logging
import re

from sqlalchemy.orm import Session

from app.modules.auth.deps import NowUtc
from app.modules.board.models import BoardPost
from app.modules.push.dispatch import Dispatcher
from app.modules.push.schemas import DispatchRequest
from app.modules.push.store import PushStore

logger = logging.getLogger("board")

ANNOUNCEMENT_DEFAULT_TITLE = "New board announcement"
ANNOUNCEMENT_DEFAULT_BODY = "Check out the latest news!"
ANNOUNCEMENT_LINK_URL = "/client/board"
ANNOUNCEMENT_BODY_LIMIT = 100

_TAG_PATTERN = re.compile(r"<[^>]*>?")


def BuildAnnouncementBody(content: str | None) -> str:
    if not content:
        return ANNOUNCEMENT_DEFAULT_BODY
    text = _TAG_PATTERN.sub("", content).strip()
    if not text:
        return ANNOUNCEMENT_DEFAULT_BODY
    if len(text) > ANNOUNCEMENT_BODY_LIMIT:
        return text[:ANNOUNCEMENT_BODY_LIMIT] + "..."
    return text


def _ParseTargetIds(value: str | None) -> list[str]:
    if not value:
        return []
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        return []
    if not isinstance(parsed, list):
        return []
    return [str(item) for item in parsed if item]


def CreateBoardPost(
    db: Session,
    *,
    coach_id: str,
    title: str | None,
    content: str | None,
    target_client_ids: list[str] | None,
) -> BoardPost:
    targets = sorted({value.strip() for value in (target_client_ids or []) if value and value.strip()})
    record = BoardPost(
        CoachId=coach_id,
        Title=(title or "").strip() or None,
        Content=content,
        TargetClientIdsJson=json.dumps(targets) if targets else None,
        CreatedAt=NowUtc(),
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def BuildAnnouncementRequest(record: BoardPost) -> DispatchRequest:
    return DispatchRequest(
        type="announcement",
        owner_id=record.CoachId,
        title=record.Title or ANNOUNCEMENT_DEFAULT_TITLE,
        body=BuildAnnouncementBody(record.Content),
        url=ANNOUNCEMENT_LINK_URL,
        target_client_ids=_ParseTargetIds(record.TargetClientIdsJson) or None,
    )


def RunBoardAnnouncement(session_factory, dispatcher: Dispatcher, request: DispatchRequest) -> None:
    """Background job; never raises so the stored post is unaffected."""
    db = session_factory()
    try:
        summary = dispatcher.Dispatch(PushStore(db), request)
        logger.info("board announcement owner_id=%s result=%s", request.owner_id, summary.message)
    except Exception:  # noqa: BLE001
        logger.exception("board announcement failed owner_id=%s", request.owner_id)
    finally:
        db.close()


def BuildBoardPostPayload(record: BoardPost) -> dict:
    return {
        "Id": record.Id,
        "CoachId": record.CoachId,
        "Title": record.Title,
        "Content": record.Content,
        "TargetClientIds": _ParseTargetIds(record.TargetClientIdsJson),
        "CreatedAt": record.CreatedAt,
    }
