import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.exc import ProgrammingError
from sqlalchemy.orm import Session

from app.db import GetDb, GetSessionFactory
from app.modules.auth.deps import ROLE_ADMIN, ROLE_COACH, RequireRole, UserContext
from app.modules.board.schemas import BoardPostCreate, BoardPostOut
from app.modules.board.services import (
    BuildAnnouncementRequest,
    BuildBoardPostPayload,
    CreateBoardPost,
    RunBoardAnnouncement,
)
from app.modules.push.dispatch import Dispatcher, GetDispatcher

router = APIRouter(prefix="/api/board", tags=["board"])
logger = logging.getLogger("board")


@router.post("/posts", response_model=BoardPostOut, status_code=status.HTTP_201_CREATED)
def CreatePost(
    payload: BoardPostCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireRole(ROLE_COACH, ROLE_ADMIN)),
    dispatcher: Dispatcher = Depends(GetDispatcher),
    session_factory=Depends(GetSessionFactory),
) -> BoardPostOut:
    try:
        record = CreateBoardPost(
            db,
            coach_id=user.Id,
            title=payload.Title,
            content=payload.Content,
            target_client_ids=payload.TargetClientIds,
        )
    except ProgrammingError as exc:
        logger.exception("board database error")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Board storage not initialized. Run alembic upgrade head.",
        ) from exc

    background_tasks.add_task(
        RunBoardAnnouncement,
        session_factory,
        dispatcher,
        BuildAnnouncementRequest(record),
    )
    return BoardPostOut(**BuildBoardPostPayload(record))
