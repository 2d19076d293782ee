from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class BoardPostCreate(BaseModel):
    Title: str | None = Field(default=None, max_length=200)
    Content: str | None = Field(default=None, max_length=20000)
    TargetClientIds: list[str] | None = None


class BoardPostOut(BaseModel):
    Id: int
    CoachId: str
    Title: str | None = None
    Content: str | None = None
    TargetClientIds: list[str]
    CreatedAt: datetime
