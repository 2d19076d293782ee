from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, Unicode

from app.db import Base


class BoardPost(Base):
    __tablename__ = "board_posts"

    Id = Column(Integer, primary_key=True, autoincrement=True)
    CoachId = Column(String(64), ForeignKey("users.Id"), nullable=False, index=True)
    Title = Column(Unicode(200))
    Content = Column(Text)
    TargetClientIdsJson = Column(Text)
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
