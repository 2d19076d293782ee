from datetime import datetime

from sqlalchemy import Column, DateTime, String

from app.db import Base


class User(Base):
    __tablename__ = "users"

    Id = Column(String(64), primary_key=True)
    Email = Column(String(254))
    FullName = Column(String(200))
    Role = Column(String(20), nullable=False, default="Client")
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
