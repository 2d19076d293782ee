from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String

from app.db import Base


class ClientProfile(Base):
    """Client record; CoachId is the primary-assignment owner."""

    __tablename__ = "clients_info"

    Id = Column(String(64), ForeignKey("users.Id"), primary_key=True)
    CoachId = Column(String(64), ForeignKey("users.Id"), index=True)
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class ClientCoachLink(Base):
    __tablename__ = "client_coaches"
    __table_args__ = (
        Index("ix_client_coaches_coach_client", "CoachId", "ClientId", unique=True),
    )

    Id = Column(Integer, primary_key=True, autoincrement=True)
    ClientId = Column(String(64), ForeignKey("users.Id"), nullable=False, index=True)
    CoachId = Column(String(64), ForeignKey("users.Id"), nullable=False)
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
