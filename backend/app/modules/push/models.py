from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text, Unicode

from app.db import Base


class NotificationRule(Base):
    __tablename__ = "notification_rules"
    __table_args__ = (
        Index("ix_notification_rules_scheduled_time", "ScheduledTime"),
        Index("ix_notification_rules_coach_client", "CoachId", "ClientId"),
    )

    Id = Column(Integer, primary_key=True, autoincrement=True)
    CoachId = Column(String(64), ForeignKey("users.Id"), nullable=False)
    # Null ClientId marks a global rule for every client of the coach.
    ClientId = Column(String(64), ForeignKey("users.Id"))
    ScheduledTime = Column(String(5), nullable=False)
    Message = Column(Unicode(500), nullable=False)
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    UpdatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class PushSubscription(Base):
    __tablename__ = "push_subscriptions"
    __table_args__ = (
        Index("ix_push_subscriptions_user_endpoint", "UserId", "Endpoint", unique=True),
    )

    Id = Column(Integer, primary_key=True, autoincrement=True)
    UserId = Column(String(64), ForeignKey("users.Id"), nullable=False, index=True)
    Endpoint = Column(String(800), nullable=False)
    P256dhKey = Column(String(255), nullable=False)
    AuthKey = Column(String(255), nullable=False)
    UserAgent = Column(String(400))
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    UpdatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class AlertPreference(Base):
    __tablename__ = "alert_settings"

    Id = Column(Integer, primary_key=True, autoincrement=True)
    UserId = Column(String(64), ForeignKey("users.Id"), nullable=False, unique=True)
    IsEnabled = Column(Boolean, nullable=False, default=True)
    AlertTimesJson = Column(Text)
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    UpdatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
