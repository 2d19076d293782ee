from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class DispatchType(str, Enum):
    Direct = "direct"
    Broadcast = "broadcast"
    Announcement = "announcement"
    Sweep = "sweep"
    Cron = "cron"


class DispatchRequest(BaseModel):
    """Wire body of the dispatch endpoint; field presence is checked per type."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    type: str | None = None
    user_id: str | None = None
    title: str | None = None
    body: str | None = None
    url: str | None = None
    owner_id: str | None = Field(default=None, validation_alias=AliasChoices("owner_id", "coach_id"))
    target_client_ids: list[str] | None = None
    simulated_time: str | None = Field(
        default=None,
        validation_alias=AliasChoices("simulated_time", "timeOverride"),
    )


class DispatchSummary(BaseModel):
    message: str
    sent: int | None = None
    failed: int | None = None


class BrowserSubscriptionKeys(BaseModel):
    p256dh: str = Field(min_length=1, max_length=255)
    auth: str = Field(min_length=1, max_length=255)


class BrowserSubscription(BaseModel):
    model_config = ConfigDict(extra="ignore")

    endpoint: str = Field(min_length=1, max_length=800)
    expirationTime: int | None = None
    keys: BrowserSubscriptionKeys


class PushSubscriptionRegisterRequest(BaseModel):
    Subscription: BrowserSubscription
    UserAgent: str | None = Field(default=None, max_length=400)


class PushSubscriptionOut(BaseModel):
    Id: int
    Endpoint: str
    UserAgent: str | None = None
    CreatedAt: datetime
    UpdatedAt: datetime


class PushSubscriptionUnregisterRequest(BaseModel):
    Endpoint: str = Field(min_length=1, max_length=800)


class PushSubscriptionUnregisterResponse(BaseModel):
    DeletedCount: int


class VapidPublicKeyResponse(BaseModel):
    PublicKey: str


class AlertPreferenceOut(BaseModel):
    IsEnabled: bool
    AlertTimes: list[str]
    UpdatedAt: datetime | None = None


class AlertPreferenceUpdate(BaseModel):
    IsEnabled: bool | None = None
    AlertTimes: list[str] | None = Field(default=None, max_length=24)


class NotificationRuleCreate(BaseModel):
    ScheduledTime: str = Field(min_length=4, max_length=8)
    Message: str = Field(min_length=1, max_length=500)
    ClientId: str | None = Field(default=None, max_length=64)


class NotificationRuleUpdate(BaseModel):
    ScheduledTime: str | None = Field(default=None, min_length=4, max_length=8)
    Message: str | None = Field(default=None, min_length=1, max_length=500)


class NotificationRuleOut(BaseModel):
    Id: int
    CoachId: str
    ClientId: str | None = None
    IsGlobal: bool
    ScheduledTime: str
    Message: str
    CreatedAt: datetime
    UpdatedAt: datetime
