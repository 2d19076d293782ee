import os
import threading
from dataclasses import replace
from datetime import datetime, timezone

import jwt
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

from app.db import Base  # noqa: E402
from app.modules.auth.models import User  # noqa: E402
from app.modules.board import models as board_models  # noqa: E402,F401
from app.modules.coaching.models import ClientCoachLink, ClientProfile  # noqa: E402
from app.modules.push.config import PushConfig  # noqa: E402
from app.modules.push.dispatch import BuildDispatcher  # noqa: E402
from app.modules.push.models import AlertPreference, NotificationRule, PushSubscription  # noqa: E402
from app.modules.push.schedule import SerializeAlertTimes  # noqa: E402


class FakeTransport:
    """Records sends; raises the error mapped to an endpoint, if any."""

    def __init__(self):
        self.failures = {}
        self.sent = []
        self._lock = threading.Lock()

    def Send(self, subscription_info, payload):
        endpoint = subscription_info["endpoint"]
        with self._lock:
            self.sent.append((endpoint, payload))
        error = self.failures.get(endpoint)
        if error is not None:
            raise error

    @property
    def Endpoints(self):
        return sorted(endpoint for endpoint, _ in self.sent)


class Seeder:
    def __init__(self, db):
        self.db = db
        self._now = datetime(2026, 10, 1, 8, 0, tzinfo=timezone.utc)

    def User(self, user_id, role="Client"):
        self.db.add(User(Id=user_id, Email=f"{user_id}@example.com", Role=role, CreatedAt=self._now))
        self.db.commit()

    def Client(self, client_id, coach_id=None, enabled=True, alert_times=None, with_preference=True):
        self.User(client_id)
        self.db.add(ClientProfile(Id=client_id, CoachId=coach_id, CreatedAt=self._now))
        if with_preference:
            self.Preference(client_id, enabled=enabled, alert_times=alert_times, commit=False)
        self.db.commit()

    def Link(self, coach_id, client_id):
        self.db.add(ClientCoachLink(CoachId=coach_id, ClientId=client_id, CreatedAt=self._now))
        self.db.commit()

    def Preference(self, user_id, enabled=True, alert_times=None, commit=True):
        self.db.add(
            AlertPreference(
                UserId=user_id,
                IsEnabled=enabled,
                AlertTimesJson=SerializeAlertTimes(alert_times) if alert_times else None,
                CreatedAt=self._now,
                UpdatedAt=self._now,
            )
        )
        if commit:
            self.db.commit()

    def Subscription(self, user_id, endpoint):
        record = PushSubscription(
            UserId=user_id,
            Endpoint=endpoint,
            P256dhKey="p256dh-key",
            AuthKey="auth-key",
            CreatedAt=self._now,
            UpdatedAt=self._now,
        )
        self.db.add(record)
        self.db.commit()
        return record

    def Rule(self, coach_id, scheduled_time, message, client_id=None):
        record = NotificationRule(
            CoachId=coach_id,
            ClientId=client_id,
            ScheduledTime=scheduled_time,
            Message=message,
            CreatedAt=self._now,
            UpdatedAt=self._now,
        )
        self.db.add(record)
        self.db.commit()
        return record


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    yield factory
    engine.dispose()


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def seed(db):
    return Seeder(db)


@pytest.fixture()
def transport():
    return FakeTransport()


@pytest.fixture()
def push_config():
    return PushConfig(
        vapid_public_key="public-key",
        vapid_private_key="private-key",
        vapid_subject="mailto:ops@example.com",
        schedule_timezone="Europe/Rome",
        send_timeout_seconds=5.0,
        dispatch_timeout_seconds=5.0,
        max_workers=4,
        ttl_seconds=3600,
        default_title="LifeHabits",
        reminder_title="Time for your habits!",
        reminder_body="Remember to complete your habits today.",
        dispatch_key=None,
    )


@pytest.fixture()
def dispatcher(push_config, transport):
    return BuildDispatcher(push_config, transport=transport)


@pytest.fixture()
def keyed_dispatcher(push_config, transport):
    return BuildDispatcher(replace(push_config, dispatch_key="cron-secret"), transport=transport)


@pytest.fixture()
def auth_headers():
    def _build(user_id):
        token = jwt.encode({"sub": user_id}, os.environ["JWT_SECRET_KEY"], algorithm="HS256")
        return {"Authorization": f"Bearer {token}"}

    return _build
