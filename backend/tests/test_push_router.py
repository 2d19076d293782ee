import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.db import GetDb
from app.modules.push.dispatch import GetDispatcher
from app.modules.push.eligibility import FilterEligibleUserIds
from app.modules.push.errors import StoreError
from app.modules.push.models import AlertPreference
from app.modules.push.router import router as push_router
from app.modules.push.store import PushStore


class _UntouchableDb:
    def __getattr__(self, name):
        raise AssertionError(f"database accessed: {name}")


def _build_client(db, dispatcher):
    app = FastAPI()
    app.include_router(push_router)
    app.dependency_overrides[GetDb] = lambda: db
    app.dependency_overrides[GetDispatcher] = lambda: dispatcher
    return TestClient(app)


@pytest.fixture()
def client(db, dispatcher):
    return _build_client(db, dispatcher)


def test_dispatch_malformed_direct_returns_400_without_reads(dispatcher, transport):
    client = _build_client(_UntouchableDb(), dispatcher)

    response = client.post("/api/push/dispatch", json={"type": "direct", "user_id": "client-a", "title": "Hi"})

    assert response.status_code == 400
    assert response.json() == {"error": "Missing required fields: body"}
    assert transport.sent == []


def test_dispatch_rejects_unknown_type(client):
    response = client.post("/api/push/dispatch", json={"type": "fax"})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid type"}


def test_dispatch_rejects_non_json_body(client):
    response = client.post(
        "/api/push/dispatch",
        content=b"type=direct",
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert response.status_code == 400
    assert "error" in response.json()


def test_dispatch_rejects_wrong_field_types(client):
    response = client.post("/api/push/dispatch", json={"type": "announcement", "target_client_ids": "client-a"})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid field: target_client_ids"}


def test_dispatch_broadcast_summary(seed, client):
    seed.Client("client-a", enabled=False)
    seed.Subscription("client-a", "https://push.example.com/a")

    response = client.post("/api/push/dispatch", json={"type": "broadcast", "title": "Hello", "body": "All"})

    assert response.status_code == 200
    assert response.json() == {"message": "Broadcast sent to 1 devices", "sent": 1, "failed": 0}


def test_dispatch_sweep_accepts_time_override_alias(client, transport):
    response = client.post("/api/push/dispatch", json={"type": "sweep", "timeOverride": "04:44"})

    assert response.status_code == 200
    assert response.json()["message"] == "No rules for this time"


def test_dispatch_key_is_enforced_when_configured(db, keyed_dispatcher):
    client = _build_client(db, keyed_dispatcher)

    denied = client.post("/api/push/dispatch", json={"type": "sweep", "simulated_time": "04:44"})
    allowed = client.post(
        "/api/push/dispatch",
        json={"type": "sweep", "simulated_time": "04:44"},
        headers={"X-Dispatch-Key": "cron-secret"},
    )

    assert denied.status_code == 401
    assert allowed.status_code == 200


def test_vapid_public_key(client):
    response = client.get("/api/push/vapid-public-key")
    assert response.json() == {"PublicKey": "public-key"}


def test_subscription_lifecycle(seed, client, auth_headers):
    seed.User("client-a")
    headers = auth_headers("client-a")
    body = {
        "Subscription": {
            "endpoint": "https://fcm.googleapis.com/fcm/send/device-1",
            "expirationTime": None,
            "keys": {"p256dh": "p256dh-key", "auth": "auth-key"},
        },
        "UserAgent": "pytest",
    }

    assert client.post("/api/push/subscriptions", json=body, headers=headers).status_code == 200
    assert client.post("/api/push/subscriptions", json=body, headers=headers).status_code == 200
    listed = client.get("/api/push/subscriptions", headers=headers).json()
    assert len(listed) == 1

    preferences = client.get("/api/push/preferences", headers=headers).json()
    assert preferences["IsEnabled"] is True

    removed = client.post(
        "/api/push/subscriptions/unregister",
        json={"Endpoint": "https://fcm.googleapis.com/fcm/send/device-1"},
        headers=headers,
    )
    assert removed.json() == {"DeletedCount": 1}


def test_subscription_requires_authentication(client):
    response = client.get("/api/push/subscriptions")
    assert response.status_code == 401


def test_register_rejects_insecure_endpoint(seed, client, auth_headers):
    seed.User("client-a")
    body = {"Subscription": {"endpoint": "http://push.example.com/x", "keys": {"p256dh": "k", "auth": "a"}}}

    response = client.post("/api/push/subscriptions", json=body, headers=auth_headers("client-a"))

    assert response.status_code == 400


def test_update_preferences(seed, client, auth_headers):
    seed.User("client-a")
    headers = auth_headers("client-a")

    response = client.put(
        "/api/push/preferences",
        json={"IsEnabled": True, "AlertTimes": ["20:00", "07:00"]},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["AlertTimes"] == ["07:00", "20:00"]

    bad = client.put("/api/push/preferences", json={"AlertTimes": ["7pm"]}, headers=headers)
    assert bad.status_code == 400


def test_send_test_notification_links_profile(seed, client, transport, auth_headers):
    seed.Client("client-a")
    seed.Subscription("client-a", "https://push.example.com/a")

    response = client.post("/api/push/test", headers=auth_headers("client-a"))

    assert response.status_code == 200
    assert response.json()["message"] == "Notification sent"
    assert transport.sent[0][1].url == "/profile"


def test_rules_require_coach_role(seed, client, auth_headers):
    seed.User("client-a")
    response = client.post(
        "/api/push/rules",
        json={"ScheduledTime": "09:00", "Message": "Hi"},
        headers=auth_headers("client-a"),
    )
    assert response.status_code == 403


def test_rules_crud(seed, client, auth_headers):
    seed.User("coach-1", role="Coach")
    seed.Client("client-a", coach_id="coach-1")
    seed.Client("client-z")
    headers = auth_headers("coach-1")

    created = client.post(
        "/api/push/rules",
        json={"ScheduledTime": "09:00", "Message": "Breakfast", "ClientId": "client-a"},
        headers=headers,
    )
    assert created.status_code == 201
    rule = created.json()
    assert rule["IsGlobal"] is False

    foreign = client.post(
        "/api/push/rules",
        json={"ScheduledTime": "09:00", "Message": "Nope", "ClientId": "client-z"},
        headers=headers,
    )
    assert foreign.status_code == 404

    updated = client.put(f"/api/push/rules/{rule['Id']}", json={"Message": "Second breakfast"}, headers=headers)
    assert updated.json()["Message"] == "Second breakfast"

    listed = client.get("/api/push/rules", params={"client_id": "client-a"}, headers=headers).json()
    assert [item["Id"] for item in listed] == [rule["Id"]]

    assert client.delete(f"/api/push/rules/{rule['Id']}", headers=headers).status_code == 204
    assert client.delete(f"/api/push/rules/{rule['Id']}", headers=headers).status_code == 404


def test_preferences_without_row_stay_enabled_across_get_and_put(seed, db, client, auth_headers):
    seed.Client("client-a", with_preference=False)
    seed.Subscription("client-a", "https://push.example.com/a")
    headers = auth_headers("client-a")

    before = client.get("/api/push/preferences", headers=headers).json()
    after = client.put("/api/push/preferences", json={"AlertTimes": ["09:00"]}, headers=headers).json()

    assert before["IsEnabled"] is True
    assert after["IsEnabled"] is True
    assert after["AlertTimes"] == ["09:00"]
    assert FilterEligibleUserIds(PushStore(db), {"client-a"}) == {"client-a"}


def test_rejected_preference_update_creates_nothing(seed, db, client, auth_headers):
    seed.User("client-a")

    response = client.put("/api/push/preferences", json={"AlertTimes": ["noon"]}, headers=auth_headers("client-a"))

    assert response.status_code == 400
    assert db.query(AlertPreference).count() == 0


def test_dispatch_store_failure_returns_500(monkeypatch, client, transport):
    def _fail(self, scheduled_time):
        raise StoreError("Failed to load notification rules")

    monkeypatch.setattr(PushStore, "ListRulesForTime", _fail)

    response = client.post("/api/push/dispatch", json={"type": "sweep", "simulated_time": "09:00"})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to load notification rules"}
    assert transport.sent == []


def test_dispatch_unexpected_failure_returns_500(monkeypatch, client, transport):
    def _fail(self, scheduled_time):
        raise RuntimeError("driver crashed")

    monkeypatch.setattr(PushStore, "ListRulesForTime", _fail)

    response = client.post("/api/push/dispatch", json={"type": "sweep", "simulated_time": "09:00"})

    assert response.status_code == 500
    assert response.json() == {"error": "Dispatch failed"}
    assert transport.sent == []
