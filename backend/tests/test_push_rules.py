import pytest

from app.modules.push.rules_service import (
    BuildRulePayload,
    CreateRule,
    DeleteRule,
    ListRulesForCoach,
    UpdateRule,
)


def _seed_roster(seed):
    seed.User("coach-1", role="Coach")
    seed.User("coach-2", role="Coach")
    seed.Client("client-a", coach_id="coach-1")
    seed.Client("client-b")
    seed.Link("coach-1", "client-b")
    seed.Client("client-c", coach_id="coach-2")


def test_create_global_rule_normalizes_time(seed, db):
    _seed_roster(seed)

    record = CreateRule(db, coach_id="coach-1", scheduled_time="07:30:00", message="  Hydrate  ")
    payload = BuildRulePayload(record)

    assert payload["ScheduledTime"] == "07:30"
    assert payload["Message"] == "Hydrate"
    assert payload["IsGlobal"] is True


def test_create_personal_rule_for_linked_client(seed, db):
    _seed_roster(seed)

    record = CreateRule(db, coach_id="coach-1", scheduled_time="07:30", message="Walk", client_id="client-b")

    assert record.ClientId == "client-b"
    assert BuildRulePayload(record)["IsGlobal"] is False


def test_create_personal_rule_rejects_foreign_client(seed, db):
    _seed_roster(seed)
    with pytest.raises(ValueError) as exc_info:
        CreateRule(db, coach_id="coach-1", scheduled_time="07:30", message="Walk", client_id="client-c")
    assert str(exc_info.value) == "Client not found"


@pytest.mark.parametrize(
    "scheduled_time, message",
    [("7:30", "Walk"), ("25:00", "Walk"), ("07:30", "   ")],
)
def test_create_rule_validation(seed, db, scheduled_time, message):
    _seed_roster(seed)
    with pytest.raises(ValueError):
        CreateRule(db, coach_id="coach-1", scheduled_time=scheduled_time, message=message)


def test_list_rules_filters_by_scope(seed, db):
    _seed_roster(seed)
    seed.Rule("coach-1", "09:00", "Global")
    seed.Rule("coach-1", "08:00", "Personal", client_id="client-a")
    seed.Rule("coach-2", "08:00", "Other coach")

    assert [rule.Message for rule in ListRulesForCoach(db, coach_id="coach-1")] == ["Personal", "Global"]
    assert [rule.Message for rule in ListRulesForCoach(db, coach_id="coach-1", global_only=True)] == ["Global"]
    assert [rule.Message for rule in ListRulesForCoach(db, coach_id="coach-1", client_id="client-a")] == ["Personal"]


def test_update_and_delete_are_owner_scoped(seed, db):
    _seed_roster(seed)
    rule = seed.Rule("coach-1", "09:00", "Global")

    assert UpdateRule(db, coach_id="coach-2", rule_id=rule.Id, message="Hijack") is None
    assert not DeleteRule(db, coach_id="coach-2", rule_id=rule.Id)

    updated = UpdateRule(db, coach_id="coach-1", rule_id=rule.Id, scheduled_time="10:15")
    assert updated.ScheduledTime == "10:15"
    assert updated.Message == "Global"

    with pytest.raises(ValueError):
        UpdateRule(db, coach_id="coach-1", rule_id=rule.Id, scheduled_time="noon")

    assert DeleteRule(db, coach_id="coach-1", rule_id=rule.Id)
    assert ListRulesForCoach(db, coach_id="coach-1") == []
