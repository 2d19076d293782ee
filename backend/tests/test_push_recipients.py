from app.modules.push.eligibility import FilterEligibleUserIds
from app.modules.push.resolver import IsCoachClient, ResolveCoachClientIds
from app.modules.push.rules_service import ResolveRuleRecipients
from app.modules.push.store import PushStore


class _CountingStore:
    def __init__(self, primary=None, linked=None, enabled=None):
        self._primary = primary or []
        self._linked = linked or []
        self._enabled = enabled or set()
        self.calls = []

    def ListPrimaryClientIds(self, coach_id):
        self.calls.append("primary")
        return list(self._primary)

    def ListLinkedClientIds(self, coach_id):
        self.calls.append("linked")
        return list(self._linked)

    def ListEnabledUserIds(self, user_ids):
        self.calls.append("enabled")
        return set(self._enabled)


def test_resolver_unions_primary_and_linked_clients(seed, db):
    seed.User("coach-1", role="Coach")
    seed.Client("client-a", coach_id="coach-1")
    seed.Client("client-b")
    seed.Client("client-c", coach_id="coach-1")
    seed.Client("client-d", coach_id="coach-2")
    seed.Link("coach-1", "client-b")
    seed.Link("coach-1", "client-c")

    store = PushStore(db)

    assert ResolveCoachClientIds(store, "coach-1") == {"client-a", "client-b", "client-c"}
    assert ResolveCoachClientIds(store, "coach-3") == set()
    assert IsCoachClient(store, "coach-1", "client-b")
    assert not IsCoachClient(store, "coach-1", "client-d")


def test_resolver_ignores_empty_ids():
    store = _CountingStore(primary=["client-a", None, ""], linked=["client-a"])
    assert ResolveCoachClientIds(store, "coach-1") == {"client-a"}


def test_eligibility_skips_store_for_empty_candidates():
    store = _CountingStore(enabled={"client-a"})
    assert FilterEligibleUserIds(store, set()) == set()
    assert store.calls == []


def test_eligibility_keeps_only_enabled_rows(seed, db):
    seed.Client("client-on")
    seed.Client("client-off", enabled=False)
    seed.Client("client-none", with_preference=False)

    eligible = FilterEligibleUserIds(PushStore(db), {"client-on", "client-off", "client-none"})

    assert eligible == {"client-on"}


def test_eligibility_never_adds_users_outside_candidates():
    store = _CountingStore(enabled={"client-a", "client-z"})
    assert FilterEligibleUserIds(store, {"client-a", "client-b"}) == {"client-a"}


def test_personal_rule_targets_only_its_client(seed, db):
    seed.User("coach-1", role="Coach")
    seed.Client("client-a", coach_id="coach-1")
    seed.Client("client-b", coach_id="coach-1")
    rule = seed.Rule("coach-1", "08:00", "Stretch", client_id="client-a")

    assert ResolveRuleRecipients(PushStore(db), rule) == {"client-a"}


def test_personal_rule_skips_disabled_client(seed, db):
    seed.User("coach-1", role="Coach")
    seed.Client("client-a", coach_id="coach-1", enabled=False)
    rule = seed.Rule("coach-1", "08:00", "Stretch", client_id="client-a")

    assert ResolveRuleRecipients(PushStore(db), rule) == set()


def test_global_rule_without_clients_skips_eligibility_lookup():
    store = _CountingStore()

    class _Rule:
        ClientId = None
        CoachId = "coach-1"

    assert ResolveRuleRecipients(store, _Rule()) == set()
    assert "enabled" not in store.calls
