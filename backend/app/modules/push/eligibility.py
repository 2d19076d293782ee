from __future__ import annotations

from app.modules.push.store import PushStore


def FilterEligibleUserIds(store: PushStore, candidate_ids: set[str]) -> set[str]:
    """Keep users whose alert preference is enabled.

    A user without a preference row is not eligible. Direct sends do not go
    through this filter; registration creates an enabled row on first subscribe.
    """
    if not candidate_ids:
        return set()
    return store.ListEnabledUserIds(candidate_ids) & candidate_ids
