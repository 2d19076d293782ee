from __future__ import annotations

import logging

from app.modules.push.store import PushStore

logger = logging.getLogger("push.resolver")


def ResolveCoachClientIds(store: PushStore, coach_id: str) -> set[str]:
    """Clients owned by a coach through either the primary assignment or the link table."""
    primary_ids = {client_id for client_id in store.ListPrimaryClientIds(coach_id) if client_id}
    linked_ids = {client_id for client_id in store.ListLinkedClientIds(coach_id) if client_id}
    resolved = primary_ids | linked_ids
    logger.debug(
        "resolved coach_id=%s primary=%s linked=%s unique=%s",
        coach_id,
        len(primary_ids),
        len(linked_ids),
        len(resolved),
    )
    return resolved


def IsCoachClient(store: PushStore, coach_id: str, client_id: str) -> bool:
    return client_id in ResolveCoachClientIds(store, coach_id)
