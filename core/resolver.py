#!/usr/bin/env python3
"""
Reference Resolver - source identifiers to target identifiers

One resolver lives for exactly one migration run. It holds the v3 -> v4
category id map (categories get fresh primary keys in the target) and
find-or-creates the loosely referenced users a ticket points at.

The caches only save round trips: duplicate prevention comes from the target
store's unique constraints, since none of this state survives the run.
"""

import logging
from typing import Any, Dict, NamedTuple, Optional, Set

from core.target_store import TargetStore

logger = logging.getLogger(__name__)

PLACEHOLDER_NAME = 'Unknown User'
PLACEHOLDER_DISCRIMINATOR = '0000'


class ParticipantKey(NamedTuple):
    """Composite key of an archived user: unique per ticket"""
    ticket_id: str
    user_id: str


def placeholder_participant(created_at: Any = None) -> Dict[str, Any]:
    """Fields written for a message author with no participant record"""
    return {
        'username': PLACEHOLDER_NAME,
        'display_name': PLACEHOLDER_NAME,
        'discriminator': PLACEHOLDER_DISCRIMINATOR,
        'created_at': created_at,
    }


class ReferenceResolver:
    """Cross-schema reference resolution for one run"""

    def __init__(self, store: TargetStore):
        self.store = store
        self._categories: Dict[Any, Any] = {}
        self._known_users: Set[str] = set()
        self._participants: Set[ParticipantKey] = set()
        self.placeholders_created = 0

    # Categories

    def register_category(self, source_id: Any, target_id: Any):
        self._categories[source_id] = target_id
        logger.debug(f"Category {source_id} -> {target_id}")

    def resolve_category(self, source_id: Any) -> Optional[Any]:
        """Target id of a migrated category, or None if it was never migrated"""
        if source_id is None:
            return None
        return self._categories.get(source_id)

    @property
    def category_map(self) -> Dict[Any, Any]:
        return dict(self._categories)

    # Known users

    def ensure_known_user(self, user_id: Optional[str]) -> Optional[str]:
        """Find-or-create a user by id alone; None stays None"""
        if not user_id:
            return None
        if user_id not in self._known_users:
            self.store.ensure_user(user_id)
            self._known_users.add(user_id)
        return user_id

    # Participants

    def ensure_participant(self, ticket_id: str, user_id: str,
                           metadata: Optional[Dict[str, Any]] = None,
                           created_at: Any = None) -> ParticipantKey:
        """Find-or-create the archived user for (ticket, user).

        Without ``metadata`` a new row gets the "Unknown User" placeholder
        fields, stamped with ``created_at`` (the message that referenced it).
        An existing row is never modified.
        """
        key = ParticipantKey(ticket_id, user_id)
        if key in self._participants:
            return key

        if self.store.find_archived_user(ticket_id, user_id) is None:
            if metadata is None:
                fields = placeholder_participant(created_at)
                self.placeholders_created += 1
                logger.debug(f"Synthesizing placeholder participant {user_id} for ticket {ticket_id}")
            else:
                fields = dict(metadata)
            fields.update(ticket_id=ticket_id, user_id=user_id)
            self.store.create_archived_user(fields)

        self._participants.add(key)
        return key
