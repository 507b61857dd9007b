#!/usr/bin/env python3
"""
Entity Migrators

One migrator per top-level entity type. Each takes a single v3 row, builds
the normalized v4 record, resolves parent references through the
``ReferenceResolver`` and performs one append-only write (a nested write
where the target supports it). Failures propagate; containing them is the
orchestrator's job.

Ticket migration owns its archive: channels are written together with the
ticket, then roles, then users (which reference roles by ticket+role), then
messages (which reference users by ticket+user).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from core.errors import UnresolvedReferenceError
from core.normalizer import (
    coerce_flag,
    decode_list,
    decode_tags,
    encode_json,
    extract_blocklist_roles,
    normalize_colour,
    normalize_timestamp,
    opaque_text,
)
from core.resolver import ReferenceResolver
from core.source_reader import LegacySource
from core.target_store import TargetStore

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY_DESCRIPTION = 'Please edit your category description'
DEFAULT_CATEGORY_EMOJI = '\N{TICKET}'


class OutcomeStatus(Enum):
    MIGRATED = "migrated"
    SKIPPED = "skipped"


@dataclass
class MigrationOutcome:
    """Result of migrating one source row"""
    status: OutcomeStatus
    target_id: Any = None
    detail: Optional[str] = None

    @classmethod
    def migrated(cls, target_id: Any = None, detail: Optional[str] = None) -> 'MigrationOutcome':
        return cls(OutcomeStatus.MIGRATED, target_id, detail)

    @classmethod
    def skipped(cls, detail: str) -> 'MigrationOutcome':
        return cls(OutcomeStatus.SKIPPED, None, detail)


class EntityMigrator:
    """Base class for entity migrators"""

    entity: str = None

    def __init__(self, source: LegacySource, store: TargetStore, resolver: ReferenceResolver):
        self.source = source
        self.store = store
        self.resolver = resolver

    def source_rows(self):
        return self.source.iter_rows(self.entity)

    def record_id(self, row: Dict[str, Any]) -> Any:
        return row.get('id')

    def migrate(self, row: Dict[str, Any]) -> MigrationOutcome:
        raise NotImplementedError("Subclasses must implement migrate")

    def register(self, row: Dict[str, Any], outcome: MigrationOutcome):
        """Record identifiers produced by a successful migration"""
        pass


class GuildMigrator(EntityMigrator):
    entity = 'guild'

    def transform(self, row: Dict[str, Any]) -> Dict[str, Any]:
        return {
            'id': row['id'],
            'archive': coerce_flag(row.get('log_messages')),
            'blocklist': encode_json(extract_blocklist_roles(row.get('blacklist'))),
            'close_button': coerce_flag(row.get('close_button')),
            'created_at': normalize_timestamp(row.get('createdAt')),
            'error_colour': normalize_colour(row.get('error_colour')),
            'footer': row.get('footer'),
            'locale': row.get('locale'),
            'primary_colour': normalize_colour(row.get('colour')),
            'success_colour': normalize_colour(row.get('success_colour')),
        }

    def transform_tags(self, row: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [{'name': name, 'content': content} for name, content in decode_tags(row.get('tags'))]

    def migrate(self, row: Dict[str, Any]) -> MigrationOutcome:
        if self.store.guild_exists(row['id']):
            return MigrationOutcome.skipped("guild already exists in target")
        self.store.create_guild(self.transform(row), self.transform_tags(row))
        return MigrationOutcome.migrated(row['id'])


class CategoryMigrator(EntityMigrator):
    entity = 'category'

    def transform(self, row: Dict[str, Any]) -> Dict[str, Any]:
        return {
            'channel_name': row.get('name_format'),
            'claiming': coerce_flag(row.get('claiming')),
            'created_at': normalize_timestamp(row.get('createdAt')),
            'description': DEFAULT_CATEGORY_DESCRIPTION,
            'discord_category': row['id'],
            'emoji': DEFAULT_CATEGORY_EMOJI,
            'enable_feedback': coerce_flag(row.get('survey')),
            'guild_id': row.get('guild'),
            'image': row.get('image'),
            'member_limit': row.get('max_per_member'),
            'name': row.get('name'),
            'opening_message': row.get('opening_message'),
            'ping_roles': encode_json(decode_list(row.get('ping'))),
            'require_topic': coerce_flag(row.get('require_topic')),
            'staff_roles': encode_json(decode_list(row.get('roles'))),
        }

    def migrate(self, row: Dict[str, Any]) -> MigrationOutcome:
        return MigrationOutcome.migrated(self.store.create_category(self.transform(row)))

    def register(self, row: Dict[str, Any], outcome: MigrationOutcome):
        if outcome.target_id is not None:
            self.resolver.register_category(row['id'], outcome.target_id)


class TicketMigrator(EntityMigrator):
    entity = 'ticket'

    def transform(self, row: Dict[str, Any], category_id: Any) -> Dict[str, Any]:
        return {
            'id': row['id'],
            'category_id': category_id,
            'claimed_by_id': self.resolver.ensure_known_user(row.get('claimed_by')),
            'closed_by_id': self.resolver.ensure_known_user(row.get('closed_by')),
            'closed_reason': row.get('closed_reason'),
            'created_at': normalize_timestamp(row.get('createdAt')),
            'created_by_id': self.resolver.ensure_known_user(row.get('creator')),
            'first_response_at': normalize_timestamp(row.get('first_response')),
            'guild_id': row.get('guild'),
            'last_message_at': normalize_timestamp(row.get('last_message')),
            'number': row.get('number'),
            'open': coerce_flag(row.get('open')),
            'opening_message_id': row.get('opening_message'),
            'pinned_message_ids': encode_json(decode_list(row.get('pinned_messages'))),
            'topic': row.get('topic'),
        }

    def transform_channel(self, row: Dict[str, Any]) -> Dict[str, Any]:
        return {
            'channel_id': row.get('channel'),
            'created_at': normalize_timestamp(row.get('createdAt')),
            'name': row.get('name'),
        }

    def transform_role(self, ticket_id: str, row: Dict[str, Any]) -> Dict[str, Any]:
        return {
            'colour': row.get('colour'),
            'created_at': normalize_timestamp(row.get('createdAt')),
            'name': row.get('name'),
            'role_id': row.get('role'),
            'ticket_id': ticket_id,
        }

    def transform_user(self, row: Dict[str, Any]) -> Dict[str, Any]:
        return {
            'avatar': row.get('avatar'),
            'bot': coerce_flag(row.get('bot')),
            'created_at': normalize_timestamp(row.get('createdAt')),
            'discriminator': row.get('discriminator'),
            'display_name': row.get('display_name'),
            'role_id': row.get('role'),
            'username': row.get('name'),
        }

    def transform_message(self, ticket_id: str, row: Dict[str, Any]) -> Dict[str, Any]:
        return {
            'author_id': row.get('author'),
            'content': opaque_text(row.get('data')),
            'created_at': normalize_timestamp(row.get('createdAt')),
            'deleted': coerce_flag(row.get('deleted')),
            'edited': coerce_flag(row.get('edited')),
            'id': row['id'],
            'ticket_id': ticket_id,
        }

    def migrate(self, row: Dict[str, Any]) -> MigrationOutcome:
        ticket_id = row['id']
        if self.store.ticket_exists(ticket_id):
            return MigrationOutcome.skipped("ticket already exists in target")

        category_id = self.resolver.resolve_category(row.get('category'))
        if category_id is None:
            raise UnresolvedReferenceError('category', row.get('category'), {'ticket': ticket_id})

        channels = [self.transform_channel(channel) for channel in self.source.channels_for(ticket_id)]
        self.store.create_ticket(self.transform(row, category_id), channels)

        roles = self.source.roles_for(ticket_id)
        for role in roles:
            self.store.create_archived_role(self.transform_role(ticket_id, role))

        users = self.source.users_for(ticket_id)
        for user in users:
            self.resolver.ensure_participant(ticket_id, user['user'], self.transform_user(user))

        messages = self.source.messages_for(ticket_id)
        for message in messages:
            record = self.transform_message(ticket_id, message)
            self.resolver.ensure_participant(ticket_id, record['author_id'], created_at=record['created_at'])
            self.store.create_archived_message(record)

        logger.debug(f"Ticket {ticket_id}: {len(channels)} channels, {len(roles)} roles, "
                     f"{len(users)} users, {len(messages)} messages")
        return MigrationOutcome.migrated(ticket_id, f"{len(messages)} messages")


# Pass order: categories need their guild, tickets need guild and category.
MIGRATORS = (GuildMigrator, CategoryMigrator, TicketMigrator)
