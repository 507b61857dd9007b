#!/usr/bin/env python3
"""
v4 target schema

Table definitions for the redesigned schema, written once with type
placeholders and rendered per dialect. The layout is a fixed contract; the
migrator only creates it (``CREATE TABLE IF NOT EXISTS``) when asked to
initialise an empty target.
"""

import logging
from typing import Dict, List

from core.database_manager import BackendType, DatabaseAdapter
from core.errors import StorageError

logger = logging.getLogger(__name__)

TYPE_MAP: Dict[str, Dict[str, str]] = {
    BackendType.SQLITE.value: {
        'auto_pk': 'INTEGER PRIMARY KEY AUTOINCREMENT',
        'snowflake': 'VARCHAR(20)',
        'short': 'VARCHAR(191)',
        'text': 'TEXT',
        'int': 'INTEGER',
        'bool': 'BOOLEAN',
        'timestamp': 'TIMESTAMP',
        'json': 'TEXT',
    },
    BackendType.POSTGRESQL.value: {
        'auto_pk': 'SERIAL PRIMARY KEY',
        'snowflake': 'VARCHAR(20)',
        'short': 'VARCHAR(191)',
        'text': 'TEXT',
        'int': 'INTEGER',
        'bool': 'BOOLEAN',
        'timestamp': 'TIMESTAMPTZ',
        'json': 'TEXT',
    },
    BackendType.MYSQL.value: {
        'auto_pk': 'INTEGER PRIMARY KEY AUTO_INCREMENT',
        'snowflake': 'VARCHAR(20)',
        'short': 'VARCHAR(191)',
        'text': 'TEXT',
        'int': 'INTEGER',
        'bool': 'BOOLEAN',
        'timestamp': 'DATETIME(3)',
        'json': 'TEXT',
    },
}

# Dependency order; drop in reverse.
TARGET_TABLES: List[tuple] = [
    ('guilds', """
        id {snowflake} NOT NULL PRIMARY KEY,
        archive {bool} NOT NULL DEFAULT TRUE,
        blocklist {json},
        close_button {bool} NOT NULL DEFAULT FALSE,
        error_colour {short},
        footer {text},
        locale {short},
        primary_colour {short},
        success_colour {short},
        created_at {timestamp}
    """),
    ('tags', """
        id {auto_pk},
        guild_id {snowflake} NOT NULL,
        name {short} NOT NULL,
        content {text},
        UNIQUE (guild_id, name),
        FOREIGN KEY (guild_id) REFERENCES guilds (id)
    """),
    ('categories', """
        id {auto_pk},
        guild_id {snowflake} NOT NULL,
        name {short},
        description {text},
        emoji {short},
        channel_name {short},
        claiming {bool} NOT NULL DEFAULT FALSE,
        discord_category {snowflake},
        enable_feedback {bool} NOT NULL DEFAULT FALSE,
        image {text},
        member_limit {int},
        opening_message {text},
        ping_roles {json},
        require_topic {bool} NOT NULL DEFAULT FALSE,
        staff_roles {json},
        created_at {timestamp},
        FOREIGN KEY (guild_id) REFERENCES guilds (id)
    """),
    ('users', """
        id {snowflake} NOT NULL PRIMARY KEY
    """),
    ('tickets', """
        id {snowflake} NOT NULL PRIMARY KEY,
        guild_id {snowflake} NOT NULL,
        category_id {int} NOT NULL,
        number {int},
        open {bool} NOT NULL DEFAULT TRUE,
        topic {text},
        created_by_id {snowflake},
        claimed_by_id {snowflake},
        closed_by_id {snowflake},
        closed_reason {text},
        first_response_at {timestamp},
        last_message_at {timestamp},
        opening_message_id {snowflake},
        pinned_message_ids {json},
        created_at {timestamp},
        FOREIGN KEY (guild_id) REFERENCES guilds (id),
        FOREIGN KEY (category_id) REFERENCES categories (id),
        FOREIGN KEY (created_by_id) REFERENCES users (id),
        FOREIGN KEY (claimed_by_id) REFERENCES users (id),
        FOREIGN KEY (closed_by_id) REFERENCES users (id)
    """),
    ('archived_channels', """
        id {auto_pk},
        ticket_id {snowflake} NOT NULL,
        channel_id {snowflake} NOT NULL,
        name {text},
        created_at {timestamp},
        UNIQUE (ticket_id, channel_id),
        FOREIGN KEY (ticket_id) REFERENCES tickets (id)
    """),
    ('archived_roles', """
        id {auto_pk},
        ticket_id {snowflake} NOT NULL,
        role_id {snowflake} NOT NULL,
        name {text},
        colour {short},
        created_at {timestamp},
        UNIQUE (ticket_id, role_id),
        FOREIGN KEY (ticket_id) REFERENCES tickets (id)
    """),
    ('archived_users', """
        ticket_id {snowflake} NOT NULL,
        user_id {snowflake} NOT NULL,
        username {text},
        display_name {text},
        discriminator {short},
        avatar {text},
        bot {bool} NOT NULL DEFAULT FALSE,
        role_id {snowflake},
        created_at {timestamp},
        PRIMARY KEY (ticket_id, user_id),
        FOREIGN KEY (ticket_id) REFERENCES tickets (id),
        FOREIGN KEY (ticket_id, role_id) REFERENCES archived_roles (ticket_id, role_id)
    """),
    ('archived_messages', """
        id {snowflake} NOT NULL PRIMARY KEY,
        ticket_id {snowflake} NOT NULL,
        author_id {snowflake} NOT NULL,
        content {text},
        deleted {bool} NOT NULL DEFAULT FALSE,
        edited {bool} NOT NULL DEFAULT FALSE,
        created_at {timestamp},
        FOREIGN KEY (ticket_id) REFERENCES tickets (id),
        FOREIGN KEY (ticket_id, author_id) REFERENCES archived_users (ticket_id, user_id)
    """),
]

TARGET_TABLE_NAMES = [name for name, _ in TARGET_TABLES]


def render_ddl(dialect: str) -> List[str]:
    """CREATE TABLE statements for ``dialect`` in dependency order"""
    types = TYPE_MAP.get(dialect)
    if types is None:
        raise StorageError(f"No target schema for dialect: {dialect}")
    return [
        f"CREATE TABLE IF NOT EXISTS {name} ({body.format(**types).strip()})"
        for name, body in TARGET_TABLES
    ]


def create_target_schema(adapter: DatabaseAdapter):
    """Create any missing v4 tables on ``adapter``"""
    result = adapter.execute_script(render_ddl(adapter.dialect))
    if not result['success']:
        raise StorageError(f"Failed to create target schema: {result['error']}")
    logger.info(f"Target schema ready ({adapter.dialect})")
