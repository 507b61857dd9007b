#!/usr/bin/env python3
"""
Ticket Migrator Test Configuration - PyTest Configuration and Fixtures

Builds a v3 SQLite database from the legacy table layout and an in-memory
v4 target so the whole pipeline can run without a database server.
"""

import json
import os
import sqlite3
import sys
from typing import Any, Dict

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.resolver import ReferenceResolver
from core.source_reader import LegacySource
from core.target_store import TargetStore
from extensions.plugins.sqlite_adapter import SQLiteAdapter
from security.field_encryption import FieldCipher

PREFIX = 'dsctickets_'
TEST_ENCRYPTION_KEY = 'test-encryption-key'
TIMESTAMP = '2022-03-01 12:00:00.000 +00:00'

LEGACY_SCHEMA = """
    CREATE TABLE {p}guilds (
        id CHAR(19) NOT NULL PRIMARY KEY,
        blacklist JSON,
        close_button TINYINT(1) DEFAULT 0,
        colour VARCHAR(255) DEFAULT '#009999',
        error_colour VARCHAR(255) DEFAULT 'RED',
        footer VARCHAR(255),
        locale VARCHAR(255) DEFAULT 'en-GB',
        log_messages TINYINT(1) DEFAULT 1,
        success_colour VARCHAR(255) DEFAULT 'GREEN',
        tags JSON,
        createdAt DATETIME NOT NULL,
        updatedAt DATETIME NOT NULL
    );
    CREATE TABLE {p}categories (
        id CHAR(19) NOT NULL PRIMARY KEY,
        claiming TINYINT(1) DEFAULT 0,
        guild CHAR(19) NOT NULL REFERENCES {p}guilds (id),
        image VARCHAR(255),
        max_per_member INTEGER DEFAULT 1,
        name VARCHAR(255) NOT NULL,
        name_format VARCHAR(255) DEFAULT 'ticket-{{number}}',
        opening_message TEXT,
        ping JSON,
        require_topic TINYINT(1) DEFAULT 0,
        roles JSON,
        survey VARCHAR(255),
        createdAt DATETIME NOT NULL,
        updatedAt DATETIME NOT NULL
    );
    CREATE TABLE {p}tickets (
        id CHAR(19) NOT NULL PRIMARY KEY,
        category CHAR(19),
        claimed_by CHAR(19),
        closed_by CHAR(19),
        closed_reason VARCHAR(255),
        creator CHAR(19),
        first_response DATETIME,
        guild CHAR(19) NOT NULL,
        last_message DATETIME,
        number INTEGER NOT NULL,
        open TINYINT(1) DEFAULT 1,
        opening_message CHAR(19),
        pinned_messages JSON,
        topic TEXT,
        createdAt DATETIME NOT NULL,
        updatedAt DATETIME NOT NULL
    );
    CREATE TABLE {p}channel_entities (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        channel CHAR(19) NOT NULL,
        name VARCHAR(255),
        ticket CHAR(19) NOT NULL,
        createdAt DATETIME NOT NULL,
        updatedAt DATETIME NOT NULL
    );
    CREATE TABLE {p}role_entities (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        colour CHAR(6),
        name VARCHAR(255),
        role CHAR(19) NOT NULL,
        ticket CHAR(19) NOT NULL,
        createdAt DATETIME NOT NULL,
        updatedAt DATETIME NOT NULL
    );
    CREATE TABLE {p}user_entities (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        avatar VARCHAR(255),
        bot TINYINT(1) DEFAULT 0,
        discriminator CHAR(4),
        display_name TEXT,
        name TEXT,
        role CHAR(19),
        ticket CHAR(19) NOT NULL,
        user CHAR(19) NOT NULL,
        createdAt DATETIME NOT NULL,
        updatedAt DATETIME NOT NULL
    );
    CREATE TABLE {p}messages (
        id CHAR(19) NOT NULL PRIMARY KEY,
        author CHAR(19) NOT NULL,
        data JSON,
        deleted TINYINT(1) DEFAULT 0,
        edited TINYINT(1) DEFAULT 0,
        ticket CHAR(19) NOT NULL,
        createdAt DATETIME NOT NULL,
        updatedAt DATETIME NOT NULL
    );
"""


class LegacyDatabase:
    """Writes v3 rows into a SQLite file for the tests to migrate"""

    def __init__(self, path: str, prefix: str = PREFIX):
        self.path = path
        self.prefix = prefix
        with sqlite3.connect(path) as conn:
            conn.executescript(LEGACY_SCHEMA.format(p=prefix))

    def _insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        row = dict({'createdAt': TIMESTAMP, 'updatedAt': TIMESTAMP}, **row)
        for key, value in row.items():
            if isinstance(value, (dict, list)):
                row[key] = json.dumps(value)
        columns = ', '.join(f'"{c}"' for c in row)
        marks = ', '.join('?' for _ in row)
        with sqlite3.connect(self.path) as conn:
            conn.execute(f'INSERT INTO "{self.prefix}{table}" ({columns}) VALUES ({marks})', tuple(row.values()))
        return row

    def add_guild(self, guild_id: str, **fields):
        defaults = {
            'blacklist': {'members': [], 'roles': []},
            'colour': '#009999',
            'error_colour': 'RED',
            'success_colour': 'GREEN',
            'footer': 'Discord Tickets by eartharoid',
            'locale': 'en-GB',
            'log_messages': 1,
            'close_button': 0,
            'tags': {},
        }
        return self._insert('guilds', dict(defaults, id=guild_id, **fields))

    def add_category(self, category_id: str, guild_id: str, **fields):
        defaults = {
            'name': f'Category {category_id}',
            'name_format': 'ticket-{number}',
            'max_per_member': 1,
            'ping': [],
            'roles': ['500'],
            'require_topic': 0,
            'claiming': 0,
        }
        return self._insert('categories', dict(defaults, id=category_id, guild=guild_id, **fields))

    def add_ticket(self, ticket_id: str, guild_id: str, category_id: str, **fields):
        defaults = {'number': 1, 'open': 1, 'pinned_messages': []}
        return self._insert('tickets', dict(defaults, id=ticket_id, guild=guild_id,
                                            category=category_id, **fields))

    def add_channel(self, ticket_id: str, channel_id: str, name: str = 'general'):
        return self._insert('channel_entities', {'ticket': ticket_id, 'channel': channel_id, 'name': name})

    def add_role(self, ticket_id: str, role_id: str, name: str = 'Support', colour: str = '5865f2'):
        return self._insert('role_entities', {'ticket': ticket_id, 'role': role_id, 'name': name, 'colour': colour})

    def add_user(self, ticket_id: str, user_id: str, role_id: str = None, **fields):
        defaults = {'name': f'user{user_id}', 'display_name': f'User {user_id}',
                    'discriminator': '1234', 'avatar': None, 'bot': 0}
        return self._insert('user_entities', dict(defaults, ticket=ticket_id, user=user_id,
                                                  role=role_id, **fields))

    def add_message(self, ticket_id: str, message_id: str, author_id: str, content: Any = None, **fields):
        data = content if content is not None else {'content': f'message {message_id}'}
        return self._insert('messages', dict({'deleted': 0, 'edited': 0}, id=message_id,
                                             ticket=ticket_id, author=author_id, data=data, **fields))


@pytest.fixture
def legacy_db(tmp_path):
    """Empty v3 database with the default table prefix"""
    return LegacyDatabase(str(tmp_path / 'v3.sqlite'))


@pytest.fixture
def source(legacy_db):
    adapter = SQLiteAdapter(database=legacy_db.path)
    reader = LegacySource(adapter, prefix=PREFIX, batch_size=2)
    yield reader
    reader.close()


@pytest.fixture
def target_adapter():
    adapter = SQLiteAdapter(database=':memory:')
    yield adapter
    adapter.close()


@pytest.fixture
def store(target_adapter):
    """Plaintext v4 store with the schema created"""
    target = TargetStore(target_adapter)
    target.initialize_schema()
    return target


@pytest.fixture
def encrypted_store(target_adapter):
    target = TargetStore(target_adapter, cipher=FieldCipher(TEST_ENCRYPTION_KEY))
    target.initialize_schema()
    return target


@pytest.fixture
def resolver(store):
    return ReferenceResolver(store)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove migration environment variables for config tests"""
    for name in ('ENCRYPTION_KEY', 'DB_TABLE_PREFIX', 'MIGRATE_BATCH_SIZE', 'MIGRATE_LOG_LEVEL'):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


# Custom markers for test organization
def pytest_configure(config):
    """Configure custom pytest markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that test individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that run the whole pipeline"
    )
