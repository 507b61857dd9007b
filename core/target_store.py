#!/usr/bin/env python3
"""
v4 Target Store

Find/create/insert-or-ignore operations against the redesigned schema. The
pipeline only ever appends; nothing here updates or deletes a row. Failed
statements raise ``StorageError`` so the orchestrator can contain them to the
record being migrated.
"""

import logging
from typing import Any, Dict, List, Optional

from core.database_manager import DatabaseAdapter
from core.errors import StorageError
from core.target_schema import create_target_schema
from security.field_encryption import FieldCipher

logger = logging.getLogger(__name__)


class TargetStore:
    """Writes migrated entities into the v4 schema"""

    def __init__(self, adapter: DatabaseAdapter, cipher: Optional[FieldCipher] = None):
        self.adapter = adapter
        self.cipher = cipher

    def initialize_schema(self):
        create_target_schema(self.adapter)

    def close(self):
        self.adapter.close()

    # ------------------------------------------------------------------
    # Generic helpers
    # ------------------------------------------------------------------

    def _check(self, result: Dict[str, Any], action: str) -> Dict[str, Any]:
        if not result['success']:
            raise StorageError(f"{action} failed: {result['error']}",
                               integrity=result.get('integrity_error', False))
        return result

    def _insert(self, table: str, row: Dict[str, Any], ignore_conflicts: bool = False,
                returning: Optional[str] = None) -> Dict[str, Any]:
        if self.cipher:
            row = self.cipher.encrypt_row(table, row)
        result = self.adapter.insert(table, row, ignore_conflicts=ignore_conflicts, returning=returning)
        return self._check(result, f"Insert into {table}")

    def find(self, table: str, **where) -> List[Dict[str, Any]]:
        """Rows of ``table`` matching all ``where`` equalities, decrypted"""
        quote = self.adapter.quote_identifier
        sql = f"SELECT * FROM {quote(table)}"
        params = ()
        if where:
            sql += " WHERE " + " AND ".join(f"{quote(column)} = {self.adapter.placeholder}" for column in where)
            params = tuple(where.values())
        rows = self._check(self.adapter.execute_query(sql, params), f"Select from {table}")['data']
        if self.cipher:
            rows = [self.cipher.decrypt_row(table, row) for row in rows]
        return rows

    def find_one(self, table: str, **where) -> Optional[Dict[str, Any]]:
        rows = self.find(table, **where)
        return rows[0] if rows else None

    def exists(self, table: str, **where) -> bool:
        quote = self.adapter.quote_identifier
        conditions = " AND ".join(f"{quote(column)} = {self.adapter.placeholder}" for column in where)
        sql = f"SELECT 1 AS present FROM {quote(table)} WHERE {conditions}"
        result = self._check(self.adapter.execute_query(sql, tuple(where.values())), f"Select from {table}")
        return bool(result['data'])

    def count(self, table: str, **where) -> int:
        return len(self.find(table, **where))

    # ------------------------------------------------------------------
    # Guilds and categories
    # ------------------------------------------------------------------

    def guild_exists(self, guild_id: str) -> bool:
        return self.exists('guilds', id=guild_id)

    def create_guild(self, guild: Dict[str, Any], tags: Optional[List[Dict[str, Any]]] = None):
        """Create a guild and its tags atomically"""
        with self.adapter.transaction():
            self._insert('guilds', guild)
            for tag in tags or []:
                self._insert('tags', dict(tag, guild_id=guild['id']))

    def create_category(self, category: Dict[str, Any]) -> Any:
        """Create a category and return the id the target generated for it"""
        result = self._insert('categories', category, returning='id')
        category_id = result.get('inserted_id')
        if category_id is None:
            raise StorageError("Target did not return an id for the new category")
        return category_id

    def category_exists(self, category_id: Any) -> bool:
        return self.exists('categories', id=category_id)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def ensure_user(self, user_id: str):
        """Find-or-create a known user by id alone"""
        self._insert('users', {'id': user_id}, ignore_conflicts=True)

    # ------------------------------------------------------------------
    # Tickets and their archives
    # ------------------------------------------------------------------

    def ticket_exists(self, ticket_id: str) -> bool:
        return self.exists('tickets', id=ticket_id)

    def create_ticket(self, ticket: Dict[str, Any], channels: Optional[List[Dict[str, Any]]] = None):
        """Create a ticket and its archived channels atomically"""
        with self.adapter.transaction():
            self._insert('tickets', ticket)
            for channel in channels or []:
                self._insert('archived_channels', dict(channel, ticket_id=ticket['id']))

    def create_archived_role(self, role: Dict[str, Any]):
        self._insert('archived_roles', role)

    def find_archived_user(self, ticket_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        return self.find_one('archived_users', ticket_id=ticket_id, user_id=user_id)

    def create_archived_user(self, user: Dict[str, Any]):
        """Insert a participant; an existing (ticket, user) row is left untouched"""
        self._insert('archived_users', user, ignore_conflicts=True)

    def create_archived_message(self, message: Dict[str, Any]):
        self._insert('archived_messages', message)
