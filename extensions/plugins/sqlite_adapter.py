#!/usr/bin/env python3
"""
Ticket Migrator SQLite Adapter

Serves both as the file-based v3 source and as the default local v4 target.
Foreign keys are enforced so that dangling references fail the record that
produced them instead of being written silently.
"""

import sqlite3
import logging
import os
from datetime import datetime
from typing import Dict, List, Any, Optional

from core.database_manager import BackendType, DatabaseAdapter

logger = logging.getLogger(__name__)

# Timestamps are stored as ISO-8601 text, offset included
sqlite3.register_adapter(datetime, lambda value: value.isoformat(" "))


class SQLiteAdapter(DatabaseAdapter):
    """SQLite adapter for a v3 file or a local v4 database"""

    backend_type = BackendType.SQLITE
    placeholder = '?'

    def __init__(self, database: str = ':memory:', timeout: float = 30.0,
                 foreign_keys: bool = True, **kwargs):
        """
        Args:
            database: database file, or ':memory:'
            timeout: seconds to wait on a locked database
            foreign_keys: turn on foreign key enforcement for the connection
        """
        super().__init__()
        self.database = database
        self.timeout = timeout
        self.foreign_keys = foreign_keys
        self._open()
        logger.info(f"SQLite adapter ready for {database}")

    def _open(self) -> None:
        if self.database != ':memory:':
            parent = os.path.dirname(self.database)
            if parent:
                os.makedirs(parent, exist_ok=True)
        try:
            self._connection = sqlite3.connect(self.database, timeout=self.timeout)
        except sqlite3.Error as e:
            logger.error(f"Cannot open SQLite database {self.database}: {e}")
            raise
        self._connection.row_factory = sqlite3.Row
        if self.foreign_keys:
            self._connection.execute("PRAGMA foreign_keys = ON")

    def close(self) -> None:
        if self._connection:
            self._connection.close()
            self._connection = None
            logger.debug(f"Closed SQLite database {self.database}")

    def execute_query(self, sql: str, params: Optional[tuple] = None,
                      fetch: bool = True) -> Dict[str, Any]:
        """Run one statement and return a result dictionary"""
        result = self._new_result()

        try:
            cursor = self._connection.execute(sql, params or ())
            if fetch and cursor.description:
                result['data'] = [dict(row) for row in cursor.fetchall()]
            result['rows_affected'] = cursor.rowcount
            result['lastrowid'] = cursor.lastrowid
            result['success'] = True
        except sqlite3.IntegrityError as e:
            result['error'] = f"Integrity error: {e}"
            result['integrity_error'] = True
        except sqlite3.Error as e:
            result['error'] = f"SQLite error: {e}"

        self._after_statement(result)
        return result

    def _insert_sql(self, table: str, columns: List[str], ignore_conflicts: bool,
                    returning: Optional[str]) -> str:
        sql = super()._insert_sql(table, columns, ignore_conflicts, returning)
        if ignore_conflicts:
            sql = sql.replace("INSERT INTO", "INSERT OR IGNORE INTO", 1)
        return sql

    def get_tables(self) -> List[str]:
        result = self.execute_query(
            "SELECT name FROM sqlite_master "
            "WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
        )
        return [row['name'] for row in result['data']]
