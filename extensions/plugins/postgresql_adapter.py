#!/usr/bin/env python3
"""
Ticket Migrator PostgreSQL Adapter

A single-connection psycopg2 adapter. The migration runs one statement at a
time and needs nested writes (a ticket plus its archived channels) to share
one transaction, so no pool is used.

Usage:
    adapter = PostgreSQLAdapter(ConnectionConfig(
        host='localhost',
        database='tickets',
        user='tickets',
        password='secure_password'
    ))
    result = adapter.execute_query("SELECT * FROM guilds")
"""

import psycopg2
import psycopg2.extras
from psycopg2 import OperationalError, DatabaseError, IntegrityError
import logging
import time
from typing import Dict, List, Any, Optional, Tuple
from dataclasses import dataclass
from enum import Enum

from core.database_manager import BackendType, DatabaseAdapter
from core.errors import ConfigurationError

# Configure logging
logger = logging.getLogger(__name__)

class SSLMode(Enum):
    """SSL connection modes"""
    DISABLE = "disable"
    ALLOW = "allow"
    PREFER = "prefer"
    REQUIRE = "require"
    VERIFY_CA = "verify-ca"
    VERIFY_FULL = "verify-full"

@dataclass
class ConnectionConfig:
    """PostgreSQL connection configuration"""
    host: str = "localhost"
    port: int = 5432
    database: str = "tickets"
    user: Optional[str] = None
    password: Optional[str] = None

    ssl_mode: SSLMode = SSLMode.PREFER
    connect_timeout: int = 10
    statement_timeout: int = 300  # seconds

    # Retry settings
    max_retries: int = 3
    retry_delay: float = 1.0

    application_name: str = "ticket-migrate"

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> 'ConnectionConfig':
        ssl_mode = cls.ssl_mode
        if config.get('sslmode'):
            try:
                ssl_mode = SSLMode(config['sslmode'])
            except ValueError:
                raise ConfigurationError(f"Unsupported sslmode: {config['sslmode']}")
        return cls(
            host=config.get('host') or cls.host,
            port=config.get('port') or cls.port,
            database=config.get('database') or cls.database,
            user=config.get('user'),
            password=config.get('password'),
            ssl_mode=ssl_mode,
        )

    def to_connection_params(self) -> Dict[str, Any]:
        """Convert to psycopg2 connection parameters"""
        params = {
            'host': self.host,
            'port': self.port,
            'dbname': self.database,
            'connect_timeout': self.connect_timeout,
            'application_name': self.application_name,
            'options': f'-c statement_timeout={self.statement_timeout * 1000}'
        }
        if self.user:
            params['user'] = self.user
        if self.password:
            params['password'] = self.password
        if self.ssl_mode != SSLMode.DISABLE:
            params['sslmode'] = self.ssl_mode.value
        return params


class PostgreSQLAdapter(DatabaseAdapter):
    """PostgreSQL adapter for the v3 source or the v4 target"""

    backend_type = BackendType.POSTGRESQL
    placeholder = '%s'

    def __init__(self, config: Optional[ConnectionConfig] = None, **kwargs):
        super().__init__()
        self.config = config or ConnectionConfig(**kwargs)
        self._connect()
        logger.info(f"PostgreSQL adapter initialized for {self.config.host}:{self.config.port}/{self.config.database}")

    def _connect(self) -> None:
        """Open the connection, retrying transient failures"""
        attempt = 0
        while True:
            try:
                self._connection = psycopg2.connect(**self.config.to_connection_params())
                return
            except OperationalError as e:
                attempt += 1
                if attempt > self.config.max_retries:
                    logger.error(f"Failed to connect to PostgreSQL: {e}")
                    raise
                logger.warning(f"Connection failed, retrying ({attempt}/{self.config.max_retries}): {e}")
                time.sleep(self.config.retry_delay * attempt)

    def close(self) -> None:
        if self._connection:
            self._connection.close()
            self._connection = None
            logger.info("PostgreSQL adapter closed")

    def execute_query(self, sql: str, params: Optional[Tuple] = None,
                      fetch: bool = True) -> Dict[str, Any]:
        """
        Execute SQL query

        Args:
            sql: SQL query string
            params: Query parameters (optional)
            fetch: Whether to fetch results

        Returns:
            Dictionary with execution results
        """
        result = self._new_result()

        try:
            with self._connection.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cursor:
                cursor.execute(sql, params)
                if fetch and cursor.description:
                    result['data'] = [dict(row) for row in cursor.fetchall()]
                result['rows_affected'] = cursor.rowcount if cursor.rowcount > 0 else 0
            result['success'] = True
        except IntegrityError as e:
            result['error'] = f"Integrity error: {str(e).strip()}"
            result['integrity_error'] = True
        except (OperationalError, DatabaseError) as e:
            result['error'] = f"PostgreSQL error: {str(e).strip()}"

        self._after_statement(result)
        return result

    def _insert_sql(self, table: str, columns: List[str], ignore_conflicts: bool,
                    returning: Optional[str]) -> str:
        sql = super()._insert_sql(table, columns, ignore_conflicts, returning)
        if ignore_conflicts:
            sql += " ON CONFLICT DO NOTHING"
        if returning:
            sql += f" RETURNING {self.quote_identifier(returning)}"
        return sql

    def _inserted_id(self, result: Dict[str, Any], returning: str) -> Any:
        return result['data'][0][returning] if result['data'] else None

    def get_tables(self) -> List[str]:
        result = self.execute_query("""
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = 'public'
            ORDER BY table_name
        """)
        return [row['table_name'] for row in result['data']]
