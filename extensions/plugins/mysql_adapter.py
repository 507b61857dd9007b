#!/usr/bin/env python3
"""
Ticket Migrator MySQL Adapter

PyMySQL adapter for v3 installations that ran on MySQL/MariaDB, and for v4
targets hosted there.

Usage:
    adapter = MySQLAdapter(ConnectionConfig(
        host='localhost',
        database='tickets',
        user='tickets',
        password='secure_password'
    ))
    result = adapter.execute_query("SELECT * FROM dsctickets_guilds")
"""

import pymysql
import pymysql.cursors
from pymysql import OperationalError, IntegrityError, MySQLError
import logging
import time
from typing import Dict, List, Any, Optional, Tuple
from dataclasses import dataclass

from core.database_manager import BackendType, DatabaseAdapter

# Configure logging
logger = logging.getLogger(__name__)

@dataclass
class ConnectionConfig:
    """MySQL connection configuration"""
    host: str = "localhost"
    port: int = 3306
    database: str = "tickets"
    user: Optional[str] = None
    password: Optional[str] = None

    connect_timeout: int = 10
    read_timeout: int = 30
    write_timeout: int = 30

    # Retry settings
    max_retries: int = 3
    retry_delay: float = 1.0

    # MySQL specific settings
    charset: str = "utf8mb4"
    sql_mode: str = "STRICT_TRANS_TABLES,NO_ZERO_DATE,NO_ZERO_IN_DATE,ERROR_FOR_DIVISION_BY_ZERO"

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> 'ConnectionConfig':
        return cls(
            host=config.get('host') or cls.host,
            port=config.get('port') or cls.port,
            database=config.get('database') or cls.database,
            user=config.get('user'),
            password=config.get('password'),
        )

    def to_connection_params(self) -> Dict[str, Any]:
        """Convert to PyMySQL connection parameters"""
        params = {
            'host': self.host,
            'port': self.port,
            'database': self.database,
            'connect_timeout': self.connect_timeout,
            'read_timeout': self.read_timeout,
            'write_timeout': self.write_timeout,
            'charset': self.charset,
            'autocommit': False,
            'cursorclass': pymysql.cursors.DictCursor
        }
        if self.user:
            params['user'] = self.user
        if self.password:
            params['password'] = self.password
        return params


class MySQLAdapter(DatabaseAdapter):
    """MySQL/MariaDB adapter"""

    backend_type = BackendType.MYSQL
    placeholder = '%s'

    def __init__(self, config: Optional[ConnectionConfig] = None, **kwargs):
        super().__init__()
        self.config = config or ConnectionConfig(**kwargs)
        self._connect()
        logger.info(f"MySQL adapter initialized for {self.config.host}:{self.config.port}/{self.config.database}")

    def _connect(self) -> None:
        """Open the connection and set session variables"""
        attempt = 0
        while True:
            try:
                self._connection = pymysql.connect(**self.config.to_connection_params())
                break
            except OperationalError as e:
                attempt += 1
                if attempt > self.config.max_retries:
                    logger.error(f"Failed to connect to MySQL: {e}")
                    raise
                logger.warning(f"Connection failed, retrying ({attempt}/{self.config.max_retries}): {e}")
                time.sleep(self.config.retry_delay * attempt)

        with self._connection.cursor() as cursor:
            cursor.execute(f"SET sql_mode = '{self.config.sql_mode}'")
            cursor.execute("SET time_zone = '+00:00'")  # Use UTC
        self._connection.commit()

    def close(self) -> None:
        if self._connection:
            self._connection.close()
            self._connection = None
            logger.info("MySQL adapter closed")

    def quote_identifier(self, identifier: str) -> str:
        return f'`{identifier}`'

    def execute_query(self, sql: str, params: Optional[Tuple] = None,
                      fetch: bool = True) -> Dict[str, Any]:
        """Execute SQL query and return a result dictionary"""
        result = self._new_result()

        try:
            with self._connection.cursor() as cursor:
                cursor.execute(sql, params)
                if fetch and cursor.description:
                    result['data'] = list(cursor.fetchall())
                result['rows_affected'] = cursor.rowcount
                result['lastrowid'] = cursor.lastrowid
            result['success'] = True
        except IntegrityError as e:
            result['error'] = f"Integrity error: {e}"
            result['integrity_error'] = True
        except MySQLError as e:
            result['error'] = f"MySQL error: {e}"

        self._after_statement(result)
        return result

    def _insert_sql(self, table: str, columns: List[str], ignore_conflicts: bool,
                    returning: Optional[str]) -> str:
        sql = super()._insert_sql(table, columns, ignore_conflicts, returning)
        if ignore_conflicts:
            # Only duplicate keys become no-ops; foreign key failures still raise
            column = self.quote_identifier(columns[0])
            sql += f" ON DUPLICATE KEY UPDATE {column} = {column}"
        return sql

    def get_tables(self) -> List[str]:
        result = self.execute_query("SHOW TABLES")
        return sorted(next(iter(row.values())) for row in result['data'])
