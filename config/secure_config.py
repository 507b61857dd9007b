#!/usr/bin/env python3
"""
Migration Configuration
Handles connection options, environment variables and secrets centrally
"""

import os
from dataclasses import dataclass
from typing import Any, Optional

from core.database_manager import BackendType, parse_database_url, sanitize_url
from core.errors import ConfigurationError
from core.source_reader import DEFAULT_BATCH_SIZE, DEFAULT_TABLE_PREFIX

DEFAULT_SQLITE_TARGET = "sqlite:///user/database.db"


@dataclass
class MigrationConfig:
    """Ticket migration settings"""

    # Source (v3): either a SQLite file or a connection string
    sqlite_file: Optional[str] = None
    source_url: Optional[str] = None

    # Target (v4)
    target_url: Optional[str] = None

    table_prefix: Optional[str] = None
    encryption_key: Optional[str] = None

    # Runtime settings
    batch_size: Optional[int] = None
    log_level: Optional[str] = None
    init_schema: bool = True

    def __post_init__(self):
        """Fill unset values from the environment, then defaults"""
        if self.table_prefix is None:
            self.table_prefix = os.environ.get('DB_TABLE_PREFIX', DEFAULT_TABLE_PREFIX)
        if self.encryption_key is None:
            self.encryption_key = os.environ.get('ENCRYPTION_KEY') or None
        if self.batch_size is None:
            value = os.environ.get('MIGRATE_BATCH_SIZE', str(DEFAULT_BATCH_SIZE))
            try:
                self.batch_size = int(value)
            except ValueError:
                raise ConfigurationError(f"MIGRATE_BATCH_SIZE must be an integer, got {value!r}")
        if self.log_level is None:
            self.log_level = os.environ.get('MIGRATE_LOG_LEVEL', 'INFO')
        self.log_level = self.log_level.upper()

    @property
    def file_mode(self) -> bool:
        """True when migrating from a v3 SQLite file"""
        return bool(self.sqlite_file)

    @classmethod
    def from_args(cls, args: Any) -> 'MigrationConfig':
        return cls(
            sqlite_file=getattr(args, 'sqlite', None),
            source_url=getattr(args, 'v3', None),
            target_url=getattr(args, 'v4', None),
            table_prefix=getattr(args, 'prefix', None),
            encryption_key=getattr(args, 'encryption_key', None),
            batch_size=getattr(args, 'batch_size', None),
            log_level=getattr(args, 'log_level', None),
            init_schema=not getattr(args, 'no_init_schema', False),
        )

    def get_source_url(self) -> str:
        if self.file_mode:
            return f"sqlite:///{self.sqlite_file}"
        return self.source_url

    def get_source_dialect(self) -> str:
        """sqlite for files, mysql for mysql:// strings, postgresql otherwise"""
        if self.file_mode:
            return BackendType.SQLITE.value
        if self.source_url.lower().startswith(('mysql', 'mariadb')):
            return BackendType.MYSQL.value
        return BackendType.POSTGRESQL.value

    def get_target_url(self) -> str:
        if self.target_url:
            return self.target_url
        return DEFAULT_SQLITE_TARGET

    def target_is_file_based(self) -> bool:
        return parse_database_url(self.get_target_url())['type'] == BackendType.SQLITE.value

    def validate(self):
        """Raise ConfigurationError before any migration work begins"""
        if not self.file_mode and (not self.source_url or not self.target_url):
            raise ConfigurationError(
                "v3 and v4 database connection strings are required if not using sqlite")

        # Parses (and rejects unsupported schemes) up front.
        parse_database_url(self.get_source_url())
        parse_database_url(self.get_target_url())

        if self.target_is_file_based() and not self.encryption_key:
            raise ConfigurationError(
                "An encryption key is required for a file-based v4 database "
                "(use --encryption-key or set ENCRYPTION_KEY)")

        if self.batch_size < 1:
            raise ConfigurationError(f"Batch size must be positive, got {self.batch_size}")

    def describe(self) -> str:
        target = sanitize_url(self.get_target_url())
        return (f"{self.get_source_dialect()} source {sanitize_url(self.get_source_url())} "
                f"(prefix '{self.table_prefix}') -> {target}")


def get_config(**overrides) -> MigrationConfig:
    """Build a validated config from keyword overrides and the environment"""
    config = MigrationConfig(**overrides)
    config.validate()
    return config
