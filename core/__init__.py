#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Ticket Migrator Core Package
Exports the pipeline components for clean imports
"""

from core.errors import (
    ConfigurationError,
    MigrationError,
    RecordMigrationError,
    StorageError,
    UnresolvedReferenceError,
)
from core.database_manager import DatabaseAdapter, connect, parse_database_url
from core.source_reader import LegacySource
from core.target_store import TargetStore
from core.resolver import ParticipantKey, ReferenceResolver
from core.migrators import (
    MIGRATORS,
    CategoryMigrator,
    GuildMigrator,
    MigrationOutcome,
    TicketMigrator,
)
from core.orchestrator import MigrationOrchestrator, MigrationReport

__version__ = "1.0.0"

__all__ = [
    'ConfigurationError',
    'MigrationError',
    'RecordMigrationError',
    'StorageError',
    'UnresolvedReferenceError',
    'DatabaseAdapter',
    'connect',
    'parse_database_url',
    'LegacySource',
    'TargetStore',
    'ParticipantKey',
    'ReferenceResolver',
    'MIGRATORS',
    'CategoryMigrator',
    'GuildMigrator',
    'MigrationOutcome',
    'TicketMigrator',
    'MigrationOrchestrator',
    'MigrationReport',
]
