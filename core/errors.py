#!/usr/bin/env python3
"""
Ticket Migrator Error Hierarchy
Canonical exception classes for the migration pipeline.
"""

from enum import Enum

class ErrorCode(Enum):
    UNKNOWN = "UNKNOWN_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    STORAGE_ERROR = "STORAGE_ERROR"
    UNRESOLVED_REFERENCE = "UNRESOLVED_REFERENCE"
    RECORD_FAILED = "RECORD_FAILED"
    ENCRYPTION_ERROR = "ENCRYPTION_ERROR"

class MigrationError(Exception):
    """Base class for all migration exceptions"""
    def __init__(self, message: str, code: ErrorCode = ErrorCode.UNKNOWN, details: dict = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

class ConfigurationError(MigrationError):
    """Raised when required connection options or keys are missing"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details)

class StorageError(MigrationError):
    """Raised when a statement against the source or target store fails"""
    def __init__(self, message: str, details: dict = None, integrity: bool = False):
        super().__init__(message, ErrorCode.STORAGE_ERROR, details)
        self.integrity = integrity

class UnresolvedReferenceError(MigrationError):
    """Raised when a parent entity was never migrated"""
    def __init__(self, entity: str, source_id, details: dict = None):
        message = f"{entity} {source_id} has not been migrated"
        details = dict(details or {}, entity=entity, source_id=source_id)
        super().__init__(message, ErrorCode.UNRESOLVED_REFERENCE, details)

class EncryptionError(MigrationError):
    """Raised when a stored field cannot be encrypted or decrypted"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, ErrorCode.ENCRYPTION_ERROR, details)

class RecordMigrationError(MigrationError):
    """A single source record that could not be migrated"""
    def __init__(self, entity: str, source_id, cause: Exception):
        message = f"Failed to migrate {entity} {source_id}: {cause}"
        super().__init__(message, ErrorCode.RECORD_FAILED, {'entity': entity, 'source_id': source_id})
        self.entity = entity
        self.source_id = source_id
        self.cause = cause
