#!/usr/bin/env python3
"""
pgshift Error Hierarchy
Canonical exception classes for the migration toolkit.
"""

from enum import Enum

class ErrorCode(Enum):
    UNKNOWN = "UNKNOWN_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    CATALOG_ERROR = "CATALOG_ERROR"
    EXPORT_ERROR = "EXPORT_ERROR"
    MIGRATION_ABORTED = "MIGRATION_ABORTED"

class PgShiftError(Exception):
    """Base class for all pgshift exceptions"""
    def __init__(self, message: str, code: ErrorCode = ErrorCode.UNKNOWN, details: dict = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

class ConfigurationError(PgShiftError):
    """Raised when a required connection string or directory is missing"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details)

class DatabaseConnectionError(PgShiftError):
    """Raised when a database connection cannot be opened"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, ErrorCode.CONNECTION_ERROR, details)

class CatalogError(PgShiftError):
    """Raised when a catalog introspection query fails"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, ErrorCode.CATALOG_ERROR, details)

class ExportError(PgShiftError):
    """Raised when exporting a single table fails"""
    def __init__(self, message: str, table: str = None, details: dict = None):
        details = dict(details or {})
        details['table'] = table
        super().__init__(message, ErrorCode.EXPORT_ERROR, details)
        self.table = table

class MigrationAbortedError(PgShiftError):
    """Raised when a live replay stopped at a failed step"""
    def __init__(self, message: str, results: list = None):
        super().__init__(message, ErrorCode.MIGRATION_ABORTED, {'steps': len(results or [])})
        self.results = list(results or [])
