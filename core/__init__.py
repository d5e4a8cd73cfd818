#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
pgshift Core Package Initialization
Exports the migration components for clean imports
"""

__version__ = "0.1.0"

from .errors import (
    ErrorCode,
    PgShiftError,
    ConfigurationError,
    DatabaseConnectionError,
    CatalogError,
    ExportError,
    MigrationAbortedError,
)
from .models import (
    TableRef,
    DependencyEdge,
    ValueKind,
    TaggedValue,
    StepCategory,
    StepStatus,
    MigrationStep,
    StepResult,
    ItemResult,
    TableExportResult,
    MigrationResult,
    quote_ident,
)
from .dependency_resolver import DependencyResolver, order_tables
from .value_encoder import tag_value, tag_row, encode_sql_literal, decode_sql_literal, encode_json_value
from .data_exporter import TableDataStreamer, SqlDataRenderer, JsonDataRenderer, DataExporter
from .ddl_exporter import SchemaExporter, FunctionsExporter, TriggersExporter
from .migration_planner import MigrationPlanner
from .idempotency import make_idempotent
from .migration_runner import MigrationExecutor, summarize_results, truncate_for_display

__all__ = [
    'ErrorCode', 'PgShiftError', 'ConfigurationError', 'DatabaseConnectionError',
    'CatalogError', 'ExportError', 'MigrationAbortedError',
    'TableRef', 'DependencyEdge', 'ValueKind', 'TaggedValue', 'StepCategory',
    'StepStatus', 'MigrationStep', 'StepResult', 'ItemResult', 'TableExportResult',
    'MigrationResult', 'quote_ident',
    'DependencyResolver', 'order_tables',
    'tag_value', 'tag_row', 'encode_sql_literal', 'decode_sql_literal', 'encode_json_value',
    'TableDataStreamer', 'SqlDataRenderer', 'JsonDataRenderer', 'DataExporter',
    'SchemaExporter', 'FunctionsExporter', 'TriggersExporter',
    'MigrationPlanner', 'make_idempotent',
    'MigrationExecutor', 'summarize_results', 'truncate_for_display',
]
