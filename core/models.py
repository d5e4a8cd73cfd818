#!/usr/bin/env python3
"""
pgshift Data Model

Records shared by the exporters, the planner and the executor:
table identifiers, dependency edges, tagged column values, migration
steps and the per-step / per-item / per-run result types.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional
from enum import Enum


@dataclass(frozen=True, order=True)
class TableRef:
    """(schema, table) identifier"""
    schema: str
    table: str

    @property
    def qualified_name(self) -> str:
        return f"{self.schema}.{self.table}"

    @property
    def quoted_name(self) -> str:
        return f"{quote_ident(self.schema)}.{quote_ident(self.table)}"

    def __str__(self) -> str:
        return self.qualified_name


@dataclass(frozen=True)
class DependencyEdge:
    """Table ``source`` has a foreign key referencing table ``target``"""
    source: str
    target: str


class ValueKind(Enum):
    """Closed set of column value variants"""
    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    TIMESTAMP = "timestamp"
    JSON = "json"


@dataclass(frozen=True)
class TaggedValue:
    """A column value with its variant decided once, at read time"""
    kind: ValueKind
    value: Any = None


# A row is an ordered mapping of column name -> tagged value
Row = Dict[str, TaggedValue]


class StepCategory(Enum):
    SCHEMA = "schema"
    FUNCTIONS = "functions"
    TRIGGERS = "triggers"
    DATA = "data"


class StepStatus(Enum):
    STARTED = "started"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class MigrationStep:
    """One unit of replay work, built by the planner"""
    name: str
    file: str
    order: int
    category: StepCategory


@dataclass(frozen=True)
class StepResult:
    """Outcome of one executed step; never mutated once recorded"""
    step: str
    status: StepStatus
    error: Optional[str] = None
    detail: Optional[str] = None
    hint: Optional[str] = None
    duration_ms: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {'step': self.step, 'status': self.status.value}
        for key in ('error', 'detail', 'hint', 'duration_ms'):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        return result


@dataclass(frozen=True)
class ItemResult:
    """Per-item outcome (one table, one object) in a catch-and-continue loop"""
    name: str
    success: bool
    count: int = 0
    error: Optional[str] = None


@dataclass
class TableExportResult:
    """Outcome of exporting one table's data"""
    table: TableRef
    rows: int = 0
    batches: int = 0
    file: Optional[str] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class MigrationResult:
    """Run-level report returned by every command"""
    success: bool
    message: str
    items_processed: int = 0
    rows_migrated: int = 0
    errors: List[str] = field(default_factory=list)
    sql_files: List[str] = field(default_factory=list)
    duration_ms: Optional[int] = None
    steps: List[StepResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'message': self.message,
            'details': {
                'items_processed': self.items_processed,
                'rows_migrated': self.rows_migrated,
                'errors': list(self.errors),
                'sql_files': list(self.sql_files),
                'duration_ms': self.duration_ms,
                'steps': [s.to_dict() for s in self.steps],
            }
        }


def quote_ident(identifier: str) -> str:
    """Quote a PostgreSQL identifier, doubling embedded double quotes"""
    return '"' + identifier.replace('"', '""') + '"'
