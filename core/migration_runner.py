#!/usr/bin/env python3
"""
pgshift Migration Executor

Replays planned migration steps against one target connection.

Each step goes pending -> running -> succeeded | failed | skipped:
- empty (whitespace-only) artifacts are skipped
- the artifact is made idempotent for its category
- dry-run logs the statement (truncated) and succeeds without touching the target
- live mode executes it and records duration, message, detail and hint

A live failure stops the run; steps after it are never attempted. There is
no wrapping transaction, so steps that already succeeded stay applied.
"""

import json
import logging
import time
from pathlib import Path
from typing import Dict, List, Optional, Union

import psycopg2

from core.data_exporter import REPLICA_ROLE_OFF, REPLICA_ROLE_ON, render_insert
from core.errors import MigrationAbortedError
from core.idempotency import make_idempotent
from core.migration_planner import MigrationPlanner
from core.models import MigrationStep, StepCategory, StepResult, StepStatus, TableRef
from core.value_encoder import tag_row

logger = logging.getLogger(__name__)

DEFAULT_DISPLAY_LINE_CAP = 20


def truncate_for_display(sql: str, max_lines: int = DEFAULT_DISPLAY_LINE_CAP) -> str:
    """Keep the first ``max_lines`` lines and note how many were cut"""
    lines = sql.split('\n')
    if len(lines) <= max_lines:
        return sql
    return '\n'.join(lines[:max_lines]) + f"\n... ({len(lines) - max_lines} more lines)"


def summarize_results(results: List[StepResult]) -> Dict[str, int]:
    summary = {'total': len(results)}
    for status in StepStatus:
        summary[status.value] = sum(1 for r in results if r.status is status)
    return summary


def json_artifact_to_sql(content: str, table: TableRef) -> str:
    """
    Turn a JSON data artifact into the same statements a SQL data artifact
    holds. Returns an empty string when the array has no rows.
    """
    rows = json.loads(content)
    if not isinstance(rows, list):
        raise ValueError(f"JSON data artifact for {table} is not an array")
    if not rows:
        return ''

    lines = [REPLICA_ROLE_ON, '']
    for row in rows:
        lines.append(render_insert(table, tag_row(row)))
    lines.extend(['', REPLICA_ROLE_OFF, ''])
    return '\n'.join(lines)


def _table_for_data_file(path: Path) -> TableRef:
    schema, _, table = path.stem.partition('.')
    return TableRef(schema, table)


class MigrationExecutor:
    """Runs migration steps in order against a target connection"""

    def __init__(self, connection, logger: Optional[logging.Logger] = None,
                 dry_run: bool = False, display_line_cap: int = DEFAULT_DISPLAY_LINE_CAP,
                 planner: Optional[MigrationPlanner] = None):
        self.connection = connection
        self.logger = logger or logging.getLogger(__name__)
        self.dry_run = dry_run
        self.display_line_cap = display_line_cap
        self.planner = planner or MigrationPlanner(self.logger)

    def run(self, migration_dir: Union[str, Path], schema: str = 'public',
            strict: bool = False) -> List[StepResult]:
        """
        Plan and execute every artifact of ``schema`` in ``migration_dir``.

        Args:
            migration_dir: Directory written by an export
            schema: Schema whose artifacts are replayed
            strict: Raise MigrationAbortedError (carrying the results) when a
                    live step fails, instead of returning the results

        Returns:
            One StepResult per attempted step
        """
        steps = self.planner.plan(migration_dir, schema)
        if not steps:
            self.logger.warning("No migration files found")
            return []

        self.logger.info(f"Found {len(steps)} migration files")
        if self.dry_run:
            self.logger.info("[DRY RUN MODE] - No changes will be applied")

        results = self.execute_steps(steps)

        if strict and results and results[-1].status is StepStatus.FAILED:
            raise MigrationAbortedError(f"Migration failed at step: {results[-1].step}", results)
        return results

    def execute_steps(self, steps: List[MigrationStep]) -> List[StepResult]:
        results: List[StepResult] = []
        for step in sorted(steps, key=lambda s: s.order):
            result = self.execute_step(step)
            results.append(result)

            if result.status is StepStatus.FAILED and not self.dry_run:
                self.logger.error(f"Migration failed at step: {step.name}")
                self.logger.error("Stopping migration process")
                break
        return results

    def _read_artifact(self, step: MigrationStep) -> str:
        path = Path(step.file)
        content = path.read_text(encoding='utf-8')
        if step.category is StepCategory.DATA and path.suffix == '.json' and content.strip():
            content = json_artifact_to_sql(content, _table_for_data_file(path))
        return content

    def execute_step(self, step: MigrationStep) -> StepResult:
        start = time.monotonic()

        self.logger.info("=" * 60)
        self.logger.info(f"STEP: {step.name}")
        self.logger.info(f"File: {step.file}")
        self.logger.info(f"Type: {step.category.value}")
        self.logger.info("=" * 60)

        try:
            sql = self._read_artifact(step)
            if not sql.strip():
                self.logger.warning("File is empty, skipping")
                return StepResult(step=step.name, status=StepStatus.SKIPPED)

            sql = make_idempotent(sql, step.category)

            if self.dry_run:
                self.logger.info("[DRY RUN] Would execute:")
                self.logger.info(truncate_for_display(sql, self.display_line_cap))
                return StepResult(step=step.name, status=StepStatus.SUCCEEDED,
                                  duration_ms=self._elapsed_ms(start))

            self.logger.info("Executing...")
            self.connection.execute(sql)

        except Exception as e:
            duration = self._elapsed_ms(start)
            message, detail, hint = self._error_fields(e)
            self.logger.error(f"Failed after {duration}ms")
            self.logger.error(f"Error: {message}")
            if detail:
                self.logger.error(f"Detail: {detail}")
            if hint:
                self.logger.error(f"Hint: {hint}")
            return StepResult(step=step.name, status=StepStatus.FAILED, error=message,
                              detail=detail, hint=hint, duration_ms=duration)

        duration = self._elapsed_ms(start)
        self.logger.info(f"Completed in {duration}ms")
        return StepResult(step=step.name, status=StepStatus.SUCCEEDED, duration_ms=duration)

    @staticmethod
    def _error_fields(error: Exception):
        if isinstance(error, psycopg2.Error) and error.diag is not None:
            diag = error.diag
            message = diag.message_primary or str(error).strip()
            return message, diag.message_detail, diag.message_hint
        return str(error), None, None

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.monotonic() - start) * 1000)
