#!/usr/bin/env python3
"""
pgshift Migration Planner

Finds the artifacts of one schema in a migration directory and turns them
into an ordered list of MigrationStep:

    1  schema-<schema>.sql
    2  functions-<schema>.sql
    3  triggers-<schema>.sql
    4+ data/<schema>.<table>.sql|json, lexical filename order

Missing files are left out of the plan. When a table has both a .sql and
a .json data file the .sql one is used.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from core.models import MigrationStep, StepCategory

logger = logging.getLogger(__name__)

DATA_EXTENSIONS = ('.sql', '.json')

_DDL_ARTIFACTS = (
    ('Schema', 'schema-{schema}.sql', StepCategory.SCHEMA),
    ('Functions', 'functions-{schema}.sql', StepCategory.FUNCTIONS),
    ('Triggers', 'triggers-{schema}.sql', StepCategory.TRIGGERS),
)


class MigrationPlanner:
    """Discovers migration artifacts and assigns execution order"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def plan(self, migration_dir: Union[str, Path], schema: str = 'public') -> List[MigrationStep]:
        migration_dir = Path(migration_dir)
        steps: List[MigrationStep] = []

        for rank, (name, pattern, category) in enumerate(_DDL_ARTIFACTS, start=1):
            path = migration_dir / pattern.format(schema=schema)
            if path.is_file():
                steps.append(MigrationStep(name=name, file=str(path), order=rank, category=category))
            else:
                self.logger.debug(f"No {category.value} artifact: {path}")

        data_files = self._data_files(migration_dir / 'data', schema)
        for index, path in enumerate(data_files):
            table = path.name[len(schema) + 1:-len(path.suffix)]
            steps.append(MigrationStep(
                name=f"Data: {table}",
                file=str(path),
                order=len(_DDL_ARTIFACTS) + 1 + index,
                category=StepCategory.DATA,
            ))

        if not steps:
            self.logger.warning(f"No migration files found in {migration_dir} for schema {schema}")

        return sorted(steps, key=lambda step: step.order)

    def _data_files(self, data_dir: Path, schema: str) -> List[Path]:
        if not data_dir.is_dir():
            return []

        prefix = f"{schema}."
        by_table: Dict[str, Path] = {}
        for path in data_dir.iterdir():
            if not path.is_file() or not path.name.startswith(prefix):
                continue
            if path.suffix not in DATA_EXTENSIONS:
                continue
            table = path.name[len(prefix):-len(path.suffix)]
            if not table:
                continue
            current = by_table.get(table)
            if current is None or (current.suffix == '.json' and path.suffix == '.sql'):
                by_table[table] = path

        return sorted(by_table.values(), key=lambda p: p.name)
