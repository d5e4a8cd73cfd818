#!/usr/bin/env python3
"""
pgshift Data Exporter

Streams table rows out of the source database in fixed-size batches and
writes them, in dependency order, to ``<output>/data/<schema>.<table>.sql``
or ``.json``. Only one batch is held in memory at a time.

The row count is measured once, before the first batch; the loop runs
while the offset is below that count. Rows are ordered by the primary key
when the table has one, otherwise they come back in whatever order the
server returns them.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional, TextIO, Union

from core.dependency_resolver import DependencyResolver
from core.errors import CatalogError, ExportError
from core.models import Row, TableExportResult, TableRef, quote_ident
from core.value_encoder import encode_json_row, encode_sql_literal, tag_row

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1000
PROGRESS_EVERY_BATCHES = 10
DATA_FORMATS = ('sql', 'json')

REPLICA_ROLE_ON = "SET session_replication_role = replica;"
REPLICA_ROLE_OFF = "SET session_replication_role = DEFAULT;"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def render_insert(table: TableRef, row: Row) -> str:
    """One conflict-tolerant INSERT naming every column"""
    columns = ', '.join(quote_ident(column) for column in row)
    values = ', '.join(encode_sql_literal(tagged) for tagged in row.values())
    return f"INSERT INTO {table.quoted_name} ({columns}) VALUES ({values}) ON CONFLICT DO NOTHING;"


class TableDataStreamer:
    """Paginates one table with LIMIT/OFFSET"""

    def __init__(self, connection, catalog, batch_size: int = DEFAULT_BATCH_SIZE,
                 logger: Optional[logging.Logger] = None):
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.connection = connection
        self.catalog = catalog
        self.batch_size = batch_size
        self.logger = logger or logging.getLogger(__name__)

    def count_rows(self, table: TableRef) -> int:
        return self.catalog.count_rows(table)

    def order_clause(self, table: TableRef) -> str:
        try:
            pk_columns = self.catalog.primary_key_columns(table)
        except CatalogError as e:
            self.logger.debug(f"No primary key lookup for {table}: {e}")
            pk_columns = []

        if not pk_columns:
            self.logger.debug(f"{table} has no primary key; row order is unspecified")
            return ''
        return ' ORDER BY ' + ', '.join(quote_ident(c) for c in pk_columns)

    def batches(self, table: TableRef, total_rows: int) -> Iterator[List[Row]]:
        """
        Yield batches for offsets 0, batch_size, 2 * batch_size, ... while
        the offset is below ``total_rows``.
        """
        sql = f"SELECT * FROM {table.quoted_name}{self.order_clause(table)} LIMIT %s OFFSET %s"
        offset = 0
        while offset < total_rows:
            rows = self.connection.query(sql, (self.batch_size, offset))
            yield [tag_row(row) for row in rows]
            offset += self.batch_size


class SqlDataRenderer:
    """Writes a replayable SQL data file to a text sink"""

    extension = 'sql'

    def __init__(self, sink: TextIO, table: TableRef):
        self.sink = sink
        self.table = table

    def begin(self, total_rows: int):
        self.sink.write(f"-- Data for table: {self.table.qualified_name}\n")
        self.sink.write(f"-- Generated: {utc_timestamp()}\n")
        self.sink.write(f"-- Total rows: {total_rows}\n\n")
        self.sink.write(f"{REPLICA_ROLE_ON}\n\n")

    def write_batch(self, rows: List[Row]) -> int:
        for row in rows:
            self.sink.write(render_insert(self.table, row) + "\n")
        return len(rows)

    def finish(self):
        self.sink.write(f"\n{REPLICA_ROLE_OFF}\n")


class JsonDataRenderer:
    """Writes a single top-level JSON array, one object per line"""

    extension = 'json'

    def __init__(self, sink: TextIO, table: TableRef):
        self.sink = sink
        self.table = table
        self._first = True

    def begin(self, total_rows: int):
        self.sink.write('[')

    def write_batch(self, rows: List[Row]) -> int:
        for row in rows:
            self.sink.write('\n  ' if self._first else ',\n  ')
            self.sink.write(json.dumps(encode_json_row(row), ensure_ascii=False, allow_nan=False))
            self._first = False
        return len(rows)

    def finish(self):
        self.sink.write('\n]\n')


RENDERERS = {
    'sql': SqlDataRenderer,
    'json': JsonDataRenderer,
}


class DataExporter:
    """
    Exports table data for a schema.

    Tables are visited in DependencyResolver order (or just the one table
    asked for). A table that fails is recorded in its TableExportResult and
    the export moves on to the next table.
    """

    def __init__(self, connection, catalog, output_dir: Union[str, Path],
                 batch_size: int = DEFAULT_BATCH_SIZE, data_format: str = 'sql',
                 logger: Optional[logging.Logger] = None,
                 resolver: Optional[DependencyResolver] = None):
        if data_format not in RENDERERS:
            raise ValueError(f"Unknown data format '{data_format}', expected one of {DATA_FORMATS}")
        self.connection = connection
        self.catalog = catalog
        self.output_dir = Path(output_dir)
        self.data_format = data_format
        self.logger = logger or logging.getLogger(__name__)
        self.streamer = TableDataStreamer(connection, catalog, batch_size, self.logger)
        self.resolver = resolver or DependencyResolver(catalog, self.logger)

    @property
    def data_dir(self) -> Path:
        return self.output_dir / 'data'

    def export_data(self, schema: str, table: Optional[str] = None) -> List[TableExportResult]:
        if table:
            tables = [TableRef(schema, table)]
        else:
            tables = self.resolver.resolve(schema)
            self.logger.info(f"Exporting data from {len(tables)} tables...")

        self.data_dir.mkdir(parents=True, exist_ok=True)

        results = []
        for ref in tables:
            try:
                results.append(self.export_table(ref))
            except Exception as e:
                self.logger.error(f"Failed to export {ref}: {e}")
                results.append(TableExportResult(table=ref, error=str(e)))
        return results

    def export_table(self, table: TableRef) -> TableExportResult:
        total_rows = self.streamer.count_rows(table)
        if total_rows == 0:
            self.logger.info(f"{table.table}: 0 rows (skipped)")
            return TableExportResult(table=table)

        self.logger.info(f"Exporting {table.table}: {total_rows} rows")

        renderer_cls = RENDERERS[self.data_format]
        path = self.data_dir / f"{table.schema}.{table.table}.{renderer_cls.extension}"
        batch_size = self.streamer.batch_size
        rows_written = 0
        batches = 0

        try:
            with open(path, 'w', encoding='utf-8') as sink:
                renderer = renderer_cls(sink, table)
                renderer.begin(total_rows)
                for batch in self.streamer.batches(table, total_rows):
                    rows_written += renderer.write_batch(batch)
                    batches += 1
                    if total_rows > batch_size and batches % PROGRESS_EVERY_BATCHES == 0:
                        done = min(batches * batch_size, total_rows)
                        self.logger.info(f"  {table.table}: {done}/{total_rows}")
                renderer.finish()
        except Exception as e:
            path.unlink(missing_ok=True)
            raise ExportError(f"Failed to export {table}: {e}", table=table.qualified_name) from e

        self.logger.info(f"{table.table}: {rows_written} rows exported to {self.data_format.upper()}")
        return TableExportResult(table=table, rows=rows_written, batches=batches, file=str(path))
