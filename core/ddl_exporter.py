#!/usr/bin/env python3
"""
pgshift DDL Exporters

Build DDL text from catalog metadata and write the schema, functions and
triggers artifacts. The same statement lists feed the granular migrate
commands, which apply them to the target one object at a time.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Any, Optional, Tuple

from core.data_exporter import utc_timestamp
from core.models import TableRef, quote_ident
from core.run_log import ArtifactWriter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DDLStatement:
    """One exportable object: its kind, name, owning table and SQL text"""
    kind: str
    name: str
    sql: str
    table: Optional[str] = None


def _quote_literal(text: str) -> str:
    return "'" + str(text).replace("'", "''") + "'"


def column_type(column: Dict[str, Any], schema: str) -> str:
    """SQL type for an information_schema.columns row"""
    data_type = column['data_type']
    udt_name = column.get('udt_name')
    length = column.get('character_maximum_length')
    precision = column.get('numeric_precision')
    scale = column.get('numeric_scale')

    if data_type == 'USER-DEFINED':
        return f"{quote_ident(schema)}.{quote_ident(udt_name)}"
    if data_type == 'ARRAY':
        # udt_name is the element type with a leading underscore (_int4, _text)
        return f"{udt_name[1:]}[]" if udt_name and udt_name.startswith('_') else udt_name
    if data_type == 'character varying' and length:
        return f"varchar({length})"
    if data_type == 'character' and length:
        return f"char({length})"
    if data_type == 'numeric' and precision:
        if scale:
            return f"numeric({precision},{scale})"
        return f"numeric({precision})"
    return data_type


def build_create_table(table: TableRef, columns: List[Dict[str, Any]]) -> str:
    """CREATE TABLE IF NOT EXISTS with types, defaults and NOT NULL"""
    lines = []
    for column in columns:
        definition = f"    {quote_ident(column['column_name'])} {column_type(column, table.schema)}"
        if column.get('column_default'):
            definition += f" DEFAULT {column['column_default']}"
        if column.get('is_nullable') == 'NO':
            definition += " NOT NULL"
        lines.append(definition)
    body = ',\n'.join(lines)
    return f"CREATE TABLE IF NOT EXISTS {table.quoted_name} (\n{body}\n);"


def _terminate(sql: str) -> str:
    sql = sql.rstrip()
    return sql if sql.endswith(';') else sql + ';'


class SchemaExporter:
    """Extensions, types, sequences, tables, constraints, indexes and views"""

    def __init__(self, catalog, writer: Optional[ArtifactWriter] = None,
                 logger: Optional[logging.Logger] = None):
        self.catalog = catalog
        self.writer = writer
        self.logger = logger or logging.getLogger(__name__)

    def sections(self, schema: str, table: Optional[str] = None) -> List[Tuple[str, List[DDLStatement]]]:
        """
        DDL grouped in replay order. With ``table`` set, tables, constraints
        and indexes are limited to that table.
        """
        def wanted(table_name: str) -> bool:
            return table is None or table_name == table

        self.logger.info("Exporting extensions...")
        extensions = [
            DDLStatement('extension', ext['name'],
                         f"CREATE EXTENSION IF NOT EXISTS {quote_ident(ext['name'])} "
                         f"SCHEMA {quote_ident(ext.get('schema') or schema)};")
            for ext in self.catalog.extensions()
        ]

        self.logger.info("Exporting custom types...")
        types = [
            DDLStatement('type', enum['name'],
                         f"CREATE TYPE {quote_ident(schema)}.{quote_ident(enum['name'])} AS ENUM "
                         f"({', '.join(_quote_literal(label) for label in enum['labels'])});")
            for enum in self.catalog.enum_types(schema)
        ]

        self.logger.info("Exporting sequences...")
        sequences = [
            DDLStatement('sequence', seq['name'],
                         f"CREATE SEQUENCE IF NOT EXISTS {quote_ident(schema)}.{quote_ident(seq['name'])} "
                         f"AS {seq['data_type']} INCREMENT {seq['increment']} "
                         f"MINVALUE {seq['minimum_value']} MAXVALUE {seq['maximum_value']} "
                         f"START {seq['start_value']};")
            for seq in self.catalog.sequences(schema)
        ]

        self.logger.info("Exporting tables...")
        tables = []
        for table_name in self.catalog.list_base_tables(schema):
            if not wanted(table_name):
                continue
            ref = TableRef(schema, table_name)
            tables.append(DDLStatement('table', table_name,
                                       build_create_table(ref, self.catalog.columns(ref)),
                                       table=table_name))

        self.logger.info("Exporting constraints...")
        constraints: Dict[str, List[DDLStatement]] = {
            'PRIMARY KEY': [], 'UNIQUE': [], 'CHECK': [], 'FOREIGN KEY': [],
        }
        for row in self.catalog.constraints(schema):
            if not wanted(row['table_name']):
                continue
            ref = TableRef(schema, row['table_name'])
            constraints[row['constraint_type']].append(DDLStatement(
                'constraint', row['constraint_name'],
                f"ALTER TABLE {ref.quoted_name} ADD CONSTRAINT "
                f"{quote_ident(row['constraint_name'])} {row['definition']};",
                table=row['table_name'],
            ))

        self.logger.info("Exporting indexes...")
        indexes = [
            DDLStatement('index', row['index_name'], _terminate(row['definition']), table=row['table_name'])
            for row in self.catalog.indexes(schema)
            if wanted(row['table_name'])
        ]

        self.logger.info("Exporting views...")
        views = [
            DDLStatement('view', view['name'],
                         f"CREATE OR REPLACE VIEW {quote_ident(schema)}.{quote_ident(view['name'])} AS\n"
                         f"{_terminate(view['definition'].strip())}")
            for view in self.catalog.views(schema)
        ]

        return [
            ('Extensions', extensions),
            ('Custom Types', types),
            ('Sequences', sequences),
            ('Tables', tables),
            ('Primary Keys and Unique Constraints', constraints['PRIMARY KEY'] + constraints['UNIQUE']),
            ('Indexes', indexes),
            ('Foreign Keys', constraints['FOREIGN KEY']),
            ('Check Constraints', constraints['CHECK']),
            ('Views', views),
        ]

    def statements(self, schema: str, table: Optional[str] = None) -> List[DDLStatement]:
        return [stmt for _, group in self.sections(schema, table) for stmt in group]

    def build_sql(self, schema: str) -> str:
        lines = [
            f"-- Schema: {schema}",
            f"-- Generated: {utc_timestamp()}",
            "",
            f"CREATE SCHEMA IF NOT EXISTS {quote_ident(schema)};",
            "",
        ]
        for title, group in self.sections(schema):
            if not group:
                continue
            lines.append(f"-- {title}")
            for stmt in group:
                lines.append(stmt.sql)
                if stmt.kind in ('table', 'view'):
                    lines.append("")
            if group[-1].kind not in ('table', 'view'):
                lines.append("")
        return '\n'.join(lines)

    def export(self, schema: str) -> str:
        """Write ``schema-<schema>.sql`` and return its path"""
        path = self.writer.write_sql_file(f"schema-{schema}.sql", self.build_sql(schema))
        self.logger.info(f"Schema exported: {path}")
        return path


class FunctionsExporter:
    """Function definitions via pg_get_functiondef"""

    def __init__(self, catalog, writer: Optional[ArtifactWriter] = None,
                 logger: Optional[logging.Logger] = None):
        self.catalog = catalog
        self.writer = writer
        self.logger = logger or logging.getLogger(__name__)

    def statements(self, schema: str, name: Optional[str] = None) -> List[DDLStatement]:
        return [
            DDLStatement('function', func['name'], _terminate(func['definition']))
            for func in self.catalog.functions(schema, name)
        ]

    def export(self, schema: str) -> Optional[str]:
        """Write ``functions-<schema>.sql``; no file when the schema has none"""
        self.logger.info("Exporting functions...")
        functions = self.statements(schema)
        if not functions:
            self.logger.info("No functions found")
            return None

        lines = [f"-- Functions for schema: {schema}", f"-- Generated: {utc_timestamp()}", ""]
        for func in functions:
            lines.extend([f"-- Function: {func.name}", func.sql, ""])

        path = self.writer.write_sql_file(f"functions-{schema}.sql", '\n'.join(lines))
        self.logger.info(f"Functions exported: {path} ({len(functions)} functions)")
        return path


class TriggersExporter:
    """Trigger definitions via pg_get_triggerdef"""

    def __init__(self, catalog, writer: Optional[ArtifactWriter] = None,
                 logger: Optional[logging.Logger] = None):
        self.catalog = catalog
        self.writer = writer
        self.logger = logger or logging.getLogger(__name__)

    def statements(self, schema: str, name: Optional[str] = None,
                   table: Optional[str] = None) -> List[DDLStatement]:
        return [
            DDLStatement('trigger', trig['name'], _terminate(trig['definition']), table=trig['table_name'])
            for trig in self.catalog.triggers(schema, name, table)
        ]

    def export(self, schema: str) -> Optional[str]:
        """Write ``triggers-<schema>.sql``; no file when the schema has none"""
        self.logger.info("Exporting triggers...")
        triggers = self.statements(schema)
        if not triggers:
            self.logger.info("No triggers found")
            return None

        lines = [f"-- Triggers for schema: {schema}", f"-- Generated: {utc_timestamp()}", ""]
        for trig in triggers:
            lines.extend([f"-- Trigger: {trig.name} on {trig.table}", trig.sql, ""])

        path = self.writer.write_sql_file(f"triggers-{schema}.sql", '\n'.join(lines))
        self.logger.info(f"Triggers exported: {path} ({len(triggers)} triggers)")
        return path
