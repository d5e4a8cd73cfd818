#!/usr/bin/env python3
"""
pgshift PostgreSQL Catalog

Read-only introspection over pg_catalog / information_schema. Every method
returns plain lists of dicts (or strings) so the exporters never touch a
cursor. A failing query is raised as CatalogError with the object kind in
the message.
"""

import logging
from typing import Dict, List, Any, Optional, Sequence

import psycopg2

from core.errors import CatalogError
from core.models import DependencyEdge, TableRef

logger = logging.getLogger(__name__)

CONSTRAINT_TYPE_CODES = {
    'PRIMARY KEY': 'p',
    'UNIQUE': 'u',
    'CHECK': 'c',
    'FOREIGN KEY': 'f',
}


class PostgresCatalog:
    """Catalog queries against one PostgreSQL connection"""

    def __init__(self, connection, logger: Optional[logging.Logger] = None):
        self.connection = connection
        self.logger = logger or logging.getLogger(__name__)

    def _fetch(self, what: str, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        try:
            return self.connection.query(sql, params)
        except psycopg2.Error as e:
            self.logger.error(f"Failed to read {what}: {e}")
            raise CatalogError(f"Failed to read {what}: {e}", {'what': what}) from e

    # ------------------------------------------------------------------
    # Tables and dependencies
    # ------------------------------------------------------------------

    def list_base_tables(self, schema: str) -> List[str]:
        """Base tables of ``schema``, alphabetical"""
        rows = self._fetch('tables', """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = %s
            AND table_type = 'BASE TABLE'
            ORDER BY table_name
        """, (schema,))
        return [row['table_name'] for row in rows]

    def foreign_key_edges(self, schema: str) -> List[DependencyEdge]:
        """In-schema foreign keys between different tables"""
        rows = self._fetch('foreign keys', """
            SELECT DISTINCT
                src.relname AS source_table,
                tgt.relname AS target_table
            FROM pg_constraint c
            JOIN pg_class src ON src.oid = c.conrelid
            JOIN pg_class tgt ON tgt.oid = c.confrelid
            JOIN pg_namespace sn ON sn.oid = src.relnamespace
            JOIN pg_namespace tn ON tn.oid = tgt.relnamespace
            WHERE c.contype = 'f'
            AND sn.nspname = %s
            AND tn.nspname = %s
            AND src.oid <> tgt.oid
            ORDER BY 1, 2
        """, (schema, schema))
        return [DependencyEdge(row['source_table'], row['target_table']) for row in rows]

    def primary_key_columns(self, table: TableRef) -> List[str]:
        rows = self._fetch(f'primary key of {table}', """
            SELECT a.attname
            FROM pg_index i
            JOIN pg_attribute a ON a.attrelid = i.indrelid AND a.attnum = ANY(i.indkey)
            WHERE i.indrelid = format('%%I.%%I', %s, %s)::regclass
            AND i.indisprimary
            ORDER BY array_position(i.indkey::int2[], a.attnum)
        """, (table.schema, table.table))
        return [row['attname'] for row in rows]

    def count_rows(self, table: TableRef) -> int:
        rows = self._fetch(f'row count of {table}', f"SELECT COUNT(*) AS count FROM {table.quoted_name}")
        return int(rows[0]['count']) if rows else 0

    def columns(self, table: TableRef) -> List[Dict[str, Any]]:
        return self._fetch(f'columns of {table}', """
            SELECT
                column_name,
                data_type,
                is_nullable,
                udt_name,
                column_default,
                character_maximum_length,
                numeric_precision,
                numeric_scale
            FROM information_schema.columns
            WHERE table_schema = %s AND table_name = %s
            ORDER BY ordinal_position
        """, (table.schema, table.table))

    # ------------------------------------------------------------------
    # Schema objects
    # ------------------------------------------------------------------

    def extensions(self) -> List[Dict[str, Any]]:
        """Installed extensions except plpgsql"""
        return self._fetch('extensions', """
            SELECT
                e.extname AS name,
                n.nspname AS schema
            FROM pg_extension e
            LEFT JOIN pg_namespace n ON e.extnamespace = n.oid
            WHERE e.extname NOT IN ('plpgsql')
            ORDER BY e.extname
        """)

    def enum_types(self, schema: str) -> List[Dict[str, Any]]:
        return self._fetch('enum types', """
            SELECT
                t.typname AS name,
                array_agg(e.enumlabel ORDER BY e.enumsortorder) AS labels
            FROM pg_type t
            JOIN pg_enum e ON t.oid = e.enumtypid
            JOIN pg_namespace n ON t.typnamespace = n.oid
            WHERE n.nspname = %s
            GROUP BY t.typname
            ORDER BY t.typname
        """, (schema,))

    def sequences(self, schema: str) -> List[Dict[str, Any]]:
        return self._fetch('sequences', """
            SELECT
                sequence_name AS name,
                data_type,
                start_value,
                minimum_value,
                maximum_value,
                increment
            FROM information_schema.sequences
            WHERE sequence_schema = %s
            ORDER BY sequence_name
        """, (schema,))

    def constraints(self, schema: str, types: Optional[Sequence[str]] = None) -> List[Dict[str, Any]]:
        """
        Table constraints of ``schema`` ordered PRIMARY KEY, UNIQUE, CHECK,
        FOREIGN KEY, then by table and constraint name.

        Args:
            schema: Schema name
            types: Constraint types to include (default: all four)
        """
        wanted = list(types or CONSTRAINT_TYPE_CODES.keys())
        unknown = [t for t in wanted if t not in CONSTRAINT_TYPE_CODES]
        if unknown:
            raise ValueError(f"Unknown constraint type(s): {', '.join(unknown)}")
        codes = [CONSTRAINT_TYPE_CODES[t] for t in wanted]

        return self._fetch('constraints', """
            SELECT
                cl.relname AS table_name,
                c.conname AS constraint_name,
                CASE c.contype
                    WHEN 'p' THEN 'PRIMARY KEY'
                    WHEN 'u' THEN 'UNIQUE'
                    WHEN 'c' THEN 'CHECK'
                    WHEN 'f' THEN 'FOREIGN KEY'
                END AS constraint_type,
                pg_get_constraintdef(c.oid) AS definition
            FROM pg_constraint c
            JOIN pg_class cl ON cl.oid = c.conrelid
            JOIN pg_namespace n ON n.oid = c.connamespace
            WHERE n.nspname = %s
            AND c.contype::text = ANY(%s)
            ORDER BY
                CASE c.contype
                    WHEN 'p' THEN 1
                    WHEN 'u' THEN 2
                    WHEN 'c' THEN 3
                    WHEN 'f' THEN 4
                END,
                cl.relname,
                c.conname
        """, (schema, codes))

    def indexes(self, schema: str) -> List[Dict[str, Any]]:
        """Indexes that do not back a primary key, unique or exclusion constraint"""
        return self._fetch('indexes', """
            SELECT
                i.tablename AS table_name,
                i.indexname AS index_name,
                i.indexdef AS definition
            FROM pg_indexes i
            WHERE i.schemaname = %s
            AND NOT EXISTS (
                SELECT 1
                FROM pg_constraint c
                JOIN pg_namespace n ON n.oid = c.connamespace
                WHERE n.nspname = i.schemaname
                AND c.conname = i.indexname
                AND c.contype IN ('p', 'u', 'x')
            )
            ORDER BY i.tablename, i.indexname
        """, (schema,))

    def views(self, schema: str) -> List[Dict[str, Any]]:
        return self._fetch('views', """
            SELECT
                viewname AS name,
                definition
            FROM pg_views
            WHERE schemaname = %s
            ORDER BY viewname
        """, (schema,))

    # ------------------------------------------------------------------
    # Routines
    # ------------------------------------------------------------------

    def functions(self, schema: str, name: Optional[str] = None) -> List[Dict[str, Any]]:
        """Functions of ``schema`` excluding extension-owned ones"""
        sql = """
            SELECT
                p.proname AS name,
                pg_get_functiondef(p.oid) AS definition,
                l.lanname AS language
            FROM pg_proc p
            JOIN pg_namespace n ON p.pronamespace = n.oid
            JOIN pg_language l ON p.prolang = l.oid
            LEFT JOIN pg_depend d ON d.objid = p.oid AND d.deptype = 'e'
            WHERE n.nspname = %s
            AND p.prokind = 'f'
            AND d.objid IS NULL
        """
        params: List[Any] = [schema]
        if name:
            sql += " AND p.proname = %s"
            params.append(name)
        sql += " ORDER BY p.proname, p.oid"
        return self._fetch('functions', sql, params)

    def triggers(self, schema: str, name: Optional[str] = None,
                 table: Optional[str] = None) -> List[Dict[str, Any]]:
        """User triggers of ``schema``, optionally filtered by trigger or table name"""
        sql = """
            SELECT
                t.tgname AS name,
                c.relname AS table_name,
                pg_get_triggerdef(t.oid) AS definition
            FROM pg_trigger t
            JOIN pg_class c ON t.tgrelid = c.oid
            JOIN pg_namespace n ON c.relnamespace = n.oid
            WHERE n.nspname = %s
            AND NOT t.tgisinternal
        """
        params: List[Any] = [schema]
        if name:
            sql += " AND t.tgname = %s"
            params.append(name)
        if table:
            sql += " AND c.relname = %s"
            params.append(table)
        sql += " ORDER BY c.relname, t.tgname"
        return self._fetch('triggers', sql, params)
