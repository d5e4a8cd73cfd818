#!/usr/bin/env python3
"""
pgshift Idempotency Transformer Unit Tests
"""

import pytest

from core.idempotency import (
    make_functions_idempotent, make_idempotent, make_schema_idempotent, make_triggers_idempotent,
)
from core.models import StepCategory

FUNCTIONS_SQL = """CREATE FUNCTION public.touch() RETURNS trigger
    LANGUAGE plpgsql
    AS $function$
BEGIN
  NEW.updated_at := now();
  RETURN NEW;
END;
$function$;

create procedure public.cleanup() language sql as $$ DELETE FROM sessions $$;
"""

TRIGGERS_SQL = """-- Trigger: users_touch on users
CREATE TRIGGER users_touch BEFORE UPDATE ON public.users FOR EACH ROW EXECUTE FUNCTION touch();

CREATE CONSTRAINT TRIGGER "Audit" AFTER INSERT ON "public"."orders" FOR EACH ROW EXECUTE FUNCTION audit();
"""


@pytest.mark.unit
class TestIdempotency:

    def test_schema(self):
        assert make_schema_idempotent('CREATE SCHEMA app;') == 'CREATE SCHEMA IF NOT EXISTS app;'
        assert make_schema_idempotent('CREATE SCHEMA IF NOT EXISTS app;') == 'CREATE SCHEMA IF NOT EXISTS app;'

    @pytest.mark.parametrize("sql", [
        'CREATE SCHEMA  IF NOT EXISTS app;',
        'CREATE SCHEMA\n  IF NOT EXISTS app;',
        'create schema\tif not exists app;',
    ])
    def test_schema_existing_clause_with_extra_whitespace(self, sql):
        assert make_schema_idempotent(sql) == sql

    def test_functions(self):
        out = make_functions_idempotent(FUNCTIONS_SQL)
        assert 'CREATE OR REPLACE FUNCTION public.touch()' in out
        assert 'CREATE OR REPLACE PROCEDURE public.cleanup()' in out
        assert 'CREATE FUNCTION' not in out

    def test_functions_already_replaceable(self):
        sql = 'CREATE OR REPLACE FUNCTION f() RETURNS int AS $$ SELECT 1 $$ LANGUAGE sql;'
        assert make_functions_idempotent(sql) == sql

    def test_triggers_get_drop_prefix(self):
        out = make_triggers_idempotent(TRIGGERS_SQL)
        assert 'DROP TRIGGER IF EXISTS users_touch ON public.users;\nCREATE TRIGGER users_touch' in out
        assert 'DROP TRIGGER IF EXISTS "Audit" ON "public"."orders";\nCREATE CONSTRAINT TRIGGER "Audit"' in out
        assert out.count('DROP TRIGGER IF EXISTS') == 2

    def test_multiline_trigger(self):
        sql = 'CREATE TRIGGER t1\n  AFTER DELETE\n  ON items\n  FOR EACH ROW EXECUTE FUNCTION f();'
        out = make_triggers_idempotent(sql)
        assert out.startswith('DROP TRIGGER IF EXISTS t1 ON items;\nCREATE TRIGGER t1')

    @pytest.mark.parametrize("category,sql", [
        (StepCategory.SCHEMA, 'CREATE SCHEMA app;\nCREATE TABLE IF NOT EXISTS app.t (id int);'),
        (StepCategory.SCHEMA, 'CREATE SCHEMA  IF NOT EXISTS app;'),
        (StepCategory.SCHEMA, 'CREATE SCHEMA\n  IF NOT EXISTS app;'),
        (StepCategory.FUNCTIONS, FUNCTIONS_SQL),
        (StepCategory.TRIGGERS, TRIGGERS_SQL),
        (StepCategory.DATA, "INSERT INTO t VALUES ('CREATE TRIGGER x ON y');"),
    ])
    def test_fixed_point(self, category, sql):
        once = make_idempotent(sql, category)
        assert make_idempotent(once, category) == once

    def test_data_is_unchanged(self):
        sql = "INSERT INTO notes (body) VALUES ('CREATE SCHEMA x') ON CONFLICT DO NOTHING;"
        assert make_idempotent(sql, StepCategory.DATA) == sql
