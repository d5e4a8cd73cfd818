#!/usr/bin/env python3
"""
pgshift Idempotency Transformer

Textual rewrites that let captured DDL run against a target which may
already hold some of the objects:

- schema:    CREATE SCHEMA x        -> CREATE SCHEMA IF NOT EXISTS x
- functions: CREATE FUNCTION        -> CREATE OR REPLACE FUNCTION
- triggers:  CREATE TRIGGER x ... ON t  gets  DROP TRIGGER IF EXISTS x ON t;
             injected right before it
- data:      unchanged

Every rewrite is a fixed point: running it on its own output changes nothing.
"""

import re
from typing import Callable, Dict

from core.models import StepCategory

_IDENT = r'(?:"(?:[^"]|"")+"|[A-Za-z_][A-Za-z0-9_$]*)'
_QUALIFIED_IDENT = rf'{_IDENT}(?:\s*\.\s*{_IDENT})?'

_CREATE_SCHEMA_RE = re.compile(r'\bCREATE\s+SCHEMA\b(?!\s+IF\s+NOT\s+EXISTS\b)\s+', re.IGNORECASE)
_CREATE_FUNCTION_RE = re.compile(r'\bCREATE\s+(FUNCTION|PROCEDURE)\b', re.IGNORECASE)
_CREATE_TRIGGER_RE = re.compile(
    rf'\bCREATE\s+(?:OR\s+REPLACE\s+)?(?:CONSTRAINT\s+)?TRIGGER\s+(?P<name>{_IDENT})'
    rf'.*?\bON\s+(?P<table>{_QUALIFIED_IDENT})',
    re.IGNORECASE | re.DOTALL,
)


def make_schema_idempotent(sql: str) -> str:
    return _CREATE_SCHEMA_RE.sub('CREATE SCHEMA IF NOT EXISTS ', sql)


def make_functions_idempotent(sql: str) -> str:
    return _CREATE_FUNCTION_RE.sub(lambda m: f'CREATE OR REPLACE {m.group(1).upper()}', sql)


def _drop_trigger_statement(name: str, table: str) -> str:
    return f'DROP TRIGGER IF EXISTS {name} ON {table};'


def make_triggers_idempotent(sql: str) -> str:
    """Prefix every CREATE TRIGGER with a matching DROP TRIGGER IF EXISTS"""
    out = []
    last = 0
    for match in _CREATE_TRIGGER_RE.finditer(sql):
        name = match.group('name')
        table = re.sub(r'\s*\.\s*', '.', match.group('table'))
        drop = _drop_trigger_statement(name, table)

        preceding = sql[last:match.start()]
        out.append(preceding)
        # already injected by an earlier pass
        if not preceding.rstrip().lower().endswith(drop.lower()):
            out.append(drop + '\n')
        out.append(match.group(0))
        last = match.end()
    out.append(sql[last:])
    return ''.join(out)


_TRANSFORMS: Dict[StepCategory, Callable[[str], str]] = {
    StepCategory.SCHEMA: make_schema_idempotent,
    StepCategory.FUNCTIONS: make_functions_idempotent,
    StepCategory.TRIGGERS: make_triggers_idempotent,
    StepCategory.DATA: lambda sql: sql,
}


def make_idempotent(sql: str, category: StepCategory) -> str:
    """Rewrite ``sql`` so replaying it tolerates objects that already exist"""
    return _TRANSFORMS[category](sql)
