#!/usr/bin/env python3
"""
pgshift Dependency Resolver

Computes a foreign-key-safe load order for the base tables of a schema.

Each table gets a depth: 0 when it references no other table in the
schema, otherwise one more than the deepest table it references. Depths
are assigned with a worklist (Kahn style), so a table is placed only once
every table it references has been placed. Tables caught in a cycle, or
sitting deeper than the depth cap, never get a depth and are appended
alphabetically after the resolved ones.

Usage:
    resolver = DependencyResolver(catalog)
    tables = resolver.resolve('public')   # [TableRef('public', 'users'), ...]
"""

import logging
from collections import deque
from typing import Dict, Iterable, List, Optional, Set

from core.models import DependencyEdge, TableRef

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 20


def order_tables(tables: Iterable[str], edges: Iterable[DependencyEdge],
                 max_depth: int = DEFAULT_MAX_DEPTH,
                 log: Optional[logging.Logger] = None) -> List[str]:
    """
    Order table names so referenced tables come before referencing ones.

    Args:
        tables: All base table names of the schema
        edges: Foreign-key edges; edges touching unknown tables and
               self-references are ignored
        max_depth: Deepest chain that is resolved
        log: Logger for cycle warnings (defaults to the module logger)

    Returns:
        Every table exactly once: resolved tables by (depth, name), then the
        unresolved ones by name.
    """
    log = log or logger
    names = sorted(set(tables))
    known = set(names)

    depends_on: Dict[str, Set[str]] = {name: set() for name in names}
    dependents: Dict[str, Set[str]] = {name: set() for name in names}
    for edge in edges:
        if edge.source == edge.target:
            continue
        if edge.source not in known or edge.target not in known:
            continue
        depends_on[edge.source].add(edge.target)
        dependents[edge.target].add(edge.source)

    remaining = {name: len(deps) for name, deps in depends_on.items()}
    depth: Dict[str, int] = {}
    queue = deque()

    for name in names:
        if remaining[name] == 0:
            depth[name] = 0
            queue.append(name)

    while queue:
        current = queue.popleft()
        for dependent in sorted(dependents[current]):
            if dependent in depth:
                continue
            remaining[dependent] -= 1
            if remaining[dependent] > 0:
                continue
            candidate = 1 + max(depth[dep] for dep in depends_on[dependent])
            if candidate > max_depth:
                log.warning(f"Dependency chain for {dependent} exceeds depth {max_depth}; appending unresolved")
                continue
            depth[dependent] = candidate
            queue.append(dependent)

    resolved = sorted(depth, key=lambda name: (depth[name], name))
    unresolved = [name for name in names if name not in depth]

    if unresolved:
        log.warning(f"Unresolved table dependencies (cycle or missing metadata): {', '.join(unresolved)}")

    return resolved + unresolved


class DependencyResolver:
    """FK-safe table ordering backed by catalog metadata"""

    def __init__(self, catalog, logger: Optional[logging.Logger] = None,
                 max_depth: int = DEFAULT_MAX_DEPTH):
        self.catalog = catalog
        self.logger = logger or logging.getLogger(__name__)
        self.max_depth = max_depth

    def resolve(self, schema: str) -> List[TableRef]:
        """Return every base table of ``schema`` in dependency order"""
        return [TableRef(schema, name) for name in self.resolve_names(schema)]

    def resolve_names(self, schema: str) -> List[str]:
        tables = self.catalog.list_base_tables(schema)
        if not tables:
            return []

        try:
            edges = self.catalog.foreign_key_edges(schema)
        except Exception as e:
            # Dependency analysis is best effort: alphabetical order still exports everything
            self.logger.warning(f"Dependency analysis failed for schema {schema}, using alphabetical order: {e}")
            return sorted(tables)

        ordered = order_tables(tables, edges, self.max_depth, log=self.logger)
        self.logger.debug(f"Table order for {schema}: {ordered}")
        return ordered
