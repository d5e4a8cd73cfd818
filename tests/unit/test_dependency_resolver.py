#!/usr/bin/env python3
"""
pgshift Dependency Resolver Unit Tests
"""

import logging
import random

import pytest

from core.dependency_resolver import DependencyResolver, order_tables
from core.models import DependencyEdge, TableRef


def edges(*pairs):
    return [DependencyEdge(source, target) for source, target in pairs]


@pytest.mark.unit
class TestOrderTables:
    """Pure ordering over table names and edges"""

    def test_referenced_tables_come_first(self):
        ordered = order_tables(['comments', 'posts', 'users'],
                               edges(('posts', 'users'), ('comments', 'posts'), ('comments', 'users')))
        assert ordered == ['users', 'posts', 'comments']

    def test_same_depth_is_alphabetical(self):
        ordered = order_tables(['b', 'a', 'c'], [])
        assert ordered == ['a', 'b', 'c']

    def test_generated_acyclic_graphs_respect_every_edge(self):
        """Every edge target precedes its source, for random DAGs"""
        rng = random.Random(1234)
        for _ in range(50):
            names = [f"t{i:02d}" for i in range(rng.randint(1, 12))]
            # only point from later to earlier names, so the graph is acyclic
            pairs = [(names[i], names[j])
                     for i in range(len(names)) for j in range(i)
                     if rng.random() < 0.3]
            shuffled = names[:]
            rng.shuffle(shuffled)

            ordered = order_tables(shuffled, edges(*pairs))

            assert sorted(ordered) == sorted(names)
            position = {name: index for index, name in enumerate(ordered)}
            for source, target in pairs:
                assert position[target] < position[source]

    def test_cycle_is_appended_alphabetically(self, caplog):
        with caplog.at_level(logging.WARNING):
            ordered = order_tables(['a', 'b', 'c'], edges(('a', 'b'), ('b', 'a')))

        assert ordered == ['c', 'a', 'b']
        assert any('a, b' in record.getMessage() for record in caplog.records)

    def test_self_reference_and_unknown_tables_are_ignored(self):
        ordered = order_tables(['employees', 'teams'],
                               edges(('employees', 'employees'), ('employees', 'teams'),
                                     ('teams', 'elsewhere')))
        assert ordered == ['teams', 'employees']

    def test_depth_cap_leaves_deep_tables_unresolved(self):
        """Chain a -> b -> c -> d -> e: only depths 0..2 are placed"""
        chain = edges(('a', 'b'), ('b', 'c'), ('c', 'd'), ('d', 'e'))
        ordered = order_tables(['a', 'b', 'c', 'd', 'e'], chain, max_depth=2)
        assert ordered == ['e', 'd', 'c', 'a', 'b']

    def test_every_table_appears_once(self):
        ordered = order_tables(['x', 'y', 'x'], edges(('x', 'y'), ('x', 'y')))
        assert ordered == ['y', 'x']


@pytest.mark.unit
class TestDependencyResolver:
    """Resolver backed by a catalog"""

    def test_resolve_returns_table_refs(self, fake_catalog, test_logger):
        catalog = fake_catalog(tables={'users': [], 'posts': []}, edges=[('posts', 'users')])
        resolver = DependencyResolver(catalog, test_logger)

        assert resolver.resolve('app') == [TableRef('app', 'users'), TableRef('app', 'posts')]

    def test_empty_schema(self, fake_catalog, test_logger):
        assert DependencyResolver(fake_catalog(), test_logger).resolve('public') == []

    def test_edge_failure_falls_back_to_alphabetical(self, fake_catalog, test_logger, caplog):
        catalog = fake_catalog(tables={'zebra': [], 'apple': [], 'mango': []},
                               edges=[('apple', 'zebra')], fail_edges=True)

        with caplog.at_level(logging.WARNING):
            names = DependencyResolver(catalog, test_logger).resolve_names('public')

        assert names == ['apple', 'mango', 'zebra']
        assert 'alphabetical order' in caplog.text

    def test_depth_cap_is_passed_through(self, fake_catalog, test_logger):
        catalog = fake_catalog(tables={name: [] for name in 'abc'},
                               edges=[('a', 'b'), ('b', 'c')])
        names = DependencyResolver(catalog, test_logger, max_depth=1).resolve_names('public')
        assert names == ['c', 'b', 'a']
