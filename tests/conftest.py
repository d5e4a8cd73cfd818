#!/usr/bin/env python3
"""
pgshift Test Configuration - PyTest Configuration and Fixtures
"""

import pytest
import os
import sys
import logging

# Add project root and this directory to path
TESTS_DIR = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, os.path.dirname(TESTS_DIR))
sys.path.insert(0, TESTS_DIR)

from fakes import DiagError, FakeCatalog, FakeSourceConnection, RecordingConnection, make_rows


@pytest.fixture
def fake_catalog():
    return FakeCatalog


@pytest.fixture
def fake_source():
    return FakeSourceConnection


@pytest.fixture
def recording_target():
    return RecordingConnection


@pytest.fixture
def diag_error():
    return DiagError


@pytest.fixture
def rows_factory():
    return make_rows


@pytest.fixture
def test_logger():
    """Explicit logger handed to components under test (captured by caplog)"""
    return logging.getLogger('pgshift.tests')


@pytest.fixture
def migration_dir(tmp_path):
    """Empty migration directory with a data/ subfolder"""
    (tmp_path / 'data').mkdir()
    return tmp_path


# Custom markers for test organization
def pytest_configure(config):
    """Configure custom pytest markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that test individual components"
    )
    config.addinivalue_line(
        "markers", "integration: End-to-end scenarios across components"
    )
    config.addinivalue_line(
        "markers", "database: Tests that need a live PostgreSQL server"
    )
