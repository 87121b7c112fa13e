import pytest

from sqlite_duckdb_replicator.config import Settings
from tests.utils.source_databases import (
    APPLICATION_DATA, APPLICATION_SCHEMA, TEST_TABLES_DATA, TEST_TABLES_SCHEMA, execute_sqlite,
)


@pytest.fixture
def source_path(tmp_path):
    path = str(tmp_path / 'eggtracker.db')
    execute_sqlite(path, TEST_TABLES_SCHEMA + TEST_TABLES_DATA)
    return path


@pytest.fixture
def application_source_path(tmp_path):
    path = str(tmp_path / 'application.db')
    execute_sqlite(path, APPLICATION_SCHEMA + APPLICATION_DATA)
    return path


@pytest.fixture
def destination_path(tmp_path):
    return str(tmp_path / 'eggtracker.duckdb')


@pytest.fixture
def settings():
    return Settings()
