"""
SQLite to DuckDB Replicator Configuration Management

This module provides configuration classes and the fixed registry of
replicated tables.

Classes:
    TableRole: Enumeration of the tables the replicator knows about
    TableSpec: Name and role of one replicated table
    SqliteSettings: Source (row store) database location
    DuckdbSettings: Destination (column store) database location and tuning
    Settings: Main configuration class that orchestrates all settings

Key Features:
    - YAML-based configuration loading
    - Environment variable overrides for database paths
    - Static table set; unknown table names are rejected at load time
    - Type validation and error handling
"""

import os
from dataclasses import dataclass
from enum import Enum

import yaml


def stype(obj):
    """Get the simple type name of an object.

    Example:
        >>> stype([1, 2, 3])
        'list'
    """
    return type(obj).__name__


class TableRole(Enum):
    EGGS = 'eggs'
    INVENTORY_ACTIONS = 'inventory_actions'
    SPECIES = 'species'
    EGG_COLORS = 'egg_colors'
    EGG_SIZES = 'egg_sizes'
    COOPS = 'coops'


@dataclass(frozen=True)
class TableSpec:
    name: str
    role: TableRole


# Replication order. Tables referenced by others should come after their
# referents if the destination ever enforces constraints.
REPLICATED_TABLES = (
    TableSpec('eggs', TableRole.EGGS),
    TableSpec('inventory_actions', TableRole.INVENTORY_ACTIONS),
    TableSpec('species', TableRole.SPECIES),
    TableSpec('egg_colors', TableRole.EGG_COLORS),
    TableSpec('egg_sizes', TableRole.EGG_SIZES),
    TableSpec('coops', TableRole.COOPS),
)

SCHEMA_TRANSLATION_STRUCTURAL = 'structural'
SCHEMA_TRANSLATION_REWRITE = 'rewrite'


def resolve_table_specs(table_names) -> list[TableSpec]:
    """Map configured table names onto the static registry, keeping their order."""
    known = {spec.name: spec for spec in REPLICATED_TABLES}
    specs = []
    for name in table_names:
        if not isinstance(name, str):
            raise ValueError(f'table name should be string and not {stype(name)}')
        spec = known.get(name)
        if spec is None:
            raise ValueError(
                f'unknown table "{name}", replicated tables are: {", ".join(known)}'
            )
        if spec in specs:
            raise ValueError(f'table "{name}" listed more than once')
        specs.append(spec)
    return specs


@dataclass
class SqliteSettings:
    """Source database settings.

    Attributes:
        path: Path to the SQLite database file. It is opened read-only and
            must already exist.
    """
    path: str = '/app/data/eggtracker.db'

    def validate(self):
        if not isinstance(self.path, str) or not self.path:
            raise ValueError(f'sqlite path should be non-empty string and not {stype(self.path)}')


@dataclass
class DuckdbSettings:
    path: str = '/app/data/eggtracker.duckdb'
    threads: int = 0

    def validate(self):
        if not isinstance(self.path, str) or not self.path:
            raise ValueError(f'duckdb path should be non-empty string and not {stype(self.path)}')

        if not isinstance(self.threads, int):
            raise ValueError(f'duckdb threads should be int and not {stype(self.threads)}')

        if self.threads < 0:
            raise ValueError('duckdb threads should be non-negative')

    def get_connection_config(self):
        config = {}
        if self.threads:
            config['threads'] = self.threads
        return config


class Settings:
    DEFAULT_LOG_LEVEL = 'info'
    DEFAULT_FETCH_BATCH_SIZE = 1000

    def __init__(self):
        self.sqlite = SqliteSettings()
        self.duckdb = DuckdbSettings()
        self.tables = [spec.name for spec in REPLICATED_TABLES]
        self.settings_file = ''
        self.log_level = Settings.DEFAULT_LOG_LEVEL
        self.schema_translation = SCHEMA_TRANSLATION_STRUCTURAL
        self.types_mapping = {}
        self.fetch_batch_size = Settings.DEFAULT_FETCH_BATCH_SIZE

    def load(self, settings_file):
        with open(settings_file, 'r') as f:
            data = yaml.safe_load(f.read()) or {}

        self.settings_file = settings_file
        self.sqlite = SqliteSettings(**data.pop('sqlite', {}))
        self.duckdb = DuckdbSettings(**data.pop('duckdb', {}))
        self.tables = data.pop('tables', self.tables)
        self.log_level = data.pop('log_level', Settings.DEFAULT_LOG_LEVEL)
        self.schema_translation = data.pop('schema_translation', SCHEMA_TRANSLATION_STRUCTURAL)
        self.types_mapping = data.pop('types_mapping', {})
        self.fetch_batch_size = data.pop('fetch_batch_size', Settings.DEFAULT_FETCH_BATCH_SIZE)

        if data:
            raise Exception(f'Unsupported config options: {list(data.keys())}')

        self.apply_env_overrides()
        self.validate()

    def apply_env_overrides(self):
        sqlite_path = os.environ.get('SQLITE_PATH')
        if sqlite_path:
            self.sqlite.path = sqlite_path
        duckdb_path = os.environ.get('DUCKDB_PATH')
        if duckdb_path:
            self.duckdb.path = duckdb_path

    @property
    def table_specs(self) -> list[TableSpec]:
        return resolve_table_specs(self.tables)

    def validate_log_level(self):
        if self.log_level not in ['critical', 'error', 'warning', 'info', 'debug']:
            raise ValueError(f'wrong log level {self.log_level}')

    def validate_types_mapping(self):
        if not isinstance(self.types_mapping, dict):
            raise ValueError(f'types_mapping should be dict and not {stype(self.types_mapping)}')
        for source_type, target_type in self.types_mapping.items():
            if not isinstance(source_type, str) or not isinstance(target_type, str):
                raise ValueError(f'wrong types_mapping entry {source_type}: {target_type}')

    def validate(self):
        self.sqlite.validate()
        self.duckdb.validate()
        self.validate_log_level()
        self.validate_types_mapping()
        if not isinstance(self.tables, list):
            raise ValueError(f'tables should be list and not {stype(self.tables)}')
        resolve_table_specs(self.tables)
        if self.schema_translation not in (SCHEMA_TRANSLATION_STRUCTURAL, SCHEMA_TRANSLATION_REWRITE):
            raise ValueError(f'wrong schema_translation {self.schema_translation}')
        if not isinstance(self.fetch_batch_size, int) or self.fetch_batch_size < 1:
            raise ValueError(
                f'fetch_batch_size should be positive integer and not {stype(self.fetch_batch_size)}'
            )
