import pytest

from sqlite_duckdb_replicator.config import (
    REPLICATED_TABLES, SCHEMA_TRANSLATION_REWRITE, Settings, TableRole, resolve_table_specs,
)


CONFIG_YAML = '''
sqlite:
  path: /data/source.db

duckdb:
  path: /data/analytics.duckdb
  threads: 2

tables:
  - eggs
  - coops

log_level: debug
schema_translation: rewrite
types_mapping:
  text: JSON
fetch_batch_size: 50
'''


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / 'config.yaml'
    path.write_text(CONFIG_YAML)
    return str(path)


def test_load_config(config_file, monkeypatch):
    monkeypatch.delenv('SQLITE_PATH', raising=False)
    monkeypatch.delenv('DUCKDB_PATH', raising=False)

    settings = Settings()
    settings.load(config_file)

    assert settings.sqlite.path == '/data/source.db'
    assert settings.duckdb.path == '/data/analytics.duckdb'
    assert settings.duckdb.threads == 2
    assert settings.duckdb.get_connection_config() == {'threads': 2}
    assert [spec.name for spec in settings.table_specs] == ['eggs', 'coops']
    assert settings.log_level == 'debug'
    assert settings.schema_translation == SCHEMA_TRANSLATION_REWRITE
    assert settings.types_mapping == {'text': 'JSON'}
    assert settings.fetch_batch_size == 50


def test_env_vars_override_config(config_file, monkeypatch):
    monkeypatch.setenv('SQLITE_PATH', '/env/source.db')
    monkeypatch.setenv('DUCKDB_PATH', '/env/analytics.duckdb')

    settings = Settings()
    settings.load(config_file)

    assert settings.sqlite.path == '/env/source.db'
    assert settings.duckdb.path == '/env/analytics.duckdb'
    assert settings.duckdb.threads == 2


def test_defaults():
    settings = Settings()
    settings.validate()
    assert [spec.name for spec in settings.table_specs] == [
        'eggs', 'inventory_actions', 'species', 'egg_colors', 'egg_sizes', 'coops',
    ]
    assert settings.duckdb.get_connection_config() == {}
    assert settings.fetch_batch_size == 1000


def test_unsupported_option(tmp_path):
    path = tmp_path / 'config.yaml'
    path.write_text(CONFIG_YAML + 'postgres:\n  host: localhost\n')
    with pytest.raises(Exception, match='Unsupported config options'):
        Settings().load(str(path))


def test_empty_config_file(tmp_path, monkeypatch):
    monkeypatch.delenv('SQLITE_PATH', raising=False)
    path = tmp_path / 'config.yaml'
    path.write_text('')
    settings = Settings()
    settings.load(str(path))
    assert settings.sqlite.path == '/app/data/eggtracker.db'


def test_table_roles():
    assert [spec.role for spec in REPLICATED_TABLES] == [
        TableRole.EGGS, TableRole.INVENTORY_ACTIONS, TableRole.SPECIES,
        TableRole.EGG_COLORS, TableRole.EGG_SIZES, TableRole.COOPS,
    ]
    assert [spec.name for spec in resolve_table_specs(['coops', 'eggs'])] == ['coops', 'eggs']


@pytest.mark.parametrize("tables,message", [
    (['eggs', 'users'], 'unknown table "users"'),
    (['eggs', 'eggs'], 'listed more than once'),
    ([1], 'should be string'),
])
def test_wrong_tables(tables, message):
    with pytest.raises(ValueError, match=message):
        resolve_table_specs(tables)


@pytest.mark.parametrize("attribute,value", [
    ('log_level', 'verbose'),
    ('schema_translation', 'regex'),
    ('fetch_batch_size', 0),
    ('types_mapping', ['text']),
    ('tables', 'eggs'),
])
def test_validate_rejects_wrong_values(attribute, value):
    settings = Settings()
    setattr(settings, attribute, value)
    with pytest.raises(ValueError):
        settings.validate()


def test_validate_rejects_negative_threads():
    settings = Settings()
    settings.duckdb.threads = -1
    with pytest.raises(ValueError):
        settings.validate()
