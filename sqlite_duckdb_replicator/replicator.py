import copy
import dataclasses
import sqlite3
import time
from dataclasses import dataclass, field
from enum import Enum
from logging import getLogger

import duckdb

from .config import Settings, TableSpec
from .converter import SqliteToDuckdbConverter
from .duckdb_api import DuckdbApi
from .errors import ReplicationError, TableReplicationError
from .sqlite_api import SqliteApi
from .table_copier import TableCopier
from .table_upserter import TableUpserter


logger = getLogger(__name__)


class ReplicationMode(Enum):
    FULL = 'full'
    INCREMENTAL = 'incremental'


class RunState(Enum):
    IDLE = 'idle'
    RUNNING_TABLE = 'running_table'
    FAILED = 'failed'
    DONE = 'done'


@dataclass
class RunResult:
    mode: ReplicationMode
    state: RunState = RunState.IDLE
    applied_tables: list[str] = field(default_factory=list)
    operations: dict[str, str] = field(default_factory=dict)
    records: dict[str, int] = field(default_factory=dict)
    stats: dict = field(default_factory=dict)
    duration: float = 0.0


class Replicator:
    """Runs one full or incremental replication over the configured tables.

    Tables are processed strictly in list order, each in its own destination
    transaction. The first failing table stops the run; tables before it stay
    applied.
    """

    def __init__(self, config: Settings, mode: ReplicationMode, watermark: str | None = None):
        if mode == ReplicationMode.INCREMENTAL:
            if not isinstance(watermark, str) or not watermark:
                raise ValueError('incremental replication requires a non-empty watermark string')
        self.config = config
        self.mode = mode
        self.watermark = watermark
        self.table_specs: list[TableSpec] = config.table_specs
        self.state = RunState.IDLE
        self.current_operation = None
        self.result = RunResult(mode=mode)

    def set_state(self, new_state: RunState, reason: str):
        old_state = self.state
        self.state = new_state
        self.result.state = new_state
        logger.info(f'STATUS CHANGE: {old_state.value} -> {new_state.value}, reason={reason!r}')

    def run(self) -> RunResult:
        start_time = time.time()
        table_names = [spec.name for spec in self.table_specs]
        logger.info(f'starting {self.mode.value} replication, tables: {table_names}')
        if self.watermark is not None:
            logger.info(f'watermark: {self.watermark}')

        sqlite_api = SqliteApi(self.config.sqlite, fetch_batch_size=self.config.fetch_batch_size)
        try:
            duckdb_api = DuckdbApi(self.config.duckdb)
        except ReplicationError:
            sqlite_api.close()
            raise

        try:
            converter = SqliteToDuckdbConverter(
                types_mapping=self.config.types_mapping,
                schema_translation=self.config.schema_translation,
            )
            copier = TableCopier(sqlite_api, duckdb_api, converter)
            upserter = TableUpserter(sqlite_api, duckdb_api)

            total_tables = len(self.table_specs)
            for table_idx, spec in enumerate(self.table_specs):
                self.set_state(RunState.RUNNING_TABLE, f'table {table_idx + 1}/{total_tables} {spec.name}')
                try:
                    records = self.replicate_table(spec, duckdb_api, copier, upserter)
                except (ReplicationError, duckdb.Error, sqlite3.Error) as e:
                    self.set_state(RunState.FAILED, f'table {spec.name} failed')
                    logger.error(f'error during {self.current_operation} of table {spec.name}: {e}')
                    raise TableReplicationError(
                        str(e),
                        table_name=spec.name,
                        operation=self.current_operation,
                        applied_tables=self.result.applied_tables,
                    ) from e
                self.result.applied_tables.append(spec.name)
                self.result.operations[spec.name] = self.current_operation
                self.result.records[spec.name] = records
                logger.info(f'table {spec.name} done ({self.current_operation}, {records} rows)')

            self.result.stats = duckdb_api.get_stats()
            self.result.duration = time.time() - start_time
            self.set_state(RunState.DONE, f'all {total_tables} tables replicated')
            logger.info(f'{self.mode.value} replication completed in {self.result.duration:.3f}s')
            return self.result
        finally:
            duckdb_api.close()
            sqlite_api.close()

    def replicate_table(self, spec: TableSpec, duckdb_api, copier, upserter) -> int:
        if self.mode == ReplicationMode.FULL:
            self.current_operation = 'copy'
            return copier.copy_table(spec.name)

        self.current_operation = 'existence check'
        if not duckdb_api.table_exists(spec.name):
            logger.info(f'table {spec.name} does not exist in destination, performing initial copy')
            self.current_operation = 'bootstrap copy'
            return copier.copy_table(spec.name)

        self.current_operation = 'upsert'
        return upserter.upsert_table(spec.name, self.watermark)


def _settings_for_paths(settings, source_path, destination_path):
    settings = copy.copy(settings) if settings is not None else Settings()
    settings.sqlite = dataclasses.replace(settings.sqlite, path=str(source_path))
    settings.duckdb = dataclasses.replace(settings.duckdb, path=str(destination_path))
    settings.validate()
    return settings


def full_refresh(source_path, destination_path, settings: Settings | None = None) -> RunResult:
    """Replace the destination content of every replicated table."""
    settings = _settings_for_paths(settings, source_path, destination_path)
    return Replicator(settings, ReplicationMode.FULL).run()


def incremental_refresh(source_path, destination_path, watermark, settings: Settings | None = None) -> RunResult:
    """Upsert rows changed after ``watermark``; tables missing in the destination are copied in full."""
    settings = _settings_for_paths(settings, source_path, destination_path)
    return Replicator(settings, ReplicationMode.INCREMENTAL, watermark=watermark).run()
