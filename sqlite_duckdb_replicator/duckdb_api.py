from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass, field
from logging import getLogger

import duckdb

from .config import DuckdbSettings
from .converter import quote_name
from .errors import DatabaseConnectionError


logger = getLogger(__name__)


TABLE_EXISTS_QUERY = '''
SELECT 1 FROM information_schema.tables
WHERE table_catalog = current_database()
  AND table_schema = current_schema()
  AND table_name = ?
'''

TABLE_COLUMNS_QUERY = '''
SELECT column_name, data_type FROM information_schema.columns
WHERE table_catalog = current_database()
  AND table_schema = current_schema()
  AND table_name = ?
ORDER BY ordinal_position
'''


@dataclass
class SingleStats:
    duration: float = 0.0
    events: int = 0
    records: int = 0

    def to_dict(self):
        return self.__dict__


@dataclass
class CopyUpsertStats:
    copies: SingleStats = field(default_factory=SingleStats)
    upserts: SingleStats = field(default_factory=SingleStats)

    def to_dict(self):
        return {
            'copies': self.copies.to_dict(),
            'upserts': self.upserts.to_dict(),
        }


@dataclass
class GeneralStats:
    general: CopyUpsertStats = field(default_factory=CopyUpsertStats)
    table_stats: dict[str, CopyUpsertStats] = field(default_factory=lambda: defaultdict(CopyUpsertStats))

    def on_event(self, table_name: str, is_copy: bool, duration: float, records: int):
        targets = []
        if is_copy:
            targets.append(self.general.copies)
            targets.append(self.table_stats[table_name].copies)
        else:
            targets.append(self.general.upserts)
            targets.append(self.table_stats[table_name].upserts)

        for target in targets:
            target.duration += duration
            target.events += 1
            target.records += records

    def to_dict(self):
        results = {'total': self.general.to_dict()}
        for table_name, table_stats in self.table_stats.items():
            results[table_name] = table_stats.to_dict()
        return results


class DuckdbApi:
    def __init__(self, duckdb_settings: DuckdbSettings):
        self.duckdb_settings = duckdb_settings
        try:
            self.connection = duckdb.connect(
                duckdb_settings.path, config=duckdb_settings.get_connection_config(),
            )
        except duckdb.Error as e:
            raise DatabaseConnectionError(
                f'cannot open destination database {duckdb_settings.path}: {e}',
                path=duckdb_settings.path,
            ) from e
        self.stats = GeneralStats()
        logger.info(f'DuckdbApi opened destination database {duckdb_settings.path}')

    def close(self):
        self.connection.close()

    def get_stats(self):
        stats = self.stats.to_dict()
        self.stats = GeneralStats()
        return stats

    def execute_command(self, query, args=None):
        logger.debug(f'executing command: {query}')
        if args is None:
            self.connection.execute(query)
        else:
            self.connection.execute(query, args)

    def table_exists(self, table_name) -> bool:
        """Check the catalog for ``table_name``.

        Only an empty catalog lookup means "absent"; any error is raised to
        the caller.
        """
        row = self.connection.execute(TABLE_EXISTS_QUERY, [table_name]).fetchone()
        return row is not None

    def get_table_columns(self, table_name) -> list[tuple[str, str]]:
        rows = self.connection.execute(TABLE_COLUMNS_QUERY, [table_name]).fetchall()
        return [(row[0], row[1]) for row in rows]

    def drop_table(self, table_name):
        self.execute_command(f'DROP TABLE IF EXISTS {quote_name(table_name)}')

    def create_table(self, create_statement):
        logger.debug(f'create table query: {create_statement}')
        self.execute_command(create_statement)

    @contextmanager
    def transaction(self):
        """Run the block in one destination transaction.

        Commits when the block finishes, rolls back when it raises.
        """
        self.connection.begin()
        try:
            yield self.connection
        except BaseException:
            self.connection.rollback()
            raise
        self.connection.commit()

    def on_table_replicated(self, table_name, is_copy, duration, records):
        self.stats.on_event(
            table_name=table_name,
            is_copy=is_copy,
            duration=duration,
            records=records,
        )

