import sqlite3
import time
from logging import getLogger

from .converter import quote_name
from .duckdb_api import DuckdbApi
from .errors import NoIdentityColumn, ReplicationError
from .normalizer import RecordNormalizer
from .sqlite_api import SqliteApi
from .table_copier import join_columns, placeholders, write_records


logger = getLogger(__name__)


IDENTITY_COLUMN = 'id'

UPSERT_QUERY = (
    'INSERT INTO {table_name} ({columns}) VALUES ({placeholders}) '
    'ON CONFLICT ({identity_column}) DO {action}'
)


def find_identity_column(columns):
    for idx, column in enumerate(columns):
        if column.lower() == IDENTITY_COLUMN:
            return idx, column
    return None, None


def build_upsert_query(table_name, columns, identity_column):
    set_clauses = [
        f'{quote_name(c)} = excluded.{quote_name(c)}'
        for c in columns if c != identity_column
    ]
    action = 'NOTHING'
    if set_clauses:
        action = f'UPDATE SET {", ".join(set_clauses)}'
    return UPSERT_QUERY.format(
        table_name=quote_name(table_name),
        columns=join_columns(columns),
        placeholders=placeholders(len(columns)),
        identity_column=quote_name(identity_column),
        action=action,
    )


class TableUpserter:
    OPERATION = 'upsert'

    def __init__(self, sqlite_api: SqliteApi, duckdb_api: DuckdbApi):
        self.sqlite_api = sqlite_api
        self.duckdb_api = duckdb_api

    def upsert_table(self, table_name, since) -> int:
        """Insert or update the rows created or updated after ``since``.

        Conflicts on the ``id`` column overwrite every other column with the
        source values (last writer wins). All rows go in one transaction.
        """
        start_time = time.time()
        logger.info(f'upserting table {table_name} since {since}')

        try:
            with self.sqlite_api.iter_changed_records(table_name, since) as (columns, records):
                row_count = self._upsert_records(table_name, columns, records)
        except sqlite3.Error as e:
            raise ReplicationError(
                f'cannot select changed rows: {e}', table_name=table_name, operation=self.OPERATION,
            ) from e

        duration = time.time() - start_time
        self.duckdb_api.on_table_replicated(table_name, is_copy=False, duration=duration, records=row_count)
        logger.info(f'upserted {row_count} rows into table {table_name} ({duration:.3f}s)')
        return row_count

    def _upsert_records(self, table_name, columns, records):
        if not columns:
            logger.info(f'no columns found for source table {table_name}, skipping upsert')
            return 0
        logger.debug(f'columns for {table_name}: {columns}')

        identity_idx, identity_column = find_identity_column(columns)
        if identity_idx is None:
            logger.error(f'no "{IDENTITY_COLUMN}" column found in table {table_name}, cannot perform upsert')
            raise NoIdentityColumn(
                f'no "{IDENTITY_COLUMN}" column', table_name=table_name, operation=self.OPERATION,
            )

        destination_columns = self.duckdb_api.get_table_columns(table_name)
        if len(destination_columns) != len(columns):
            logger.warning(
                f'destination table {table_name} column count ({len(destination_columns)}) '
                f'does not match source ({len(columns)})'
            )

        normalizer = RecordNormalizer(columns, destination_columns)
        query = build_upsert_query(table_name, columns, identity_column)
        logger.debug(f'upsert statement for {table_name}: {query}')

        with self.duckdb_api.transaction() as connection:
            return write_records(connection, table_name, self.OPERATION, query, normalizer, records)
