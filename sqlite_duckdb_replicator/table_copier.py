import sqlite3
import time
from logging import getLogger

import duckdb

from .converter import SqliteToDuckdbConverter, quote_name
from .duckdb_api import DuckdbApi
from .errors import (
    ReplicationError, RowInsertError, RowScanError, SchemaApplyError,
    SchemaNotFound, SchemaTranslationError,
)
from .normalizer import RecordNormalizer
from .sqlite_api import SqliteApi


logger = getLogger(__name__)


INSERT_QUERY = 'INSERT INTO {table_name} ({columns}) VALUES ({placeholders})'


def join_columns(columns):
    return ', '.join(quote_name(c) for c in columns)


def placeholders(count):
    return ', '.join(['?'] * count)


def write_records(connection, table_name, operation, query, normalizer: RecordNormalizer, records):
    """Execute ``query`` once per source record, returning the number of rows written.

    Row indexes in raised errors are 1-based. The caller owns the transaction.
    """
    row_index = 0
    try:
        for record in records:
            row_index += 1
            try:
                values = normalizer(record)
            except ValueError as e:
                logger.error(f'failed to scan row {row_index} of table {table_name}: {e}')
                raise RowScanError(str(e), row_index, table_name=table_name, operation=operation) from e
            try:
                connection.execute(query, values)
            except duckdb.Error as e:
                logger.error(f'failed to write row {row_index} into table {table_name}: {e}')
                logger.debug(f'failed data: {values}')
                raise RowInsertError(str(e), row_index, table_name=table_name, operation=operation) from e
    except sqlite3.Error as e:
        logger.error(f'failed to read row {row_index + 1} of table {table_name}: {e}')
        raise RowScanError(str(e), row_index + 1, table_name=table_name, operation=operation) from e
    return row_index


class TableCopier:
    OPERATION = 'copy'

    def __init__(self, sqlite_api: SqliteApi, duckdb_api: DuckdbApi, converter: SqliteToDuckdbConverter):
        self.sqlite_api = sqlite_api
        self.duckdb_api = duckdb_api
        self.converter = converter

    def translate(self, table_name):
        create_statement = self.sqlite_api.get_table_create_statement(table_name)
        if create_statement is None:
            raise SchemaNotFound(
                'table does not exist in source database',
                table_name=table_name,
                operation=self.OPERATION,
            )
        logger.debug(f'source schema for {table_name}: {create_statement}')

        try:
            translated = self.converter.translate_schema(create_statement)
        except Exception as e:
            raise SchemaTranslationError(
                str(e), create_statement, table_name=table_name, operation=self.OPERATION,
            ) from e
        logger.info(f'translated schema for {table_name}: {translated}')
        return translated

    def copy_table(self, table_name) -> int:
        """Replace the destination table with a fresh copy of the source table.

        Drop, create and every insert run in one destination transaction, so a
        failure leaves the previous destination content in place.
        """
        start_time = time.time()
        logger.info(f'copying table {table_name}')
        translated = self.translate(table_name)

        with self.duckdb_api.transaction() as connection:
            self.duckdb_api.drop_table(table_name)
            try:
                self.duckdb_api.create_table(translated)
            except duckdb.Error as e:
                logger.error(f'failed to create table {table_name}: {e}\nschema used: {translated}')
                raise SchemaApplyError(
                    str(e), translated, table_name=table_name, operation=self.OPERATION,
                ) from e

            try:
                with self.sqlite_api.iter_all_records(table_name) as (columns, records):
                    row_count = self._copy_records(connection, table_name, columns, records)
            except sqlite3.Error as e:
                raise ReplicationError(
                    f'cannot select source rows: {e}', table_name=table_name, operation=self.OPERATION,
                ) from e

        duration = time.time() - start_time
        self.duckdb_api.on_table_replicated(table_name, is_copy=True, duration=duration, records=row_count)
        logger.info(f'inserted {row_count} rows into table {table_name} ({duration:.3f}s)')
        return row_count

    def _copy_records(self, connection, table_name, columns, records):
        if not columns:
            logger.info(f'no columns found for source table {table_name}, skipping data copy')
            return 0

        destination_columns = self.duckdb_api.get_table_columns(table_name)
        if len(destination_columns) != len(columns):
            logger.warning(
                f'destination table {table_name} column count ({len(destination_columns)}) '
                f'does not match source ({len(columns)})'
            )

        normalizer = RecordNormalizer(columns, destination_columns)
        query = INSERT_QUERY.format(
            table_name=quote_name(table_name),
            columns=join_columns(columns),
            placeholders=placeholders(len(columns)),
        )
        logger.debug(f'insert statement for {table_name}: {query}')
        return write_records(connection, table_name, self.OPERATION, query, normalizer, records)
