import sqlite3
from contextlib import contextmanager
from logging import getLogger
from pathlib import Path

from .config import SqliteSettings
from .converter import quote_name
from .errors import DatabaseConnectionError


logger = getLogger(__name__)


class SqliteApi:
    """Read-only access to the source row store."""

    DEFAULT_FETCH_BATCH_SIZE = 1000

    def __init__(self, sqlite_settings: SqliteSettings, fetch_batch_size: int = DEFAULT_FETCH_BATCH_SIZE):
        self.sqlite_settings = sqlite_settings
        self.fetch_batch_size = fetch_batch_size
        self.connection = self.connect(sqlite_settings.path)
        logger.info(f'SqliteApi opened source database {sqlite_settings.path}')

    @classmethod
    def connect(cls, path):
        if not Path(path).is_file():
            raise DatabaseConnectionError(f'source database {path} does not exist', path=path)
        uri = f'{Path(path).resolve().as_uri()}?mode=ro'
        try:
            connection = sqlite3.connect(uri, uri=True)
        except sqlite3.Error as e:
            raise DatabaseConnectionError(f'cannot open source database {path}: {e}', path=path) from e
        # sqlite opens lazily, reading the header is what rejects a non-database file
        try:
            connection.execute('PRAGMA schema_version').fetchone()
        except sqlite3.Error as e:
            connection.close()
            raise DatabaseConnectionError(f'cannot open source database {path}: {e}', path=path) from e
        return connection

    def close(self):
        self.connection.close()

    @contextmanager
    def get_cursor(self):
        cursor = self.connection.cursor()
        try:
            yield cursor
        finally:
            cursor.close()

    def get_table_create_statement(self, table_name) -> str | None:
        with self.get_cursor() as cursor:
            cursor.execute(
                "SELECT sql FROM sqlite_master WHERE type = 'table' AND name = ?",
                (table_name,),
            )
            row = cursor.fetchone()
        if row is None or not row[0]:
            return None
        return row[0].strip()

    @contextmanager
    def iter_records(self, query, args=()):
        """Run ``query`` and yield ``(column_names, rows)``.

        ``rows`` is a lazy iterator backed by ``fetchmany``; the cursor stays
        open until the context exits.
        """
        with self.get_cursor() as cursor:
            logger.debug(f'executing source query: {query}, args: {args}')
            cursor.execute(query, args)
            column_names = [column[0] for column in cursor.description or []]
            yield column_names, self._fetch(cursor)

    def _fetch(self, cursor):
        while True:
            rows = cursor.fetchmany(self.fetch_batch_size)
            if not rows:
                return
            yield from rows

    def iter_all_records(self, table_name):
        return self.iter_records(f'SELECT * FROM {quote_name(table_name)}')

    def iter_changed_records(self, table_name, since):
        query = (
            f'SELECT * FROM {quote_name(table_name)} '
            f'WHERE created_at > ? OR updated_at > ?'
        )
        return self.iter_records(query, (since, since))
