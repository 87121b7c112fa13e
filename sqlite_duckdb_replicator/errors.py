"""
Replication error taxonomy.

Every error raised by the copier, the upserter and the database wrappers
derives from ReplicationError and carries the table name and the operation
(``copy``, ``upsert``, ...) so the orchestrator can always say which table and
which phase failed.
"""


class ReplicationError(Exception):
    def __init__(self, message, table_name=None, operation=None):
        self.table_name = table_name
        self.operation = operation
        self.message = message
        super().__init__(self._format())

    def _format(self):
        prefix = []
        if self.operation:
            prefix.append(self.operation)
        if self.table_name:
            prefix.append(f'table {self.table_name}')
        if not prefix:
            return self.message
        return f'{" ".join(prefix)}: {self.message}'


class DatabaseConnectionError(ReplicationError):
    """Source or destination database could not be opened."""

    def __init__(self, message, path=None):
        self.path = path
        super().__init__(message, operation='connect')


class SchemaNotFound(ReplicationError):
    pass


class SchemaTranslationError(ReplicationError):
    """Source CREATE TABLE statement could not be parsed."""

    def __init__(self, message, statement, table_name=None, operation=None):
        self.statement = statement
        super().__init__(
            f'{message}\nsource statement: {statement}',
            table_name=table_name,
            operation=operation,
        )


class SchemaApplyError(ReplicationError):
    """Destination rejected the translated CREATE TABLE statement."""

    def __init__(self, message, statement, table_name=None, operation=None):
        self.statement = statement
        super().__init__(
            f'{message}\nstatement used: {statement}',
            table_name=table_name,
            operation=operation,
        )


class RowScanError(ReplicationError):
    def __init__(self, message, row_index, table_name=None, operation=None):
        self.row_index = row_index
        super().__init__(
            f'row {row_index}: {message}', table_name=table_name, operation=operation,
        )


class RowInsertError(ReplicationError):
    def __init__(self, message, row_index, table_name=None, operation=None):
        self.row_index = row_index
        super().__init__(
            f'row {row_index}: {message}', table_name=table_name, operation=operation,
        )


class NoIdentityColumn(ReplicationError):
    pass


class TableReplicationError(ReplicationError):
    """Raised by the orchestrator when a run stops at a table.

    Tables listed in ``applied_tables`` were committed before the failure and
    stay applied in the destination.
    """

    def __init__(self, message, table_name, operation, applied_tables):
        self.applied_tables = list(applied_tables)
        applied = ', '.join(self.applied_tables) if self.applied_tables else 'none'
        super().__init__(
            f'run failed at table {table_name}; tables before {table_name} '
            f'in the list order are already applied: {applied}; cause: {message}',
            table_name=table_name,
            operation=operation,
        )

    def _format(self):
        return f'{self.operation}: {self.message}'
