import datetime
import decimal
from enum import Enum
from logging import getLogger


logger = getLogger(__name__)


class ValueKind(Enum):
    """Value kinds accepted by the DuckDB driver for a destination column."""
    INTEGER = 'integer'
    FLOAT = 'float'
    DECIMAL = 'decimal'
    TEXT = 'text'
    BOOLEAN = 'boolean'
    TIMESTAMP = 'timestamp'
    DATE = 'date'
    BLOB = 'blob'
    OTHER = 'other'


INTEGER_TYPES = {
    'TINYINT', 'SMALLINT', 'INTEGER', 'BIGINT', 'HUGEINT',
    'UTINYINT', 'USMALLINT', 'UINTEGER', 'UBIGINT', 'UHUGEINT',
}
FLOAT_TYPES = {'FLOAT', 'DOUBLE', 'REAL'}
TEXT_TYPES = {'VARCHAR', 'TEXT', 'STRING', 'JSON', 'UUID'}

TRUE_STRINGS = {'1', 'true', 't', 'yes', 'y'}
FALSE_STRINGS = {'0', 'false', 'f', 'no', 'n'}


def value_kind_for(duckdb_type: str) -> ValueKind:
    duckdb_type = duckdb_type.strip().upper()
    base_type = duckdb_type.split('(', 1)[0].strip()
    if base_type in INTEGER_TYPES:
        return ValueKind.INTEGER
    if base_type in FLOAT_TYPES:
        return ValueKind.FLOAT
    if base_type in ('DECIMAL', 'NUMERIC'):
        return ValueKind.DECIMAL
    if base_type in TEXT_TYPES:
        return ValueKind.TEXT
    if base_type in ('BOOLEAN', 'BOOL'):
        return ValueKind.BOOLEAN
    if base_type.startswith('TIMESTAMP') or base_type == 'DATETIME':
        return ValueKind.TIMESTAMP
    if base_type == 'DATE':
        return ValueKind.DATE
    if base_type in ('BLOB', 'BYTEA', 'VARBINARY'):
        return ValueKind.BLOB
    return ValueKind.OTHER


def _as_text(value):
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode('utf-8')
    return value


def to_integer(value):
    value = _as_text(value)
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f'{value!r} is not an integer')
        return int(value)
    if isinstance(value, decimal.Decimal):
        if value != value.to_integral_value():
            raise ValueError(f'{value!r} is not an integer')
        return int(value)
    if isinstance(value, str):
        return int(value.strip())
    raise ValueError(f'cannot convert {type(value).__name__} to integer')


def to_float(value):
    value = _as_text(value)
    if isinstance(value, str):
        return float(value.strip())
    return float(value)


def to_decimal(value):
    value = _as_text(value)
    if isinstance(value, float):
        return decimal.Decimal(repr(value))
    try:
        return decimal.Decimal(value.strip() if isinstance(value, str) else value)
    except decimal.InvalidOperation as e:
        raise ValueError(f'{value!r} is not a decimal') from e


def to_text(value):
    value = _as_text(value)
    if isinstance(value, str):
        return value
    return str(value)


def to_boolean(value):
    value = _as_text(value)
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
    raise ValueError(f'{value!r} is not a boolean')


def to_timestamp(value):
    value = _as_text(value)
    if isinstance(value, datetime.datetime):
        result = value
    elif isinstance(value, datetime.date):
        return datetime.datetime.combine(value, datetime.time())
    elif isinstance(value, (int, float)):
        result = datetime.datetime.fromtimestamp(value, tz=datetime.timezone.utc)
    elif isinstance(value, str):
        result = datetime.datetime.fromisoformat(value.strip())
    else:
        raise ValueError(f'cannot convert {type(value).__name__} to timestamp')
    if result.tzinfo is not None:
        result = result.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    return result


def to_date(value):
    value = _as_text(value)
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str):
        value = value.strip()
        try:
            return datetime.date.fromisoformat(value)
        except ValueError:
            return datetime.datetime.fromisoformat(value).date()
    raise ValueError(f'cannot convert {type(value).__name__} to date')


def to_blob(value):
    if isinstance(value, str):
        return value.encode('utf-8')
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    return value


def passthrough(value):
    return value


CONVERTERS = {
    ValueKind.INTEGER: to_integer,
    ValueKind.FLOAT: to_float,
    ValueKind.DECIMAL: to_decimal,
    ValueKind.TEXT: to_text,
    ValueKind.BOOLEAN: to_boolean,
    ValueKind.TIMESTAMP: to_timestamp,
    ValueKind.DATE: to_date,
    ValueKind.BLOB: to_blob,
    ValueKind.OTHER: passthrough,
}


class ColumnNormalizer:
    def __init__(self, name: str, kind: ValueKind):
        self.name = name
        self.kind = kind
        self.convert = CONVERTERS[kind]

    def __call__(self, value):
        if value is None:
            return None
        try:
            return self.convert(value)
        except (ValueError, TypeError, OverflowError, UnicodeDecodeError) as e:
            raise ValueError(
                f'column {self.name}: cannot normalize {value!r} to {self.kind.value}: {e}'
            ) from e

    def __repr__(self):
        return f'ColumnNormalizer({self.name!r}, {self.kind})'


class RecordNormalizer:
    """Per-table normalizer built once from the destination column types.

    Source columns missing in the destination are passed through unchanged;
    the destination rejects them at insert time if they do not fit.
    """

    def __init__(self, source_columns: list[str], destination_columns: list[tuple[str, str]]):
        destination_types = {
            name.lower(): column_type for name, column_type in destination_columns
        }
        self.columns = []
        for name in source_columns:
            column_type = destination_types.get(name.lower())
            kind = ValueKind.OTHER if column_type is None else value_kind_for(column_type)
            self.columns.append(ColumnNormalizer(name, kind))
        logger.debug(f'record normalizer: {self.columns}')

    def __call__(self, record):
        return tuple(
            normalizer(value) for normalizer, value in zip(self.columns, record)
        )
