import datetime
import decimal

import pytest

from sqlite_duckdb_replicator.normalizer import (
    ColumnNormalizer, RecordNormalizer, ValueKind, value_kind_for,
)


@pytest.mark.parametrize("duckdb_type,expected", [
    ("BIGINT", ValueKind.INTEGER),
    ("integer", ValueKind.INTEGER),
    ("UBIGINT", ValueKind.INTEGER),
    ("DOUBLE", ValueKind.FLOAT),
    ("DECIMAL(6,2)", ValueKind.DECIMAL),
    ("VARCHAR", ValueKind.TEXT),
    ("BOOLEAN", ValueKind.BOOLEAN),
    ("TIMESTAMP", ValueKind.TIMESTAMP),
    ("TIMESTAMP WITH TIME ZONE", ValueKind.TIMESTAMP),
    ("DATE", ValueKind.DATE),
    ("BLOB", ValueKind.BLOB),
    ("INTERVAL", ValueKind.OTHER),
])
def test_value_kind_for(duckdb_type, expected):
    assert value_kind_for(duckdb_type) == expected


@pytest.mark.parametrize("kind,value,expected", [
    (ValueKind.INTEGER, 5, 5),
    (ValueKind.INTEGER, '42', 42),
    (ValueKind.INTEGER, 3.0, 3),
    (ValueKind.INTEGER, b'7', 7),
    (ValueKind.FLOAT, '2.5', 2.5),
    (ValueKind.FLOAT, 2, 2.0),
    (ValueKind.DECIMAL, 58.25, decimal.Decimal('58.25')),
    (ValueKind.DECIMAL, '10.10', decimal.Decimal('10.10')),
    (ValueKind.TEXT, 'Chicken', 'Chicken'),
    (ValueKind.TEXT, b'Duck', 'Duck'),
    (ValueKind.TEXT, 12, '12'),
    (ValueKind.BOOLEAN, 0, False),
    (ValueKind.BOOLEAN, 1, True),
    (ValueKind.BOOLEAN, 'true', True),
    (ValueKind.BOOLEAN, 'F', False),
    (ValueKind.TIMESTAMP, '2024-05-01 08:00:00', datetime.datetime(2024, 5, 1, 8, 0)),
    (ValueKind.TIMESTAMP, '2024-05-01T08:00:00', datetime.datetime(2024, 5, 1, 8, 0)),
    (ValueKind.TIMESTAMP, '2024-05-01', datetime.datetime(2024, 5, 1)),
    (ValueKind.TIMESTAMP, '2024-05-01T10:00:00+02:00', datetime.datetime(2024, 5, 1, 8, 0)),
    (ValueKind.TIMESTAMP, 0, datetime.datetime(1970, 1, 1)),
    (ValueKind.DATE, '2024-05-01', datetime.date(2024, 5, 1)),
    (ValueKind.DATE, '2024-05-01 08:00:00', datetime.date(2024, 5, 1)),
    (ValueKind.BLOB, 'egg', b'egg'),
    (ValueKind.BLOB, b'\x00\x01', b'\x00\x01'),
    (ValueKind.OTHER, [1], [1]),
])
def test_column_normalizer(kind, value, expected):
    assert ColumnNormalizer('col', kind)(value) == expected


@pytest.mark.parametrize("kind", list(ValueKind))
def test_null_passes_through(kind):
    assert ColumnNormalizer('col', kind)(None) is None


@pytest.mark.parametrize("kind,value", [
    (ValueKind.INTEGER, 'Chicken'),
    (ValueKind.INTEGER, 2.5),
    (ValueKind.FLOAT, 'heavy'),
    (ValueKind.DECIMAL, 'n/a'),
    (ValueKind.BOOLEAN, 'maybe'),
    (ValueKind.TIMESTAMP, 'yesterday'),
    (ValueKind.DATE, 'soon'),
    (ValueKind.TEXT, b'\xff\xfe'),
])
def test_column_normalizer_errors(kind, value):
    with pytest.raises(ValueError) as excinfo:
        ColumnNormalizer('species', kind)(value)
    assert 'column species' in str(excinfo.value)


def test_record_normalizer():
    normalizer = RecordNormalizer(
        ['ID', 'name', 'active', 'created_at', 'extra'],
        [
            ('id', 'BIGINT'),
            ('name', 'VARCHAR'),
            ('active', 'BOOLEAN'),
            ('created_at', 'TIMESTAMP'),
        ],
    )
    assert [c.kind for c in normalizer.columns] == [
        ValueKind.INTEGER, ValueKind.TEXT, ValueKind.BOOLEAN, ValueKind.TIMESTAMP, ValueKind.OTHER,
    ]
    assert normalizer((1, 'Main Coop', 1, '2024-05-01 08:00:00', 'x')) == (
        1, 'Main Coop', True, datetime.datetime(2024, 5, 1, 8, 0), 'x',
    )
    assert normalizer((2, None, None, None, None)) == (2, None, None, None, None)
