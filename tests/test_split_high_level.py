import pytest
from sqlite_duckdb_replicator.converter import split_definition_tokens, split_high_level


@pytest.mark.parametrize("data,delimiter,expected", [
    # Basic column definitions without quotes or parentheses
    (
        "id INTEGER NOT NULL, name TEXT, age INTEGER",
        ",",
        ['id INTEGER NOT NULL', 'name TEXT', 'age INTEGER']
    ),

    # DEFAULT value containing comma inside single quotes
    (
        "status TEXT DEFAULT 'active,pending', id INTEGER",
        ",",
        ["status TEXT DEFAULT 'active,pending'", 'id INTEGER']
    ),

    # DECIMAL with precision and scale (comma inside parentheses)
    (
        "weight DECIMAL(6,2), quantity INTEGER",
        ",",
        ['weight DECIMAL(6,2)', 'quantity INTEGER']
    ),

    # CHECK constraint with nested parentheses
    (
        "quantity INTEGER CHECK (quantity > 0 AND (quantity < 1000)), notes TEXT",
        ",",
        ['quantity INTEGER CHECK (quantity > 0 AND (quantity < 1000))', 'notes TEXT']
    ),

    # Quoted identifiers containing the delimiter
    (
        '"egg, count" INTEGER, [a,b] TEXT, `c,d` REAL',
        ",",
        ['"egg, count" INTEGER', '[a,b] TEXT', '`c,d` REAL']
    ),

    # Table-level constraints keep their column lists
    (
        "id INTEGER, color_id INTEGER, FOREIGN KEY (color_id) REFERENCES egg_colors(id), PRIMARY KEY (id, color_id)",
        ",",
        ['id INTEGER', 'color_id INTEGER', 'FOREIGN KEY (color_id) REFERENCES egg_colors(id)', 'PRIMARY KEY (id, color_id)']
    ),

    # Empty string should return empty list
    (
        "",
        ",",
        []
    ),

    # Single column definition
    (
        "id INTEGER PRIMARY KEY",
        ",",
        ['id INTEGER PRIMARY KEY']
    ),

    # Splitting a definition into words
    (
        "notes TEXT DEFAULT 'two words' NOT NULL",
        " ",
        ['notes', 'TEXT', "DEFAULT", "'two words'", 'NOT', 'NULL']
    ),
])
def test_split_high_level(data, delimiter, expected):
    """
    Test the split_high_level function with SQL column definitions.

    Delimiters inside parentheses and inside quotes must be ignored.
    """
    result = split_high_level(data, delimiter)
    assert result == expected, f"Failed for input: {data} with delimiter: {delimiter}"


@pytest.mark.parametrize("definition,expected", [
    ("weight DECIMAL (6, 2) NOT NULL", ['weight', 'DECIMAL(6, 2)', 'NOT', 'NULL']),
    ("species_id INTEGER REFERENCES species (id)", ['species_id', 'INTEGER', 'REFERENCES', 'species(id)']),
    ("quantity INTEGER CHECK (quantity > 0)", ['quantity', 'INTEGER', 'CHECK(quantity > 0)']),
])
def test_split_definition_tokens(definition, expected):
    assert split_definition_tokens(definition) == expected
