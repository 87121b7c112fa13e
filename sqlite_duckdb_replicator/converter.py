import re
from logging import getLogger

import sqlparse
from pyparsing import (
    CaselessKeyword, DelimitedList, QuotedString, Suppress, Word, alphanums, alphas,
)

from .config import SCHEMA_TRANSLATION_REWRITE, SCHEMA_TRANSLATION_STRUCTURAL
from .table_structure import TableField, TableStructure


logger = getLogger(__name__)


CREATE_TABLE_QUERY = '''CREATE TABLE {if_not_exists}{table_name} (
{fields}
)'''

CREATE_TABLE_HEADER = re.compile(
    r'^\s*CREATE\s+(?:TEMP\s+|TEMPORARY\s+)?TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?'
    r'(?P<name>"(?:[^"]|"")+"|`[^`]+`|\[[^\]]+\]|[\w.$]+)',
    re.IGNORECASE,
)

# Explicit SQLite declared type -> DuckDB type mapping. Types that are not
# listed fall back to SQLite's column affinity rules, see affinity_type().
SQLITE_TO_DUCKDB_TYPES = {
    'integer': 'BIGINT',
    'int': 'BIGINT',
    'bigint': 'BIGINT',
    'int8': 'BIGINT',
    'int4': 'INTEGER',
    'mediumint': 'INTEGER',
    'int2': 'SMALLINT',
    'smallint': 'SMALLINT',
    'tinyint': 'TINYINT',
    'unsigned big int': 'UBIGINT',
    'boolean': 'BOOLEAN',
    'bool': 'BOOLEAN',
    'datetime': 'TIMESTAMP',
    'timestamp': 'TIMESTAMP',
    'date': 'DATE',
    'time': 'TIME',
    'real': 'DOUBLE',
    'double': 'DOUBLE',
    'double precision': 'DOUBLE',
    'float': 'DOUBLE',
    'numeric': 'DOUBLE',
    'decimal': 'DOUBLE',
    'text': 'VARCHAR',
    'clob': 'VARCHAR',
    'json': 'VARCHAR',
    'uuid': 'VARCHAR',
    'blob': 'BLOB',
    '': 'VARCHAR',
}

# Words that end the declared type and start a column constraint.
COLUMN_CONSTRAINT_KEYWORDS = {
    'constraint', 'primary', 'not', 'null', 'unique', 'check', 'default',
    'collate', 'references', 'generated', 'as', 'autoincrement', 'on',
}

TIME_DEFAULTS = {'current_timestamp', 'current_date', 'current_time'}

DECIMAL_MAX_PRECISION = 38


def strip_sql_name(name):
    name = name.strip()
    if len(name) >= 2 and name[0] == '"' and name[-1] == '"':
        return name[1:-1].replace('""', '"')
    if len(name) >= 2 and name[0] == '`' and name[-1] == '`':
        return name[1:-1]
    if len(name) >= 2 and name[0] == '[' and name[-1] == ']':
        return name[1:-1]
    return name


def quote_name(name):
    escaped = name.replace('"', '""')
    return f'"{escaped}"'


def split_high_level(data, token):
    """Split ``data`` on ``token`` ignoring tokens nested in parentheses or quotes."""
    results = []
    level = 0
    quote = None
    curr_data = ''
    for c in data:
        if quote is not None:
            curr_data += c
            if c == quote:
                quote = None
            continue
        if c in ('\'', '"', '`'):
            quote = c
            curr_data += c
            continue
        if c == '[':
            quote = ']'
            curr_data += c
            continue
        if c == token and level == 0:
            if curr_data.strip():
                results.append(curr_data.strip())
            curr_data = ''
            continue
        if c == '(':
            level += 1
        if c == ')':
            level -= 1
        curr_data += c
    if curr_data.strip():
        results.append(curr_data.strip())
    return results


def split_definition_tokens(definition):
    """Split one column definition into words, keeping ``(...)`` attached to the preceding word."""
    words = []
    for word in split_high_level(definition, ' '):
        word = word.strip()
        if not word:
            continue
        if word.startswith('(') and words:
            words[-1] = words[-1] + word
            continue
        words.append(word)
    return words


def keyword_of(word):
    return word.split('(', 1)[0].strip().lower()


def strip_sql_comments(sql_statement):
    return sqlparse.format(sql_statement, strip_comments=True).strip()


def replace_case_insensitive(data, old, new):
    return re.sub(re.escape(old), lambda _: new, data, flags=re.IGNORECASE)


def rewrite_schema_for_duckdb(schema):
    """Literal, case-insensitive rewrite of a SQLite CREATE TABLE statement.

    Kept for schemas that the structural parser cannot handle; it does not
    understand the statement and may misfire on unusual column definitions.
    """
    had_autoincrement = 'AUTOINCREMENT' in schema.upper()
    schema = replace_case_insensitive(schema, ' AUTOINCREMENT', '')
    schema = replace_case_insensitive(schema, ' DEFAULT CURRENT_TIMESTAMP', '')
    schema = replace_case_insensitive(schema, 'DATETIME', 'TIMESTAMP')
    if not had_autoincrement:
        schema = replace_case_insensitive(schema, 'INTEGER PRIMARY KEY', 'BIGINT PRIMARY KEY')
    return schema


def affinity_type(sqlite_type):
    """DuckDB type for a declared type, following SQLite's affinity rules."""
    if 'int' in sqlite_type:
        return 'BIGINT'
    if 'char' in sqlite_type or 'clob' in sqlite_type or 'text' in sqlite_type:
        return 'VARCHAR'
    if 'blob' in sqlite_type:
        return 'BLOB'
    if 'real' in sqlite_type or 'floa' in sqlite_type or 'doub' in sqlite_type:
        return 'DOUBLE'
    return 'DOUBLE'


class SqliteToDuckdbConverter:
    def __init__(self, types_mapping: dict | None = None, schema_translation: str = SCHEMA_TRANSLATION_STRUCTURAL):
        self.types_mapping = {
            k.strip().lower(): v for k, v in (types_mapping or {}).items()
        }
        self.schema_translation = schema_translation

    def convert_type(self, sqlite_type):
        sqlite_type = ' '.join(sqlite_type.lower().split())

        result_type = self.types_mapping.get(sqlite_type)
        if result_type is not None:
            return result_type

        result_type = SQLITE_TO_DUCKDB_TYPES.get(sqlite_type)
        if result_type is not None:
            return result_type

        base_type = sqlite_type.split('(', 1)[0].strip()
        result_type = self.types_mapping.get(base_type)
        if result_type is not None:
            return result_type

        if base_type in ('decimal', 'numeric'):
            match = re.search(r'\(\s*(\d+)\s*(?:,\s*(\d+)\s*)?\)', sqlite_type)
            if match is None:
                raise ValueError(f'Invalid numeric type definition: {sqlite_type}')
            precision = int(match.group(1))
            scale = int(match.group(2) or 0)
            if 0 < precision <= DECIMAL_MAX_PRECISION and scale <= precision:
                return f'DECIMAL({precision}, {scale})'
            return 'DOUBLE'

        if base_type in SQLITE_TO_DUCKDB_TYPES:
            return SQLITE_TO_DUCKDB_TYPES[base_type]

        return affinity_type(sqlite_type)

    def convert_field(self, sqlite_field: TableField, single_primary_key: bool) -> TableField:
        duckdb_type = self.convert_type(sqlite_field.field_type)
        is_integer_key = (
            single_primary_key and
            sqlite_field.primary_key and
            sqlite_field.field_type.strip().lower() in ('integer', 'int')
        )
        if is_integer_key:
            duckdb_type = 'BIGINT'

        default = sqlite_field.default
        if default is not None and default.lower() in TIME_DEFAULTS:
            default = None

        return TableField(
            name=sqlite_field.name,
            field_type=duckdb_type,
            not_null=sqlite_field.not_null,
            primary_key=sqlite_field.primary_key,
            autoincrement=False,
            default=default,
        )

    def convert_table_structure(self, sqlite_structure: TableStructure) -> TableStructure:
        duckdb_structure = TableStructure()
        duckdb_structure.table_name = sqlite_structure.table_name
        duckdb_structure.if_not_exists = sqlite_structure.if_not_exists
        single_primary_key = len(sqlite_structure.primary_keys) == 1
        for sqlite_field in sqlite_structure.fields:
            duckdb_structure.fields.append(self.convert_field(sqlite_field, single_primary_key))
        duckdb_structure.primary_keys = list(sqlite_structure.primary_keys)
        duckdb_structure.preprocess()
        return duckdb_structure

    def render_create_table(self, structure: TableStructure) -> str:
        single_primary_key = len(structure.primary_keys) == 1
        lines = []
        for table_field in structure.fields:
            line = f'    {quote_name(table_field.name)} {table_field.field_type}'
            if table_field.primary_key and single_primary_key:
                line += ' PRIMARY KEY'
            if table_field.not_null and not (table_field.primary_key and single_primary_key):
                line += ' NOT NULL'
            if table_field.default is not None:
                line += f' DEFAULT {table_field.default}'
            lines.append(line)
        if len(structure.primary_keys) > 1:
            keys = ', '.join(quote_name(k) for k in structure.primary_keys)
            lines.append(f'    PRIMARY KEY ({keys})')
        return CREATE_TABLE_QUERY.format(
            if_not_exists='IF NOT EXISTS ' if structure.if_not_exists else '',
            table_name=quote_name(structure.table_name),
            fields=',\n'.join(lines),
        )

    def translate_schema(self, create_statement: str) -> str:
        if self.schema_translation == SCHEMA_TRANSLATION_REWRITE:
            return rewrite_schema_for_duckdb(create_statement)
        sqlite_structure = self.parse_sqlite_table_structure(create_statement)
        duckdb_structure = self.convert_table_structure(sqlite_structure)
        return self.render_create_table(duckdb_structure)

    @classmethod
    def _find_body(cls, create_statement):
        statement = sqlparse.parse(create_statement)[0]

        def walk(token_list):
            for token in token_list.tokens:
                yield token
                if token.is_group:
                    yield from walk(token)

        for token in walk(statement):
            if isinstance(token, sqlparse.sql.Parenthesis):
                return str(token)[1:-1]
        raise Exception('wrong create statement', create_statement)

    @classmethod
    def _parse_primary_key_constraint(cls, line):
        identifier = (
            QuotedString('"', esc_quote='""') |
            QuotedString('`') |
            QuotedString('[', end_quote_char=']') |
            Word(alphas + '_', alphanums + '_$')
        )
        column = identifier + Suppress(
            (CaselessKeyword('ASC') | CaselessKeyword('DESC'))[0, 1]
        )
        pattern = (
            Suppress(CaselessKeyword('PRIMARY') + CaselessKeyword('KEY') + '(') +
            DelimitedList(column) +
            Suppress(')')
        )
        return [strip_sql_name(name) for name in pattern.parse_string(line)]

    def parse_column_definition(self, line) -> TableField:
        words = split_definition_tokens(line)
        field_name = strip_sql_name(words[0])

        type_words = []
        idx = 1
        while idx < len(words) and keyword_of(words[idx]) not in COLUMN_CONSTRAINT_KEYWORDS:
            type_words.append(words[idx])
            idx += 1

        table_field = TableField(
            name=field_name,
            field_type=' '.join(type_words),
        )

        while idx < len(words):
            word = keyword_of(words[idx])
            next_word = keyword_of(words[idx + 1]) if idx + 1 < len(words) else ''
            if word == 'constraint':
                idx += 2
            elif word == 'primary' and next_word == 'key':
                table_field.primary_key = True
                idx += 2
                if idx < len(words) and keyword_of(words[idx]) in ('asc', 'desc'):
                    idx += 1
            elif word == 'autoincrement':
                table_field.autoincrement = True
                idx += 1
            elif word == 'not' and next_word == 'null':
                table_field.not_null = True
                idx += 2
            elif word in ('null', 'unique'):
                idx += 1
            elif word == 'on' and next_word == 'conflict':
                idx += 3
            elif word == 'check':
                idx += 1 if '(' in words[idx] else 2
            elif word == 'default':
                # expression defaults are evaluated by the source, the copier
                # always provides the value explicitly
                if '(' in words[idx]:
                    idx += 1
                    continue
                if idx + 1 < len(words):
                    table_field.default = words[idx + 1]
                idx += 2
            elif word == 'collate':
                idx += 2
            elif word == 'references':
                idx = self._skip_foreign_key_clause(words, idx + 2)
            elif word == 'generated':
                idx += 1
            elif word == 'as':
                idx += 1 if '(' in words[idx] else 2
                if idx < len(words) and keyword_of(words[idx]) in ('stored', 'virtual'):
                    idx += 1
            elif word == 'always':
                idx += 1
            else:
                logger.debug(f'ignoring column option "{words[idx]}" of field {field_name}')
                idx += 1

        return table_field

    @classmethod
    def _skip_foreign_key_clause(cls, words, idx):
        while idx < len(words):
            word = keyword_of(words[idx])
            next_word = keyword_of(words[idx + 1]) if idx + 1 < len(words) else ''
            if word == 'on' and next_word in ('delete', 'update'):
                action = keyword_of(words[idx + 2]) if idx + 2 < len(words) else ''
                idx += 4 if action in ('set', 'no') else 3
            elif word == 'match':
                idx += 2
            elif word == 'not' and next_word == 'deferrable':
                idx += 2
            elif word == 'deferrable':
                idx += 1
            elif word == 'initially':
                idx += 2
            else:
                break
        return idx

    def parse_sqlite_table_structure(self, create_statement, required_table_name=None):
        create_statement = strip_sql_comments(create_statement)

        structure = TableStructure()

        header = CREATE_TABLE_HEADER.match(create_statement)
        if header is None:
            raise Exception('wrong create statement', create_statement)
        structure.table_name = strip_sql_name(header.group('name').split('.')[-1])
        structure.if_not_exists = False

        if required_table_name is not None and structure.table_name != required_table_name:
            raise Exception(
                f'create statement is for table {structure.table_name}, expected {required_table_name}'
            )

        inner_tokens = split_high_level(self._find_body(create_statement), ',')

        for line in inner_tokens:
            line = ' '.join(line.split())
            words = split_definition_tokens(line)

            if keyword_of(words[0]) == 'constraint' and len(words) > 2:
                words = words[2:]
                line = ' '.join(words)

            first_word = keyword_of(words[0])
            second_word = keyword_of(words[1]) if len(words) > 1 else ''

            if (first_word, second_word) == ('primary', 'key'):
                structure.primary_keys = self._parse_primary_key_constraint(line)
                continue
            if first_word in ('unique', 'check') or (first_word, second_word) == ('foreign', 'key'):
                continue

            structure.fields.append(self.parse_column_definition(line))

        if not structure.primary_keys:
            for table_field in structure.fields:
                if table_field.primary_key:
                    structure.primary_keys.append(table_field.name)

        if not structure.primary_keys:
            id_field = structure.get_field('id')
            if id_field is not None:
                structure.primary_keys = [id_field.name]

        structure.preprocess()
        return structure
