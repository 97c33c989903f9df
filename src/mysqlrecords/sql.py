"""
SQL text helpers: placeholder normalisation, identifier quoting and the
statement builders used by records.

PyMySQL binds parameters with Python ``%`` formatting, so statements
written with ``?`` markers are rewritten to ``%s`` and any literal ``%``
is doubled when parameters are bound. String literals and backtick
identifiers are copied through untouched apart from that escaping.
"""
import re
from typing import Any

_TOKENIZE = re.compile(r"""
    (?P<literal>'(?:[^'\\]|\\.|'')*'|"(?:[^"\\]|\\.|"")*"|`(?:[^`]|``)*`)
    |(?P<percent_s>%s)
    |(?P<qmark>\?)
    |(?P<percent>%)
""", re.VERBOSE | re.DOTALL)

_HAS_PLACEHOLDER = re.compile(r"""
    '(?:[^'\\]|\\.|'')*'|"(?:[^"\\]|\\.|"")*"|`(?:[^`]|``)*`
    |(?P<ph>%s|\?)
""", re.VERBOSE | re.DOTALL)


def has_placeholders(sql: str) -> bool:
    """Check if SQL has positional placeholders outside of literals.

    >>> has_placeholders('select * from t where a = ?')
    True
    >>> has_placeholders("select '?' from t")
    False
    """
    return any(m.group('ph') for m in _HAS_PLACEHOLDER.finditer(sql))


def standardize_placeholders(sql: str, escape_percent: bool = True) -> str:
    """Convert ``?`` placeholders to the ``%s`` style PyMySQL expects.

    Parameters
        sql: SQL statement using ``?`` and/or ``%s`` markers
        escape_percent: Double literal ``%`` signs (needed whenever the
            driver will apply parameters)

    >>> standardize_placeholders('select * from t where a = ? and b like \\'x%\\'')
    "select * from t where a = %s and b like 'x%%'"
    >>> standardize_placeholders('select 10 % 3', escape_percent=False)
    'select 10 % 3'
    """
    def replace(match: re.Match) -> str:
        if match.group('literal'):
            text = match.group('literal')
            return text.replace('%', '%%') if escape_percent else text
        if match.group('percent_s') or match.group('qmark'):
            return '%s'
        return '%%' if escape_percent else '%'

    return _TOKENIZE.sub(replace, sql)


def flatten_args(args: tuple) -> tuple:
    """Accept parameters either as ``*args`` or as one list/tuple."""
    if len(args) == 1 and isinstance(args[0], (list, tuple)):
        return tuple(args[0])
    return tuple(args)


def prepare_query(sql: str, args: tuple) -> tuple[str, tuple | None]:
    """Normalise SQL and parameters for execution.

    Returns the rewritten SQL and the parameter tuple, or None when there
    are no parameters so the driver leaves the statement text alone.
    """
    args = flatten_args(args)
    if not args:
        return standardize_placeholders(sql, escape_percent=False), None
    return standardize_placeholders(sql), args


def quote_identifier(identifier: str) -> str:
    """Quote a table or column name with backticks.

    >>> quote_identifier('widgets')
    '`widgets`'
    >>> quote_identifier('odd`name')
    '`odd``name`'
    """
    if not identifier:
        raise ValueError('Identifier cannot be empty')
    return '`' + identifier.replace('`', '``') + '`'


def qualified_table(schema: str, table: str) -> str:
    """Return ```schema`.`table``` (or just ```table``` without a schema)."""
    if not schema:
        return quote_identifier(table)
    return f'{quote_identifier(schema)}.{quote_identifier(table)}'


def make_placeholders(count: int) -> str:
    return ', '.join(['?'] * count)


def build_insert_sql(schema: str, table: str, columns: list[str]) -> str:
    """Generate an INSERT statement with one placeholder per column.

    >>> build_insert_sql('shop', 'widgets', ['sku', 'weight'])
    'INSERT INTO `shop`.`widgets` (`sku`, `weight`) VALUES (?, ?)'
    """
    quoted_columns = ', '.join(quote_identifier(col) for col in columns)
    return (f'INSERT INTO {qualified_table(schema, table)} ({quoted_columns}) '
            f'VALUES ({make_placeholders(len(columns))})')


def build_update_sql(schema: str, table: str, datafields: list[str], keyfield: str) -> str:
    """Generate an UPDATE statement for datafields of the row identified by keyfield.

    >>> build_update_sql('shop', 'widgets', ['weight'], 'sku')
    'UPDATE `shop`.`widgets` SET `weight` = ? WHERE `sku` = ?'
    """
    assert keyfield not in datafields, f'keyfield {keyfield} cannot be in datafields'
    datacols = ', '.join(f'{quote_identifier(f)} = ?' for f in datafields)
    return f'UPDATE {qualified_table(schema, table)} SET {datacols} WHERE {quote_identifier(keyfield)} = ?'


def split_properties(properties: dict[str, Any], keyfield: str) -> tuple[list[str], list[Any]]:
    """Split a property mapping into SET columns and values, skipping the key."""
    fields = [f for f in properties if f != keyfield]
    return fields, [properties[f] for f in fields]
