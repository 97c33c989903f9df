"""
MySQL access module that returns query results as plain records.

All query/data operations can be called either as:
- Module functions: db.select(cn, sql, *args)
- ConnectionWrapper methods: cn.select(sql, *args)

Each record is a dictionary mapping every column of the query to an
``int``, ``float``, ``str`` or ``None``.
"""
__version__ = '0.1.0'

from typing import Any

from mysqlrecords.connection import ConnectionWrapper, ExecResult, connect
from mysqlrecords.connection import connect_schemaless
from mysqlrecords.cursor import Cursor
from mysqlrecords.exceptions import ColumnMismatchError, ConnectionFailure
from mysqlrecords.exceptions import DatabaseError, DbConnectionError
from mysqlrecords.exceptions import IntegrityError, IntegrityViolationError
from mysqlrecords.exceptions import NoResultError, OperationalError
from mysqlrecords.exceptions import ProgrammingError, QueryError
from mysqlrecords.exceptions import TypeConversionError, ValidationError
from mysqlrecords.options import DatabaseOptions, iterdict_data_loader
from mysqlrecords.options import pandas_data_loader
from mysqlrecords.record import Record
from mysqlrecords.rows import walk_rows
from mysqlrecords.types import Column, TargetKind, resolve_kind


def execute(cn: ConnectionWrapper, sql: str, *args: Any) -> ExecResult:
    """Execute a SQL statement and return affected rows and last insert id.
    """
    return cn.execute(sql, *args)


delete = execute
insert = execute
update = execute


def query(cn: ConnectionWrapper, sql: str, *args: Any) -> Cursor:
    """Run a query and return its open cursor.
    """
    return cn.query(sql, *args)


def select(cn: ConnectionWrapper, sql: str, *args: Any, **kwargs: Any) -> Any:
    """Run a query and return every row as a record.
    """
    return cn.select(sql, *args, **kwargs)


def select_row(cn: ConnectionWrapper, sql: str, *args: Any) -> dict[str, Any]:
    """Run a query and return its first row.

    Raises NoResultError if the query returns zero rows.
    """
    return cn.select_row(sql, *args)


__all__ = [
    'connect',
    'connect_schemaless',
    'ConnectionWrapper',
    'Cursor',
    'DatabaseOptions',
    'ExecResult',
    'Record',
    'execute',
    'delete',
    'insert',
    'update',
    'query',
    'select',
    'select_row',
    'walk_rows',
    'iterdict_data_loader',
    'pandas_data_loader',
    'Column',
    'TargetKind',
    'resolve_kind',
    'ColumnMismatchError',
    'ConnectionFailure',
    'DatabaseError',
    'DbConnectionError',
    'IntegrityError',
    'IntegrityViolationError',
    'NoResultError',
    'OperationalError',
    'ProgrammingError',
    'QueryError',
    'TypeConversionError',
    'ValidationError',
]
