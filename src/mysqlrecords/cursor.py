"""
Database cursor wrapper.

Wraps a DB-API 2.0 (PEP-249) cursor with SQL logging and timing, plus the
row protocol used by the result walker: column names and types, advancing
one row at a time, populating scan targets, and releasing the cursor.

State machine::

    OPEN -> READING* -> EXHAUSTED | FAULTED -> CLOSED
"""
import logging
import time
from collections.abc import Sequence
from enum import Enum
from functools import wraps
from typing import Any

from mysqlrecords.exceptions import ColumnMismatchError, QueryError
from mysqlrecords.exceptions import TypeConversionError
from mysqlrecords.sql import has_placeholders, prepare_query
from mysqlrecords.types import Column, ScanTarget, TypeConverter
from mysqlrecords.types import columns_from_cursor_description

logger = logging.getLogger(__name__)


def dumpsql(func):
    """Decorator for logging SQL queries and parameters."""
    @wraps(func)
    def wrapper(self, operation: str, *args: Any, **kwargs: Any):
        start = time.time()
        logger.debug(f'SQL:\n{operation}\nargs: {args}')
        try:
            return func(self, operation, *args, **kwargs)
        except Exception:
            logger.error(f'Error with query:\nSQL:\n{operation}\nargs: {args}')
            raise
        finally:
            elapsed = time.time() - start
            self.connwrapper.addcall(elapsed)
            logger.debug(f'Query time: {elapsed:.4f}s')
    return wrapper


class CursorState(Enum):
    OPEN = 'open'
    READING = 'reading'
    EXHAUSTED = 'exhausted'
    FAULTED = 'faulted'
    CLOSED = 'closed'


class Cursor:
    """Single-pass cursor over one statement's result.

    A cursor is owned by one caller, yields its rows in order, and must be
    closed on every path; ``with cursor:`` does that and never lets a close
    failure hide an error that is already propagating.
    """

    def __init__(self, cursor: Any, connection_wrapper: Any) -> None:
        """Initialize cursor wrapper.

        Args:
            cursor: The underlying DB-API cursor
            connection_wrapper: The connection wrapper that created this cursor
        """
        self.dbapi_cursor = cursor
        self.connwrapper = connection_wrapper
        self.state = CursorState.OPEN
        self.error: BaseException | None = None
        self._current: Sequence[Any] | None = None
        self._columns: list[Column] | None = None

    @property
    def strategy(self) -> Any:
        return self.connwrapper.strategy

    def __enter__(self) -> 'Cursor':
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None,
                 exc_tb: Any | None) -> None:
        try:
            self.close()
        except Exception as e:
            if exc_type is None:
                raise
            logger.debug(f'Error closing cursor after {exc_type.__name__}: {e}')

    @property
    def closed(self) -> bool:
        return self.state is CursorState.CLOSED

    def _check_open(self) -> None:
        if self.closed:
            raise QueryError('cursor is closed')
        if self.connwrapper.closed:
            raise QueryError('connection is closed')

    @property
    def description(self) -> Any:
        """Column descriptions for last query."""
        return self.dbapi_cursor.description

    @property
    def rowcount(self) -> int:
        """Number of rows produced/affected by last operation."""
        return self.dbapi_cursor.rowcount

    @property
    def lastrowid(self) -> int | None:
        """Identifier generated by the last INSERT, if any."""
        return getattr(self.dbapi_cursor, 'lastrowid', None)

    @dumpsql
    def execute(self, operation: str, *args: Any) -> int:
        """Execute a database operation and return the affected row count."""
        self._check_open()
        sql, params = prepare_query(operation, args)

        if params and not has_placeholders(operation):
            logger.debug('Executed query without placeholders (ignoring args)')
            sql, params = prepare_query(operation, ())

        if params:
            params = TypeConverter.convert_params(params)

        self.dbapi_cursor.execute(sql, params)
        self._columns = None
        self._current = None
        self.state = CursorState.OPEN
        return self.dbapi_cursor.rowcount

    def columns(self) -> list[str]:
        """Column names of the current result, in order."""
        return Column.get_names(self.column_types())

    def column_types(self) -> list[Column]:
        """Column descriptors of the current result, built once per query."""
        self._check_open()
        if self._columns is None:
            self._columns = columns_from_cursor_description(self.description, self.strategy)
        return self._columns

    def next(self) -> bool:
        """Advance to the next row.

        Returns False once the result is exhausted. A driver failure while
        fetching moves the cursor to FAULTED and is raised unchanged.
        """
        self._check_open()
        if self.state in {CursorState.EXHAUSTED, CursorState.FAULTED}:
            return False
        try:
            row = self.dbapi_cursor.fetchone()
        except Exception as exc:
            self.state = CursorState.FAULTED
            self.error = exc
            self._current = None
            raise
        if row is None:
            self.state = CursorState.EXHAUSTED
            self._current = None
            return False
        self.state = CursorState.READING
        self._current = row
        return True

    def scan(self, *targets: ScanTarget) -> None:
        """Populate one target per column from the current row.

        Either every target is populated or an error is raised; the
        failing column is named in the error message. A row is scanned at
        most once.
        """
        self._check_open()
        if self.state is not CursorState.READING or self._current is None:
            raise QueryError('scan called without a current row')

        row = self._current
        if len(targets) != len(row):
            raise ColumnMismatchError(
                f'expected {len(row)} destination arguments in scan, not {len(targets)}')

        for name, target, value in zip(self.columns(), targets, row):
            try:
                target.scan(value)
            except TypeConversionError as exc:
                raise TypeConversionError(f'column {name!r}: {exc}') from exc
        self._current = None

    def close(self) -> None:
        """Release the underlying cursor. Closing twice is a no-op."""
        if self.closed:
            return
        self.state = CursorState.CLOSED
        self._current = None
        self.dbapi_cursor.close()
