"""
Database connection handling with SQLAlchemy.

This module provides the primary interfaces for connecting to databases:
1. The `connect()` / `connect_schemaless()` functions for new connections
2. The `ConnectionWrapper` class that wraps one SQLAlchemy connection

SQLAlchemy is used exclusively for connection management. Statements run
on the underlying DB-API connection so driver errors surface unchanged.
"""
import logging
from collections.abc import Callable, Mapping
from dataclasses import replace
from typing import Any, NamedTuple, Self

import sqlalchemy as sa
from mysqlrecords.cursor import Cursor
from mysqlrecords.exceptions import ConnectionFailure, NoResultError
from mysqlrecords.exceptions import ValidationError
from mysqlrecords.options import DatabaseOptions, use_iterdict_data_loader
from mysqlrecords.record import Record
from mysqlrecords.rows import walk_rows
from mysqlrecords.strategy import DatabaseStrategy, get_strategy
from mysqlrecords.utils import open_connection

logger = logging.getLogger(__name__)


class ExecResult(NamedTuple):
    """Outcome of a statement that does not return rows."""
    rows_affected: int
    last_insert_id: int | None


class ConnectionWrapper:
    """Wraps a SQLAlchemy connection object to run statements and track timing

    This class provides a thin wrapper around one SQLAlchemy connection that:
    1. Executes statements and queries on the underlying DBAPI connection
    2. Materializes query results into records
    3. Tracks query execution counts and timing
    4. Supports context manager protocol for explicit resource management

    A wrapper is meant for one caller at a time; use one wrapper per thread.
    Closing it invalidates all cursors obtained from it.
    """

    def __init__(self, sa_connection: sa.engine.Connection | None = None,
                 options: DatabaseOptions | None = None, schemaless: bool = False,
                 engine_factory: Callable[..., Any] = sa.create_engine) -> None:
        """Initialize a connection wrapper

        Args:
            sa_connection: SQLAlchemy connection object to wrap
            options: The DatabaseOptions used to create this connection
            schemaless: Whether the connection was opened without a database
            engine_factory: Engine factory used when reconnecting
        """
        self.sa_connection = sa_connection
        self.engine = sa_connection.engine if sa_connection is not None else None
        self.dbapi_connection = sa_connection.connection if sa_connection is not None else None
        self.options = options if options is not None else DatabaseOptions(driver='mysql')
        self.schemaless = schemaless
        self.engine_factory = engine_factory
        self.calls = 0
        self.time = 0

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        """Close the connection when leaving the context.

        A failure while closing is logged rather than raised when another
        exception is already propagating.
        """
        try:
            self.close()
            logger.debug('Closed connection via context manager')
        except Exception as e:
            if exc_type is None:
                raise
            logger.debug(f'Error closing connection in __exit__: {e}')

    @property
    def strategy(self) -> DatabaseStrategy:
        return get_strategy(self.options.driver)

    @property
    def name(self) -> str:
        """Name of the schema this connection is bound to ('' when schemaless)."""
        return '' if self.schemaless else self.options.database

    @property
    def closed(self) -> bool:
        return self.sa_connection is None or bool(getattr(self.sa_connection, 'closed', False))

    def addcall(self, elapsed: float) -> None:
        """Track execution statistics

        Args:
            elapsed: Time in seconds that the query took to execute

        """
        self.time += elapsed
        self.calls += 1

    def cursor(self) -> Cursor:
        """Get a wrapped cursor for this connection

        Raises
            ConnectionFailure: The connection has been closed
        """
        if self.closed:
            raise ConnectionFailure('Connection is closed')
        return Cursor(self.dbapi_connection.cursor(), self)

    def execute(self, sql: str, *args: Any) -> ExecResult:
        """Execute a statement and return affected rows and the last insert id.

        Parameters are positional, given as ``*args`` or as one list/tuple.
        """
        with self.cursor() as cursor:
            rowcount = cursor.execute(sql, *args)
            return ExecResult(rowcount, cursor.lastrowid)

    def query(self, sql: str, *args: Any) -> Cursor:
        """Run a query and return its open cursor.

        The caller owns the cursor and must close it, typically by passing
        it to :func:`mysqlrecords.rows.walk_rows`.
        """
        cursor = self.cursor()
        try:
            cursor.execute(sql, *args)
        except Exception:
            cursor.close()
            raise
        return cursor

    def select(self, sql: str, *args: Any, **kwargs: Any) -> Any:
        """Run a query and load every row through the configured data loader.

        With the default loader the result is a list of dictionaries, one
        per row in result order.
        """
        cursor = self.query(sql, *args)
        try:
            columns = cursor.column_types()
        except Exception:
            cursor.close()
            raise
        records = walk_rows(cursor)
        logger.debug(f'Select query returned {len(records)} rows')
        return self.options.data_loader(records, columns, **kwargs)

    @use_iterdict_data_loader
    def select_row(self, sql: str, *args: Any) -> dict[str, Any]:
        """Run a query and return its first row.

        Raises
            NoResultError: The query returned no rows
        """
        rows = self.select(sql, *args)
        if not rows:
            raise NoResultError('no result')
        return rows[0]

    def make_record(self, properties: Mapping[str, Any], table: str) -> Record:
        """Bind a column -> value mapping to a table of this connection's schema."""
        if self.schemaless:
            raise ValidationError('Cannot make records on a schemaless connection; call set_schema first')
        return Record(properties, self, table)

    def has_table(self, table: str) -> bool:
        """Check whether the current schema contains a table."""
        return table in self.strategy.get_tables(self)

    def set_schema(self, schema: str) -> None:
        """Bind this connection to a schema, reconnecting with it selected.

        Used after creating a schema on a schemaless connection.
        """
        options = replace(self.options, database=schema)
        options.validate(schemaless=False)
        self.close()
        sa_connection = open_connection(options, schemaless=False,
                                        engine_factory=self.engine_factory)
        self.sa_connection = sa_connection
        self.engine = sa_connection.engine
        self.dbapi_connection = sa_connection.connection
        self.options = options
        self.schemaless = False
        logger.debug(f'Connection bound to schema {schema}')

    def close(self) -> None:
        """Close the SQLAlchemy connection and dispose of its engine.

        After closing, logs statistics about query execution.
        """
        if self.closed:
            return
        try:
            self.sa_connection.close()
        finally:
            if self.engine is not None:
                self.engine.dispose()
        logger.debug(f'Connection closed: {self.calls} queries in {self.time:.2f}s (avg: {self.time/max(1,self.calls):.3f}s per query)')


def _connect(options: DatabaseOptions | Mapping[str, Any] | None, schemaless: bool,
             engine_factory: Callable[..., Any], **kw: Any) -> ConnectionWrapper:
    options = DatabaseOptions.from_any(options, **kw).supplement(schemaless)
    options.validate(schemaless)
    sa_connection = open_connection(options, schemaless, engine_factory=engine_factory)
    return ConnectionWrapper(sa_connection, options, schemaless, engine_factory)


def connect(options: DatabaseOptions | Mapping[str, Any] | None = None,
            engine_factory: Callable[..., Any] = sa.create_engine,
            **kw: Any) -> ConnectionWrapper:
    """Connect to a database schema

    Args:
        options: Can be:
                - DatabaseOptions object
                - Dictionary of options
                - None, with options specified as keyword arguments
        engine_factory: Function used to create the SQLAlchemy engine
        **kw: Additional keyword arguments to override options

    Empty connection fields are filled from the DB_* environment variables.

    Returns
        ConnectionWrapper object for the database

    Raises
        ValueError: Options are incomplete or name an unsupported driver
        ConnectionFailure: The connection could not be established
    """
    return _connect(options, False, engine_factory, **kw)


def connect_schemaless(options: DatabaseOptions | Mapping[str, Any] | None = None,
                       engine_factory: Callable[..., Any] = sa.create_engine,
                       **kw: Any) -> ConnectionWrapper:
    """Connect to the server without selecting a database.

    Useful to create a schema before binding to it with
    :meth:`ConnectionWrapper.set_schema`. ``DB_DATABASE`` is not consulted.
    """
    return _connect(options, True, engine_factory, **kw)
