"""
Base strategy interface for database operations.

Defines the abstract base class that all dialect strategies inherit from. The
strategy encapsulates everything that depends on the driver named by the
``driver`` option: how to build the connection URL, how the driver reports
column types, and how a fresh connection is configured.
"""
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from mysqlrecords.exceptions import ConnectionFailure
from mysqlrecords.sql import standardize_placeholders

if TYPE_CHECKING:
    from mysqlrecords.connection import ConnectionWrapper
    from mysqlrecords.options import DatabaseOptions

# Registry of dialect name -> strategy class
# Defined here to avoid circular imports (concrete strategies import from base)
_STRATEGY_REGISTRY: dict[str, type['DatabaseStrategy']] = {}


def register_strategy(dialect: str):
    """Decorator to register a strategy class for a dialect.

    Usage:
        @register_strategy('mysql')
        class MySQLStrategy(DatabaseStrategy):
            ...
    """
    def decorator(cls: type['DatabaseStrategy']) -> type['DatabaseStrategy']:
        _STRATEGY_REGISTRY[dialect] = cls
        return cls
    return decorator


class DatabaseStrategy(ABC):
    """Base class for database-specific operations.
    """

    @contextmanager
    def _cursor(self, cn: 'ConnectionWrapper', sql: str, params: tuple | None = None):
        """Context manager for a raw DB-API cursor lifecycle.

        Handles cursor creation, SQL execution, and cleanup.
        """
        if cn.closed:
            raise ConnectionFailure('Connection is closed')
        cursor = cn.dbapi_connection.cursor()
        try:
            cursor.execute(self.standardize_sql(sql, bool(params)), params or None)
            yield cursor
        finally:
            cursor.close()

    def _select_column_raw(self, cn: 'ConnectionWrapper', sql: str,
                           params: tuple | None = None) -> list:
        """Execute SQL and return the first column as a list.

        Used internally by strategy methods for catalog queries.
        """
        with self._cursor(cn, sql, params) as cursor:
            return [row[0] for row in cursor.fetchall()]

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the dialect identifier (e.g., 'mysql')."""

    @abstractmethod
    def build_connection_url(self, options: 'DatabaseOptions', schemaless: bool = False) -> Any:
        """Build the SQLAlchemy connection URL.

        Args:
            options: Supplemented connection options
            schemaless: Leave the database out of the URL
        """

    @abstractmethod
    def build_dsn(self, options: 'DatabaseOptions', schemaless: bool = False,
                  mask_password: bool = False) -> str:
        """Build the driver connection string for display and logging."""

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return extra SQLAlchemy create_engine kwargs for this dialect."""
        return {}

    @abstractmethod
    def column_type_name(self, type_code: Any) -> str:
        """Translate a cursor description type code to a type name.

        Returns an empty string when the code is not recognized.
        """

    @abstractmethod
    def configure_connection(self, conn: Any) -> None:
        """Configure connection settings.

        Args:
            conn: Raw DB-API connection to configure
        """

    @abstractmethod
    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode on a raw database connection.

        Args:
            raw_conn: The raw DBAPI connection (not wrapped)
        """

    @abstractmethod
    def get_tables(self, cn: 'ConnectionWrapper') -> list[str]:
        """List the tables of the connection's current schema."""

    @classmethod
    def get_required_options(cls, schemaless: bool = False) -> list[str]:
        """Return options that must be non-empty after supplementation."""
        required = ['host', 'username']
        if not schemaless:
            required.append('database')
        return required

    @classmethod
    def validate_options(cls, options: 'DatabaseOptions', schemaless: bool = False) -> None:
        """Raise ValueError naming every missing required option."""
        missing = [name for name in cls.get_required_options(schemaless)
                   if not getattr(options, name, None)]
        if missing:
            raise ValueError(f"Missing required options for {options.driver}: {', '.join(missing)}")

    def standardize_sql(self, sql: str, has_params: bool = True) -> str:
        """Convert placeholders to this dialect's style."""
        return standardize_placeholders(sql, escape_percent=has_params)
