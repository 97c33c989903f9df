"""
MySQL-specific strategy implementation.

Connections go through SQLAlchemy's ``mysql+pymysql`` dialect. Column types
are reported by PyMySQL as ``FIELD_TYPE`` codes in ``cursor.description`` and
are translated here into the MySQL type names the type resolver understands.
"""
import logging
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from mysqlrecords.strategy.base import DatabaseStrategy, register_strategy
from pymysql.constants import FIELD_TYPE

if TYPE_CHECKING:
    from mysqlrecords.connection import ConnectionWrapper
    from mysqlrecords.options import DatabaseOptions

logger = logging.getLogger(__name__)

DEFAULT_PORT = '3306'

mysql_type_names: dict[int, str] = {
    FIELD_TYPE.DECIMAL: 'DECIMAL',
    FIELD_TYPE.NEWDECIMAL: 'DECIMAL',
    FIELD_TYPE.TINY: 'TINYINT',
    FIELD_TYPE.SHORT: 'SMALLINT',
    FIELD_TYPE.LONG: 'INT',
    FIELD_TYPE.INT24: 'MEDIUMINT',
    FIELD_TYPE.LONGLONG: 'BIGINT',
    FIELD_TYPE.FLOAT: 'FLOAT',
    FIELD_TYPE.DOUBLE: 'DOUBLE',
    FIELD_TYPE.BIT: 'BIT',
    FIELD_TYPE.NULL: 'NULL',
    FIELD_TYPE.TIMESTAMP: 'TIMESTAMP',
    FIELD_TYPE.DATE: 'DATE',
    FIELD_TYPE.NEWDATE: 'DATE',
    FIELD_TYPE.TIME: 'TIME',
    FIELD_TYPE.DATETIME: 'DATETIME',
    FIELD_TYPE.YEAR: 'YEAR',
    FIELD_TYPE.VARCHAR: 'VARCHAR',
    FIELD_TYPE.VAR_STRING: 'VARCHAR',
    FIELD_TYPE.STRING: 'CHAR',
    FIELD_TYPE.ENUM: 'ENUM',
    FIELD_TYPE.SET: 'SET',
    FIELD_TYPE.TINY_BLOB: 'TINYBLOB',
    FIELD_TYPE.MEDIUM_BLOB: 'MEDIUMBLOB',
    FIELD_TYPE.LONG_BLOB: 'LONGBLOB',
    FIELD_TYPE.BLOB: 'BLOB',
    FIELD_TYPE.JSON: 'JSON',
    FIELD_TYPE.GEOMETRY: 'GEOMETRY',
}


@register_strategy('mysql')
class MySQLStrategy(DatabaseStrategy):
    """MySQL operations.
    """

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for MySQL."""
        return 'mysql'

    def build_connection_url(self, options: 'DatabaseOptions',
                             schemaless: bool = False) -> sa.URL:
        """Build the SQLAlchemy connection URL for MySQL via PyMySQL."""
        return sa.URL.create(
            drivername='mysql+pymysql',
            username=options.username,
            password=options.password or None,
            host=options.host,
            port=int(options.port or DEFAULT_PORT),
            database=None if schemaless else options.database,
        )

    def build_dsn(self, options: 'DatabaseOptions', schemaless: bool = False,
                  mask_password: bool = False) -> str:
        """Build a ``username:password@tcp(host:port)/[database]`` string.

        The database suffix is omitted entirely in schemaless mode.
        """
        password = '***' if mask_password and options.password else options.password
        dsn = f'{options.username}:{password}@tcp({options.host}:{options.port or DEFAULT_PORT})/'
        if not schemaless:
            dsn += options.database
        return dsn

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for MySQL."""
        connect_args: dict[str, Any] = {'charset': 'utf8mb4'}
        if options.timeout:
            connect_args['connect_timeout'] = options.timeout
        return {'connect_args': connect_args}

    def column_type_name(self, type_code: Any) -> str:
        """Translate a PyMySQL FIELD_TYPE code to its MySQL type name.

        String type codes (already a name) are upper-cased and passed through.
        """
        if isinstance(type_code, str):
            return type_code.upper()
        return mysql_type_names.get(type_code, '')

    def configure_connection(self, conn: Any) -> None:
        """Configure connection settings for MySQL.
        """
        self.enable_autocommit(conn)

    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode for PyMySQL.
        """
        raw_conn.autocommit(True)

    def get_tables(self, cn: 'ConnectionWrapper') -> list[str]:
        """List tables with SHOW TABLES.
        """
        return self._select_column_raw(cn, 'SHOW TABLES')
