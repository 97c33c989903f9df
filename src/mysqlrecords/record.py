"""
Single-table record helpers (INSERT and UPDATE).
"""
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import pymysql
from mysqlrecords.exceptions import IntegrityViolationError, ValidationError
from mysqlrecords.sql import build_insert_sql, build_update_sql, split_properties

if TYPE_CHECKING:
    from mysqlrecords.connection import ConnectionWrapper

logger = logging.getLogger(__name__)

DEFAULT_KEY = 'id'


class Record:
    """A column -> value mapping bound to one table of a connection's schema.

    >>> record = cn.make_record({'sku': 'WIDG4', 'weight': 100.9}, 'widgets')  # doctest: +SKIP
    >>> new_id = record.create()  # doctest: +SKIP
    """

    def __init__(self, properties: Mapping[str, Any], connection: 'ConnectionWrapper',
                 table: str) -> None:
        self.properties = dict(properties)
        self.connection = connection
        self.table = table

    def create(self) -> int | None:
        """Insert the properties as a new row.

        Columns and parameters follow the mapping's iteration order.

        Returns
            The identifier generated for the new row

        Raises
            IntegrityViolationError: A unique or foreign key constraint failed
        """
        if not self.properties:
            raise ValidationError(f'Cannot insert an empty record into {self.table}')

        fields = list(self.properties)
        sql = build_insert_sql(self.connection.name, self.table, fields)
        result = self._execute(sql, [self.properties[f] for f in fields])
        logger.debug(f'Inserted record into {self.table} with id {result.last_insert_id}')
        return result.last_insert_id

    def update(self, key: str = DEFAULT_KEY) -> int:
        """Update the row whose ``key`` column equals the record's key value.

        Every other property is written; the key column is only used to
        find the row. An empty key means ``id``.

        Returns
            Affected row count as reported by the driver
        """
        key = key or DEFAULT_KEY
        if key not in self.properties:
            raise ValidationError(f'Record for {self.table} has no value for key column {key!r}')

        datafields, datavalues = split_properties(self.properties, key)
        if not datafields:
            raise ValidationError(f'Record for {self.table} has no columns to update besides {key!r}')

        sql = build_update_sql(self.connection.name, self.table, datafields, key)
        result = self._execute(sql, [*datavalues, self.properties[key]])
        return result.rows_affected

    def _execute(self, sql: str, params: list[Any]) -> Any:
        try:
            return self.connection.execute(sql, params)
        except pymysql.err.IntegrityError as exc:
            raise IntegrityViolationError(f'{self.table}: {exc}') from exc

    def __repr__(self) -> str:
        return f'Record(table={self.table!r}, properties={self.properties!r})'
