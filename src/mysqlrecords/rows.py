"""
Row materialization: turn a cursor's rows into generic records.

Every record maps each column name of the query to a plain Python value
(``int``, ``float``, ``str`` or ``None`` for SQL NULL). The value kind is
chosen per column from the type the driver reports, see
:func:`mysqlrecords.types.resolve_kind`.
"""
import logging
from typing import Any

from mysqlrecords.cursor import Cursor
from mysqlrecords.types import ScanTarget, TargetKind

logger = logging.getLogger(__name__)

Record = dict[str, Any]


def make_row(kinds: list[TargetKind]) -> list[ScanTarget]:
    """Allocate one fresh scan target per column, in column order."""
    return [kind.new_target() for kind in kinds]


def materialize_row(cursor: Cursor, columns: list[str], kinds: list[TargetKind]) -> Record:
    """Build one record from the cursor's current row.

    Args:
        cursor: Cursor positioned on a row that has not been scanned yet
        columns: Column names in result order
        kinds: Target kind per column, parallel to ``columns``

    Returns
        Dictionary mapping every column name to its value, None for NULL

    Raises
        TypeConversionError: A value does not fit its target
        ColumnMismatchError: The row width differs from ``columns``
    """
    targets = make_row(kinds)
    cursor.scan(*targets)
    return {name: target.get() for name, target in zip(columns, targets)}


def walk_rows(cursor: Cursor) -> list[Record]:
    """Drive a cursor to completion and collect its records in order.

    The cursor is closed exactly once whatever happens. Any error while
    fetching or materializing aborts the walk and no partial result is
    returned.
    """
    with cursor:
        if cursor.description is None:
            return []

        column_types = cursor.column_types()
        columns = [col.name for col in column_types]
        kinds = [col.kind for col in column_types]

        result = []
        while cursor.next():
            result.append(materialize_row(cursor, columns, kinds))

        logger.debug(f'Materialized {len(result)} rows with {len(columns)} columns')
        return result
