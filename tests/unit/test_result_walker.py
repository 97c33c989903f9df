"""
Tests for driving a cursor to completion with walk_rows.

Covers ordering, the empty result, and cursor release on every path.
"""
import pymysql
import pytest
from fixtures.mocks import FakeResult
from mysqlrecords.cursor import CursorState
from mysqlrecords.exceptions import QueryError, TypeConversionError
from mysqlrecords.rows import walk_rows
from pymysql.constants import FIELD_TYPE

COLUMNS = [('id', FIELD_TYPE.LONG), ('sku', FIELD_TYPE.VAR_STRING)]
ROWS = [(1, 'WIDG1'), (2, 'WIDG2'), (3, 'WIDG3')]


def _dbapi_cursor(cn):
    return cn.dbapi_connection.cursors[-1]


def test_rows_in_result_order(make_fake_connection):
    cn = make_fake_connection(FakeResult(COLUMNS, ROWS))
    cursor = cn.query('select id, sku from widgets')

    records = walk_rows(cursor)

    assert records == [{'id': 1, 'sku': 'WIDG1'},
                       {'id': 2, 'sku': 'WIDG2'},
                       {'id': 3, 'sku': 'WIDG3'}]
    assert cursor.closed
    assert _dbapi_cursor(cn).close_calls == 1


def test_empty_result(make_fake_connection):
    cn = make_fake_connection(FakeResult(COLUMNS, []))
    cursor = cn.query('select id, sku from widgets where 1 = 0')

    assert walk_rows(cursor) == []
    assert _dbapi_cursor(cn).close_calls == 1


def test_statement_without_result_set(make_fake_connection):
    cn = make_fake_connection(FakeResult(None, rowcount=2))
    cursor = cn.query('delete from widgets')

    assert walk_rows(cursor) == []
    assert cursor.closed


def test_conversion_failure_mid_walk(make_fake_connection):
    """No partial result, the error surfaces and the cursor is closed once"""
    rows = [(1, 'WIDG1'), ('bad', 'WIDG2'), (3, 'WIDG3')]
    cn = make_fake_connection(FakeResult(COLUMNS, rows))
    cursor = cn.query('select id, sku from widgets')

    with pytest.raises(TypeConversionError):
        walk_rows(cursor)

    assert cursor.closed
    assert _dbapi_cursor(cn).close_calls == 1


def test_fetch_fault_mid_walk(make_fake_connection):
    error = pymysql.err.OperationalError(2013, 'Lost connection to MySQL server during query')
    cn = make_fake_connection(FakeResult(COLUMNS, ROWS, fail_at=1, error=error))
    cursor = cn.query('select id, sku from widgets')

    with pytest.raises(pymysql.err.OperationalError):
        walk_rows(cursor)

    assert cursor.error is error
    assert cursor.closed
    assert _dbapi_cursor(cn).close_calls == 1


def test_fetch_fault_sets_faulted(make_fake_connection):
    error = pymysql.err.OperationalError(2013, 'Lost connection')
    cn = make_fake_connection(FakeResult(COLUMNS, ROWS, fail_at=0, error=error))
    cursor = cn.query('select id, sku from widgets')

    with pytest.raises(pymysql.err.OperationalError):
        cursor.next()

    assert cursor.state is CursorState.FAULTED
    assert cursor.next() is False
    cursor.close()


def test_close_error_does_not_mask_walk_error(make_fake_connection):
    fetch_error = pymysql.err.OperationalError(2013, 'Lost connection')
    close_error = pymysql.err.InterfaceError(0, 'close failed')
    cn = make_fake_connection(FakeResult(COLUMNS, ROWS, fail_at=1, error=fetch_error,
                                         close_error=close_error))
    cursor = cn.query('select id, sku from widgets')

    with pytest.raises(pymysql.err.OperationalError) as excinfo:
        walk_rows(cursor)

    assert excinfo.value is fetch_error


def test_close_error_after_clean_walk_is_raised(make_fake_connection):
    close_error = pymysql.err.InterfaceError(0, 'close failed')
    cn = make_fake_connection(FakeResult(COLUMNS, ROWS, close_error=close_error))
    cursor = cn.query('select id, sku from widgets')

    with pytest.raises(pymysql.err.InterfaceError):
        walk_rows(cursor)


def test_state_transitions(make_fake_connection):
    cn = make_fake_connection(FakeResult(COLUMNS, ROWS[:1]))
    cursor = cn.query('select id, sku from widgets')
    assert cursor.state is CursorState.OPEN

    assert cursor.next() is True
    assert cursor.state is CursorState.READING

    assert cursor.next() is False
    assert cursor.state is CursorState.EXHAUSTED

    cursor.close()
    cursor.close()
    assert cursor.state is CursorState.CLOSED
    assert _dbapi_cursor(cn).close_calls == 1


def test_closed_cursor_rejects_use(make_fake_connection):
    cn = make_fake_connection(FakeResult(COLUMNS, ROWS))
    cursor = cn.query('select id, sku from widgets')
    cursor.close()

    with pytest.raises(QueryError):
        cursor.next()
    with pytest.raises(QueryError):
        walk_rows(cursor)


def test_closing_connection_invalidates_cursor(make_fake_connection):
    cn = make_fake_connection(FakeResult(COLUMNS, ROWS))
    cursor = cn.query('select id, sku from widgets')
    cn.close()

    with pytest.raises(QueryError, match='connection is closed'):
        walk_rows(cursor)

    assert cursor.closed
    assert _dbapi_cursor(cn).close_calls == 1


if __name__ == '__main__':
    __import__('pytest').main([__file__])
