"""
Tests for connecting and for the ConnectionWrapper query surface, using
in-memory fakes for SQLAlchemy and PyMySQL.
"""
import mysqlrecords as db
import numpy as np
import pandas as pd
import pymysql
import pytest
from fixtures.mocks import FakeEngineFactory, FakeResult, connect_refused
from mysqlrecords.exceptions import ConnectionFailure, NoResultError
from mysqlrecords.options import pandas_data_loader
from pymysql.constants import FIELD_TYPE
from sqlalchemy.pool import NullPool

OPTIONS = {
    'host': 'db.example',
    'username': 'app',
    'password': 'secret',
    'port': '3306',
    'database': 'shop',
    'driver': 'mysql',
}

WIDGET_COLUMNS = [('id', FIELD_TYPE.LONG), ('sku', FIELD_TYPE.VAR_STRING), ('weight', FIELD_TYPE.FLOAT)]
WIDGET_ROWS = [(1, 'WIDG1', 0.5), (2, 'WIDG2', 12.75), (3, 'WIDG3', 1.23)]


class TestConnect:

    def test_connect(self, engine_factory, clean_env):
        cn = db.connect(OPTIONS, engine_factory=engine_factory)

        engine = engine_factory.engines[-1]
        assert engine.url.drivername == 'mysql+pymysql'
        assert engine.url.host == 'db.example'
        assert engine.url.port == 3306
        assert engine.url.database == 'shop'
        assert engine.kwargs['poolclass'] is NullPool
        assert engine.kwargs['connect_args']['charset'] == 'utf8mb4'
        assert cn.name == 'shop'
        assert cn.dbapi_connection.dbapi_connection.autocommit_mode is True

    def test_keywords_override(self, engine_factory, clean_env):
        cn = db.connect(OPTIONS, engine_factory=engine_factory, database='other')
        assert cn.name == 'other'

    def test_options_from_environment(self, engine_factory, clean_env):
        for name, var in (('host', 'DB_HOST'), ('username', 'DB_USERNAME'),
                          ('database', 'DB_DATABASE'), ('driver', 'DB_CONNECTION')):
            clean_env.setenv(var, OPTIONS[name])
        cn = db.connect(engine_factory=engine_factory)
        assert cn.options.host == 'db.example'
        assert engine_factory.engines[-1].url.port == 3306

    def test_timeout_passed_to_driver(self, engine_factory, clean_env):
        db.connect(OPTIONS, engine_factory=engine_factory, timeout=5)
        assert engine_factory.engines[-1].kwargs['connect_args']['connect_timeout'] == 5

    def test_invalid_options_do_not_connect(self, engine_factory, clean_env):
        with pytest.raises(ValueError):
            db.connect({'host': 'h', 'driver': 'mysql'}, engine_factory=engine_factory)
        assert engine_factory.engines == []

    def test_connection_failure(self, clean_env):
        factory = FakeEngineFactory(connect_error=connect_refused())
        with pytest.raises(ConnectionFailure) as excinfo:
            db.connect(OPTIONS, engine_factory=factory)
        message = str(excinfo.value)
        assert 'app:***@tcp(db.example:3306)/shop' in message
        assert 'secret' not in message
        assert factory.engines[-1].dispose_calls == 1

    def test_connection_failure_is_connection_error(self, clean_env):
        factory = FakeEngineFactory(connect_error=connect_refused())
        with pytest.raises(db.DbConnectionError):
            db.connect(OPTIONS, engine_factory=factory)


class TestSchemaless:

    def test_url_and_dsn_omit_database(self, engine_factory, clean_env):
        clean_env.setenv('DB_DATABASE', 'ignored')
        options = {k: v for k, v in OPTIONS.items() if k != 'database'}
        cn = db.connect_schemaless(options, engine_factory=engine_factory)

        assert engine_factory.engines[-1].url.database is None
        assert cn.name == ''
        assert cn.strategy.build_dsn(cn.options, schemaless=True) == 'app:secret@tcp(db.example:3306)/'

    def test_set_schema(self, engine_factory, clean_env):
        cn = db.connect_schemaless(OPTIONS, engine_factory=engine_factory)
        first_engine = engine_factory.engines[-1]

        cn.set_schema('fresh')

        assert first_engine.dispose_calls == 1
        assert first_engine.connections[-1].closed
        assert engine_factory.engines[-1].url.database == 'fresh'
        assert cn.name == 'fresh'
        assert cn.schemaless is False
        assert not cn.closed

    def test_set_schema_rejects_empty(self, engine_factory, clean_env):
        cn = db.connect_schemaless(OPTIONS, engine_factory=engine_factory)
        with pytest.raises(ValueError):
            cn.set_schema('')
        assert not cn.closed


class TestWrapper:

    def test_execute(self, make_fake_connection):
        cn = make_fake_connection(FakeResult(rowcount=2, lastrowid=9))
        result = cn.execute('update widgets set weight = ? where weight < ?', 1.0, 0.5)
        assert result == db.ExecResult(2, 9)
        assert result.rows_affected == 2
        assert cn.dbapi_connection.executed[-1] == (
            'update widgets set weight = %s where weight < %s', (1.0, 0.5))
        assert cn.calls == 1

    def test_execute_without_params(self, make_fake_connection):
        cn = make_fake_connection(FakeResult(rowcount=0))
        cn.execute('create table t (pct varchar(10) default "5%")')
        assert cn.dbapi_connection.executed[-1] == ('create table t (pct varchar(10) default "5%")', None)

    def test_numpy_params_converted(self, make_fake_connection):
        cn = make_fake_connection(FakeResult(rowcount=1))
        cn.execute('insert into t values (?, ?, ?)', np.int64(3), np.float64('nan'), pd.NaT)
        assert cn.dbapi_connection.executed[-1][1] == (3, None, None)

    def test_driver_error_propagates(self, make_fake_connection):
        error = pymysql.err.ProgrammingError(1064, 'You have an error in your SQL syntax')
        cn = make_fake_connection(FakeResult(execute_error=error))
        with pytest.raises(db.ProgrammingError):
            cn.select('selec 1')
        assert cn.dbapi_connection.cursors[-1].close_calls == 1

    def test_select(self, make_fake_connection):
        cn = make_fake_connection(FakeResult(WIDGET_COLUMNS, WIDGET_ROWS))
        rows = db.select(cn, 'select id, sku, weight from widgets')
        assert rows[1] == {'id': 2, 'sku': 'WIDG2', 'weight': 12.75}
        assert [r['sku'] for r in rows] == ['WIDG1', 'WIDG2', 'WIDG3']

    def test_select_row(self, make_fake_connection):
        cn = make_fake_connection(FakeResult(WIDGET_COLUMNS, WIDGET_ROWS[1:2]))
        row = db.select_row(cn, 'select id, sku, weight from widgets where sku = ?', 'WIDG2')
        assert row == {'id': 2, 'sku': 'WIDG2', 'weight': 12.75}

    def test_select_row_no_result(self, make_fake_connection):
        cn = make_fake_connection(FakeResult(WIDGET_COLUMNS, []))
        with pytest.raises(NoResultError):
            cn.select_row('select * from widgets where sku = ?', 'NOPE')

    def test_pandas_loader(self, make_fake_connection):
        cn = make_fake_connection(FakeResult(WIDGET_COLUMNS, WIDGET_ROWS),
                                  FakeResult(WIDGET_COLUMNS, WIDGET_ROWS[:1]),
                                  data_loader=pandas_data_loader)
        df = cn.select('select id, sku, weight from widgets')
        assert isinstance(df, pd.DataFrame)
        assert list(df.columns) == ['id', 'sku', 'weight']
        assert len(df) == 3
        assert df.attrs['column_types']['weight']['kind'] == 'FLOAT'

        # select_row always returns a record
        assert cn.select_row('select id, sku, weight from widgets limit 1')['sku'] == 'WIDG1'
        assert cn.options.data_loader is pandas_data_loader

    def test_pandas_loader_empty_keeps_columns(self, make_fake_connection):
        cn = make_fake_connection(FakeResult(WIDGET_COLUMNS, []), data_loader=pandas_data_loader)
        df = cn.select('select id, sku, weight from widgets where 1 = 0')
        assert df.empty
        assert list(df.columns) == ['id', 'sku', 'weight']

    def test_query_returns_open_cursor(self, make_fake_connection):
        cn = make_fake_connection(FakeResult(WIDGET_COLUMNS, WIDGET_ROWS))
        cursor = db.query(cn, 'select id, sku, weight from widgets')
        assert cursor.columns() == ['id', 'sku', 'weight']
        assert len(db.walk_rows(cursor)) == 3

    def test_has_table(self, make_fake_connection):
        tables = [('gadgets',), ('widgets',)]
        cn = make_fake_connection(FakeResult([('Tables_in_shop', FIELD_TYPE.VAR_STRING)], tables),
                                  FakeResult([('Tables_in_shop', FIELD_TYPE.VAR_STRING)], tables))
        assert cn.has_table('widgets') is True
        assert cn.has_table('sprockets') is False
        assert cn.dbapi_connection.executed[0] == ('SHOW TABLES', None)

    def test_close(self, make_fake_connection):
        cn = make_fake_connection()
        with cn:
            pass
        assert cn.closed
        cn.close()
        with pytest.raises(ConnectionFailure):
            cn.execute('select 1')

    def test_has_table_after_close(self, make_fake_connection):
        cn = make_fake_connection()
        cn.close()
        with pytest.raises(ConnectionFailure):
            cn.has_table('widgets')

    def test_close_disposes_engine_when_close_fails(self, make_fake_connection):
        cn = make_fake_connection()
        cn.sa_connection.close_error = pymysql.err.InterfaceError(0, 'already closed')

        with pytest.raises(pymysql.err.InterfaceError):
            cn.close()

        assert cn.engine.dispose_calls == 1


if __name__ == '__main__':
    __import__('pytest').main([__file__])
