"""
Engine construction for a single wrapped connection.

Each ConnectionWrapper owns exactly one engine with a NullPool, so closing
the wrapper really closes the server connection. There is no shared engine
registry.
"""
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from mysqlrecords.exceptions import ConnectionFailure
from mysqlrecords.strategy import get_strategy
from sqlalchemy.pool import NullPool

if TYPE_CHECKING:
    from mysqlrecords.options import DatabaseOptions

__all__ = [
    'create_url_from_options',
    'get_engine_for_options',
    'open_connection',
]

logger = logging.getLogger(__name__)


def create_url_from_options(options: 'DatabaseOptions', schemaless: bool = False) -> sa.URL:
    """Convert DatabaseOptions to a SQLAlchemy URL.

    Args:
        options: Supplemented DatabaseOptions
        schemaless: Leave the database out of the URL

    Returns
        sqlalchemy.URL: SQLAlchemy URL object for database connection
    """
    return get_strategy(options.driver).build_connection_url(options, schemaless)


def get_engine_for_options(options: 'DatabaseOptions', schemaless: bool = False,
                           engine_factory: Callable[..., Any] = sa.create_engine,
                           **kwargs: Any) -> Any:
    """Create a SQLAlchemy engine for the given options.

    Args:
        options: DatabaseOptions object
        schemaless: Connect without selecting a database
        engine_factory: Function to create engines (defaults to sqlalchemy.create_engine)
        **kwargs: Additional arguments passed to engine factory

    Returns
        sqlalchemy.engine.Engine: SQLAlchemy engine
    """
    strategy = get_strategy(options.driver)
    url = create_url_from_options(options, schemaless)

    engine_kwargs: dict[str, Any] = {'echo': False, 'poolclass': NullPool}
    engine_kwargs.update(strategy.get_engine_kwargs(options))
    engine_kwargs.update(kwargs)

    engine = engine_factory(url, **engine_kwargs)
    logger.debug(f'Created new engine for {strategy.dialect_name}')
    return engine


def open_connection(options: 'DatabaseOptions', schemaless: bool = False,
                    engine_factory: Callable[..., Any] = sa.create_engine) -> Any:
    """Open and configure one SQLAlchemy connection.

    Raises
        ConnectionFailure: The server could not be reached or refused the login
    """
    strategy = get_strategy(options.driver)
    dsn = strategy.build_dsn(options, schemaless, mask_password=True)
    engine = get_engine_for_options(options, schemaless, engine_factory=engine_factory)

    try:
        sa_connection = engine.connect()
    except sa.exc.SQLAlchemyError as exc:
        engine.dispose()
        raise ConnectionFailure(f'Could not connect to {dsn}: {exc}') from exc

    strategy.configure_connection(sa_connection.connection.dbapi_connection)
    logger.debug(f'Connected to {dsn}')
    return sa_connection
