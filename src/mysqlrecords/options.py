import logging
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, fields, replace
from functools import wraps
from typing import Any, Self

import pandas as pd
from mysqlrecords.strategy import get_available_dialects, get_strategy_class
from mysqlrecords.strategy import is_supported_dialect
from mysqlrecords.types import Column

__all__ = [
    'DatabaseOptions',
    'ENV_VARS',
    'iterdict_data_loader',
    'pandas_data_loader',
    'use_iterdict_data_loader',
]

logger = logging.getLogger(__name__)

# option field -> environment variable consulted when the field is empty
ENV_VARS: dict[str, str] = {
    'host': 'DB_HOST',
    'username': 'DB_USERNAME',
    'password': 'DB_PASSWORD',
    'port': 'DB_PORT',
    'database': 'DB_DATABASE',
    'driver': 'DB_CONNECTION',
}


def use_iterdict_data_loader(func):
    """Temporarily use default dict loader over user-specified loader"""

    @wraps(func)
    def inner(*args, **kwargs):
        cn = args[0]

        original_data_loader = cn.options.data_loader
        cn.options.data_loader = iterdict_data_loader

        try:
            return func(*args, **kwargs)
        finally:
            cn.options.data_loader = original_data_loader

    return inner


def iterdict_data_loader(data, columns, **kwargs) -> list[dict]:
    """Minimal data loader: the records themselves.
    """
    if not data:
        return []
    return list(data)


def pandas_data_loader(data, columns, **kwargs) -> pd.DataFrame:
    """pandas DataFrame loader.

    Always returns a DataFrame, never None, with columns preserved for empty
    results. Column metadata is kept in ``DataFrame.attrs['column_types']``.
    """
    df = pd.DataFrame.from_records(list(data or []), columns=Column.get_names(columns))
    df.attrs['column_types'] = Column.get_column_types_dict(columns)
    return df


@dataclass
class DatabaseOptions:
    """Connection options.

    All connection fields are strings; ``port`` also accepts an int.
    Empty fields may be supplemented from the environment, see
    :meth:`supplement`.

    supported driver names: `mysql`
    """
    host: str = ''
    username: str = ''
    password: str = ''
    port: str = ''
    database: str = ''
    driver: str = ''
    timeout: int = 0
    data_loader: Callable[..., Any] | None = None

    def __post_init__(self):
        for name in ENV_VARS:
            value = getattr(self, name)
            setattr(self, name, '' if value is None else str(value))
        if self.data_loader is None:
            self.data_loader = iterdict_data_loader

    @classmethod
    def from_any(cls, options: Self | Mapping[str, Any] | None = None, **kw: Any) -> Self:
        """Build options from an instance, a mapping, or keyword arguments.

        Keyword arguments override values from ``options``.
        """
        if options is None:
            return cls(**kw)
        if isinstance(options, cls):
            return replace(options, **kw) if kw else replace(options)
        if isinstance(options, Mapping):
            known = {f.name for f in fields(cls)}
            unknown = set(options) - known
            if unknown:
                raise ValueError(f'Unknown options: {sorted(unknown)}')
            return cls(**{**options, **kw})
        raise TypeError(f'Cannot build DatabaseOptions from {type(options).__name__}')

    def has_all(self, schemaless: bool = False) -> bool:
        """Check whether every connection field is set.

        The database field is not required in schemaless mode.
        """
        return all(getattr(self, name) for name in ENV_VARS
                   if not (name == 'database' and schemaless))

    def supplement(self, schemaless: bool = False,
                   environ: Mapping[str, str] | None = None) -> Self:
        """Return a copy with empty fields filled from environment variables.

        Precedence is per field: an explicit value always wins and the
        environment only fills fields left empty. ``DB_DATABASE`` is ignored
        in schemaless mode. Nothing is read when every field is already set.
        """
        if self.has_all(schemaless):
            return replace(self)

        environ = os.environ if environ is None else environ
        filled = {}
        for name, var in ENV_VARS.items():
            if name == 'database' and schemaless:
                continue
            if not getattr(self, name) and environ.get(var):
                filled[name] = environ[var]

        if filled:
            logger.debug(f'Supplemented options from environment: {sorted(filled)}')
        return replace(self, **filled)

    def validate(self, schemaless: bool = False) -> None:
        """Raise ValueError if the options cannot be used to connect."""
        if not is_supported_dialect(self.driver):
            available = get_available_dialects()
            raise ValueError(f'driver must be one of: {available}, got {self.driver!r}')
        strategy_cls = get_strategy_class(self.driver)
        strategy_cls.validate_options(self, schemaless)

    def __repr__(self) -> str:
        password = '***' if self.password else ''
        return (f'DatabaseOptions(host={self.host!r}, username={self.username!r}, '
                f'password={password!r}, port={self.port!r}, database={self.database!r}, '
                f'driver={self.driver!r})')
