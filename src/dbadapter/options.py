from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, fields
from typing import Any, Self

import pandas as pd
import pyarrow as pa
from dbadapter.strategy import get_available_dialects, get_strategy_class
from dbadapter.strategy import is_supported_dialect
from dbadapter.types import Column

__all__ = [
    'DatabaseOptions',
    'pandas_numpy_data_loader',
    'pandas_pyarrow_data_loader',
]

# Connection-config keys accepted as aliases of DatabaseOptions fields
CONFIG_ALIASES = {
    'host': 'hostname',
    'user': 'username',
    'adapter': 'drivername',
    'db': 'database',
}


def _empty_dataframe(columns) -> pd.DataFrame:
    """Create empty DataFrame with column metadata."""
    df = pd.DataFrame(columns=Column.get_names(columns))
    df.attrs['column_types'] = Column.get_column_types_dict(columns)
    return df


def pandas_numpy_data_loader(data, columns, **kwargs) -> pd.DataFrame:
    """Standard pandas DataFrame loader using NumPy.

    Always returns a DataFrame, never None, with columns preserved for empty results.
    Includes type information in the DataFrame.attrs attribute.
    """
    if not data:
        return _empty_dataframe(columns)

    df = pd.DataFrame.from_records(list(data), columns=Column.get_names(columns))
    df.attrs['column_types'] = Column.get_column_types_dict(columns)
    return df


def pandas_pyarrow_data_loader(data, columns, **kwargs) -> pd.DataFrame:
    """PyArrow-based pandas DataFrame loader.

    Always returns a DataFrame, never None, with columns preserved for empty results.
    """
    if not data:
        return _empty_dataframe(columns)

    column_names = Column.get_names(columns)
    columns_data = [list(values) for values in zip(*data)]
    df = pa.table(columns_data, names=column_names).to_pandas(types_mapper=pd.ArrowDtype)
    df.attrs['column_types'] = Column.get_column_types_dict(columns)
    return df


@dataclass
class DatabaseOptions:
    """Options

    supported driver names: `mysql`

    - password: empty string when not given
    - port: backend standard port (3306) when not given
    - options: backend driver options, C-API names (MYSQL_OPT_CONNECT_TIMEOUT)
      or PyMySQL keywords (connect_timeout)
    - log_queries: log non-internal SQL and its execution time at INFO
    """
    drivername: str = 'mysql'
    hostname: str = None
    username: str = None
    password: str = ''
    database: str = None
    port: int = 0
    options: dict[str, Any] = field(default_factory=dict)
    log_queries: bool = False
    data_loader: Callable[..., Any] | None = None

    def __post_init__(self):
        if not is_supported_dialect(self.drivername):
            available = get_available_dialects()
            raise ValueError(f'drivername must be one of: {available}')
        strategy_cls = get_strategy_class(self.drivername)
        if self.password is None:
            self.password = ''
        if not self.port:
            self.port = strategy_cls().default_port
        self.port = int(self.port)
        self.options = dict(self.options or {})
        strategy_cls.validate_options(self)
        if self.data_loader is None:
            self.data_loader = pandas_numpy_data_loader

    @classmethod
    def from_config(cls, config: Mapping[str, Any], **kw: Any) -> Self:
        """Build options from a connection mapping (host, username, password,
        port, database, options). Keyword arguments override mapping values.
        """
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in {**config, **kw}.items():
            name = CONFIG_ALIASES.get(key, key)
            if name not in known:
                raise ValueError(f'Unknown connection setting: {key}')
            values[name] = value
        if isinstance(values.get('drivername'), str):
            values['drivername'] = values['drivername'].lower()
        return cls(**values)
