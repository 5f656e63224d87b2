"""
Database connection handling with SQLAlchemy.

This module provides:
1. Engine creation and management through a thread-safe registry
2. The `ConnectionWrapper` class, the connection handle the executor works on
3. The `ConnectionManager` class tracking the active handle and the stale
   handles left behind by reconnects
4. Module-level `connect()`, `disconnect()` and `active_connection()` working
   on a process default manager

The manager itself is not locked: concurrent connect/disconnect/reconnect
calls can race on which handle is active. Share a manager between threads
only with external coordination.
"""
import atexit
import itertools
import logging
import threading
from collections import deque
from collections.abc import Callable, Mapping
from dataclasses import replace
from typing import Any, Self

import pymysql
import sqlalchemy as sa
import sqlalchemy.exc as sa_exc
from dbadapter.cache import Cache
from dbadapter.cursor import Cursor
from dbadapter.exceptions import ConnectionError, NotConnectedError
from dbadapter.options import DatabaseOptions
from dbadapter.strategy import get_strategy
from sqlalchemy.engine import Engine

__all__ = [
    'ConnectionWrapper',
    'ConnectionManager',
    'connect',
    'disconnect',
    'active_connection',
    'get_manager',
    'set_manager',
    'open_connection',
    'configure_connection',
    'create_url_from_options',
    'get_engine_for_options',
    'dispose_all_engines',
]

logger = logging.getLogger(__name__)

_engine_registry: dict[str, Engine] = {}
_engine_registry_lock = threading.RLock()

_handle_keys = itertools.count(1)


def create_url_from_options(options: DatabaseOptions) -> sa.URL:
    """Convert DatabaseOptions to SQLAlchemy URL.
    """
    return get_strategy(options.drivername).build_connection_url(options)


def get_engine_for_options(options: DatabaseOptions,
                           engine_factory: Callable[..., Engine] = sa.create_engine,
                           **kwargs: Any) -> Engine:
    """Get or create a SQLAlchemy engine for the given options.
    """
    url = create_url_from_options(options)
    key = url.render_as_string(hide_password=False) + repr(sorted(options.options.items()))

    with _engine_registry_lock:
        if key in _engine_registry:
            logger.debug(f'Using existing engine for {options.drivername}')
            return _engine_registry[key]

        engine_kwargs = get_strategy(options.drivername).get_engine_kwargs(options)
        engine_kwargs.update(kwargs)

        engine = engine_factory(url, **engine_kwargs)

        _engine_registry[key] = engine
        logger.debug(f'Created new engine for {options.drivername}')

        return engine


def dispose_all_engines() -> None:
    """Dispose all engines in the registry.
    """
    with _engine_registry_lock:
        for engine in list(_engine_registry.values()):
            engine.dispose()
        _engine_registry.clear()
        logger.debug('All database engines disposed')


atexit.register(dispose_all_engines)


def configure_connection(sa_connection: sa.engine.Connection, options: DatabaseOptions) -> None:
    """Configure a SQLAlchemy connection with backend-specific settings.
    """
    strategy = get_strategy(options.drivername)
    strategy.configure_connection(sa_connection.connection.dbapi_connection)


class ConnectionWrapper:
    """Connection handle: wraps a SQLAlchemy connection and its DBAPI connection

    This class provides a thin wrapper around SQLAlchemy connection objects that:
    1. Tracks query execution counts and timing
    2. Refuses new cursors once closed
    3. Supports context manager protocol for explicit resource management
    4. Exposes the driver's native string escaping
    5. Delegates attribute access to the SQLAlchemy connection object
    """

    def __init__(self, sa_connection: sa.engine.Connection | None = None,
                 options: DatabaseOptions | None = None) -> None:
        """Initialize a connection wrapper
        """
        self.sa_connection = sa_connection
        self.engine = sa_connection.engine if sa_connection is not None else None
        self.options = options
        self.dbapi_connection = sa_connection.connection if sa_connection is not None else None
        self._dialect = options.drivername if options else 'mysql'
        # never reused, unlike id(); names this handle's schema cache
        self.cache_key = next(_handle_keys)
        self.calls = 0
        self.time = 0

    def __enter__(self) -> Self:
        """Support for context manager protocol
        """
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        """Close the connection when exiting the context manager
        """
        try:
            self.close()
            logger.debug('Closed connection via context manager')
        except Exception as e:
            logger.debug(f'Error closing connection in __exit__: {e}')

    def __getattr__(self, name: str) -> Any:
        """Delegate attribute access to the SQLAlchemy connection or the raw connection.
        """
        if name in {'sa_connection', 'dbapi_connection'}:
            raise AttributeError(name)
        if hasattr(self.sa_connection, name):
            return getattr(self.sa_connection, name)

        return getattr(self.dbapi_connection, name)

    @property
    def dialect(self) -> str:
        """Return the dialect name ('mysql')."""
        return self._dialect

    @property
    def closed(self) -> bool:
        if self.sa_connection is None:
            return True
        return bool(getattr(self.sa_connection, 'closed', False))

    def cursor(self) -> Cursor:
        """Get a wrapped cursor for this connection

        Raises NotConnectedError once the handle has been closed.
        """
        if self.closed:
            raise NotConnectedError('Connection handle is closed; call connect() for a new one')

        return Cursor(self.dbapi_connection.cursor(), self)

    def escape_string(self, value: str) -> str:
        """Escape string content with the driver's native routine.
        """
        return self.dbapi_connection.escape_string(value)

    def addcall(self, elapsed: float) -> None:
        """Track execution statistics
        """
        self.time += elapsed
        self.calls += 1

    def close(self) -> None:
        """Close the SQLAlchemy connection and drop its schema cache; closing
        twice is a no-op
        """
        Cache.get_instance().drop_schema_cache(self.cache_key)
        if self.closed:
            return
        self.sa_connection.close()
        logger.debug(f'Connection closed: {self.calls} queries in {self.time:.2f}s (avg: {self.time/max(1,self.calls):.3f}s per query)')


def open_connection(options: DatabaseOptions) -> ConnectionWrapper:
    """Open a new backend session for the given options.

    Raises ConnectionError if the backend rejects the credentials or is
    unreachable.
    """
    try:
        engine = get_engine_for_options(options)
        sa_connection = engine.connect()
    except (sa_exc.SQLAlchemyError, pymysql.err.MySQLError) as err:
        logger.error(f'Could not connect to {options.hostname}:{options.port}/{options.database}: {err}')
        raise ConnectionError(f'Could not connect to {options.hostname}:{options.port}/{options.database}') from err

    configure_connection(sa_connection, options)
    logger.debug(f'Connected to {options.hostname}:{options.port}/{options.database}')
    return ConnectionWrapper(sa_connection, options)


def _as_options(config: DatabaseOptions | Mapping[str, Any] | None, **kw: Any) -> DatabaseOptions:
    if isinstance(config, DatabaseOptions):
        return replace(config, **kw) if kw else config
    return DatabaseOptions.from_config(config or {}, **kw)


class ConnectionManager:
    """Owns the active connection handle and the queue of stale ones.

    The most recently opened handle is the active one. Handles it replaces
    (on connect or reconnect) move to the stale queue; `close_stale()`
    drains it.
    """

    def __init__(self, connector: Callable[[DatabaseOptions], ConnectionWrapper] | None = None) -> None:
        self._connector = connector or open_connection
        self.current: ConnectionWrapper | None = None
        self.stale: deque[ConnectionWrapper] = deque()

    @property
    def handles(self) -> list[ConnectionWrapper]:
        """Stale handles followed by the active one."""
        return [*self.stale, *([self.current] if self.current is not None else [])]

    def connect(self, config: DatabaseOptions | Mapping[str, Any] | None = None,
                **kw: Any) -> ConnectionWrapper:
        """Open a new handle and make it the active one.

        Args:
            config: DatabaseOptions, or a mapping with host, username,
                    password, port, database and options
            **kw: Overrides for individual settings

        Returns
            The new connection handle
        """
        options = _as_options(config, **kw)
        handle = self._connector(options)
        if self.current is not None:
            self.stale.append(self.current)
        self.current = handle
        return handle

    def disconnect(self, handle: ConnectionWrapper | None = None) -> None:
        """Close `handle`, or the active handle when none is given.
        """
        handle = handle if handle is not None else self.active_connection()
        handle.close()

    def active_connection(self) -> ConnectionWrapper:
        """Return the active handle.

        Raises NotConnectedError if no handle has been opened.
        """
        if self.current is None:
            raise NotConnectedError('No active database connection; call connect() first')
        return self.current

    def reconnect(self, stale_handle: ConnectionWrapper) -> ConnectionWrapper:
        """Retire `stale_handle` and open a fresh handle with its options.

        The fresh handle becomes active only when `stale_handle` was the
        active one. Otherwise it is queued as stale too, so it serves one
        retry and is closed by the next `close_stale()`.
        """
        options = stale_handle.options
        logger.warning(f'Reconnecting to {options.hostname}:{options.port}/{options.database}')
        if stale_handle not in self.stale:
            self.stale.append(stale_handle)
        was_active = stale_handle is self.current
        if was_active:
            self.current = None
        fresh = self._connector(options)
        if was_active:
            self.current = fresh
        else:
            self.stale.append(fresh)
        return fresh

    def close_stale(self) -> None:
        """Close and forget every stale handle.
        """
        while self.stale:
            handle = self.stale.popleft()
            try:
                handle.close()
            except Exception as e:
                logger.debug(f'Error closing stale connection: {e}')

    def close_all(self) -> None:
        """Close every handle and forget the active one.
        """
        self.close_stale()
        if self.current is not None:
            self.current.close()
            self.current = None


_default_manager = ConnectionManager()


def get_manager() -> ConnectionManager:
    """Return the process default connection manager."""
    return _default_manager


def set_manager(manager: ConnectionManager) -> ConnectionManager:
    """Replace the process default connection manager, returning the old one."""
    global _default_manager
    previous, _default_manager = _default_manager, manager
    return previous


def connect(config: DatabaseOptions | Mapping[str, Any] | None = None,
            **kw: Any) -> ConnectionWrapper:
    """Connect using the default manager; see `ConnectionManager.connect`.
    """
    return get_manager().connect(config, **kw)


def disconnect(handle: ConnectionWrapper | None = None) -> None:
    """Close `handle`, or the default manager's active handle.
    """
    get_manager().disconnect(handle)


def active_connection() -> ConnectionWrapper:
    """Return the default manager's active handle.
    """
    return get_manager().active_connection()
