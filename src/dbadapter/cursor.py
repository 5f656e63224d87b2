"""
Cursor wrapper around the backend driver's DB-API cursor.

Implements the subset of Python DB-API 2.0 (PEP-249) the executor uses.
"""
import logging
import time
from functools import wraps
from typing import Any

from dbadapter.types import Column, columns_from_cursor_description

logger = logging.getLogger(__name__)


def dumpsql(func):
    """Decorator for logging SQL queries and tracking their timing."""
    @wraps(func)
    def wrapper(self, operation: str, *args: Any, **kwargs: Any):
        start = time.time()
        logger.debug(f'SQL:\n{operation}\nargs: {args}')
        try:
            return func(self, operation, *args, **kwargs)
        except Exception:
            logger.error(f'Error with query:\nSQL:\n{operation}\nargs: {args}')
            raise
        finally:
            elapsed = time.time() - start
            self.connwrapper.addcall(elapsed)
            logger.debug(f'Query time: {elapsed:.4f}s')
    return wrapper


class Cursor:
    """Cursor wrapper bound to the connection handle that created it.
    """

    def __init__(self, cursor: Any, connection_wrapper: Any) -> None:
        """Initialize cursor wrapper.

        Args:
            cursor: The underlying DB-API cursor
            connection_wrapper: The connection handle that created this cursor
        """
        self.dbapi_cursor = cursor
        self.connwrapper = connection_wrapper
        self.columns: list[Column] = []

    def __getattr__(self, name: str) -> Any:
        """Delegate members to underlying cursor."""
        return getattr(self.dbapi_cursor, name)

    def __enter__(self) -> 'Cursor':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def description(self) -> list[tuple] | None:
        """Column descriptions for last query."""
        return self.dbapi_cursor.description

    @property
    def rowcount(self) -> int:
        """Number of rows produced/affected by last operation."""
        return self.dbapi_cursor.rowcount

    @property
    def lastrowid(self) -> int | None:
        """Identifier generated by the last INSERT."""
        return self.dbapi_cursor.lastrowid

    def close(self) -> None:
        """Close cursor."""
        self.dbapi_cursor.close()

    def fetchall(self) -> list[tuple]:
        """Fetch all remaining rows."""
        return list(self.dbapi_cursor.fetchall())

    @dumpsql
    def execute(self, operation: str, *args: Any) -> int:
        """Execute a database operation and return the affected row count."""
        if args:
            self.dbapi_cursor.execute(operation, args)
        else:
            self.dbapi_cursor.execute(operation)
        return self.dbapi_cursor.rowcount


def extract_column_info(cursor: Any) -> list[Column]:
    """Extract column information from the cursor description."""
    columns = columns_from_cursor_description(cursor)
    cursor.columns = columns
    return columns
