"""
Query execution with a single reconnect-and-retry on session loss.

`run_sql()` sends a statement over a connection handle and shapes the
result by statement kind. When the backend reports that the session is
gone, the handle is retired through the connection manager, a fresh one
is opened, and the statement runs exactly once more. The outcome tells
callers which of these paths was taken.
"""
import logging
import time
from dataclasses import dataclass
from enum import Enum

import pandas as pd
from dbadapter.connection import ConnectionManager, ConnectionWrapper
from dbadapter.connection import get_manager
from dbadapter.exceptions import BackendError, ConnectionError, TransientBackendError
from dbadapter.exceptions import is_transient_error
from dbadapter.query import Statement
from dbadapter.results import shape_result

__all__ = [
    'ExecutionOutcome',
    'Execution',
    'run_sql',
    'execute_sql',
]

logger = logging.getLogger(__name__)


class ExecutionOutcome(Enum):
    SUCCESS = 'success'
    RETRIED = 'retried'
    EXHAUSTED = 'exhausted'


@dataclass(frozen=True)
class Execution:
    """Tabular result plus how it was obtained."""
    result: pd.DataFrame
    outcome: ExecutionOutcome = ExecutionOutcome.SUCCESS


def _send(statement: Statement, handle: ConnectionWrapper, internal: bool) -> pd.DataFrame:
    """Run the statement once and shape its result."""
    options = handle.options
    log_query = options is not None and options.log_queries and not internal
    data_loader = options.data_loader if options is not None else None

    if log_query:
        logger.info(statement.sql)
        start = time.time()

    with handle.cursor() as cursor:
        cursor.execute(statement.sql)
        result = shape_result(statement.kind, cursor, data_loader)

    if log_query:
        logger.info(f'Time elapsed: {time.time() - start:.4f}s')
    return result


def run_sql(sql: str | Statement, handle: ConnectionWrapper | None = None, *,
            internal: bool = False, retry: bool = True,
            manager: ConnectionManager | None = None) -> Execution:
    """Execute SQL and return the shaped result with its outcome.

    Args:
        sql: SQL text, classified by its leading keyword, or a Statement
        handle: Connection handle; the manager's active handle by default
        internal: Bookkeeping query, never logged by query logging
        retry: Reconnect and run once more on a transient backend error
        manager: Connection manager; the process default by default

    Returns
        Execution with outcome SUCCESS, or RETRIED when the statement only
        succeeded after a reconnect

    Raises TransientBackendError (the exhausted outcome) when the retry
    loses its session as well. Every other backend error is re-raised
    unchanged.
    """
    manager = manager or get_manager()
    statement = Statement.from_sql(sql)
    handle = handle if handle is not None else manager.active_connection()

    try:
        return Execution(_send(statement, handle, internal), ExecutionOutcome.SUCCESS)
    except BackendError as err:
        logger.error(f'MySQL error when running\n{statement.sql}')
        if not (retry and is_transient_error(err)):
            raise
        logger.warning(f'{err}. Attempting reconnection')
        try:
            fresh = manager.reconnect(handle)
        except ConnectionError:
            manager.close_stale()
            raise

    try:
        result = _send(statement, fresh, internal)
    except BackendError as err:
        logger.error(f'MySQL error when running\n{statement.sql}')
        if is_transient_error(err):
            raise TransientBackendError(
                f'Lost the backend session twice ({ExecutionOutcome.EXHAUSTED.value})') from err
        raise
    finally:
        manager.close_stale()
    return Execution(result, ExecutionOutcome.RETRIED)


def execute_sql(sql: str | Statement, handle: ConnectionWrapper | None = None, *,
                internal: bool = False, retry: bool = True,
                manager: ConnectionManager | None = None) -> pd.DataFrame:
    """Execute SQL and return only the tabular result.
    """
    return run_sql(sql, handle, internal=internal, retry=retry, manager=manager).result
