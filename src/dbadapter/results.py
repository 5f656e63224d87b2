"""
Result shaping.

Turns an executed cursor into the tabular result handed back to callers,
according to the kind of statement that ran.
"""
from collections.abc import Callable
from typing import Any

import pandas as pd
from dbadapter.cursor import extract_column_info
from dbadapter.options import pandas_numpy_data_loader
from dbadapter.query import StatementKind
from dbadapter.types import Column

LAST_INSERT_ID_LABEL = '__id'
STATUS_LABEL = 'result'
STATUS_OK = 'OK'
ROWS_AFFECTED_LABEL = 'rows_affected'


def last_insert_id_result(cursor: Any, data_loader: Callable[..., pd.DataFrame]) -> pd.DataFrame:
    """One row, one column: the id generated by the INSERT."""
    columns = [Column.synthetic(LAST_INSERT_ID_LABEL, int)]
    return data_loader([(cursor.lastrowid,)], columns)


def status_result(cursor: Any, data_loader: Callable[..., pd.DataFrame]) -> pd.DataFrame:
    """One row, two columns: the OK marker and the affected-row count."""
    columns = [Column.synthetic(STATUS_LABEL, str),
               Column.synthetic(ROWS_AFFECTED_LABEL, int)]
    return data_loader([(STATUS_OK, cursor.rowcount)], columns)


def rows_result(cursor: Any, data_loader: Callable[..., pd.DataFrame]) -> pd.DataFrame:
    """The full result set, columns in backend order.

    Statements that produce no result set give an empty frame.
    """
    if cursor.description is None:
        return data_loader([], [])
    columns = extract_column_info(cursor)
    return data_loader(cursor.fetchall(), columns)


def shape_result(kind: StatementKind, cursor: Any,
                 data_loader: Callable[..., pd.DataFrame] | None = None) -> pd.DataFrame:
    """Build the tabular result for a statement of the given kind.
    """
    data_loader = data_loader or pandas_numpy_data_loader
    if kind is StatementKind.INSERT:
        return last_insert_id_result(cursor, data_loader)
    if kind.returns_status:
        return status_result(cursor, data_loader)
    return rows_result(cursor, data_loader)
