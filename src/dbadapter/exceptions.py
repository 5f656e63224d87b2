"""
Database-specific exception classes.
"""
import pymysql
import sqlalchemy.exc as sa_exc

# Server has gone away, lost connection during query, lost connection (extended)
TRANSIENT_ERROR_CODES = frozenset({2006, 2013, 2055})


def error_code(exc: BaseException) -> int | None:
    """Return the backend error code carried by a driver error.

    SQLAlchemy wraps driver errors; the original error is kept on `.orig`.
    """
    orig = getattr(exc, 'orig', None) or exc
    if not isinstance(orig, pymysql.err.MySQLError) or not orig.args:
        return None
    code = orig.args[0]
    return code if isinstance(code, int) else None


def is_transient_error(exc: BaseException) -> bool:
    """Check if an exception signals a lost backend session.

    Returns True only for the "server has gone away" / "lost connection"
    class of errors, which are recovered by reconnecting. Syntax errors,
    constraint violations and permission errors return False.

    :param exc: The exception to check.
    :returns: True if a reconnect-and-retry may succeed.
    """
    return error_code(exc) in TRANSIENT_ERROR_CODES


class DatabaseError(Exception):
    """Base class for all adapter errors.
    """


class NotConnectedError(DatabaseError):
    """No live connection handle when one is required.
    """


class ConnectionError(DatabaseError):
    """Backend rejected a new connection attempt.
    """


class TransientBackendError(DatabaseError):
    """Backend session was lost and the single retry failed the same way.
    """


class QueryError(DatabaseError):
    """Error building a query or statement.
    """


class UnknownTypeError(QueryError, KeyError):
    """Column type tag has no backend mapping.
    """

    def __str__(self) -> str:
        return Exception.__str__(self)


DbConnectionError = (
    pymysql.err.OperationalError,
    pymysql.err.InterfaceError,
    sa_exc.OperationalError,
    sa_exc.InterfaceError,
    ConnectionError,
    )

BackendError = (
    pymysql.err.MySQLError,
    sa_exc.DBAPIError,
    QueryError,
    )

IntegrityError = (
    pymysql.err.IntegrityError,
    sa_exc.IntegrityError,
    )

ProgrammingError = (
    pymysql.err.ProgrammingError,
    sa_exc.ProgrammingError,
    QueryError,
    )

OperationalError = (
    pymysql.err.OperationalError,
    sa_exc.OperationalError,
    )
