"""
Exception classes for table binding and entity operations.
"""
import re

import pymysql

RETRYABLE_PATTERNS = [
    # Connection drops
    r'connection.*(closed|reset|refused|lost|terminated|broken)',
    r'lost connection',
    r'server has gone away',
    r'broken pipe',
    # Timeouts
    r'timeout',
    r'timed out',
    # Network issues
    r"can't connect",
    r'no route to host',
    r'network.*(unreachable|error)',
    # Server busy
    r'too many connections',
    r'connection pool',
]

_RETRYABLE_REGEX = re.compile('|'.join(RETRYABLE_PATTERNS), re.IGNORECASE)


def is_retryable_error(exc: BaseException) -> bool:
    """Check if an exception represents a transient error worth retrying.

    Returns True for dropped connections, timeouts, network failures and
    an exhausted server. Syntax errors, constraint violations and binding
    errors are never retryable.

    :param exc: The exception to check.
    :returns: True if the error is likely transient and worth retrying.
    """
    if isinstance(exc, TableMetaError) and not isinstance(exc, ConnectionFailure):
        return False
    return bool(_RETRYABLE_REGEX.search(str(exc)))


class TableMetaError(Exception):
    """Base class for all tablemeta errors.
    """


class ConnectionFailure(TableMetaError):
    """Error establishing or maintaining database connection.
    """


class InvalidNameError(TableMetaError, ValueError):
    """Table identifier is not safe to interpolate into statement text.
    """


class InvalidArgumentError(TableMetaError, TypeError):
    """Record argument is not a usable dataclass record.
    """


class QueryError(TableMetaError):
    """Error in query execution, including schema introspection round trips.
    """


class SchemaMismatchError(TableMetaError):
    """One or more schema columns have no corresponding record field.
    """


class UnknownColumnError(TableMetaError, KeyError):
    """Lookup by a column name that is not bound to the record type.
    """

    def __str__(self) -> str:
        return Exception.__str__(self)


class MissingIdentityError(TableMetaError):
    """Update attempted on a record whose identity field is zero.
    """


class EncodeError(TableMetaError):
    """Structured field could not be encoded to JSON.
    """


class DecodeError(TableMetaError):
    """Stored JSON text could not be decoded into a structured field.
    """


class ScanError(TableMetaError):
    """Row could not be read into the record.
    """


class InternalError(TableMetaError):
    """Invariant violated inside a table binding.
    """


class NotImplementedOperation(TableMetaError, NotImplementedError):
    """Operation is deliberately unsupported.
    """


DbConnectionError = (
    pymysql.err.OperationalError,
    pymysql.err.InterfaceError,
    ConnectionFailure,
    )

DriverError = (
    pymysql.err.Error,
    )
