"""
Cursor wrapper around the PyMySQL DB-API cursor.

Implements the read side of the connection contract: ``fetchone`` advances
and reads one row, ``close`` releases the result set. Cursors are context
managers so callers can scope the result set to a ``with`` block.
"""
import logging
import time
from collections.abc import Iterator
from dataclasses import dataclass
from functools import wraps
from typing import Any, Self

from tablemeta.sql import prepare_query

logger = logging.getLogger(__name__)

__all__ = ['Cursor', 'ExecResult', 'dumpsql']


@dataclass(frozen=True, slots=True)
class ExecResult:
    """Outcome of a data-modifying statement."""
    rowcount: int
    lastrowid: int | None


def dumpsql(func):
    """Log statement text, arguments and timing around a cursor call."""
    @wraps(func)
    def wrapper(self, operation: str, *args: Any):
        logger.debug(f'Executing:\n{operation}\nparams: {args}')
        started = time.perf_counter()
        try:
            return func(self, operation, *args)
        except Exception as err:
            logger.error(f'Statement failed ({err}):\n{operation}\nparams: {args}')
            raise
        finally:
            elapsed = time.perf_counter() - started
            self.connwrapper.record_timing(elapsed)
            logger.debug(f'Statement took {elapsed:.4f}s')
    return wrapper


class Cursor:
    """Rewrites ``?`` placeholders for the driver and tracks statement timing.
    """

    def __init__(self, cursor: Any, connwrapper: Any) -> None:
        self.dbapi_cursor = cursor
        self.connwrapper = connwrapper
        self.closed = False

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __iter__(self) -> Iterator[tuple]:
        while True:
            row = self.fetchone()
            if row is None:
                return
            yield row

    @property
    def description(self) -> tuple | None:
        return self.dbapi_cursor.description

    @property
    def rowcount(self) -> int:
        return self.dbapi_cursor.rowcount

    @property
    def lastrowid(self) -> int | None:
        """AUTO_INCREMENT value generated by the last INSERT."""
        return self.dbapi_cursor.lastrowid

    @property
    def column_names(self) -> list[str]:
        return [desc[0] for desc in (self.description or ())]

    def close(self) -> None:
        """Release the result set; safe to call twice."""
        if self.closed:
            return
        self.closed = True
        self.dbapi_cursor.close()

    def fetchone(self) -> tuple | None:
        """Advance and return the next row, or None when exhausted."""
        return self.dbapi_cursor.fetchone()

    def fetchall(self) -> list[tuple]:
        return list(self.dbapi_cursor.fetchall())

    @dumpsql
    def execute(self, operation: str, *args: Any) -> int:
        """Run one statement with positional ``?`` arguments."""
        sql, params = prepare_query(operation, args)
        self.dbapi_cursor.execute(sql, params)
        return self.dbapi_cursor.rowcount
