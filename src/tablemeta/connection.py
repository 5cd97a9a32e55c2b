"""
MySQL connection collaborator built on SQLAlchemy and PyMySQL.

Table bindings need exactly two round trips from a connection:

- ``query(sql, *args)`` returns an open `Cursor` over the result rows
- ``execute(sql, *args)`` returns an `ExecResult` with the affected row
  count and the generated identity

`connect` loads `DatabaseOptions` through libb, takes an engine from a
process-wide registry and wraps one of its connections. Engines run in
AUTOCOMMIT so every statement is durable as soon as it returns.
"""
import atexit
import logging
import threading
import time
from collections.abc import Callable
from functools import wraps
from typing import Any, Self

import sqlalchemy as sa
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool
from tablemeta.cursor import Cursor, ExecResult
from tablemeta.exceptions import DbConnectionError, is_retryable_error
from tablemeta.options import DatabaseOptions

from libb import load_options

logger = logging.getLogger(__name__)

__all__ = [
    'ConnectionWrapper',
    'connect',
    'check_connection',
    'create_url_from_options',
    'get_engine_for_options',
    'dispose_all_engines',
]

MAX_OVERFLOW = 10


class _EngineRegistry:
    """Engines shared by every wrapper opened with equal options."""

    def __init__(self) -> None:
        self._engines: dict[str, Engine] = {}
        self._lock = threading.RLock()

    def get(self, key: str, build: Callable[[], Engine]) -> Engine:
        with self._lock:
            engine = self._engines.get(key)
            if engine is None:
                engine = self._engines[key] = build()
                logger.debug(f'Created engine {len(self._engines)} in registry')
            return engine

    def dispose(self) -> None:
        with self._lock:
            while self._engines:
                _, engine = self._engines.popitem()
                engine.dispose()
        logger.debug('Disposed all registered engines')


_registry = _EngineRegistry()


def create_url_from_options(options: DatabaseOptions) -> sa.URL:
    """SQLAlchemy URL for the PyMySQL dialect.
    """
    if options.drivername != 'mysql':
        raise ValueError(f'Unsupported driver: {options.drivername}')
    params = {'charset': options.charset}
    if options.timeout:
        params['connect_timeout'] = str(options.timeout)
    return sa.URL.create(
        'mysql+pymysql',
        username=options.username,
        password=options.password,
        host=options.hostname,
        port=options.port,
        database=options.database,
        query=params,
    )


def _engine_kwargs(options: DatabaseOptions) -> dict[str, Any]:
    kwargs: dict[str, Any] = {
        'isolation_level': 'AUTOCOMMIT',
        'connect_args': {'program_name': options.appname},
        }
    if options.use_pool:
        kwargs.update(
            pool_size=options.pool_max_connections,
            pool_recycle=options.pool_max_idle_time,
            pool_timeout=options.pool_wait_timeout,
            max_overflow=MAX_OVERFLOW,
            pool_pre_ping=True,
        )
    else:
        kwargs['poolclass'] = NullPool
    return kwargs


def get_engine_for_options(options: DatabaseOptions,
                           engine_factory: Callable[..., Engine] = sa.create_engine,
                           **kwargs: Any) -> Engine:
    """Return the registered engine for ``options``, creating it on first use.

    Pooling follows ``options.use_pool``; extra keyword arguments go to the
    engine factory.
    """
    def build() -> Engine:
        engine_kwargs = _engine_kwargs(options)
        engine_kwargs.update(kwargs)
        return engine_factory(create_url_from_options(options), **engine_kwargs)

    return _registry.get(repr(options), build)


def dispose_all_engines() -> None:
    """Dispose every registered engine and empty the registry.
    """
    _registry.dispose()


atexit.register(dispose_all_engines)


def check_connection(func: Callable | None = None, *, max_retries: int = 3,
                     retry_delay: float = 1, retry_backoff: float = 1.5,
                     retry_errors: type | tuple[type, ...] = DbConnectionError,
                     sleep_func: Callable[[float], None] = time.sleep) -> Callable:
    """Retry a call that failed on a transient connection error.

    Only errors of ``retry_errors`` whose message `is_retryable_error`
    recognizes are retried; the delay grows by ``retry_backoff`` after each
    attempt. Usable as ``@check_connection`` or ``@check_connection(...)``.
    """
    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def inner(*args: Any, **kwargs: Any) -> Any:
            delay = retry_delay
            for attempt in range(1, max_retries + 1):
                try:
                    return f(*args, **kwargs)
                except retry_errors as err:
                    if not is_retryable_error(err):
                        raise
                    if attempt == max_retries:
                        logger.error(f'Giving up after {attempt} attempts: {err}')
                        raise
                    logger.warning(f'Transient connection error, retrying in {delay:.2f}s '
                                   f'({attempt}/{max_retries}): {err}')
                    sleep_func(delay)
                    delay *= retry_backoff
        return inner

    return decorator if func is None else decorator(func)


class ConnectionWrapper:
    """Connection handed to table bindings.

    Bindings hold a shared, non-owning reference; the caller that opened the
    wrapper closes it. Statement counts and elapsed time are accumulated for
    the close log line.
    """

    def __init__(self, sa_connection: sa.engine.Connection, options: DatabaseOptions | None = None) -> None:
        self.sa_connection = sa_connection
        self.options = options
        self.statements = 0
        self.elapsed = 0.0

    def __repr__(self) -> str:
        host = self.options.hostname if self.options else '?'
        return f'ConnectionWrapper(mysql://{host}, statements={self.statements})'

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()

    @property
    def engine(self) -> Engine:
        return self.sa_connection.engine

    def record_timing(self, elapsed: float) -> None:
        self.statements += 1
        self.elapsed += elapsed

    def cursor(self) -> Cursor:
        """New cursor on the DB-API connection; a closed connection is reopened first.
        """
        if getattr(self.sa_connection, 'closed', False):
            logger.debug('Reopening closed connection')
            self.sa_connection = self.engine.connect()
        return Cursor(self.sa_connection.connection.cursor(), self)

    def close(self) -> None:
        if self.sa_connection is None or self.sa_connection.closed:
            return
        self.sa_connection.close()
        logger.debug(f'Connection closed after {self.statements} statements in {self.elapsed:.2f}s')

    @check_connection
    def query(self, sql: str, *args: Any) -> Cursor:
        """Run ``sql`` and return the cursor positioned before the first row.

        The caller owns the cursor; close it, preferably with ``with``.
        """
        cursor = self.cursor()
        try:
            cursor.execute(sql, *args)
        except Exception:
            cursor.close()
            raise
        return cursor

    @check_connection
    def execute(self, sql: str, *args: Any) -> ExecResult:
        """Run a data-modifying statement.
        """
        with self.cursor() as cursor:
            cursor.execute(sql, *args)
            return ExecResult(rowcount=cursor.rowcount, lastrowid=cursor.lastrowid)


@load_options(cls=DatabaseOptions)
def connect(options: DatabaseOptions | dict[str, Any] | str,
            config: Any | None = None, **kw: Any) -> ConnectionWrapper:
    """Open a connection to MySQL.

    Args:
        options: `DatabaseOptions`, a dict of options, or the name of a
            settings section in ``config``
        config: Settings module holding named sections
        **kw: Overrides applied on top of the loaded options

    Returns
        ConnectionWrapper over a fresh (or pooled) SQLAlchemy connection
    """
    if not isinstance(options, DatabaseOptions):
        options = load_options(cls=DatabaseOptions)(lambda o, c: o)(options, config, **kw)
    engine = get_engine_for_options(options)
    logger.debug(f'Connecting to {options.hostname}:{options.port}/{options.database}')
    return ConnectionWrapper(engine.connect(), options)
