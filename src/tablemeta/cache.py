"""
Shared caches for compiled table bindings.

Named `cachetools.TTLCache` instances live in the process-wide `Cache`
singleton. Binding keys have the form ``<connection id>:<table>:<record type>``
so entries can be dropped per table after a schema change.
"""
import functools
import logging
import threading
from typing import Any

import cachetools

logger = logging.getLogger(__name__)

__all__ = ['Cache', 'cacheable_binding']


def binding_key(cn: Any, table: str, record_cls: type) -> str:
    return f'{id(cn)}:{table}:{record_cls.__module__}.{record_cls.__qualname__}'.lower()


def _table_of(key: str) -> str:
    return key.split(':')[1]


class Cache:
    """Process-wide registry of named TTL caches.

    Use `Cache.get_instance()`; all mutation happens under one re-entrant lock.
    """

    _instance = None
    _instance_lock = threading.Lock()

    def __init__(self) -> None:
        self._caches: dict[str, cachetools.TTLCache] = {}
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        """Guards every cache this manager owns; cachetools caches are not thread-safe."""
        return self._lock

    @classmethod
    def get_instance(cls) -> 'Cache':
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    def get_cache(self, name: str, maxsize: int = 100, ttl: int = 600) -> cachetools.TTLCache:
        """The cache called ``name``; size and TTL apply only on first creation.
        """
        with self._lock:
            if name not in self._caches:
                self._caches[name] = cachetools.TTLCache(maxsize=maxsize, ttl=ttl)
            return self._caches[name]

    def clear_all(self) -> None:
        with self._lock:
            for cache in self._caches.values():
                cache.clear()

    def clear_cache(self, name: str) -> None:
        with self._lock:
            cache = self._caches.get(name)
            if cache is not None:
                cache.clear()

    def clear_for_table(self, table_name: str) -> None:
        """Drop every cached binding built for ``table_name``.
        """
        table = table_name.lower()
        with self._lock:
            for name, cache in self._caches.items():
                stale = [key for key in list(cache) if _table_of(key) == table]
                for key in stale:
                    cache.pop(key, None)
                if stale:
                    logger.debug(f'Dropped {len(stale)} entries for {table_name} from {name}')


def cacheable_binding(cache_name: str, ttl: int = 600, maxsize: int = 100):
    """Cache a ``(cn, table, record_cls)`` builder in the named TTL cache.

    The wrapped function accepts ``bypass_cache=True`` to rebuild; the fresh
    result replaces the cached one. Failures are not cached.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(cn, table, record_cls, *args, bypass_cache=False, **kwargs):
            manager = Cache.get_instance()
            cache = manager.get_cache(cache_name, maxsize=maxsize, ttl=ttl)
            key = binding_key(cn, table, record_cls)
            if not bypass_cache:
                with manager.lock:
                    value = cache.get(key)
                if value is not None:
                    logger.debug(f'{cache_name} hit for {table}')
                    return value
                logger.debug(f'{cache_name} miss for {table}')
            # built outside the lock; concurrent misses may build twice, last store wins
            value = func(cn, table, record_cls, *args, **kwargs)
            with manager.lock:
                cache[key] = value
            return value
        return wrapper
    return decorator
