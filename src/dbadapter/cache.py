"""
Caching for schema metadata.

Uses cachetools TTLCache for automatic expiration. Schema caches are scoped per
connection handle and dropped when the handle closes.
"""
import logging
import threading

import cachetools

logger = logging.getLogger(__name__)


class Cache:
    """Cache manager for the adapter.

    Thread-safe singleton that manages all TTL caches.
    """

    _instance = None
    _caches: dict[str, cachetools.TTLCache] = {}
    _lock = threading.RLock()

    @classmethod
    def get_instance(cls) -> 'Cache':
        """Get singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    def get_cache(self, name: str, maxsize: int = 100, ttl: int = 300) -> cachetools.TTLCache:
        """Get or create a TTL cache with the given name.

        Args:
            name: Name of the cache
            maxsize: Maximum cache size
            ttl: Time-to-live in seconds

        Returns
            TTLCache instance
        """
        if name not in self._caches:
            with self._lock:
                if name not in self._caches:
                    self._caches[name] = cachetools.TTLCache(maxsize=maxsize, ttl=ttl)
        return self._caches[name]

    def clear_all(self) -> None:
        """Clear all managed caches."""
        with self._lock:
            for cache in self._caches.values():
                cache.clear()

    def clear_cache(self, name: str) -> None:
        """Clear a specific cache by name."""
        with self._lock:
            if name in self._caches:
                self._caches[name].clear()

    def drop_cache(self, name: str) -> None:
        """Forget a cache by name."""
        with self._lock:
            self._caches.pop(name, None)

    def clear_for_table(self, table_name: str) -> None:
        """Clear all cache entries related to a specific table.

        Args:
            table_name: Name of the table to clear cache entries for
        """
        table_lower = table_name.lower()
        with self._lock:
            for cache in self._caches.values():
                keys_to_clear = [key for key in list(cache.keys()) if key == table_lower]
                for key in keys_to_clear:
                    if key in cache:
                        del cache[key]
                        logger.debug(f'Cleared cache entry {key} for table {table_name}')

    def get_schema_cache(self, connection_id: int | None = None) -> cachetools.TTLCache:
        """Get schema cache for a connection.

        Args:
            connection_id: Connection identifier, or None for global cache

        Returns
            TTLCache for schema metadata
        """
        return self.get_cache(_schema_cache_name(connection_id), maxsize=50, ttl=600)

    def drop_schema_cache(self, connection_id: int) -> None:
        """Forget the schema cache of a closed connection."""
        self.drop_cache(_schema_cache_name(connection_id))


def _schema_cache_name(connection_id: int | None) -> str:
    return f'schema_{connection_id}' if connection_id else 'schema_global'


def get_schema_cache(connection_id: int | None = None) -> cachetools.TTLCache:
    """Get schema cache for a connection.
    """
    return Cache.get_instance().get_schema_cache(connection_id)
