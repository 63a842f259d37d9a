"""
Cache backends for derived reports.

Every backend exposes the same two calls, ``get`` and ``setex``. Callers
treat the cache as best-effort: backend failures surface as ``CacheError``
and are never allowed to fail a request.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Tuple

from ..config import get_settings
from ..exceptions import CacheError

logger = logging.getLogger(__name__)


class CacheBackend(ABC):
    """Key/value store with per-entry expiry."""

    name: str = "base"

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None if missing or expired."""

    @abstractmethod
    def setex(self, key: str, ttl_seconds: int, value: str) -> bool:
        """Store a value that expires after ``ttl_seconds``."""


class NullCache(CacheBackend):
    """Cache that stores nothing. Used when caching is disabled."""

    name = "none"

    def get(self, key: str) -> Optional[str]:
        return None

    def setex(self, key: str, ttl_seconds: int, value: str) -> bool:
        return True


class InMemoryCache(CacheBackend):
    """
    Process-local cache with automatic expiry.

    Thread-safe; expired entries are dropped on read and swept
    periodically on write.
    """

    name = "memory"

    CLEANUP_INTERVAL = 300  # seconds

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or time.time
        self._entries: Dict[str, Tuple[str, float]] = {}  # key -> (value, expiry)
        self._lock = threading.Lock()
        self._last_cleanup = self._clock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            value, expiry = entry
            if self._clock() >= expiry:
                del self._entries[key]
                return None
            return value

    def setex(self, key: str, ttl_seconds: int, value: str) -> bool:
        with self._lock:
            now = self._clock()
            self._entries[key] = (value, now + ttl_seconds)

            if now - self._last_cleanup >= self.CLEANUP_INTERVAL:
                self._cleanup_expired(now)
        return True

    def _cleanup_expired(self, now: float):
        expired_keys = [k for k, (_, expiry) in self._entries.items() if now >= expiry]
        for key in expired_keys:
            del self._entries[key]
        self._last_cleanup = now

        if expired_keys:
            logger.debug(f"Cleaned {len(expired_keys)} expired memory cache entries")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RedisCache(CacheBackend):
    """Redis-backed cache using redis-py."""

    name = "redis"

    def __init__(self, client=None, url: Optional[str] = None, connect_timeout: float = 5.0):
        """
        Args:
            client: Pre-built redis client (takes precedence over url)
            url: Redis connection URL
            connect_timeout: Socket connect timeout in seconds
        """
        if client is None:
            import redis

            client = redis.from_url(
                url,
                decode_responses=True,
                socket_connect_timeout=connect_timeout,
            )
        self._client = client

    def get(self, key: str) -> Optional[str]:
        try:
            value = self._client.get(key)
        except Exception as e:
            raise CacheError(f"Redis read failed for {key}: {e}") from e

        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    def setex(self, key: str, ttl_seconds: int, value: str) -> bool:
        try:
            return bool(self._client.setex(key, ttl_seconds, value))
        except Exception as e:
            raise CacheError(f"Redis write failed for {key}: {e}") from e

    def ping(self) -> bool:
        """Check that the Redis server answers."""
        try:
            return bool(self._client.ping())
        except Exception:
            return False


def create_cache(redis_url: Optional[str] = None) -> CacheBackend:
    """
    Build the cache backend for the current configuration.

    Uses Redis when a URL is configured and reachable, otherwise falls
    back to the in-memory cache.
    """
    settings = get_settings()
    url = redis_url if redis_url is not None else settings.REDIS_URL

    if url:
        try:
            cache = RedisCache(url=url, connect_timeout=settings.REDIS_CONNECT_TIMEOUT)
            if cache.ping():
                logger.info("Redis cache connected")
                return cache
            logger.warning("Redis ping failed - using in-memory cache")
        except Exception as e:
            logger.warning(f"Redis cache unavailable ({e}) - using in-memory cache")
    else:
        logger.info("REDIS_URL not configured - using in-memory cache")

    return InMemoryCache()


# Singleton instance
_cache: Optional[CacheBackend] = None


def get_cache() -> CacheBackend:
    """
    Get or create the cache backend singleton.

    Returns:
        CacheBackend instance
    """
    global _cache

    if _cache is None:
        _cache = create_cache()

    return _cache
