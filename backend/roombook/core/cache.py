"""Redis-backed key-value cache used for throttle markers and cached lookups."""

from __future__ import annotations

import json
import logging
import threading
import time
from functools import lru_cache
from typing import Any, Callable, Optional, Union

import redis
from redis.exceptions import ConnectionError, RedisError

from roombook.core.config import settings
from roombook.core.exceptions import DependencyError

logger = logging.getLogger(__name__)


class InMemoryCache:
    """Process-local stand-in for a Redis client, used when Redis is unreachable."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        # key -> (value, expires_at or None)
        self._cache: dict[str, tuple[Any, Optional[float]]] = {}

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and expires_at <= self._clock():
                del self._cache[key]
                return None
            return value

    def set(self, key: str, value: Any, ex: Optional[int] = None) -> None:
        expires_at = self._clock() + ex if ex else None
        with self._lock:
            self._cache[key] = (value, expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._cache.pop(key, None)

    def ping(self) -> bool:
        return True

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()


CacheClient = Union[redis.Redis, InMemoryCache]


class RedisCache:
    """Cache facade over an injected Redis (or in-memory) client."""

    def __init__(self, client: CacheClient, default_ttl: Optional[int] = None):
        """
        Args:
            client: ``redis.Redis`` instance or ``InMemoryCache``.
            default_ttl: Time-to-live in seconds applied when ``set`` gets no
                explicit ttl. ``None`` stores keys without expiry.
        """
        self._client = client
        self.default_ttl = default_ttl

    def get(self, key: str) -> Optional[Any]:
        try:
            value = self._client.get(key)
        except RedisError as exc:
            logger.warning(f"Redis cache get error for key {key}: {exc}")
            raise DependencyError("Cache is unavailable") from exc

        if value is None or isinstance(self._client, InMemoryCache):
            return value
        try:
            return json.loads(value)
        except (json.JSONDecodeError, TypeError):
            return value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        ttl = ttl or self.default_ttl
        try:
            if isinstance(self._client, InMemoryCache):
                self._client.set(key, value, ex=ttl)
                return

            if isinstance(value, (dict, list)):
                serialized = json.dumps(value)
            else:
                serialized = str(value)

            if ttl:
                self._client.setex(key, ttl, serialized)
            else:
                self._client.set(key, serialized)
        except RedisError as exc:
            logger.warning(f"Redis cache set error for key {key}: {exc}")
            raise DependencyError("Cache is unavailable") from exc

    def delete(self, key: str) -> None:
        try:
            self._client.delete(key)
        except RedisError as exc:
            logger.warning(f"Redis cache delete error for key {key}: {exc}")
            raise DependencyError("Cache is unavailable") from exc

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except RedisError as exc:
            logger.warning(f"Redis cache ping failed: {exc}")
            return False


def _build_client() -> CacheClient:
    try:
        client = redis.Redis.from_url(
            settings.REDIS_CACHE_URL,
            decode_responses=True,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
            socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT,
        )
        client.ping()
        logger.info(f"Redis cache connected: {settings.REDIS_CACHE_URL}")
        return client
    except (ConnectionError, RedisError) as exc:
        logger.warning(
            f"Failed to connect to Redis cache: {exc}. Using fallback in-memory cache."
        )
        return InMemoryCache()


@lru_cache
def get_cache() -> RedisCache:
    """Application cache, built on first use."""
    return RedisCache(_build_client())
