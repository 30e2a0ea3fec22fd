"""
TTL result cache for derived collection data.

Values are stored as JSON. Every store failure is logged and absorbed: a
broken cache degrades to a miss and never fails the caller.
"""

import json
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Tuple

import redis
from pydantic_core import to_jsonable_python

from ..config import AppConfig, get_config
from ..constants import CacheKeyPrefix, ConnectionSelector
from ..utils.logger import get_logger

Clock = Callable[[], float]


def collection_cache_prefix(user_id: str) -> str:
    """Prefix shared by every cached listing page of ``user_id``."""
    return f"{CacheKeyPrefix.COLLECTION.value}:{user_id}:"


def collection_cache_key(
    user_id: str, connection_id: Optional[str], page: int, page_size: int
) -> str:
    connection = connection_id or ConnectionSelector.PRIMARY.value
    return f"{collection_cache_prefix(user_id)}{connection}:{page}:{page_size}"


def release_cache_key(item_id: Any) -> str:
    return f"{CacheKeyPrefix.RELEASE.value}:{item_id}"


class ResultCache(ABC):
    """Interface shared by all cache strategies."""

    def __init__(self):
        self.logger = get_logger()

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the cached JSON value or None on miss."""

    @abstractmethod
    def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        """Store ``value`` with a fresh expiry."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Drop one key."""

    @abstractmethod
    def invalidate_prefix(self, prefix: str) -> int:
        """Drop every key starting with ``prefix``; returns how many were removed."""

    @staticmethod
    def _encode(value: Any) -> str:
        return json.dumps(to_jsonable_python(value))


class RedisResultCache(ResultCache):
    """Cache backed by Redis ``SETEX`` entries."""

    SCAN_COUNT = 100

    def __init__(self, redis_client: redis.Redis):
        super().__init__()
        self.redis = redis_client

    def get(self, key: str) -> Optional[Any]:
        try:
            data = self.redis.get(key)
            if data is None:
                return None
            return json.loads(data)
        except (redis.RedisError, ValueError) as e:
            self.logger.warning(f"Cache get error for key {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        try:
            self.redis.setex(key, ttl_seconds, self._encode(value))
            return True
        except (redis.RedisError, TypeError, ValueError) as e:
            self.logger.warning(f"Cache set error for key {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        try:
            self.redis.delete(key)
            return True
        except redis.RedisError as e:
            self.logger.warning(f"Cache delete error for key {key}: {e}")
            return False

    def invalidate_prefix(self, prefix: str) -> int:
        try:
            keys = list(self.redis.scan_iter(match=f"{prefix}*", count=self.SCAN_COUNT))
            if keys:
                return int(self.redis.delete(*keys))
            return 0
        except redis.RedisError as e:
            self.logger.warning(f"Cache invalidate error for prefix {prefix}: {e}")
            return 0


class InMemoryResultCache(ResultCache):
    """Process-local cache with absolute expiries and an injectable clock."""

    def __init__(self, clock: Clock = time.time):
        super().__init__()
        self.clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            data, expires_at = entry
            if self.clock() >= expires_at:
                del self._entries[key]
                return None
        return json.loads(data)

    def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        try:
            data = self._encode(value)
        except (TypeError, ValueError) as e:
            self.logger.warning(f"Cache set error for key {key}: {e}")
            return False
        with self._lock:
            self._entries[key] = (data, self.clock() + ttl_seconds)
        return True

    def delete(self, key: str) -> bool:
        with self._lock:
            self._entries.pop(key, None)
        return True

    def invalidate_prefix(self, prefix: str) -> int:
        with self._lock:
            keys = [key for key in self._entries if key.startswith(prefix)]
            for key in keys:
                del self._entries[key]
        return len(keys)


class NullResultCache(ResultCache):
    """Never stores anything."""

    def get(self, key: str) -> Optional[Any]:
        return None

    def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        return False

    def delete(self, key: str) -> bool:
        return True

    def invalidate_prefix(self, prefix: str) -> int:
        return 0


def build_result_cache(
    config: Optional[AppConfig] = None, redis_client: Optional[redis.Redis] = None
) -> ResultCache:
    """Select the cache strategy: Redis when a store is configured, otherwise none."""
    config = config or get_config()

    if redis_client is None and config.store.enabled:
        redis_client = redis.Redis.from_url(
            config.store.redis_url, socket_timeout=config.store.socket_timeout
        )

    cache: ResultCache = (
        RedisResultCache(redis_client) if redis_client is not None else NullResultCache()
    )
    get_logger().info("Result cache configured", extra={"strategy": type(cache).__name__})
    return cache
