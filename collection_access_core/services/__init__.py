"""Service layer for the collection access core."""

from .base_service import SessionManagedService
from .cache_service import (
    InMemoryResultCache,
    NullResultCache,
    RedisResultCache,
    ResultCache,
    build_result_cache,
    collection_cache_key,
    collection_cache_prefix,
    release_cache_key,
)
from .collection_service import CollectionAccessService
from .connection_service import ConnectionRegistry
from .discogs_client import DiscogsClient
from .event_sink import (
    EventSink,
    LoggingEventSink,
    NullEventSink,
    QueueEventSink,
    build_event_sink,
    emit_event,
)
from .exclusion_service import ExclusionService
from .rate_limiter import (
    InMemoryRateLimiter,
    NullRateLimiter,
    RateLimiter,
    RateLimitResult,
    RedisRateLimiter,
    build_rate_limiter,
)

__all__ = [
    "SessionManagedService",
    # Cache
    "ResultCache",
    "RedisResultCache",
    "InMemoryResultCache",
    "NullResultCache",
    "build_result_cache",
    "collection_cache_key",
    "collection_cache_prefix",
    "release_cache_key",
    # Rate limiting
    "RateLimiter",
    "RateLimitResult",
    "RedisRateLimiter",
    "InMemoryRateLimiter",
    "NullRateLimiter",
    "build_rate_limiter",
    # Events
    "EventSink",
    "LoggingEventSink",
    "QueueEventSink",
    "NullEventSink",
    "build_event_sink",
    "emit_event",
    # Services
    "CollectionAccessService",
    "ConnectionRegistry",
    "DiscogsClient",
    "ExclusionService",
]
