"""
Constants and enums for the Collection Access Core.

This module centralizes all magic strings and constants used throughout
the package to ensure consistency and maintainability.
"""

from enum import Enum


class LogLevel(str, Enum):
    """Standard logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EnvironmentVariable(str, Enum):
    """Standard environment variable names."""

    AZURE_STORAGE_CONNECTION = "AzureWebJobsStorage"
    DATABASE_URL = "DATABASE_URL"
    APP_ENV = "APP_ENV"
    LOG_LEVEL = "LOG_LEVEL"
    DEBUG = "DEBUG"
    ENCRYPTION_KEY = "ENCRYPTION_KEY"
    DISCOGS_CONSUMER_KEY = "DISCOGS_CONSUMER_KEY"
    DISCOGS_CONSUMER_SECRET = "DISCOGS_CONSUMER_SECRET"
    REDIS_URL = "REDIS_URL"
    EVENTS_QUEUE_NAME = "EVENTS_QUEUE_NAME"


class LogContextKey(str, Enum):
    """Standard keys for logging context."""

    OPERATION_ID = "operation_id"
    CORRELATION_ID = "correlation_id"
    USER_ID = "user_id"
    CONNECTION_ID = "connection_id"
    DURATION_MS = "duration_ms"
    STATUS = "status"
    ERROR_CODE = "error_code"
    SOURCE_MODULE = "source_module"
    OPERATION = "operation"


class EventType(str, Enum):
    """Structured events emitted to the audit/analytics sink."""

    COLLECTION_VIEWED = "collection_viewed"
    ITEM_VIEWED = "item_viewed"
    RATE_LIMITED = "rate_limited"
    CONNECTION_LINKED = "connection_linked"
    CONNECTION_REMOVED = "connection_removed"
    PRIMARY_CHANGED = "primary_changed"
    ITEM_EXCLUDED = "item_excluded"
    ITEM_INCLUDED = "item_included"


class CacheKeyPrefix(str, Enum):
    """Top-level namespaces for result cache keys."""

    COLLECTION = "collection"
    RELEASE = "release"


class ConnectionSelector(str, Enum):
    """Selector values used when no explicit connection id applies."""

    PRIMARY = "primary"
    ALL = "all"


class Limits:
    """System limits and thresholds."""

    MAX_CONNECTIONS_PER_USER = 2
    RATE_LIMIT_MAX_CALLS = 60
    RATE_LIMIT_WINDOW_SECONDS = 60
    DEFAULT_PAGE_SIZE = 100
    MAX_PAGE_SIZE = 100
    MAX_CONNECTION_NAME_LENGTH = 100


class CacheTTL:
    """Result cache TTLs in seconds."""

    COLLECTION = 600
    RELEASE = 3600
    USER = 1800


class Timeouts:
    """Timeout values in seconds."""

    EXTERNAL_API_CALL = 10
    CACHE_OPERATION = 5


class Discogs:
    """Remote API endpoints and identifiers."""

    API_BASE_URL = "https://api.discogs.com"
    WEB_BASE_URL = "https://www.discogs.com"
    USER_AGENT = "VinylCollectionViewer/1.0"
    REQUEST_TOKEN_PATH = "/oauth/request_token"
    ACCESS_TOKEN_PATH = "/oauth/access_token"
    IDENTITY_PATH = "/oauth/identity"
    COLLECTION_PATH = "/users/{username}/collection/folders/0/releases"
    RELEASE_PATH = "/releases/{release_id}"
    UNKNOWN_LABEL = "Unknown"
