"""
Centralized configuration management for the Collection Access Core.

This module provides a unified configuration system with support for:
- Environment variables
- Policy values (rate ceiling, cache TTLs, connection cap)
- Validation using Pydantic
"""

import os
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from .constants import CacheTTL, Discogs, EnvironmentVariable, Limits, LogLevel, Timeouts


def _env_or_none(name: EnvironmentVariable) -> Optional[str]:
    value = os.getenv(name.value)
    return value or None


class StoreConfig(BaseModel):
    """Shared key-value store backing the rate limiter and the result cache."""

    redis_url: Optional[str] = Field(
        default_factory=lambda: _env_or_none(EnvironmentVariable.REDIS_URL),
        description="Redis URL; when unset the limiter and cache degrade to no-ops",
    )
    socket_timeout: float = Field(
        default=Timeouts.CACHE_OPERATION, description="Socket timeout for store calls (seconds)"
    )

    @property
    def enabled(self) -> bool:
        return bool(self.redis_url)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.LOG_LEVEL.value, LogLevel.INFO.value),
        description="Logging level",
    )
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string",
    )

    @field_validator("level")
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {level.value for level in LogLevel}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class SecurityConfig(BaseModel):
    """Security-related configuration."""

    encryption_key: Optional[str] = Field(
        default_factory=lambda: _env_or_none(EnvironmentVariable.ENCRYPTION_KEY),
        description="Master encryption key (base64 encoded, 32 bytes)",
    )

    def __repr__(self) -> str:
        """String representation with masked key."""
        return f"SecurityConfig(encryption_key={'***' if self.encryption_key else None})"


class DiscogsConfig(BaseModel):
    """Remote collection API configuration."""

    consumer_key: Optional[str] = Field(
        default_factory=lambda: _env_or_none(EnvironmentVariable.DISCOGS_CONSUMER_KEY),
        description="OAuth consumer key",
    )
    consumer_secret: Optional[str] = Field(
        default_factory=lambda: _env_or_none(EnvironmentVariable.DISCOGS_CONSUMER_SECRET),
        description="OAuth consumer secret",
    )
    base_url: str = Field(default=Discogs.API_BASE_URL, description="API base URL")
    web_base_url: str = Field(default=Discogs.WEB_BASE_URL, description="Public site base URL")
    user_agent: str = Field(default=Discogs.USER_AGENT, description="User-Agent header")
    timeout_seconds: float = Field(
        default=Timeouts.EXTERNAL_API_CALL, gt=0, description="Outbound request timeout"
    )

    def __repr__(self) -> str:
        return (
            f"DiscogsConfig(base_url='{self.base_url}', "
            f"consumer_key={'***' if self.consumer_key else None}, "
            f"consumer_secret={'***' if self.consumer_secret else None})"
        )


class RateLimitConfig(BaseModel):
    """Sliding-window budget for remote API calls."""

    max_calls: int = Field(default=Limits.RATE_LIMIT_MAX_CALLS, gt=0, description="Calls per window")
    window_seconds: int = Field(
        default=Limits.RATE_LIMIT_WINDOW_SECONDS, gt=0, description="Window length in seconds"
    )
    key_prefix: str = Field(default="ratelimit:discogs", description="Store key prefix")


class CacheConfig(BaseModel):
    """Result cache TTL policy."""

    listing_ttl_seconds: int = Field(default=CacheTTL.COLLECTION, gt=0, description="Listing TTL")
    detail_ttl_seconds: int = Field(default=CacheTTL.RELEASE, gt=0, description="Detail TTL")


class ConnectionConfig(BaseModel):
    """Linked account policy."""

    max_connections_per_user: int = Field(
        default=Limits.MAX_CONNECTIONS_PER_USER, gt=0, description="Connections allowed per user"
    )


class EventConfig(BaseModel):
    """Audit/analytics event sink configuration."""

    queue_connection_string: Optional[str] = Field(
        default_factory=lambda: _env_or_none(EnvironmentVariable.AZURE_STORAGE_CONNECTION),
        description="Azure Storage connection string; when unset events are only logged",
    )
    queue_name: str = Field(
        default_factory=lambda: os.getenv(
            EnvironmentVariable.EVENTS_QUEUE_NAME.value, "collection-events"
        ),
        description="Queue receiving structured events",
    )


class AppConfig(BaseModel):
    """Main application configuration."""

    environment: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.APP_ENV.value, "development"),
        description="Application environment",
    )
    debug: bool = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.DEBUG.value, "false").lower()
        == "true",
        description="Debug mode",
    )

    # Sub-configurations
    store: StoreConfig = Field(default_factory=StoreConfig, description="Key-value store")
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    security: SecurityConfig = Field(
        default_factory=SecurityConfig, description="Security configuration"
    )
    discogs: DiscogsConfig = Field(default_factory=DiscogsConfig, description="Remote API")
    rate_limit: RateLimitConfig = Field(
        default_factory=RateLimitConfig, description="Rate limit policy"
    )
    cache: CacheConfig = Field(default_factory=CacheConfig, description="Cache TTL policy")
    connections: ConnectionConfig = Field(
        default_factory=ConnectionConfig, description="Connection policy"
    )
    events: EventConfig = Field(default_factory=EventConfig, description="Event sink")

    # Custom configuration
    custom: Dict[str, Any] = Field(default_factory=dict, description="Custom configuration values")

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create configuration from environment variables."""
        return cls()

    def get_custom(self, key: str, default: Any = None) -> Any:
        """Get a custom configuration value."""
        return self.custom.get(key, default)


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def set_config(config: AppConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global configuration instance."""
    global _config
    _config = None
