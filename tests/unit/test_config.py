"""Tests for centralized configuration module."""

import os
from unittest.mock import patch

import pytest

from collection_access_core.config import (
    AppConfig,
    CacheConfig,
    ConnectionConfig,
    DiscogsConfig,
    LoggingConfig,
    RateLimitConfig,
    SecurityConfig,
    StoreConfig,
    get_config,
    reset_config,
    set_config,
)
from collection_access_core.db.db_config import DatabaseConfig, DatabaseManager
from collection_access_core.exceptions import ValidationError


class TestPolicyDefaults:
    """Test policy values default to the documented numbers."""

    def test_rate_limit_defaults(self):
        config = RateLimitConfig()
        assert config.max_calls == 60
        assert config.window_seconds == 60
        assert config.key_prefix == "ratelimit:discogs"

    def test_cache_defaults(self):
        config = CacheConfig()
        assert config.listing_ttl_seconds == 600
        assert config.detail_ttl_seconds == 3600

    def test_connection_defaults(self):
        assert ConnectionConfig().max_connections_per_user == 2

    def test_rejects_non_positive_policy(self):
        with pytest.raises(ValueError):
            RateLimitConfig(max_calls=0)


class TestEnvironmentConfig:
    """Test values read from environment variables."""

    def test_security_from_env(self):
        with patch.dict(os.environ, {"ENCRYPTION_KEY": "abc"}):
            assert SecurityConfig().encryption_key == "abc"

    def test_security_repr_masks_key(self):
        assert "abc" not in repr(SecurityConfig(encryption_key="abc"))

    def test_discogs_from_env(self):
        env = {"DISCOGS_CONSUMER_KEY": "key-123", "DISCOGS_CONSUMER_SECRET": "secret-456"}
        with patch.dict(os.environ, env):
            config = DiscogsConfig()
        assert config.consumer_key == "key-123"
        assert config.consumer_secret == "secret-456"
        assert "secret-456" not in repr(config)
        assert config.user_agent == "VinylCollectionViewer/1.0"

    def test_store_disabled_without_url(self):
        with patch.dict(os.environ, {"REDIS_URL": ""}):
            assert StoreConfig().enabled is False

    def test_store_enabled_with_url(self):
        with patch.dict(os.environ, {"REDIS_URL": "redis://localhost:6379/0"}):
            assert StoreConfig().enabled is True

    def test_log_level_validation(self):
        assert LoggingConfig(level="debug").level == "DEBUG"
        with pytest.raises(ValueError):
            LoggingConfig(level="LOUD")


class TestGlobalConfig:
    """Test the global configuration accessors."""

    def test_set_and_reset(self):
        custom = AppConfig(environment="staging", custom={"feature": True})
        set_config(custom)
        assert get_config() is custom
        assert get_config().get_custom("feature") is True

        reset_config()
        assert get_config() is not custom


class TestDatabaseConfig:
    """Test DatabaseConfig model."""

    def test_sqlite_url(self):
        config = DatabaseConfig(url="sqlite:///:memory:")
        assert config.get_connection_string() == "sqlite:///:memory:"
        assert config.is_sqlite is True

    def test_url_from_env(self):
        with patch.dict(os.environ, {"DATABASE_URL": "postgresql://u:pw-PLAIN@db/collection"}):
            config = DatabaseConfig()
        assert config.get_connection_string() == "postgresql://u:pw-PLAIN@db/collection"
        assert config.is_sqlite is False
        assert "pw-PLAIN" not in repr(config)

    def test_missing_url(self):
        with patch.dict(os.environ, {"DATABASE_URL": ""}):
            config = DatabaseConfig()
        with pytest.raises(ValidationError):
            config.get_connection_string()

    def test_manager_opens_sessions(self):
        manager = DatabaseManager(DatabaseConfig(url="sqlite:///:memory:"))
        manager.create_tables()

        session = manager.get_session()
        assert session.bind is manager.engine

        manager.close_session()
        manager.engine.dispose()
