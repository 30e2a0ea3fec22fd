"""
Tests for the result cache strategies and key helpers.
"""

import json
from unittest.mock import Mock, patch

import redis

from collection_access_core.config import AppConfig, StoreConfig
from collection_access_core.schemas.collection_schemas import CollectionItem
from collection_access_core.services.cache_service import (
    InMemoryResultCache,
    NullResultCache,
    RedisResultCache,
    build_result_cache,
    collection_cache_key,
    collection_cache_prefix,
    release_cache_key,
)


class TestCacheKeys:
    def test_collection_key_defaults_to_primary(self):
        assert collection_cache_key("u1", None, 2, 50) == "collection:u1:primary:2:50"

    def test_collection_key_with_connection(self):
        key = collection_cache_key("u1", "conn-9", 1, 100)
        assert key == "collection:u1:conn-9:1:100"
        assert key.startswith(collection_cache_prefix("u1"))

    def test_prefix_does_not_match_other_users(self):
        assert not collection_cache_key("u10", None, 1, 100).startswith(
            collection_cache_prefix("u1")
        )

    def test_release_key(self):
        assert release_cache_key(42) == "release:42"


class TestInMemoryResultCache:
    """Test TTL behaviour against a fake clock."""

    def test_get_before_and_after_expiry(self, clock):
        cache = InMemoryResultCache(clock=clock)
        cache.set("k", {"a": 1}, ttl_seconds=600)

        clock.advance(599)
        assert cache.get("k") == {"a": 1}

        clock.advance(1)
        assert cache.get("k") is None

    def test_set_refreshes_expiry(self, clock):
        cache = InMemoryResultCache(clock=clock)
        cache.set("k", 1, ttl_seconds=10)
        clock.advance(8)
        cache.set("k", 2, ttl_seconds=10)
        clock.advance(8)

        assert cache.get("k") == 2

    def test_pydantic_values_are_stored_as_json(self, clock):
        cache = InMemoryResultCache(clock=clock)
        item = CollectionItem(id=1, title="t", artist="a", label="l")

        cache.set("k", item, ttl_seconds=10)

        assert cache.get("k")["title"] == "t"

    def test_invalidate_prefix(self, clock):
        cache = InMemoryResultCache(clock=clock)
        cache.set("collection:u1:primary:1:100", 1, 60)
        cache.set("collection:u1:c2:1:100", 2, 60)
        cache.set("collection:u2:primary:1:100", 3, 60)

        assert cache.invalidate_prefix("collection:u1:") == 2
        assert cache.get("collection:u2:primary:1:100") == 3

    def test_unserializable_value_is_refused(self, clock):
        cache = InMemoryResultCache(clock=clock)
        assert cache.set("k", object(), 60) is False
        assert cache.get("k") is None


class TestRedisResultCache:
    """Test the Redis cache against a mocked client."""

    def setup_method(self):
        self.client = Mock(spec=redis.Redis)
        self.cache = RedisResultCache(self.client)

    def test_set_uses_setex(self):
        assert self.cache.set("release:1", {"id": 1}, 3600) is True
        self.client.setex.assert_called_once_with("release:1", 3600, json.dumps({"id": 1}))

    def test_get_decodes(self):
        self.client.get.return_value = b'{"id": 1}'
        assert self.cache.get("release:1") == {"id": 1}

    def test_get_miss(self):
        self.client.get.return_value = None
        assert self.cache.get("release:1") is None

    def test_corrupt_entry_is_a_miss(self):
        self.client.get.return_value = b"not json"
        assert self.cache.get("release:1") is None

    def test_errors_are_absorbed(self):
        self.client.get.side_effect = redis.ConnectionError("down")
        self.client.setex.side_effect = redis.ConnectionError("down")
        self.client.delete.side_effect = redis.ConnectionError("down")
        self.client.scan_iter.side_effect = redis.ConnectionError("down")

        assert self.cache.get("k") is None
        assert self.cache.set("k", 1, 60) is False
        assert self.cache.delete("k") is False
        assert self.cache.invalidate_prefix("collection:u1:") == 0

    def test_invalidate_prefix_scans_and_deletes(self):
        keys = [b"collection:u1:primary:1:100", b"collection:u1:c2:1:100"]
        self.client.scan_iter.return_value = iter(keys)
        self.client.delete.return_value = 2

        assert self.cache.invalidate_prefix("collection:u1:") == 2
        self.client.scan_iter.assert_called_once_with(match="collection:u1:*", count=100)
        self.client.delete.assert_called_once_with(*keys)

    def test_invalidate_prefix_without_matches(self):
        self.client.scan_iter.return_value = iter([])

        assert self.cache.invalidate_prefix("collection:u1:") == 0
        self.client.delete.assert_not_called()


class TestNullResultCache:
    def test_never_stores(self):
        cache = NullResultCache()
        assert cache.set("k", 1, 60) is False
        assert cache.get("k") is None
        assert cache.invalidate_prefix("k") == 0


class TestBuildResultCache:
    def test_without_store(self):
        config = AppConfig(store=StoreConfig(redis_url=None))
        assert isinstance(build_result_cache(config), NullResultCache)

    def test_with_client(self):
        cache = build_result_cache(AppConfig(), redis_client=Mock(spec=redis.Redis))
        assert isinstance(cache, RedisResultCache)

    def test_with_store_url(self):
        config = AppConfig(store=StoreConfig(redis_url="redis://cache:6379/0"))
        with patch("collection_access_core.services.cache_service.redis.Redis.from_url") as from_url:
            cache = build_result_cache(config)

        assert isinstance(cache, RedisResultCache)
        assert cache.redis is from_url.return_value
