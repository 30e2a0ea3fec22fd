"""
Tests for ExclusionService.
"""

import pytest

from collection_access_core.constants import EventType
from collection_access_core.exceptions import ValidationError
from collection_access_core.services.cache_service import collection_cache_key


class TestExclusionService:
    """Test exclusion set maintenance."""

    def test_exclude_and_list(self, exclusions, sample_user_id):
        assert exclusions.exclude(sample_user_id, 123) is True
        assert exclusions.exclude(sample_user_id, "456") is True

        assert exclusions.get_excluded_ids(sample_user_id) == {"123", "456"}

    def test_exclude_is_idempotent(self, exclusions, sample_user_id, event_sink):
        exclusions.exclude(sample_user_id, 123)
        assert exclusions.exclude(sample_user_id, 123) is True

        assert exclusions.get_excluded_ids(sample_user_id) == {"123"}
        assert event_sink.send.call_count == 1

    def test_include_removes(self, exclusions, sample_user_id):
        exclusions.exclude(sample_user_id, 123)

        assert exclusions.include(sample_user_id, 123) is True
        assert exclusions.get_excluded_ids(sample_user_id) == set()

    def test_include_is_idempotent(self, exclusions, sample_user_id, event_sink):
        assert exclusions.include(sample_user_id, 999) is True
        event_sink.send.assert_not_called()

    def test_users_are_independent(self, exclusions):
        exclusions.exclude("alice", 1)
        exclusions.exclude("bob", 2)

        assert exclusions.get_excluded_ids("alice") == {"1"}
        assert exclusions.get_excluded_ids("bob") == {"2"}

    @pytest.mark.parametrize("item_id", [None, "", "   "])
    def test_empty_item_id_rejected(self, exclusions, sample_user_id, item_id):
        with pytest.raises(ValidationError):
            exclusions.exclude(sample_user_id, item_id)

    def test_events(self, exclusions, sample_user_id, event_sink):
        exclusions.exclude(sample_user_id, 7)
        exclusions.include(sample_user_id, 7)

        events = [c.args[0] for c in event_sink.send.call_args_list]
        assert [e.event_type for e in events] == [EventType.ITEM_EXCLUDED, EventType.ITEM_INCLUDED]
        assert events[0].attributes == {"item_id": "7"}

    def test_changes_invalidate_cached_listings(self, exclusions, cache, sample_user_id):
        key = collection_cache_key(sample_user_id, "conn-1", 1, 100)
        other_key = collection_cache_key("someone-else", "conn-2", 1, 100)
        cache.set(key, {"items": []}, 600)
        cache.set(other_key, {"items": []}, 600)

        exclusions.exclude(sample_user_id, 7)

        assert cache.get(key) is None
        assert cache.get(other_key) == {"items": []}
