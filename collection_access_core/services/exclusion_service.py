"""
Per-user set of collection items hidden from visitors.

Exclusion is keyed by release id only, so it applies no matter which linked
account supplies the item. Both mutations are idempotent.
"""

from typing import Any, Optional, Set

from sqlalchemy.orm import Session

from ..constants import EventType
from ..context.operation_context import operation
from ..db.db_exclusion_models import ExcludedItem
from ..exceptions import ErrorCode, ValidationError
from ..schemas.event_schemas import CollectionEvent
from .base_service import SessionManagedService
from .cache_service import NullResultCache, ResultCache, collection_cache_prefix
from .event_sink import EventSink, NullEventSink, emit_event


class ExclusionService(SessionManagedService):
    def __init__(
        self,
        session: Optional[Session] = None,
        cache: Optional[ResultCache] = None,
        event_sink: Optional[EventSink] = None,
    ):
        super().__init__(session=session)
        self.cache = cache or NullResultCache()
        self.event_sink = event_sink or NullEventSink()

    @staticmethod
    def _normalize_item_id(item_id: Any) -> str:
        value = str(item_id).strip() if item_id is not None else ""
        if not value:
            raise ValidationError(
                "item_id must be a non-empty value",
                field="item_id",
                error_code=ErrorCode.MISSING_REQUIRED,
            )
        return value

    def _find(self, user_id: str, item_id: str) -> Optional[ExcludedItem]:
        return (
            self.session.query(ExcludedItem)
            .filter(
                ExcludedItem.owner_user_id == user_id,
                ExcludedItem.external_item_id == item_id,
            )
            .first()
        )

    def get_excluded_ids(self, user_id: str) -> Set[str]:
        """Return the ids the user has excluded, as strings."""
        rows = (
            self.session.query(ExcludedItem.external_item_id)
            .filter(ExcludedItem.owner_user_id == user_id)
            .all()
        )
        return {row[0] for row in rows}

    @operation()
    def exclude(self, user_id: str, item_id: Any) -> bool:
        """
        Hide an item from visitors.

        Returns:
            True once the item is excluded, including when it already was
        """
        item_id = self._normalize_item_id(item_id)

        with self.transaction():
            if self._find(user_id, item_id) is not None:
                return True
            self.session.add(ExcludedItem(owner_user_id=user_id, external_item_id=item_id))

        self.cache.invalidate_prefix(collection_cache_prefix(user_id))
        emit_event(
            self.event_sink, CollectionEvent.of(EventType.ITEM_EXCLUDED, user_id, item_id=item_id)
        )
        return True

    @operation()
    def include(self, user_id: str, item_id: Any) -> bool:
        """
        Make a previously excluded item visible again.

        Returns:
            True once the item is visible, including when it was never excluded
        """
        item_id = self._normalize_item_id(item_id)

        with self.transaction():
            existing = self._find(user_id, item_id)
            if existing is None:
                return True
            self.session.delete(existing)

        self.cache.invalidate_prefix(collection_cache_prefix(user_id))
        emit_event(
            self.event_sink, CollectionEvent.of(EventType.ITEM_INCLUDED, user_id, item_id=item_id)
        )
        return True
