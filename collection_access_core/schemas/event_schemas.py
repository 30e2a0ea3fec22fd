from datetime import UTC, datetime
from typing import Any, Dict

from pydantic import BaseModel, Field

from ..constants import EventType


class CollectionEvent(BaseModel):
    """Structured audit/analytics event emitted by the access layer."""

    event_type: EventType
    user_id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    attributes: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def of(cls, event_type: EventType, user_id: str, **attributes: Any) -> "CollectionEvent":
        return cls(event_type=event_type, user_id=user_id, attributes=attributes)
