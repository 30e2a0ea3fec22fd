"""
Shared column mixins for the collection access models.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, String


def utc_now():
    """Return current UTC time with timezone info attached."""
    return datetime.now(UTC)


class TimestampMixin:
    """Simple mixin for created_at/updated_at timestamps."""

    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)


class UUIDMixin:
    """Simple mixin for UUID primary keys."""

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
