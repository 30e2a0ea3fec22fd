from sqlalchemy import Column, Index, String

from .db_base import TimestampMixin, UUIDMixin
from .db_config import Base


class ExcludedItem(Base, UUIDMixin, TimestampMixin):
    """A collection item its owner has hidden from visitors."""

    __tablename__ = "excluded_items"

    owner_user_id = Column(String(100), nullable=False, index=True)
    # Stored as text; remote item ids are compared as strings everywhere
    external_item_id = Column(String(64), nullable=False)

    __table_args__ = (
        Index("ix_excluded_owner_item", "owner_user_id", "external_item_id", unique=True),
    )
