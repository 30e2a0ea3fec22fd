"""
Linked external account model.

Just the data structure; primary selection and capacity rules live in
ConnectionRegistry.
"""

from sqlalchemy import Boolean, Column, DateTime, Index, String, Text

from .db_base import TimestampMixin, UUIDMixin, utc_now
from .db_config import Base


class ExternalConnection(Base, UUIDMixin, TimestampMixin):
    """One OAuth-linked collection account owned by a dashboard user."""

    __tablename__ = "external_connections"

    owner_user_id = Column(String(100), nullable=False, index=True)
    name = Column(String(100), nullable=False)

    # Remote identity
    external_account_id = Column(String(64), nullable=False)
    external_username = Column(String(255), nullable=False)

    # base64(nonce || tag || ciphertext) blobs produced by CredentialVault
    encrypted_access_token = Column(Text, nullable=False)
    encrypted_access_token_secret = Column(Text, nullable=False)

    is_primary = Column(Boolean, nullable=False, default=False)
    connected_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    __table_args__ = (
        Index("ix_connection_owner_account", "owner_user_id", "external_account_id", unique=True),
    )

    def __repr__(self) -> str:
        return (
            f"ExternalConnection(id='{self.id}', owner_user_id='{self.owner_user_id}', "
            f"external_username='{self.external_username}', is_primary={self.is_primary})"
        )
