"""
Registry of linked collection accounts.

A user owns at most ``max_connections_per_user`` connections. Whenever at
least one exists exactly one of them is primary; removing the primary
promotes the earliest remaining connection in the same transaction.
Credential material is encrypted by the vault before it reaches a row and is
only decrypted on demand.
"""

from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from ..config import ConnectionConfig, get_config
from ..constants import EventType, Limits
from ..context.operation_context import operation
from ..db.db_base import utc_now
from ..db.db_connection_models import ExternalConnection
from ..exceptions import (
    CapacityExceededError,
    ConnectionNotFoundError,
    ErrorCode,
    NotConnectedError,
    ValidationError,
)
from ..schemas.connection_schemas import ConnectionRead, ConnectionRename, CredentialPair
from ..schemas.event_schemas import CollectionEvent
from ..utils.encryption_utils import CredentialVault
from .base_service import SessionManagedService
from .cache_service import NullResultCache, ResultCache, collection_cache_prefix
from .event_sink import EventSink, NullEventSink, emit_event


class ConnectionRegistry(SessionManagedService):
    """Owns ExternalConnection rows and the primary-connection invariant."""

    def __init__(
        self,
        session: Optional[Session] = None,
        vault: Optional[CredentialVault] = None,
        cache: Optional[ResultCache] = None,
        event_sink: Optional[EventSink] = None,
        config: Optional[ConnectionConfig] = None,
    ):
        super().__init__(session=session)
        self.vault = vault or CredentialVault()
        self.cache = cache or NullResultCache()
        self.event_sink = event_sink or NullEventSink()
        self.config = config or get_config().connections

    def _ordered_query(self, user_id: str):
        return (
            self.session.query(ExternalConnection)
            .filter(ExternalConnection.owner_user_id == user_id)
            .order_by(ExternalConnection.connected_at.asc(), ExternalConnection.created_at.asc())
        )

    def _get_owned(self, user_id: str, connection_id: str) -> ExternalConnection:
        connection = (
            self.session.query(ExternalConnection)
            .filter(
                ExternalConnection.id == connection_id,
                ExternalConnection.owner_user_id == user_id,
            )
            .first()
        )
        if connection is None:
            # Same answer for unknown ids and ids owned by someone else
            raise ConnectionNotFoundError(connection_id=connection_id, user_id=user_id)
        return connection

    def _invalidate_listings(self, user_id: str) -> None:
        removed = self.cache.invalidate_prefix(collection_cache_prefix(user_id))
        self.logger.debug(
            "Invalidated cached collection pages", extra={"user_id": user_id, "removed": removed}
        )

    # ==================== READS ====================

    @operation()
    def list_connections(self, user_id: str) -> List[ConnectionRead]:
        """List the user's connections, oldest first."""
        return [ConnectionRead.model_validate(row) for row in self._ordered_query(user_id).all()]

    def count_connections(self, user_id: str) -> int:
        return (
            self.session.query(ExternalConnection)
            .filter(ExternalConnection.owner_user_id == user_id)
            .count()
        )

    @operation()
    def resolve_connection(
        self, user_id: str, connection_id: Optional[str] = None
    ) -> ExternalConnection:
        """
        Pick the connection a single-connection call should use.

        Args:
            user_id: Owner of the connection
            connection_id: Explicit connection; must belong to ``user_id``

        Returns:
            The explicit connection, else the primary, else the earliest

        Raises:
            ConnectionNotFoundError: Explicit id is unknown for this user
            NotConnectedError: The user has no connections
        """
        if connection_id:
            return self._get_owned(user_id, connection_id)

        connections = self._ordered_query(user_id).all()
        if not connections:
            raise NotConnectedError(user_id=user_id)

        for connection in connections:
            if connection.is_primary:
                return connection
        return connections[0]

    @operation()
    def resolve_connections(self, user_id: str) -> List[ExternalConnection]:
        """All connections for an aggregate view: primary first, then oldest first."""
        connections = self._ordered_query(user_id).all()
        if not connections:
            raise NotConnectedError(user_id=user_id)
        return sorted(connections, key=lambda connection: not connection.is_primary)

    def get_credentials(self, connection: ExternalConnection) -> CredentialPair:
        """Decrypt the credential pair stored on ``connection``."""
        return self.vault.decrypt_pair(
            connection.encrypted_access_token, connection.encrypted_access_token_secret
        )

    # ==================== WRITES ====================

    @operation()
    def add_connection(
        self,
        user_id: str,
        external_account_id: str,
        external_username: str,
        credentials: CredentialPair,
        name: Optional[str] = None,
    ) -> ConnectionRead:
        """
        Link an external account, or refresh it if this user already linked it.

        The first connection a user links becomes primary.

        Raises:
            CapacityExceededError: The user already has the maximum number of connections
        """
        external_account_id = str(external_account_id)
        token_blob, secret_blob = self.vault.encrypt_pair(credentials)

        with self.transaction():
            existing = (
                self.session.query(ExternalConnection)
                .filter(
                    ExternalConnection.owner_user_id == user_id,
                    ExternalConnection.external_account_id == external_account_id,
                )
                .first()
            )

            if existing is not None:
                existing.encrypted_access_token = token_blob
                existing.encrypted_access_token_secret = secret_blob
                existing.external_username = external_username
                if name:
                    existing.name = self._validated_name(name)
                connection = existing
                self.logger.info(
                    "Refreshed tokens for linked account",
                    extra={"user_id": user_id, "connection_id": existing.id},
                )
            else:
                count = self.count_connections(user_id)
                if count >= self.config.max_connections_per_user:
                    raise CapacityExceededError(
                        user_id=user_id, max_connections=self.config.max_connections_per_user
                    )

                connection = ExternalConnection(
                    owner_user_id=user_id,
                    name=self._validated_name(
                        name or external_username[: Limits.MAX_CONNECTION_NAME_LENGTH]
                    ),
                    external_account_id=external_account_id,
                    external_username=external_username,
                    encrypted_access_token=token_blob,
                    encrypted_access_token_secret=secret_blob,
                    is_primary=count == 0,
                    connected_at=utc_now(),
                )
                self.session.add(connection)
                self.session.flush()
                self.logger.info(
                    "Linked new account",
                    extra={
                        "user_id": user_id,
                        "connection_id": connection.id,
                        "is_primary": connection.is_primary,
                    },
                )

            result = ConnectionRead.model_validate(connection)

        self._invalidate_listings(user_id)
        return result

    @operation()
    def set_primary(self, user_id: str, connection_id: str) -> ConnectionRead:
        """Make ``connection_id`` the user's only primary connection. Idempotent."""
        with self.transaction():
            target = self._get_owned(user_id, connection_id)
            others = (
                self.session.query(ExternalConnection)
                .filter(
                    ExternalConnection.owner_user_id == user_id,
                    ExternalConnection.id != connection_id,
                    ExternalConnection.is_primary.is_(True),
                )
                .all()
            )
            changed = not target.is_primary or bool(others)

            for other in others:
                other.is_primary = False
            target.is_primary = True
            self.session.flush()
            result = ConnectionRead.model_validate(target)

        if changed:
            self._invalidate_listings(user_id)
            emit_event(
                self.event_sink,
                CollectionEvent.of(EventType.PRIMARY_CHANGED, user_id, connection_id=connection_id),
            )
        return result

    @operation()
    def remove_connection(self, user_id: str, connection_id: str) -> Optional[str]:
        """
        Delete a connection and its encrypted credentials.

        Returns:
            Id of the connection promoted to primary, if any
        """
        promoted_id = None
        with self.transaction():
            target = self._get_owned(user_id, connection_id)
            was_primary = bool(target.is_primary)
            self.session.delete(target)
            self.session.flush()

            if was_primary:
                successor = self._ordered_query(user_id).first()
                if successor is not None:
                    successor.is_primary = True
                    promoted_id = successor.id
                    self.session.flush()

        self._invalidate_listings(user_id)
        emit_event(
            self.event_sink,
            CollectionEvent.of(
                EventType.CONNECTION_REMOVED,
                user_id,
                connection_id=connection_id,
                promoted_connection_id=promoted_id,
            ),
        )
        return promoted_id

    @operation()
    def remove_all_connections(self, user_id: str) -> int:
        """Unlink every account the user owns; returns the number removed."""
        with self.transaction():
            removed = (
                self.session.query(ExternalConnection)
                .filter(ExternalConnection.owner_user_id == user_id)
                .delete(synchronize_session="fetch")
            )

        self._invalidate_listings(user_id)
        if removed:
            emit_event(
                self.event_sink,
                CollectionEvent.of(EventType.CONNECTION_REMOVED, user_id, removed=removed),
            )
        return removed

    @operation()
    def rename_connection(self, user_id: str, connection_id: str, name: str) -> ConnectionRead:
        with self.transaction():
            connection = self._get_owned(user_id, connection_id)
            connection.name = self._validated_name(name)
            self.session.flush()
            return ConnectionRead.model_validate(connection)

    @staticmethod
    def _validated_name(name: str) -> str:
        try:
            return ConnectionRename(name=name).name
        except PydanticValidationError as e:
            raise ValidationError(
                "Connection name must be between 1 and 100 characters",
                field="name",
                error_code=ErrorCode.INVALID_FORMAT,
                cause=e,
            )
