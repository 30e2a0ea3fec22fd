"""Pydantic schemas for the collection access layer."""

from .collection_schemas import (
    CollectionItem,
    CollectionPage,
    Image,
    ItemDetail,
    Pagination,
    RemoteCollectionResponse,
    RemotePagination,
    Track,
)
from .connection_schemas import (
    ConnectionRead,
    ConnectionRename,
    CredentialPair,
    RemoteIdentity,
    RequestToken,
)
from .event_schemas import CollectionEvent

__all__ = [
    "CollectionEvent",
    "CollectionItem",
    "CollectionPage",
    "ConnectionRead",
    "ConnectionRename",
    "CredentialPair",
    "Image",
    "ItemDetail",
    "Pagination",
    "RemoteCollectionResponse",
    "RemoteIdentity",
    "RemotePagination",
    "RequestToken",
    "Track",
]
