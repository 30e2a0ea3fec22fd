"""
Canonical collection shapes and the remote envelopes they are parsed from.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CollectionItem(BaseModel):
    """One physical copy in a user's collection, normalized from the remote listing."""

    id: int = Field(..., description="Stable release id")
    instance_id: Optional[int] = Field(None, description="Id of this physical copy")
    title: str
    artist: str
    year: Optional[int] = None
    cover_image: Optional[str] = None
    thumbnail: Optional[str] = None
    format: str = ""
    label: str
    genres: List[str] = Field(default_factory=list)
    styles: List[str] = Field(default_factory=list)
    date_added: Optional[str] = None
    connection_id: Optional[str] = Field(None, description="Connection that supplied the item")


class Track(BaseModel):
    position: str = ""
    title: str = ""
    duration: str = ""


class Image(BaseModel):
    uri: Optional[str] = None
    uri150: Optional[str] = None
    type: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None


class ItemDetail(CollectionItem):
    """Full release detail."""

    tracklist: List[Track] = Field(default_factory=list)
    images: List[Image] = Field(default_factory=list)
    catalog_number: str = ""
    country: Optional[str] = None
    notes: Optional[str] = None
    external_url: Optional[str] = None


class Pagination(BaseModel):
    page: int = 1
    pages: int = 1
    per_page: int = 0
    items: int = 0
    has_more: bool = False

    @classmethod
    def from_remote(cls, remote: "RemotePagination") -> "Pagination":
        return cls(
            page=remote.page,
            pages=remote.pages,
            per_page=remote.per_page,
            items=remote.items,
            has_more=remote.page < remote.pages,
        )


class CollectionPage(BaseModel):
    """Result of a collection listing call."""

    items: List[CollectionItem] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)
    # Only populated when the viewer owns the collection
    excluded_ids: Optional[List[str]] = None
    connection_ids: List[str] = Field(default_factory=list)


class RemotePagination(BaseModel):
    model_config = ConfigDict(extra="ignore")

    page: int
    pages: int
    per_page: int
    items: int


class RemoteCollectionResponse(BaseModel):
    """Listing envelope returned by the remote collection endpoint."""

    model_config = ConfigDict(extra="ignore")

    pagination: RemotePagination
    releases: List[Dict[str, Any]] = Field(default_factory=list)
