"""
Normalization of remote collection payloads into canonical item shapes.
"""

from typing import Any, Dict, Iterable, List, Optional

from ..constants import Discogs
from ..schemas.collection_schemas import CollectionItem, Image, ItemDetail, Track


def _join_names(entries: Optional[Iterable[Dict[str, Any]]]) -> str:
    return ", ".join(entry.get("name", "") for entry in entries or [] if entry.get("name"))


def _first_label(labels: Optional[List[Dict[str, Any]]]) -> Dict[str, Any]:
    return labels[0] if labels else {}


def _year(value: Any) -> Optional[int]:
    # The remote API reports unknown years as 0
    try:
        year = int(value)
    except (TypeError, ValueError):
        return None
    return year or None


def canonical_url(uri: Optional[str], web_base_url: str = Discogs.WEB_BASE_URL) -> Optional[str]:
    """Return an absolute site URL for a release, prefixing relative paths."""
    if not uri:
        return None
    if uri.startswith("http"):
        return uri
    return f"{web_base_url.rstrip('/')}/{uri.lstrip('/')}"


def normalize_collection_item(
    release: Dict[str, Any], connection_id: Optional[str] = None
) -> CollectionItem:
    """
    Normalize one entry of a collection listing.

    Args:
        release: Listing entry with ``basic_information`` and instance fields
        connection_id: Connection that supplied the entry

    Returns:
        CollectionItem
    """
    info = release.get("basic_information") or {}
    label = _first_label(info.get("labels"))

    return CollectionItem(
        id=info.get("id", release.get("id")),
        instance_id=release.get("instance_id"),
        title=info.get("title", ""),
        artist=_join_names(info.get("artists")),
        year=_year(info.get("year")),
        cover_image=info.get("cover_image") or info.get("thumb") or None,
        thumbnail=info.get("thumb") or None,
        format=_join_names(info.get("formats")),
        label=label.get("name") or Discogs.UNKNOWN_LABEL,
        genres=list(info.get("genres") or []),
        styles=list(info.get("styles") or []),
        date_added=release.get("date_added"),
        connection_id=connection_id,
    )


def normalize_item_detail(
    release: Dict[str, Any],
    connection_id: Optional[str] = None,
    web_base_url: str = Discogs.WEB_BASE_URL,
) -> ItemDetail:
    """
    Normalize a release detail payload.

    Detail payloads are shared across users, so instance fields stay empty.
    """
    images = [Image.model_validate(image) for image in release.get("images") or []]
    cover = images[0] if images else Image()
    label = _first_label(release.get("labels"))

    return ItemDetail(
        id=release["id"],
        instance_id=None,
        title=release.get("title", ""),
        artist=_join_names(release.get("artists")),
        year=_year(release.get("year")),
        cover_image=cover.uri or release.get("thumb") or None,
        thumbnail=cover.uri150 or release.get("thumb") or None,
        format=_join_names(release.get("formats")),
        label=label.get("name") or Discogs.UNKNOWN_LABEL,
        genres=list(release.get("genres") or []),
        styles=list(release.get("styles") or []),
        date_added=None,
        connection_id=connection_id,
        tracklist=[
            Track(
                position=track.get("position") or "",
                title=track.get("title") or "",
                duration=track.get("duration") or "",
            )
            for track in release.get("tracklist") or []
        ],
        images=images,
        catalog_number=label.get("catno") or "",
        country=release.get("country"),
        notes=release.get("notes"),
        external_url=canonical_url(release.get("uri"), web_base_url),
    )


def merge_unique_items(pages: Iterable[Iterable[CollectionItem]]) -> List[CollectionItem]:
    """
    Concatenate item lists in order, keeping the first occurrence of each copy.

    Items are identified by instance id; items without one fall back to the
    (connection, release) pair.
    """
    seen = set()
    merged: List[CollectionItem] = []
    for items in pages:
        for item in items:
            key = item.instance_id if item.instance_id is not None else (item.connection_id, item.id)
            if key in seen:
                continue
            seen.add(key)
            merged.append(item)
    return merged
