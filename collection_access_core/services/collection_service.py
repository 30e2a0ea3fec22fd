"""
Collection access layer.

Orchestrates connection lookup, the rate budget, credential decryption,
signed remote reads, normalization, exclusion filtering and cross-account
aggregation, with results written through the TTL cache.

Listing pages are cached per connection after exclusion filtering. Edit mode
(the owner asking to see excluded items) bypasses the cache in both
directions so hidden items never land in a shared entry.
"""

from typing import Any, Iterator, List, Optional, Set, Tuple

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from ..config import AppConfig, get_config
from ..constants import EventType, Limits
from ..context.operation_context import operation
from ..db.db_connection_models import ExternalConnection
from ..exceptions import ErrorCode, RateLimitedError, UpstreamError, ValidationError
from ..schemas.collection_schemas import CollectionItem, CollectionPage, ItemDetail, Pagination
from ..schemas.connection_schemas import ConnectionRead, RequestToken
from ..schemas.event_schemas import CollectionEvent
from ..utils.encryption_utils import CredentialVault
from ..utils.logger import get_logger
from ..utils.normalization_utils import (
    merge_unique_items,
    normalize_collection_item,
    normalize_item_detail,
)
from .cache_service import (
    ResultCache,
    build_result_cache,
    collection_cache_key,
    collection_cache_prefix,
    release_cache_key,
)
from .connection_service import ConnectionRegistry
from .discogs_client import DiscogsClient
from .event_sink import EventSink, NullEventSink, build_event_sink, emit_event
from .exclusion_service import ExclusionService
from .rate_limiter import RateLimiter, build_rate_limiter

PageResult = Tuple[List[CollectionItem], Pagination]


class CollectionAccessService:
    """Read access to users' remote collections across their linked accounts."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        exclusions: ExclusionService,
        client: Optional[DiscogsClient] = None,
        rate_limiter: Optional[RateLimiter] = None,
        cache: Optional[ResultCache] = None,
        event_sink: Optional[EventSink] = None,
        config: Optional[AppConfig] = None,
    ):
        self.config = config or get_config()
        self.registry = registry
        self.exclusions = exclusions
        self.client = client or DiscogsClient(self.config.discogs)
        self.rate_limiter = rate_limiter or build_rate_limiter(self.config)
        self.cache = cache or build_result_cache(self.config)
        self.event_sink = event_sink or NullEventSink()
        self.logger = get_logger()

    @classmethod
    def from_session(
        cls,
        session: Session,
        config: Optional[AppConfig] = None,
        redis_client: Any = None,
    ) -> "CollectionAccessService":
        """Wire the full service graph around one database session."""
        config = config or get_config()
        cache = build_result_cache(config, redis_client)
        event_sink = build_event_sink(config)
        vault = CredentialVault(config.security.encryption_key)
        return cls(
            registry=ConnectionRegistry(
                session=session,
                vault=vault,
                cache=cache,
                event_sink=event_sink,
                config=config.connections,
            ),
            exclusions=ExclusionService(session=session, cache=cache, event_sink=event_sink),
            client=DiscogsClient(config.discogs),
            rate_limiter=build_rate_limiter(config, redis_client),
            cache=cache,
            event_sink=event_sink,
            config=config,
        )

    # ==================== HELPERS ====================

    def _acquire(self, user_id: str) -> None:
        result = self.rate_limiter.try_acquire(user_id)
        if result.allowed:
            return

        emit_event(
            self.event_sink,
            CollectionEvent.of(
                EventType.RATE_LIMITED, user_id, limit=result.limit, reset_at=result.reset_at
            ),
        )
        raise RateLimitedError(
            remaining=result.remaining, reset_at=result.reset_at, user_id=user_id
        )

    @staticmethod
    def _validate_paging(page: int, page_size: int) -> None:
        if page < 1:
            raise ValidationError(
                "page must be 1 or greater", field="page", error_code=ErrorCode.INVALID_FORMAT
            )
        if not 1 <= page_size <= Limits.MAX_PAGE_SIZE:
            raise ValidationError(
                f"page_size must be between 1 and {Limits.MAX_PAGE_SIZE}",
                field="page_size",
                error_code=ErrorCode.INVALID_FORMAT,
            )

    @staticmethod
    def _filter_excluded(items: List[CollectionItem], excluded: Set[str]) -> List[CollectionItem]:
        return [item for item in items if str(item.id) not in excluded]

    def _read_cached_page(self, key: str) -> Optional[PageResult]:
        cached = self.cache.get(key)
        if cached is None:
            return None
        try:
            items = [CollectionItem.model_validate(item) for item in cached["items"]]
            return items, Pagination.model_validate(cached["pagination"])
        except (KeyError, TypeError, PydanticValidationError) as e:
            self.logger.warning(f"Discarding unreadable cache entry {key}: {e}")
            self.cache.delete(key)
            return None

    def _fetch_page(
        self, user_id: str, connection: ExternalConnection, page: int, page_size: int
    ) -> PageResult:
        self._acquire(user_id)
        credentials = self.registry.get_credentials(connection)
        response = self.client.get_collection_page(
            credentials, connection.external_username, page, page_size
        )
        try:
            items = [
                normalize_collection_item(release, connection.id) for release in response.releases
            ]
        except PydanticValidationError as e:
            raise UpstreamError(
                "Remote collection item could not be normalized",
                cause=e,
                connection_id=connection.id,
            )
        return items, Pagination.from_remote(response.pagination)

    @staticmethod
    def _aggregate_pagination(page: int, page_size: int, paginations: List[Pagination]) -> Pagination:
        # Connections paginate independently; "more" means any source has more
        return Pagination(
            page=page,
            pages=max(p.pages for p in paginations),
            per_page=page_size,
            items=sum(p.items for p in paginations),
            has_more=any(p.has_more for p in paginations),
        )

    # ==================== LISTING ====================

    @operation()
    def get_collection(
        self,
        user_id: str,
        page: int = 1,
        page_size: int = Limits.DEFAULT_PAGE_SIZE,
        include_excluded: bool = False,
        connection_id: Optional[str] = None,
        aggregate: bool = False,
        viewer_user_id: Optional[str] = None,
    ) -> CollectionPage:
        """
        Return one page of a user's collection.

        Args:
            user_id: Owner of the collection
            page: 1-based page number
            page_size: Items per page (1..100)
            include_excluded: Owner-only; show items hidden from visitors
            connection_id: Read one specific connection
            aggregate: Without ``connection_id``, merge every connection
            viewer_user_id: Who is looking; only a viewer equal to
                ``user_id`` is the owner, anonymous viewers are visitors

        Raises:
            NotConnectedError: The owner has no linked account
            ConnectionNotFoundError: ``connection_id`` does not belong to the owner
            RateLimitedError: The owner's remote call budget is exhausted
            UpstreamError: The remote API failed
        """
        self._validate_paging(page, page_size)

        is_owner = viewer_user_id is not None and viewer_user_id == user_id
        include_excluded = include_excluded and is_owner
        edit_mode = include_excluded

        if aggregate and not connection_id:
            connections = self.registry.resolve_connections(user_id)
        else:
            connections = [self.registry.resolve_connection(user_id, connection_id)]

        excluded = self.exclusions.get_excluded_ids(user_id)

        results: List[PageResult] = []
        cache_hits = 0
        for connection in connections:
            key = collection_cache_key(user_id, connection.id, page, page_size)

            cached = None if edit_mode else self._read_cached_page(key)
            if cached is not None:
                cache_hits += 1
                items, pagination = cached
            else:
                items, pagination = self._fetch_page(user_id, connection, page, page_size)

            if not include_excluded:
                items = self._filter_excluded(items, excluded)

            if cached is None and not edit_mode:
                self.cache.set(
                    key,
                    {"items": items, "pagination": pagination},
                    self.config.cache.listing_ttl_seconds,
                )

            results.append((items, pagination))

        if len(results) == 1:
            items, pagination = results[0]
        else:
            items = merge_unique_items(page_items for page_items, _ in results)
            pagination = self._aggregate_pagination(page, page_size, [p for _, p in results])

        emit_event(
            self.event_sink,
            CollectionEvent.of(
                EventType.COLLECTION_VIEWED,
                user_id,
                viewer_user_id=viewer_user_id,
                page=page,
                connections=len(connections),
                item_count=len(items),
                cache_hits=cache_hits,
            ),
        )

        return CollectionPage(
            items=items,
            pagination=pagination,
            excluded_ids=sorted(excluded) if is_owner else None,
            connection_ids=[connection.id for connection in connections],
        )

    def iter_collection(
        self,
        user_id: str,
        page_size: int = Limits.DEFAULT_PAGE_SIZE,
        connection_id: Optional[str] = None,
    ) -> Iterator[CollectionItem]:
        """
        Walk every page of one connection, excluded items included.

        Each page costs one unit of rate budget; iteration stops on the last
        page reported by the remote API.
        """
        page = 1
        while True:
            result = self.get_collection(
                user_id,
                page=page,
                page_size=page_size,
                include_excluded=True,
                connection_id=connection_id,
                viewer_user_id=user_id,
            )
            yield from result.items
            if page >= result.pagination.pages:
                return
            page += 1

    @operation()
    def invalidate_collection(self, user_id: str) -> int:
        """Drop every cached listing page for the user."""
        return self.cache.invalidate_prefix(collection_cache_prefix(user_id))

    # ==================== DETAIL ====================

    @operation()
    def get_item_detail(
        self, user_id: str, item_id: Any, connection_id: Optional[str] = None
    ) -> ItemDetail:
        """
        Return full detail for one release.

        Detail is not user specific, so a cached entry is served to anyone
        without touching the rate budget.
        """
        key = release_cache_key(item_id)
        cached = self.cache.get(key)
        if cached is not None:
            try:
                detail = ItemDetail.model_validate(cached)
            except PydanticValidationError as e:
                self.logger.warning(f"Discarding unreadable cache entry {key}: {e}")
                self.cache.delete(key)
            else:
                self._emit_item_viewed(user_id, item_id, cache_hit=True)
                return detail

        self._acquire(user_id)
        connection = self.registry.resolve_connection(user_id, connection_id)
        credentials = self.registry.get_credentials(connection)
        payload = self.client.get_release(credentials, item_id)

        try:
            detail = normalize_item_detail(payload, web_base_url=self.config.discogs.web_base_url)
        except PydanticValidationError as e:
            raise UpstreamError("Remote release could not be normalized", cause=e, item_id=item_id)

        self.cache.set(key, detail, self.config.cache.detail_ttl_seconds)
        self._emit_item_viewed(user_id, item_id, cache_hit=False)
        return detail

    def _emit_item_viewed(self, user_id: str, item_id: Any, cache_hit: bool) -> None:
        emit_event(
            self.event_sink,
            CollectionEvent.of(
                EventType.ITEM_VIEWED, user_id, item_id=str(item_id), cache_hit=cache_hit
            ),
        )

    # ==================== ACCOUNT LINKING ====================

    @operation()
    def begin_link(self, callback_url: str) -> RequestToken:
        """Start the OAuth handshake; the caller keeps the request secret until the callback."""
        return self.client.get_request_token(callback_url)

    @operation()
    def link_account(
        self,
        user_id: str,
        request_token: str,
        request_secret: str,
        verifier: str,
        name: Optional[str] = None,
    ) -> ConnectionRead:
        """
        Finish the OAuth handshake and store the resulting connection.

        Raises:
            UpstreamError: Token exchange or identity lookup failed
            CapacityExceededError: The user already has the maximum number of accounts
        """
        credentials = self.client.get_access_token(request_token, request_secret, verifier)
        identity = self.client.get_identity(credentials)

        connection = self.registry.add_connection(
            user_id,
            external_account_id=identity.id,
            external_username=identity.username,
            credentials=credentials,
            name=name,
        )

        emit_event(
            self.event_sink,
            CollectionEvent.of(
                EventType.CONNECTION_LINKED,
                user_id,
                connection_id=connection.id,
                external_username=identity.username,
                is_primary=connection.is_primary,
            ),
        )
        return connection
