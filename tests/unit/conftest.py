"""
Unit test conftest.py - service fixtures wired around the test session.
"""

from typing import Callable
from unittest.mock import Mock

import pytest
from pydantic import SecretStr

from collection_access_core.config import ConnectionConfig, RateLimitConfig
from collection_access_core.schemas.connection_schemas import CredentialPair
from collection_access_core.services.cache_service import InMemoryResultCache
from collection_access_core.services.collection_service import CollectionAccessService
from collection_access_core.services.connection_service import ConnectionRegistry
from collection_access_core.services.discogs_client import DiscogsClient
from collection_access_core.services.event_sink import EventSink
from collection_access_core.services.exclusion_service import ExclusionService
from collection_access_core.services.rate_limiter import InMemoryRateLimiter


class FakeClock:
    """Manually advanced clock for TTL and window tests."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def credentials_factory() -> Callable[[str], CredentialPair]:
    def _make(suffix: str = "a") -> CredentialPair:
        return CredentialPair(
            access_token=SecretStr(f"access-token-{suffix}"),
            access_token_secret=SecretStr(f"access-secret-{suffix}"),
        )

    return _make


@pytest.fixture
def cache(clock) -> InMemoryResultCache:
    return InMemoryResultCache(clock=clock)


@pytest.fixture
def event_sink() -> Mock:
    return Mock(spec=EventSink)


@pytest.fixture
def registry(db_session, vault, cache, event_sink) -> ConnectionRegistry:
    """Connection registry with test session."""
    return ConnectionRegistry(
        session=db_session,
        vault=vault,
        cache=cache,
        event_sink=event_sink,
        config=ConnectionConfig(max_connections_per_user=2),
    )


@pytest.fixture
def exclusions(db_session, cache, event_sink) -> ExclusionService:
    """Exclusion service with test session."""
    return ExclusionService(session=db_session, cache=cache, event_sink=event_sink)


@pytest.fixture
def rate_limiter(clock) -> Mock:
    """In-memory limiter wrapped so tests can count acquire attempts."""
    return Mock(wraps=InMemoryRateLimiter(RateLimitConfig(max_calls=60), clock=clock))


@pytest.fixture
def discogs_client() -> Mock:
    return Mock(spec=DiscogsClient)


@pytest.fixture
def collection_service(
    registry, exclusions, discogs_client, rate_limiter, cache, event_sink, app_config
) -> CollectionAccessService:
    return CollectionAccessService(
        registry=registry,
        exclusions=exclusions,
        client=discogs_client,
        rate_limiter=rate_limiter,
        cache=cache,
        event_sink=event_sink,
        config=app_config,
    )
