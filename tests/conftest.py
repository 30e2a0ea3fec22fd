"""
Shared test fixtures for the collection access core.

Provides an isolated configuration, an in-memory SQLite database with a
fresh schema per test, a credential vault with a fixed test key, and
builders for remote API payloads.
"""

import base64
from typing import Any, Dict, List, Optional

import pytest
from sqlalchemy.orm import Session

from collection_access_core.config import (
    AppConfig,
    DiscogsConfig,
    EventConfig,
    SecurityConfig,
    StoreConfig,
    reset_config,
    set_config,
)
from collection_access_core.db import DatabaseConfig, DatabaseManager, import_all_models
from collection_access_core.db.db_config import Base, initialize_db
from collection_access_core.schemas.collection_schemas import RemoteCollectionResponse
from collection_access_core.utils.encryption_utils import CredentialVault

TEST_ENCRYPTION_KEY = base64.b64encode(bytes(range(32))).decode("ascii")


@pytest.fixture(autouse=True)
def app_config() -> AppConfig:
    """Deterministic configuration that ignores the host environment."""
    config = AppConfig(
        environment="test",
        store=StoreConfig(redis_url=None),
        security=SecurityConfig(encryption_key=TEST_ENCRYPTION_KEY),
        discogs=DiscogsConfig(
            consumer_key="test-consumer-key", consumer_secret="test-consumer-secret"
        ),
        events=EventConfig(queue_connection_string=None),
    )
    set_config(config)
    yield config
    reset_config()


@pytest.fixture(scope="session")
def db_config() -> DatabaseConfig:
    """Create SQLite in-memory database configuration for testing."""
    return DatabaseConfig(url="sqlite:///:memory:", echo=False)


@pytest.fixture(scope="session")
def db_manager(db_config: DatabaseConfig) -> DatabaseManager:
    """Create and initialize database manager with all models."""
    import_all_models()
    return initialize_db(db_config)


@pytest.fixture(scope="function")
def db_session(db_manager: DatabaseManager) -> Session:
    """
    Create a database session for each test.

    Tables are created before and dropped after every test so each test
    starts from an empty schema.
    """
    session = db_manager.get_session()
    Base.metadata.create_all(db_manager.engine)

    yield session

    session.rollback()
    session.close()
    db_manager.close_session()
    Base.metadata.drop_all(db_manager.engine)


@pytest.fixture
def vault() -> CredentialVault:
    return CredentialVault(TEST_ENCRYPTION_KEY)


@pytest.fixture
def sample_user_id() -> str:
    return "user-owner-1"


@pytest.fixture
def release_factory():
    """Build one entry of a remote collection listing."""

    def _make(
        release_id: int,
        instance_id: Optional[int] = None,
        title: Optional[str] = None,
        artists: tuple = ("Test Artist",),
        labels: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        return {
            "id": release_id,
            "instance_id": instance_id if instance_id is not None else release_id * 10,
            "date_added": "2024-03-01T12:00:00-08:00",
            "basic_information": {
                "id": release_id,
                "title": title or f"Album {release_id}",
                "year": 1997,
                "thumb": f"https://img.example/{release_id}-thumb.jpg",
                "cover_image": f"https://img.example/{release_id}.jpg",
                "artists": [{"name": name} for name in artists],
                "formats": [{"name": "Vinyl"}, {"name": "LP"}],
                "labels": labels if labels is not None else [{"name": "Test Label", "catno": "TL-1"}],
                "genres": ["Rock"],
                "styles": ["Indie Rock"],
            },
        }

    return _make


@pytest.fixture
def page_factory():
    """Build a remote listing envelope around a list of releases."""

    def _make(
        releases: List[Dict[str, Any]], page: int = 1, pages: int = 1, per_page: int = 100
    ) -> RemoteCollectionResponse:
        return RemoteCollectionResponse.model_validate(
            {
                "pagination": {
                    "page": page,
                    "pages": pages,
                    "per_page": per_page,
                    "items": len(releases) * pages,
                },
                "releases": releases,
            }
        )

    return _make
