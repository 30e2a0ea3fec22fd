"""
Database settings and engine lifecycle for the connection and exclusion tables.

The store is addressed by a single SQLAlchemy URL, normally taken from
``DATABASE_URL``. SQLite URLs get a thread-shareable engine without pool
sizing; anything else gets a sized connection pool.
"""

import os
from typing import Any, Optional

from pydantic import BaseModel, Field
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base, scoped_session, sessionmaker

from ..constants import EnvironmentVariable
from ..exceptions import ErrorCode, ServiceError, ValidationError
from ..utils.logger import get_logger

# Base class for all SQLAlchemy models
Base: Any = declarative_base()


class DatabaseConfig(BaseModel):
    """Where the registry and exclusion tables live."""

    url: Optional[str] = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.DATABASE_URL.value) or None,
        description="SQLAlchemy database URL",
    )
    pool_size: int = Field(default=5, gt=0)
    max_overflow: int = Field(default=10, ge=0)
    pool_timeout: int = Field(default=30, gt=0)
    echo: bool = False

    def get_connection_string(self) -> str:
        if not self.url:
            raise ValidationError(
                f"{EnvironmentVariable.DATABASE_URL.value} is not configured",
                error_code=ErrorCode.MISSING_REQUIRED,
                field="url",
            )
        return self.url

    @property
    def is_sqlite(self) -> bool:
        return make_url(self.get_connection_string()).get_backend_name() == "sqlite"

    def __repr__(self) -> str:
        url = make_url(self.url).render_as_string(hide_password=True) if self.url else None
        return f"DatabaseConfig(url={url!r}, pool_size={self.pool_size}, echo={self.echo})"


class DatabaseManager:
    """Owns the engine and the session factory services draw sessions from."""

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self.engine = self._create_engine()
        self.session_factory = sessionmaker(bind=self.engine)
        self.scoped_session = scoped_session(self.session_factory)

    def _create_engine(self) -> Engine:
        connection_string = self.config.get_connection_string()
        if self.config.is_sqlite:
            return create_engine(
                connection_string,
                echo=self.config.echo,
                connect_args={"check_same_thread": False},
            )
        return create_engine(
            connection_string,
            echo=self.config.echo,
            pool_size=self.config.pool_size,
            max_overflow=self.config.max_overflow,
            pool_timeout=self.config.pool_timeout,
            pool_pre_ping=True,
        )

    def create_tables(self) -> None:
        Base.metadata.create_all(self.engine)

    def get_session(self) -> Session:
        return self.scoped_session()

    def close_session(self) -> None:
        self.scoped_session.remove()


def import_all_models():
    """Register the connection and exclusion tables with the metadata."""
    from sqlalchemy.orm import configure_mappers

    from .db_connection_models import ExternalConnection  # noqa
    from .db_exclusion_models import ExcludedItem  # noqa

    configure_mappers()


_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    """
    Get the global database manager instance.

    Raises:
        ServiceError: If no database manager has been initialized
    """
    if _db_manager is None:
        raise ServiceError(
            "Database manager not initialized. Call initialize_db() first.",
            error_code=ErrorCode.CONFIGURATION_ERROR,
            operation="get_db_manager",
        )
    return _db_manager


def set_db_manager(manager: Optional[DatabaseManager]) -> None:
    global _db_manager
    _db_manager = manager


def initialize_db(config: Optional[DatabaseConfig] = None) -> DatabaseManager:
    """Build the global manager from ``config`` (or the environment) and create the tables."""
    global _db_manager

    config = config or DatabaseConfig()
    manager = DatabaseManager(config)
    get_logger().info("Initializing database", extra={"sqlite": config.is_sqlite})

    import_all_models()
    manager.create_tables()

    _db_manager = manager
    return manager
