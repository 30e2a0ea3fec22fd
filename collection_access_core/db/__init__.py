"""
SQLAlchemy models for the collection access layer.
"""

from .db_base import TimestampMixin, UUIDMixin, utc_now
from .db_config import (
    Base,
    DatabaseConfig,
    DatabaseManager,
    get_db_manager,
    import_all_models,
    initialize_db,
    set_db_manager,
)
from .db_connection_models import ExternalConnection
from .db_exclusion_models import ExcludedItem

__all__ = [
    # Base definitions
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "utc_now",
    # Configuration
    "DatabaseConfig",
    "DatabaseManager",
    "get_db_manager",
    "import_all_models",
    "initialize_db",
    "set_db_manager",
    # Models
    "ExcludedItem",
    "ExternalConnection",
]
