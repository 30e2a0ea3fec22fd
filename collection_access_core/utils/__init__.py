"""Utility modules for the Collection Access Core."""

# Encryption utilities
from .encryption_utils import CredentialVault, generate_key

# Logging utilities
from .logger import ContextAwareLogger, UserContextFilter, configure_logging, get_logger

# Normalization utilities
from .normalization_utils import (
    canonical_url,
    merge_unique_items,
    normalize_collection_item,
    normalize_item_detail,
)

__all__ = [
    # Encryption utilities
    "CredentialVault",
    "generate_key",
    # Logging utilities
    "ContextAwareLogger",
    "UserContextFilter",
    "configure_logging",
    "get_logger",
    # Normalization utilities
    "canonical_url",
    "merge_unique_items",
    "normalize_collection_item",
    "normalize_item_detail",
]
