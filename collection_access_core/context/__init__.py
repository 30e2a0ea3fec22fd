"""Context management for operations and the acting user."""

from .operation_context import OperationContext, operation
from .user_context import UserContext, user_context

__all__ = [
    "operation",
    "OperationContext",
    "UserContext",
    "user_context",
]
