"""
Acting-user context for the collection access layer.

The user id is kept in thread-local storage so log records and operation
boundaries can be attributed without threading the id through every call.
"""

import threading
from contextlib import contextmanager
from typing import Generator, Optional

from ..exceptions import ErrorCode, ValidationError


class UserContext:
    """Manages the acting user for the current thread."""

    _thread_local = threading.local()

    @classmethod
    def set_current_user(cls, user_id: str) -> None:
        """
        Set the current user ID for the execution context.

        Raises:
            ValidationError: If user_id is empty
        """
        if not user_id or not isinstance(user_id, str) or not user_id.strip():
            raise ValidationError(
                "user_id must be a non-empty string",
                error_code=ErrorCode.MISSING_REQUIRED,
                field="user_id",
            )
        cls._thread_local.user_id = user_id.strip()

    @classmethod
    def get_current_user_id(cls) -> Optional[str]:
        return getattr(cls._thread_local, "user_id", None)

    @classmethod
    def clear_current_user(cls) -> None:
        if hasattr(cls._thread_local, "user_id"):
            delattr(cls._thread_local, "user_id")


@contextmanager
def user_context(user_id: str) -> Generator[str, None, None]:
    """
    Run a block on behalf of ``user_id``, restoring the previous user afterwards.

    Example:
        with user_context("user-1"):
            service.get_collection("user-1")
    """
    previous = UserContext.get_current_user_id()
    UserContext.set_current_user(user_id)
    try:
        yield user_id
    finally:
        if previous:
            UserContext.set_current_user(previous)
        else:
            UserContext.clear_current_user()
