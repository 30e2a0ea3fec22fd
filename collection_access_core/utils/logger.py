"""
Console logging for the collection access layer.

Extras passed to the logger are rendered into the message as pipe-delimited
``key=value`` pairs so they survive hosts that override formatters, and the
current user id is stamped onto every record by ``UserContextFilter``.
"""

import logging
import sys
from typing import Optional, Union

from ..config import get_config

_function_logger = None


class ContextAwareLogger:
    """
    Logger wrapper that formats extra attributes in message while preserving them.
    """

    def __init__(self, logger):
        """Initialize with an existing logger."""
        self.logger = logger

    def _log_with_formatted_extra(self, level, msg, **kwargs):
        extra = kwargs.pop("extra", {})

        if extra:
            extra_str = " | ".join([f"{k}={v}" for k, v in extra.items()])
            full_msg = f"{msg} | {extra_str}"
        else:
            full_msg = msg

        log_method = getattr(self.logger, level)
        log_method(full_msg, extra=extra)

    def set_level(self, level):
        """Set the logging level of the underlying logger."""
        self.logger.setLevel(level)

    def info(self, msg, **kwargs):
        """Log at INFO level with formatted extra."""
        self._log_with_formatted_extra("info", msg, **kwargs)

    def error(self, msg, **kwargs):
        """Log at ERROR level with formatted extra."""
        self._log_with_formatted_extra("error", msg, **kwargs)

    def warning(self, msg, **kwargs):
        """Log at WARNING level with formatted extra."""
        self._log_with_formatted_extra("warning", msg, **kwargs)

    def debug(self, msg, **kwargs):
        """Log at DEBUG level with formatted extra."""
        self._log_with_formatted_extra("debug", msg, **kwargs)

    def exception(self, msg, **kwargs):
        """Log exception with formatted extra."""
        self._log_with_formatted_extra("exception", msg, **kwargs)


class UserContextFilter(logging.Filter):
    """
    Logging filter that adds the acting user to log records.
    """

    def filter(self, record):
        """
        Add user_id to the log record if available in the current context.

        Args:
            record: LogRecord to modify

        Returns:
            True to include the record in the log output
        """
        # Lazy import to avoid circular dependency
        from ..context.user_context import UserContext

        user_id = UserContext.get_current_user_id()
        if user_id and not hasattr(record, "user_id"):
            record.user_id = user_id

        return True


def configure_logging(
    function_name: str,
    log_level: Optional[Union[int, str]] = None,
) -> "ContextAwareLogger":
    """
    Configure console logging for a host process.

    Args:
        function_name: Name of the hosting function or worker
        log_level: Logging level (default: from config.logging.level)

    Returns:
        The configured logger wrapped with ContextAwareLogger
    """
    global _function_logger

    app_config = get_config()

    if log_level is None:
        log_level = app_config.logging.level

    if isinstance(log_level, str):
        log_level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(f"function.{function_name}")
    logger.setLevel(log_level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    console_handler.addFilter(UserContextFilter())
    logger.addHandler(console_handler)

    wrapped_logger = ContextAwareLogger(logger)
    wrapped_logger.info("Function logger configured", extra={"function_name": function_name})

    _function_logger = wrapped_logger
    return wrapped_logger


def get_logger(
    log_level: Optional[Union[int, str]] = None,
) -> "ContextAwareLogger":
    """
    Get the function logger, falling back to a wrapped root logger.

    Args:
        log_level: Optional log level to set on the fallback logger

    Returns:
        Logger instance
    """
    if _function_logger is not None:
        return _function_logger

    logger = logging.getLogger()

    if log_level is None:
        log_level = get_config().logging.level

    if isinstance(log_level, str):
        log_level = getattr(logging, log_level.upper(), logging.INFO)
    logger.setLevel(log_level)

    return ContextAwareLogger(logger)


def reset_logging() -> None:
    """Forget the configured function logger (used by tests)."""
    global _function_logger
    _function_logger = None
