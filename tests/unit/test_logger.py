"""
Unit tests for logger utilities.
"""

import logging
from unittest.mock import Mock

import pytest

from collection_access_core.context.user_context import UserContext, user_context
from collection_access_core.utils import logger as logger_module
from collection_access_core.utils.logger import (
    ContextAwareLogger,
    UserContextFilter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _reset_function_logger():
    reset_logging()
    yield
    reset_logging()
    UserContext.clear_current_user()


class TestContextAwareLogger:
    """Test ContextAwareLogger functionality."""

    def setup_method(self):
        self.mock_logger = Mock(spec=logging.Logger)
        self.context_logger = ContextAwareLogger(self.mock_logger)

    def test_no_extras(self):
        self.context_logger.info("Test message")
        self.mock_logger.info.assert_called_once_with("Test message", extra={})

    def test_extras_are_rendered_into_message(self):
        self.context_logger.warning("Cache miss", extra={"key": "release:1", "ttl": 3600})

        self.mock_logger.warning.assert_called_once_with(
            "Cache miss | key=release:1 | ttl=3600", extra={"key": "release:1", "ttl": 3600}
        )

    def test_set_level(self):
        self.context_logger.set_level(logging.DEBUG)
        self.mock_logger.setLevel.assert_called_once_with(logging.DEBUG)


class TestUserContextFilter:
    """Test user stamping on log records."""

    def _record(self):
        return logging.LogRecord("test", logging.INFO, __file__, 1, "msg", None, None)

    def test_adds_current_user(self):
        record = self._record()
        with user_context("user-42"):
            assert UserContextFilter().filter(record) is True
        assert record.user_id == "user-42"

    def test_without_user(self):
        record = self._record()
        assert UserContextFilter().filter(record) is True
        assert not hasattr(record, "user_id")


class TestConfigureLogging:
    """Test logger configuration."""

    def test_configure_logging_installs_console_handler(self):
        logger = configure_logging("collection-worker", log_level="DEBUG")

        assert isinstance(logger, ContextAwareLogger)
        assert logger.logger.name == "function.collection-worker"
        assert logger.logger.level == logging.DEBUG
        assert len(logger.logger.handlers) == 1
        assert any(isinstance(f, UserContextFilter) for f in logger.logger.handlers[0].filters)

    def test_get_logger_returns_configured_logger(self):
        configured = configure_logging("collection-worker")
        assert get_logger() is configured

    def test_get_logger_falls_back_to_root(self):
        assert logger_module._function_logger is None
        logger = get_logger()
        assert isinstance(logger, ContextAwareLogger)
        assert logger.logger is logging.getLogger()
