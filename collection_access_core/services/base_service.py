"""
Base service implementation with session ownership and transaction handling.
"""

from contextlib import contextmanager
from typing import Optional

from sqlalchemy.orm import Session

from ..db.db_config import get_db_manager
from ..utils.logger import ContextAwareLogger, get_logger


class SessionManagedService:
    """
    Service that owns and manages its own database session.

    A caller-supplied session is borrowed: the service never commits, rolls
    back or closes it, so several services can share one unit of work.
    """

    def __init__(
        self,
        session: Optional[Session] = None,
        logger: Optional[ContextAwareLogger] = None,
    ):
        """
        Args:
            session: Optional existing session (for testing or coordination)
            logger: Optional logger instance
        """
        if session is not None:
            self.session = session
            self._owns_session = False
        else:
            self.session = self._create_session()
            self._owns_session = True

        self.logger = logger or get_logger()

    def _create_session(self) -> Session:
        """Create a new database session from the global database manager."""
        return get_db_manager().session_factory()

    @contextmanager
    def transaction(self):
        """
        Context manager for transactional operations.

        Usage:
            with service.transaction():
                service.session.add(row)
                # Auto-commits on success, rollback on exception
        """
        try:
            yield self.session
            if self._owns_session:
                self.session.commit()
            else:
                self.session.flush()
        except Exception:
            if self._owns_session:
                self.session.rollback()
            raise

    def commit(self):
        """Manually commit the current transaction."""
        if self._owns_session:
            self.session.commit()

    def rollback(self):
        """Manually rollback the current transaction."""
        if self._owns_session:
            self.session.rollback()

    def close(self):
        """Close the session if we own it."""
        if self._owns_session and self.session:
            self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            self.rollback()
        else:
            self.commit()
        self.close()
