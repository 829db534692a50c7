# folding_tc/db.py
"""Database session and connection management"""

import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from folding_tc.config import settings
from folding_tc.models.db import Base
from folding_tc.db_config import DatabaseManager

logger = logging.getLogger(__name__)

class Database:
    """Database connection and session manager"""

    def __init__(self):
        """Initialize database manager state"""
        self._engine = None
        self._SessionLocal = None

    def _get_connection_string(self) -> str:
        """
        Get database connection string from settings.

        Raises:
            ValueError: If required settings are missing
        """
        try:
            return DatabaseManager.connection_string(settings)
        except ValueError as e:
            logger.error(f"Failed to initialize database connection: {e}")
            raise

    def init(self, connection_string: Optional[str] = None) -> None:
        """
        Initialize database connection and create tables.

        This should be called once at application startup.

        Args:
            connection_string: Overrides the configured database URL

        Raises:
            SQLAlchemyError: If database initialization fails
        """
        try:
            connection_string = connection_string or self._get_connection_string()
            if connection_string.startswith('sqlite'):
                # In-memory SQLite must share one connection across worker threads
                self._engine = create_engine(
                    connection_string,
                    connect_args={'check_same_thread': False},
                    poolclass=StaticPool
                )
            else:
                self._engine = create_engine(connection_string, pool_pre_ping=True)
            Base.metadata.create_all(self._engine)
            self._SessionLocal = sessionmaker(bind=self._engine, expire_on_commit=False)
            logger.info("Database initialized successfully")

        except SQLAlchemyError as e:
            logger.error(f"Database initialization failed: {e}")
            raise

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope around a series of database operations.

        Usage:
            with db.session() as session:
                session.add(some_object)

        Yields:
            Session: SQLAlchemy database session

        Raises:
            RuntimeError: If database not initialized
            SQLAlchemyError: If database operations fail
        """
        if not self._SessionLocal:
            raise RuntimeError("Database not initialized. Call init() first.")

        session = self._SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        """
        Clean up database connections.
        Should be called during application shutdown.
        """
        if self._engine:
            self._engine.dispose()
            self._engine = None
            self._SessionLocal = None

# Global database instance
db = Database()
