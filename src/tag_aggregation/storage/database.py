"""
Database connection and session management.
"""

import threading
from contextlib import contextmanager, nullcontext
from typing import Generator, Optional

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from tag_aggregation.config import DatabaseConfig
from tag_aggregation.logger import get_logger
from tag_aggregation.models import Base
from tag_aggregation.storage.dialects import get_dialect

logger = get_logger(__name__)


class DatabaseManager:
    """Database manager for context-managed database operations."""

    def __init__(self, db_config: Optional[DatabaseConfig] = None):
        """Initialize database manager.

        Args:
            db_config: Database configuration (defaults to an in-memory database)
        """
        self.db_config = db_config or DatabaseConfig()
        self._dialect = get_dialect("sqlite")
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

        # An in-memory database is a single shared connection; one transaction at a time
        self._session_lock = threading.RLock() if self.db_config.in_memory else None

    @property
    def engine(self) -> Engine:
        """Get the database engine, creating it on first use."""
        if self._engine is None:
            errors = self._dialect.validate_config(self.db_config)
            if errors:
                raise ValueError("; ".join(errors))

            url = self._dialect.build_url(self.db_config)
            engine_kwargs = self._dialect.get_engine_kwargs(self.db_config)
            self._engine = create_engine(url, **engine_kwargs)
            self._dialect.setup_engine_events(self._engine)
            logger.debug(f"Using database: {url}")

        return self._engine

    def init_db(self, drop_all: bool = False) -> None:
        """Initialize database tables.

        Args:
            drop_all: If True, drop existing tables first
        """
        if drop_all:
            logger.warning("Dropping all tables - data will be lost!")
            Base.metadata.drop_all(bind=self.engine)

        Base.metadata.create_all(bind=self.engine)

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Get a database session scoped to one transaction.

        Commits when the block exits normally, rolls back on any exception.

        Yields:
            SQLAlchemy Session instance
        """
        with self._session_lock or nullcontext():
            if self._session_factory is None:
                self._session_factory = sessionmaker(
                    autocommit=False,
                    autoflush=False,
                    expire_on_commit=False,
                    bind=self.engine,
                )
            session = self._session_factory()

            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

    def close(self) -> None:
        """Close database connections."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None

    def __enter__(self) -> "DatabaseManager":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()
