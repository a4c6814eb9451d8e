"""SQLite dialect implementation."""

from pathlib import Path
from typing import TYPE_CHECKING

from sqlalchemy import Engine, event
from sqlalchemy.pool import QueuePool, StaticPool

from tag_aggregation.storage.dialects.base import BaseDialect

if TYPE_CHECKING:
    from tag_aggregation.config import DatabaseConfig


class SQLiteDialect(BaseDialect):
    """SQLite database dialect.

    Features:
    - Embedded database (no server required)
    - WAL mode for concurrent readers alongside the single writer
    - Foreign key constraints enabled
    - StaticPool for in-memory databases, QueuePool for files
    """

    @property
    def name(self) -> str:
        """Get dialect name."""
        return "sqlite"

    def build_url(self, config: "DatabaseConfig") -> str:
        """Build SQLite database URL.

        Args:
            config: Database configuration

        Returns:
            SQLAlchemy URL string

        Note:
            - path: "data/posts.db" -> "sqlite:///data/posts.db"
            - path: "sqlite:///data/posts.db" -> unchanged
            - path: ":memory:" -> "sqlite://"
        """
        if config.in_memory:
            return "sqlite://"

        db_path = config.path

        # Already a URL, return as-is
        if db_path.startswith("sqlite://"):
            return db_path

        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        return f"sqlite:///{db_path}"

    def get_engine_kwargs(self, config: "DatabaseConfig") -> dict:
        """Get SQLite-specific engine kwargs.

        Args:
            config: Database configuration

        Returns:
            Dictionary of engine kwargs

        Note:
            An in-memory database exists per connection, so it is pinned to
            a single shared connection with StaticPool.
        """
        connect_args = {
            "check_same_thread": False,  # Collector and web threads share the engine
            "timeout": 30,  # 30 second timeout for locks
        }

        if config.in_memory:
            return {
                "echo": config.echo,
                "connect_args": connect_args,
                "poolclass": StaticPool,
            }

        return {
            "echo": config.echo,
            "connect_args": connect_args,
            "poolclass": QueuePool,
            "pool_size": config.pool_size,
            "max_overflow": config.max_overflow,
        }

    def setup_engine_events(self, engine: Engine) -> None:
        """Set up SQLite PRAGMA statements.

        Args:
            engine: SQLAlchemy engine
        """
        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    def validate_config(self, config: "DatabaseConfig") -> list[str]:
        """Validate SQLite configuration.

        Args:
            config: Database configuration

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if config.in_memory or config.path.startswith("sqlite://"):
            return errors

        db_path = Path(config.path)
        if db_path.exists() and not db_path.is_file():
            errors.append(f"Database path exists but is not a file: {config.path}")

        return errors
