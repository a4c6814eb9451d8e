"""Abstract base dialect for database backends."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from sqlalchemy import Engine

if TYPE_CHECKING:
    from tag_aggregation.config import DatabaseConfig


class BaseDialect(ABC):
    """Abstract base class for database dialects.

    Each dialect implements database-specific URL construction, engine
    configuration and connection event handling.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the dialect name."""
        ...

    @abstractmethod
    def build_url(self, config: "DatabaseConfig") -> str:
        """Build database URL from configuration.

        Args:
            config: Database configuration object

        Returns:
            SQLAlchemy database URL string
        """
        ...

    @abstractmethod
    def get_engine_kwargs(self, config: "DatabaseConfig") -> dict:
        """Get engine-specific keyword arguments.

        Args:
            config: Database configuration object

        Returns:
            Dictionary of keyword arguments for create_engine()
        """
        ...

    def setup_engine_events(self, engine: Engine) -> None:
        """Set up dialect-specific engine event listeners.

        Args:
            engine: SQLAlchemy engine instance
        """
        pass

    def validate_config(self, config: "DatabaseConfig") -> list[str]:
        """Validate dialect-specific configuration.

        Args:
            config: Database configuration object

        Returns:
            List of validation error messages (empty if valid)
        """
        return []
