"""
Base repository with the operations shared by every model.
"""

from typing import Generic, TypeVar

from sqlalchemy import func
from sqlalchemy.orm import Session

from tag_aggregation.models import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Common read operations over a single ORM model."""

    def __init__(self, session: Session, model: type[ModelT]) -> None:
        """Initialize repository.

        Args:
            session: SQLAlchemy Session instance
            model: ORM model class handled by this repository
        """
        self.session = session
        self.model = model

    def count(self) -> int:
        """Count all records."""
        return self.session.query(func.count(self.model.id)).scalar() or 0
