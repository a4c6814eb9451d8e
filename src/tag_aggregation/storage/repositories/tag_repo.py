"""
Tag repository for database operations.
"""

from typing import Optional

from sqlalchemy.orm import Session

from tag_aggregation.models import TagModel
from tag_aggregation.storage.repositories.base import BaseRepository


class TagRepository(BaseRepository[TagModel]):
    """Repository for Tag operations."""

    def __init__(self, session: Session) -> None:
        """Initialize repository with a database session.

        Args:
            session: SQLAlchemy Session instance
        """
        super().__init__(session, TagModel)

    def get_by_name(self, name: str) -> Optional[TagModel]:
        """Get a tag by its exact (case-sensitive) name.

        Args:
            name: Tag name

        Returns:
            TagModel instance or None
        """
        return self.session.query(TagModel).filter(TagModel.name == name).first()

    def upsert(self, name: str) -> TagModel:
        """Return the tag named ``name``, creating it if needed.

        Args:
            name: Tag name

        Returns:
            Existing or newly flushed TagModel
        """
        tag = self.get_by_name(name)
        if tag is not None:
            return tag

        tag = TagModel(name=name)
        self.session.add(tag)
        self.session.flush()
        return tag

    def list_names(self) -> list[str]:
        """List all tag names in lexicographic order."""
        rows = self.session.query(TagModel.name).order_by(TagModel.name).all()
        return [row.name for row in rows]
