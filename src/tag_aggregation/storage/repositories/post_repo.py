"""
Post repository for database operations.
"""

from datetime import datetime

from sqlalchemy import desc, func, insert, select
from sqlalchemy.orm import Session, selectinload

from tag_aggregation.models import PostModel, PostRecord, TagModel, posts_tags
from tag_aggregation.storage.repositories.base import BaseRepository


class PostRepository(BaseRepository[PostModel]):
    """Repository for Post operations.

    Posts are immutable once written: there is no update or delete path.
    """

    def __init__(self, session: Session) -> None:
        """Initialize repository with a database session.

        Args:
            session: SQLAlchemy Session instance
        """
        super().__init__(session, PostModel)

    def exists(self, uri: str) -> bool:
        """Check whether a post with this URI is stored.

        Args:
            uri: Post URI (dedup key)

        Returns:
            True if a post row exists
        """
        query = select(PostModel.id).where(PostModel.uri == uri).limit(1)
        return self.session.execute(query).first() is not None

    def create(self, record: PostRecord) -> PostModel:
        """Insert a post row from a source record.

        Args:
            record: Incoming post record

        Returns:
            Flushed PostModel with its id assigned
        """
        post = PostModel(
            external_post_id=record.external_id,
            account_id=record.account_id,
            server=record.origin_server,
            uri=record.uri,
            language=record.effective_language,
            content_html=record.content_html,
            content_text=record.content_text,
            created_at=record.created_at_utc,
        )
        self.session.add(post)
        self.session.flush()
        return post

    def link_tag(self, post_id: int, tag_id: int) -> None:
        """Insert one post-tag link row.

        Args:
            post_id: Existing post id
            tag_id: Existing tag id
        """
        self.session.execute(insert(posts_tags).values(post_id=post_id, tag_id=tag_id))

    def count_links(self) -> int:
        """Count post-tag link rows."""
        return self.session.query(func.count()).select_from(posts_tags).scalar() or 0

    def list_tagged_since(self, tag_names: list[str], since: datetime) -> list[PostModel]:
        """List posts carrying any of ``tag_names`` created after ``since``.

        Args:
            tag_names: Tag names to match (any of)
            since: Exclusive lower bound on ``created_at`` (naive UTC)

        Returns:
            Posts newest first, each once, with all tags loaded
        """
        matching_ids = (
            select(posts_tags.c.post_id)
            .join(TagModel, TagModel.id == posts_tags.c.tag_id)
            .where(TagModel.name.in_(tag_names))
        )

        return (
            self.session.query(PostModel)
            .options(selectinload(PostModel.tags))
            .filter(PostModel.id.in_(matching_ids))
            .filter(PostModel.created_at > since)
            .order_by(desc(PostModel.created_at), desc(PostModel.id))
            .all()
        )
