"""
Post store: the only mutation and read surface over the persisted schema.

Every ``insert_post`` runs in a single transaction, so a post is never left
with a partial set of tag links.
"""

from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError

from tag_aggregation.config import DatabaseConfig
from tag_aggregation.errors import StoreReadError, StoreWriteError
from tag_aggregation.logger import get_logger
from tag_aggregation.models import AggregatedPost, PostRecord
from tag_aggregation.storage.database import DatabaseManager
from tag_aggregation.storage.repositories import PostRepository, TagRepository

logger = get_logger(__name__)

DEFAULT_REPORT_WINDOW = timedelta(days=2)


def _unique(names: Iterable[str]) -> list[str]:
    """Drop duplicate names, keeping first-seen order."""
    seen: dict[str, None] = {}
    for name in names:
        if name not in seen:
            seen[name] = None
    return list(seen)


class PostStore:
    """Store for tags, posts and post-tag links."""

    def __init__(self, db_manager: DatabaseManager):
        """Initialize the store.

        Args:
            db_manager: DatabaseManager owning the engine
        """
        self.db_manager = db_manager

    @classmethod
    def open(cls, db_config: Optional[DatabaseConfig] = None) -> "PostStore":
        """Open a store and create its schema if missing.

        Args:
            db_config: Database configuration (defaults to in-memory)

        Returns:
            Ready-to-use PostStore
        """
        store = cls(DatabaseManager(db_config))
        store.init_schema()
        return store

    def init_schema(self) -> None:
        """Create tables and indexes that do not exist yet."""
        try:
            self.db_manager.init_db()
        except SQLAlchemyError as e:
            raise StoreWriteError(f"Failed to create schema: {e}") from e

    def close(self) -> None:
        """Dispose of the underlying engine."""
        self.db_manager.close()

    def upsert_tag(self, name: str) -> int:
        """Return the id of tag ``name``, creating the tag if needed.

        Args:
            name: Tag name (case-sensitive)

        Returns:
            Stable tag id
        """
        try:
            with self.db_manager.session() as session:
                return TagRepository(session).upsert(name).id
        except SQLAlchemyError as e:
            raise StoreWriteError(f"Failed to upsert tag {name!r}: {e}") from e

    def exists(self, uri: str) -> bool:
        """Check whether a post with ``uri`` is already stored."""
        try:
            with self.db_manager.session() as session:
                return PostRepository(session).exists(uri)
        except SQLAlchemyError as e:
            raise StoreReadError(f"Failed to look up post {uri!r}: {e}") from e

    def insert_post(self, record: PostRecord, tag_names: Iterable[str]) -> Optional[int]:
        """Insert a post with its tag links unless its URI is already stored.

        The existence check, post insert, tag upserts and link inserts share
        one transaction; on failure nothing from this call is persisted.

        Args:
            record: Candidate post record
            tag_names: Names of the tags to link to the post

        Returns:
            New post id, or None when the post was skipped as a duplicate

        Raises:
            StoreWriteError: If the transaction fails
        """
        names = _unique(tag_names)

        try:
            with self.db_manager.session() as session:
                post_repo = PostRepository(session)
                if post_repo.exists(record.uri):
                    logger.debug(f"Skipping known post: {record.uri}")
                    return None

                post = post_repo.create(record)
                tag_repo = TagRepository(session)
                for name in names:
                    tag = tag_repo.upsert(name)
                    post_repo.link_tag(post.id, tag.id)

                post_id = post.id
        except SQLAlchemyError as e:
            raise StoreWriteError(f"Failed to insert post {record.uri!r}: {e}") from e

        logger.debug(f"Inserted post {post_id} with {len(names)} tags: {record.uri}")
        return post_id

    def report(
        self,
        tag_names: Iterable[str],
        window: timedelta = DEFAULT_REPORT_WINDOW,
    ) -> list[AggregatedPost]:
        """List recent posts tagged with any of ``tag_names``.

        Args:
            tag_names: Tag names to match (any of)
            window: Trailing window measured back from now

        Returns:
            Posts created within the window, newest first, each carrying its
            full sorted tag list
        """
        names = _unique(tag_names)
        if not names:
            return []

        since = datetime.now(timezone.utc).replace(tzinfo=None) - window

        try:
            with self.db_manager.session() as session:
                posts = PostRepository(session).list_tagged_since(names, since)
                return [AggregatedPost.from_model(post) for post in posts]
        except SQLAlchemyError as e:
            raise StoreReadError(f"Failed to build report: {e}") from e

    def count_posts(self) -> int:
        """Count stored posts."""
        try:
            with self.db_manager.session() as session:
                return PostRepository(session).count()
        except SQLAlchemyError as e:
            raise StoreReadError(f"Failed to count posts: {e}") from e

    def count_tags(self) -> int:
        """Count stored tags."""
        try:
            with self.db_manager.session() as session:
                return TagRepository(session).count()
        except SQLAlchemyError as e:
            raise StoreReadError(f"Failed to count tags: {e}") from e

    def count_links(self) -> int:
        """Count stored post-tag links."""
        try:
            with self.db_manager.session() as session:
                return PostRepository(session).count_links()
        except SQLAlchemyError as e:
            raise StoreReadError(f"Failed to count tag links: {e}") from e

    def tag_names(self) -> list[str]:
        """List all stored tag names."""
        try:
            with self.db_manager.session() as session:
                return TagRepository(session).list_names()
        except SQLAlchemyError as e:
            raise StoreReadError(f"Failed to list tags: {e}") from e
