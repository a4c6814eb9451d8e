"""Repository pattern implementations for data access."""

from tag_aggregation.storage.repositories.post_repo import PostRepository
from tag_aggregation.storage.repositories.tag_repo import TagRepository

__all__ = [
    "PostRepository",
    "TagRepository",
]
