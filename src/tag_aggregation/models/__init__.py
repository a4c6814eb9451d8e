"""Data models for tag aggregation."""

from tag_aggregation.models.base import Base
from tag_aggregation.models.post import (
    AggregatedPost,
    PostModel,
    PostRecord,
    TagModel,
    posts_tags,
)

__all__ = [
    "Base",
    "TagModel",
    "PostModel",
    "posts_tags",
    "PostRecord",
    "AggregatedPost",
]
