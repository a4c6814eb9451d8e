"""
Post and tag data models for collected hashtag timelines.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tag_aggregation.models.base import Base

DEFAULT_LANGUAGE = "en"

# Association table for the many-to-many post <-> tag relationship
posts_tags = Table(
    "posts_tags",
    Base.metadata,
    Column("post_id", Integer, ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class TagModel(Base):
    """SQLAlchemy ORM model for Tag."""

    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)

    posts: Mapped[list["PostModel"]] = relationship(
        "PostModel", secondary=posts_tags, back_populates="tags"
    )

    def __repr__(self) -> str:
        return f"<TagModel(id={self.id}, name='{self.name}')>"


class PostModel(Base):
    """SQLAlchemy ORM model for Post."""

    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    external_post_id: Mapped[str] = mapped_column("post_id", String(255), nullable=False)
    account_id: Mapped[str] = mapped_column(String(255), nullable=False)
    server: Mapped[str] = mapped_column(String(255), nullable=False)

    # Deduplication key
    uri: Mapped[str] = mapped_column(String(2048), unique=True, nullable=False, index=True)

    language: Mapped[str] = mapped_column(
        "lang", String(16), default=DEFAULT_LANGUAGE, server_default=DEFAULT_LANGUAGE, nullable=False
    )
    content_html: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    content_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Stored as naive UTC
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)

    tags: Mapped[list["TagModel"]] = relationship(
        "TagModel", secondary=posts_tags, back_populates="posts"
    )

    def __repr__(self) -> str:
        return f"<PostModel(id={self.id}, uri='{self.uri}')>"


# Pydantic models for sources and reports


class PostRecord(BaseModel):
    """A candidate post produced by a feed source."""

    external_id: str = Field(..., description="Post ID on the origin server")
    account_id: str = Field(..., description="Author account ID on the origin server")
    origin_server: str = Field(..., description="Server the post was collected from")
    uri: str = Field(..., min_length=1, description="Canonical post URI (dedup key)")
    language: Optional[str] = Field(None, description="Post language, 'en' when missing")
    content_html: str = Field("", description="Post body as HTML")
    content_text: Optional[str] = Field(None, description="Plain text body when supplied")
    created_at: datetime = Field(..., description="Creation time on the origin server")
    tag_names: list[str] = Field(default_factory=list, description="Tags attached to the post")

    @field_validator("external_id", "account_id", mode="before")
    @classmethod
    def coerce_identifier(cls, v):
        """Accept numeric identifiers."""
        if isinstance(v, int):
            return str(v)
        return v

    @property
    def effective_language(self) -> str:
        """Language to persist for this record."""
        return self.language or DEFAULT_LANGUAGE

    @property
    def created_at_utc(self) -> datetime:
        """Creation time as naive UTC, the stored representation."""
        if self.created_at.tzinfo is None:
            return self.created_at
        return self.created_at.astimezone(timezone.utc).replace(tzinfo=None)


class AggregatedPost(BaseModel):
    """A stored post with its complete, sorted tag list."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    external_post_id: str
    account_id: str
    server: str
    uri: str
    language: str
    content: Optional[str] = None
    tag_list: list[str] = Field(default_factory=list)
    created_at: datetime

    @classmethod
    def from_model(cls, post: PostModel) -> "AggregatedPost":
        """Build an aggregated view of an ORM post.

        Args:
            post: PostModel with its tags loaded

        Returns:
            AggregatedPost with ``created_at`` as aware UTC
        """
        return cls(
            id=post.id,
            external_post_id=post.external_post_id,
            account_id=post.account_id,
            server=post.server,
            uri=post.uri,
            language=post.language,
            content=post.content_html,
            tag_list=sorted(tag.name for tag in post.tags),
            created_at=post.created_at.replace(tzinfo=timezone.utc),
        )
