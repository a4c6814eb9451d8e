"""
Read-side aggregation over the post store.
"""

import json
from datetime import timedelta
from typing import Iterable, Optional

from tag_aggregation.config import ReportConfig
from tag_aggregation.models import AggregatedPost
from tag_aggregation.storage import PostStore


def serialize_post(post: AggregatedPost) -> dict:
    """Convert an aggregated post to its report dictionary.

    Args:
        post: AggregatedPost instance

    Returns:
        Dictionary with uri, lang, content, tag_list and created_at
    """
    return {
        "uri": post.uri,
        "lang": post.language,
        "content": post.content,
        "tag_list": post.tag_list,
        "created_at": post.created_at.isoformat(),
    }


class Reporter:
    """Reports recently collected posts for a set of tags."""

    def __init__(self, store: PostStore, config: Optional[ReportConfig] = None):
        """Initialize reporter.

        Args:
            store: Store to read from
            config: Report settings (trailing window, default tags)
        """
        config = config or ReportConfig()

        self.store = store
        self.window = timedelta(hours=config.window_hours)
        self.default_tags = list(config.tags)

    def report(self, tag_names: Optional[Iterable[str]] = None) -> list[AggregatedPost]:
        """List posts for ``tag_names`` within the trailing window.

        Args:
            tag_names: Tags to match; the configured tags when None

        Returns:
            Posts newest first
        """
        tags = list(tag_names) if tag_names is not None else self.default_tags
        return self.store.report(tags, window=self.window)

    def report_dicts(self, tag_names: Optional[Iterable[str]] = None) -> list[dict]:
        """Same as ``report`` with each post serialized to a dictionary."""
        return [serialize_post(post) for post in self.report(tag_names)]

    @staticmethod
    def render_json(posts: list[AggregatedPost], indent: int = 2) -> str:
        """Render posts as a JSON array.

        Args:
            posts: Posts to render
            indent: JSON indentation

        Returns:
            JSON text
        """
        return json.dumps([serialize_post(post) for post in posts], indent=indent, ensure_ascii=False)
