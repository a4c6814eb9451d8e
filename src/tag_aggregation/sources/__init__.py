"""Feed sources producing tagged post records."""

from tag_aggregation.sources.base import FeedSource, parse_status, parse_statuses
from tag_aggregation.sources.file import FileSource
from tag_aggregation.sources.mastodon import MastodonClient, MastodonSource

__all__ = [
    "FeedSource",
    "FileSource",
    "MastodonClient",
    "MastodonSource",
    "parse_status",
    "parse_statuses",
]
