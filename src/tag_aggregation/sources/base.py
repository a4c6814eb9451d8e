"""
Feed source interface and Mastodon status parsing shared by sources.
"""

from abc import ABC, abstractmethod
from typing import Any, Iterable

from pydantic import ValidationError

from tag_aggregation.logger import get_logger
from tag_aggregation.models import PostRecord

logger = get_logger(__name__)


class FeedSource(ABC):
    """Produces the tagged posts of one origin, one tag at a time."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable source name used in logs and errors."""
        ...

    @abstractmethod
    def fetch(self, tag_name: str) -> list[PostRecord]:
        """Fetch the ordered posts for a tag.

        Args:
            tag_name: Tag to fetch (without the leading '#')

        Returns:
            Post records in source order

        Raises:
            SourceFetchError: If the origin cannot be read
        """
        ...

    def close(self) -> None:
        """Release resources held by the source."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__}({self.name!r})>"


def parse_status(status: dict[str, Any], origin_server: str) -> PostRecord:
    """Convert a Mastodon status object into a post record.

    Args:
        status: Status JSON object
        origin_server: Server the status was collected from

    Returns:
        PostRecord

    Raises:
        KeyError, TypeError, ValidationError: If the status is malformed
    """
    account = status.get("account") or {}
    return PostRecord(
        external_id=status["id"],
        account_id=account["id"],
        origin_server=origin_server,
        uri=status["uri"],
        language=status.get("language"),
        content_html=status.get("content") or "",
        content_text=status.get("text"),
        created_at=status["created_at"],
        tag_names=[tag["name"] for tag in status.get("tags") or []],
    )


def parse_statuses(statuses: Iterable[Any], origin_server: str) -> list[PostRecord]:
    """Parse a status list, skipping entries that are not valid statuses.

    Args:
        statuses: Decoded JSON list of statuses
        origin_server: Server the statuses were collected from

    Returns:
        Parsed records in input order
    """
    records = []
    for status in statuses:
        try:
            records.append(parse_status(status, origin_server))
        except (KeyError, TypeError, AttributeError, ValidationError) as e:
            logger.warning(f"Skipping malformed status from {origin_server}: {e}")
    return records
