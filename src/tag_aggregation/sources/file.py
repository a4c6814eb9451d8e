"""
Static feed source backed by a JSON file of Mastodon statuses.
"""

import json
from pathlib import Path

from tag_aggregation.errors import SourceFetchError
from tag_aggregation.logger import get_logger
from tag_aggregation.models import PostRecord
from tag_aggregation.sources.base import FeedSource, parse_statuses

logger = get_logger(__name__)


class FileSource(FeedSource):
    """Reads every status from a local JSON file.

    The file is re-read on each fetch and its contents are returned for
    every tag; filtering happens through the tags carried by each status.
    """

    def __init__(self, path: str):
        """Initialize file source.

        Args:
            path: Path to a JSON file holding a list of status objects
        """
        self.path = Path(path)

    @property
    def name(self) -> str:
        return f"file:{self.path}"

    def fetch(self, tag_name: str) -> list[PostRecord]:
        logger.debug(f"Reading statuses for tag '{tag_name}' from {self.path}")

        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise SourceFetchError(
                f"Failed to read {self.path}: {e}", source=self.name, tag=tag_name
            ) from e

        if not isinstance(data, list):
            raise SourceFetchError(
                f"Expected a JSON list of statuses in {self.path}", source=self.name, tag=tag_name
            )

        return parse_statuses(data, self.path.name)
