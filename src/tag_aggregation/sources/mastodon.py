"""
Mastodon hashtag timeline source with retry logic.
"""

import time
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

import httpx

from tag_aggregation.config import SourceConfig
from tag_aggregation.errors import SourceFetchError
from tag_aggregation.logger import get_logger
from tag_aggregation.models import PostRecord
from tag_aggregation.sources.base import FeedSource, parse_statuses

logger = get_logger(__name__)


@dataclass(frozen=True)
class MastodonClient:
    """Connection handle for one Mastodon server.

    Credentials are obtained elsewhere and injected; a client without an
    access token reads public timelines anonymously.
    """

    server: str
    access_token: Optional[str] = None
    user_agent: str = "tag-aggregation/0.1.0"
    timeout_seconds: float = 30

    @classmethod
    def anonymous(cls, server: str) -> "MastodonClient":
        """Create a client without credentials."""
        return cls(server=server)

    @classmethod
    def from_config(cls, server: str, config: SourceConfig) -> "MastodonClient":
        """Create a client for ``server`` using source settings."""
        return cls(
            server=server,
            access_token=config.access_token,
            user_agent=config.user_agent,
            timeout_seconds=config.timeout_seconds,
        )

    @property
    def base_url(self) -> str:
        if self.server.startswith(("http://", "https://")):
            return self.server.rstrip("/")
        return f"https://{self.server}"

    def headers(self) -> dict[str, str]:
        """Request headers, including the bearer token when present."""
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/json",
        }
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers


class MastodonSource(FeedSource):
    """Reads the public hashtag timeline of a Mastodon server."""

    def __init__(
        self,
        client: MastodonClient,
        page_limit: int = 20,
        max_retries: int = 2,
        retry_delay_seconds: float = 1.0,
    ):
        """Initialize Mastodon source.

        Args:
            client: Connection handle for the server
            page_limit: Statuses requested per fetch
            max_retries: Retries after a timeout, network or 5xx error
            retry_delay_seconds: Base delay between retries (grows linearly)
        """
        self.client = client
        self.page_limit = page_limit
        self.max_retries = max_retries
        self.retry_delay_seconds = retry_delay_seconds

    @classmethod
    def from_config(cls, server: str, config: SourceConfig) -> "MastodonSource":
        """Create a source for ``server`` using source settings."""
        return cls(
            MastodonClient.from_config(server, config),
            page_limit=config.page_limit,
            max_retries=config.max_retries,
            retry_delay_seconds=config.retry_delay_seconds,
        )

    @property
    def name(self) -> str:
        return self.client.server

    def timeline_url(self, tag_name: str) -> str:
        """URL of the hashtag timeline for ``tag_name``."""
        return f"{self.client.base_url}/api/v1/timelines/tag/{quote(tag_name, safe='')}"

    def fetch(self, tag_name: str) -> list[PostRecord]:
        url = self.timeline_url(tag_name)
        logger.debug(f"Fetching timeline for tag '{tag_name}' from {self.name}")

        last_error = None

        for attempt in range(self.max_retries + 1):
            try:
                response = self._fetch_http(url)
                statuses = response.json()

                if not isinstance(statuses, list):
                    raise SourceFetchError(
                        f"Unexpected timeline payload from {self.name}",
                        source=self.name,
                        tag=tag_name,
                    )

                records = parse_statuses(statuses, self.name)
                logger.info(f"Fetched {len(records)} posts tagged '{tag_name}' from {self.name}")
                return records

            except httpx.TimeoutException as e:
                last_error = f"Timeout: {e}"
                logger.warning(f"Timeout fetching {url} (attempt {attempt + 1}/{self.max_retries + 1})")

            except httpx.HTTPStatusError as e:
                last_error = f"HTTP {e.response.status_code}: {e}"

                # Don't retry client errors (4xx)
                if 400 <= e.response.status_code < 500:
                    logger.error(f"Client error fetching {url}: {last_error}")
                    break

                logger.warning(f"HTTP error fetching {url} (attempt {attempt + 1})")

            except httpx.RequestError as e:
                last_error = f"Request error: {e}"
                logger.warning(f"Network error fetching {url} (attempt {attempt + 1})")

            except ValueError as e:
                last_error = f"Invalid JSON: {e}"
                logger.error(f"Invalid response from {url}: {last_error}")
                break

            if attempt < self.max_retries:
                time.sleep(self.retry_delay_seconds * (attempt + 1))

        raise SourceFetchError(
            f"Failed to fetch tag '{tag_name}' from {self.name}: {last_error or 'unknown error'}",
            source=self.name,
            tag=tag_name,
        )

    def _fetch_http(self, url: str) -> httpx.Response:
        """Fetch the timeline URL.

        Args:
            url: Timeline URL

        Returns:
            httpx Response

        Raises:
            httpx.TimeoutException: On timeout
            httpx.HTTPStatusError: On HTTP error
            httpx.RequestError: On network error
        """
        params = {"limit": self.page_limit}

        with httpx.Client(
            timeout=self.client.timeout_seconds,
            follow_redirects=True,
        ) as client:
            response = client.get(url, params=params, headers=self.client.headers())
            response.raise_for_status()
            return response
