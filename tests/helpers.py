"""Record factories and fake sources shared by the test suite."""

import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from tag_aggregation.errors import SourceFetchError
from tag_aggregation.models import PostRecord
from tag_aggregation.sources import FeedSource


def make_record(
    uri: str,
    tags: Optional[list[str]] = None,
    created_at: Optional[datetime] = None,
    language: Optional[str] = "en",
    server: str = "mastodon.example",
) -> PostRecord:
    """Build a post record created an hour ago unless told otherwise."""
    return PostRecord(
        external_id=uri.rsplit("/", 1)[-1],
        account_id="42",
        origin_server=server,
        uri=uri,
        language=language,
        content_html=f"<p>{uri}</p>",
        created_at=created_at or datetime.now(timezone.utc) - timedelta(hours=1),
        tag_names=tags if tags is not None else ["outage"],
    )


class FakeSource(FeedSource):
    """In-memory feed source keyed by tag name."""

    def __init__(
        self,
        name: str,
        records: Optional[dict] = None,
        failing_tags: Optional[set] = None,
        call_log: Optional[list] = None,
    ):
        self._name = name
        self.records = records or {}
        self.failing_tags = failing_tags or set()
        self.call_log = call_log if call_log is not None else []

    @property
    def name(self) -> str:
        return self._name

    def fetch(self, tag_name: str) -> list[PostRecord]:
        self.call_log.append((self._name, tag_name))
        if tag_name in self.failing_tags or "*" in self.failing_tags:
            raise SourceFetchError(f"{self._name} is down", source=self._name, tag=tag_name)
        return list(self.records.get(tag_name, []))


class BlockingSource(FeedSource):
    """Source whose fetch hangs until released."""

    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()

    @property
    def name(self) -> str:
        return "blocking"

    def fetch(self, tag_name: str) -> list[PostRecord]:
        self.entered.set()
        self.release.wait(10)
        return []


def wait_until(predicate: Callable[[], bool], timeout: float = 3.0, interval: float = 0.01) -> bool:
    """Poll ``predicate`` until it holds or ``timeout`` elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()

