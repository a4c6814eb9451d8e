"""
Exception hierarchy for tag aggregation.

Collection-time failures share ``CollectorError`` so that the polling loop can
decide fatal-vs-continue at a single boundary.
"""

from typing import Optional


class TagAggregationError(RuntimeError):
    """Base class for all tag aggregation errors."""


class CollectorError(TagAggregationError):
    """Raised when a collection cycle cannot complete."""


class CollectorStateError(TagAggregationError):
    """Raised on an invalid collector lifecycle transition."""


class SourceFetchError(CollectorError):
    """Raised when a feed source fails to return posts for a tag."""

    def __init__(self, message: str, source: Optional[str] = None, tag: Optional[str] = None):
        super().__init__(message)
        self.source = source
        self.tag = tag


class AllSourcesFailedError(SourceFetchError):
    """Raised when every configured source failed during one cycle."""

    def __init__(self, errors: list[SourceFetchError]):
        summary = "; ".join(str(e) for e in errors)
        super().__init__(f"all sources failed: {summary}")
        self.errors = errors


class StoreError(TagAggregationError):
    """Raised when reading or writing the store fails."""


class StoreWriteError(StoreError, CollectorError):
    """Raised when a write to the store fails. Always fatal to a collection."""


class StoreReadError(StoreError):
    """Raised when a read query against the store fails."""


class StatsServerError(TagAggregationError):
    """Raised when the stats server cannot bind its listening socket."""
