"""Collection and reporting over the post store."""

from tag_aggregation.core.collector import (
    Collector,
    CollectorState,
    CollectorStats,
    CollectStats,
    ErrorPolicy,
)
from tag_aggregation.core.reporter import Reporter, serialize_post

__all__ = [
    "Collector",
    "CollectorState",
    "CollectorStats",
    "CollectStats",
    "ErrorPolicy",
    "Reporter",
    "serialize_post",
]
