"""Storage layer modules for tag aggregation."""

from tag_aggregation.storage.database import DatabaseManager
from tag_aggregation.storage.store import DEFAULT_REPORT_WINDOW, PostStore

__all__ = [
    "DatabaseManager",
    "PostStore",
    "DEFAULT_REPORT_WINDOW",
]
