"""
Serializer functions for JSON responses.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from flask import jsonify

if TYPE_CHECKING:
    from tag_aggregation.core.collector import Collector


def serialize_datetime(dt: Optional[datetime]) -> Optional[str]:
    """Convert datetime to ISO format string.

    Args:
        dt: Datetime object or None

    Returns:
        ISO format string or None
    """
    return dt.isoformat() if dt else None


def collector_stats_to_dict(collector: "Collector") -> dict:
    """Convert a collector's state and statistics to a dictionary.

    Args:
        collector: Collector instance

    Returns:
        Dictionary representation
    """
    stats = collector.get_stats()
    return {
        "state": collector.state.value,
        "total_cycles": stats.total_cycles,
        "successful_cycles": stats.successful_cycles,
        "failed_cycles": stats.failed_cycles,
        "inserted": stats.inserted,
        "skipped": stats.skipped,
        "fetch_errors": stats.fetch_errors,
        "last_cycle_time": serialize_datetime(stats.last_cycle_time),
        "last_error": stats.last_error,
    }


def error_response(error: str, status: int) -> tuple:
    """JSON error body with an HTTP status.

    Args:
        error: Error message shown to clients
        status: HTTP status code

    Returns:
        Flask response tuple
    """
    return jsonify({"error": error}), status
