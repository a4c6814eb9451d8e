"""Stats service: read-only HTTP view of collected posts."""

from tag_aggregation.web.app import create_app
from tag_aggregation.web.server import StatsServer

__all__ = [
    "create_app",
    "StatsServer",
]
