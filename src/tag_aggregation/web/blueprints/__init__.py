"""API blueprints for the stats service."""

from tag_aggregation.web.blueprints.stats import StatsBlueprint

__all__ = [
    "StatsBlueprint",
]
