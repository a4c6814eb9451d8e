"""
Stats API blueprint.

Read-only endpoints over the post store.
"""

from typing import Optional

from flask import Blueprint, jsonify, request

from tag_aggregation.core.collector import Collector
from tag_aggregation.core.reporter import Reporter
from tag_aggregation.web.serializers import collector_stats_to_dict


class StatsBlueprint:
    """Blueprint for live report and status endpoints."""

    def __init__(self, reporter: Reporter, collector: Optional[Collector] = None):
        """Initialize the stats blueprint.

        Args:
            reporter: Reporter reading the shared store
            collector: Optional collector whose status is included in ``/``
        """
        self.reporter = reporter
        self.collector = collector
        self.blueprint = Blueprint("stats", __name__)
        self._register_routes()

    def _register_routes(self):
        """Register all stats routes."""
        self.blueprint.add_url_rule(
            "/",
            view_func=self._current_stats,
            methods=["GET"]
        )
        self.blueprint.add_url_rule(
            "/report",
            view_func=self._report,
            methods=["GET"]
        )

    def _current_stats(self):
        """Current status with the live report for the configured tags."""
        posts = self.reporter.report_dicts()

        payload = {
            "stats": "ok",
            "tags": self.reporter.default_tags,
            "count": len(posts),
            "posts": posts,
        }
        if self.collector is not None:
            payload["collector"] = collector_stats_to_dict(self.collector)

        return jsonify(payload)

    def _report(self):
        """Report for ``?tags=a,b``, or the configured tags when absent."""
        raw_tags = request.args.get("tags", "")
        tags = [t.strip() for t in raw_tags.split(",") if t.strip()] or None

        return jsonify(self.reporter.report_dicts(tags))
