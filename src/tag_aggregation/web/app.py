"""
Flask application for the stats service.
"""

from typing import Optional

from flask import Flask
from werkzeug.exceptions import HTTPException

from tag_aggregation.core.collector import Collector
from tag_aggregation.core.reporter import Reporter
from tag_aggregation.logger import get_logger
from tag_aggregation.web.blueprints.stats import StatsBlueprint
from tag_aggregation.web.serializers import error_response

logger = get_logger(__name__)


def create_app(
    reporter: Reporter,
    collector: Optional[Collector] = None,
    debug: bool = False,
) -> Flask:
    """Create and configure the Flask application.

    The application only reads from the store behind ``reporter``.

    Args:
        reporter: Reporter over the shared store
        collector: Optional collector whose status is exposed
        debug: Enable debug mode

    Returns:
        Configured Flask application
    """
    app = Flask(__name__)
    app.config["DEBUG"] = debug
    app.json.sort_keys = False

    app.register_blueprint(StatsBlueprint(reporter, collector).blueprint)

    # ========================================================================
    # Error Handlers
    # ========================================================================

    @app.errorhandler(HTTPException)
    def http_error(e: HTTPException):
        """Render HTTP errors as JSON."""
        return error_response(e.name.lower(), e.code or 500)

    @app.errorhandler(Exception)
    def server_error(e: Exception):
        """Hide internal failures behind a generic 500."""
        logger.exception(f"Server error: {e}")
        return error_response("internal server error", 500)

    logger.debug("Stats app created")

    return app
