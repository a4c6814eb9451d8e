"""
Background HTTP server for the stats service.
"""

import threading
import time
from typing import Optional

from flask import Flask
from werkzeug.serving import BaseWSGIServer, make_server

from tag_aggregation.errors import StatsServerError
from tag_aggregation.logger import get_logger

logger = get_logger(__name__)


class _InFlightTracker:
    """WSGI middleware counting requests that have not finished yet."""

    def __init__(self, app):
        self.app = app
        self._count = 0
        self._cond = threading.Condition()

    def __call__(self, environ, start_response):
        with self._cond:
            self._count += 1
        try:
            # Responses are small JSON bodies, materialized before returning
            result = self.app(environ, start_response)
            try:
                return list(result)
            finally:
                if hasattr(result, "close"):
                    result.close()
        finally:
            with self._cond:
                self._count -= 1
                self._cond.notify_all()

    @property
    def in_flight(self) -> int:
        with self._cond:
            return self._count

    def wait_idle(self, timeout: float) -> bool:
        """Wait until no request is in flight."""
        with self._cond:
            return self._cond.wait_for(lambda: self._count == 0, timeout=timeout)


class StatsServer:
    """Serves a Flask app on a daemon thread with a bounded shutdown."""

    def __init__(
        self,
        app: Flask,
        host: str = "127.0.0.1",
        port: int = 8080,
        shutdown_grace_seconds: float = 1.0,
    ):
        """Initialize stats server.

        Args:
            app: Flask application to serve
            host: Address to bind
            port: Port to bind (0 picks a free port)
            shutdown_grace_seconds: Maximum wait for in-flight requests
        """
        self.app = app
        self.host = host
        self.port = port
        self.shutdown_grace_seconds = shutdown_grace_seconds

        self._tracker = _InFlightTracker(app)
        self._server: Optional[BaseWSGIServer] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def address(self) -> tuple[str, int]:
        """Bound (host, port), or the configured one before ``start``."""
        if self._server is not None:
            return self._server.server_address[0], self._server.server_port
        return self.host, self.port

    @property
    def url(self) -> str:
        host, port = self.address
        return f"http://{host}:{port}/"

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Bind the listener and serve in the background.

        Raises:
            StatsServerError: If the address cannot be bound
        """
        if self._server is not None:
            logger.warning("HTTP server is already running")
            return

        try:
            server = make_server(self.host, self.port, self._tracker, threaded=True)
        except OSError as e:
            raise StatsServerError(f"Cannot bind {self.host}:{self.port}: {e}") from e
        except SystemExit as e:
            # werkzeug reports a failed bind by exiting the process
            raise StatsServerError(f"Cannot bind {self.host}:{self.port}") from e

        self._server = server
        self._thread = threading.Thread(
            target=self._serve, args=(self._server,), name="stats-http-server", daemon=True
        )
        self._thread.start()

        logger.info(f"HTTP server is available at {self.url}")

    def _serve(self, server: BaseWSGIServer) -> None:
        try:
            server.serve_forever()
            logger.info("HTTP server stopped")
        except Exception as e:
            logger.error(f"HTTP server stopped with error: {e}")

    def shutdown(self) -> bool:
        """Stop accepting requests and drain in-flight ones.

        Waits at most the grace period in total, then closes the listener
        regardless.

        Returns:
            True if the server drained within the grace period
        """
        server, thread = self._server, self._thread
        if server is None or thread is None:
            return True

        logger.debug("HTTP server shutting down")
        deadline = time.monotonic() + self.shutdown_grace_seconds

        # shutdown() blocks until serve_forever returns, so run it aside
        stopper = threading.Thread(target=server.shutdown, name="stats-http-shutdown", daemon=True)
        stopper.start()
        stopper.join(max(deadline - time.monotonic(), 0.0))

        drained = self._tracker.wait_idle(max(deadline - time.monotonic(), 0.0))
        graceful = drained and not stopper.is_alive()
        if not graceful:
            logger.warning(
                f"HTTP server did not drain within {self.shutdown_grace_seconds}s; closing listener"
            )

        server.server_close()
        self._server = None
        self._thread = None
        return graceful
