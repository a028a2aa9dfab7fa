"""HTTP server that exposes the registry for Prometheus to scrape."""

import logging
import threading
from typing import Optional
from wsgiref.simple_server import WSGIRequestHandler, make_server

from prometheus_client import CollectorRegistry, make_wsgi_app

logger = logging.getLogger(__name__)

METRICS_PATH = '/metrics'


class _QuietHandler(WSGIRequestHandler):
    """Send request logs to the logging module instead of stderr."""

    def log_message(self, format, *args):
        logger.debug("%s - %s", self.address_string(), format % args)


class MetricsServer:
    """Serve the registry in the text exposition format on /metrics."""

    def __init__(self, registry: CollectorRegistry, host: str = '', port: int = 9801):
        self.registry = registry
        self.host = host
        self._requested_port = port
        self._server = None
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        """The port the server is bound to (useful when started on port 0)."""
        if self._server is None:
            return self._requested_port
        return self._server.server_port

    def _create_wsgi_app(self):
        metrics_app = make_wsgi_app(self.registry)

        def app(environ, start_response):
            if environ.get('PATH_INFO', '') != METRICS_PATH:
                start_response('404 Not Found', [('Content-Type', 'text/plain')])
                return [b'Not Found\n']
            return metrics_app(environ, start_response)

        return app

    def start(self):
        """Start serving on a background thread."""
        if self._server is not None:
            raise RuntimeError("metrics server already started")
        self._server = make_server(self.host, self._requested_port, self._create_wsgi_app(),
                                   handler_class=_QuietHandler)
        self._thread = threading.Thread(
            target=self._server.serve_forever,
            name='metrics-server',
            daemon=True
        )
        self._thread.start()
        logger.info("Serving metrics on %s:%d%s", self.host or '0.0.0.0', self.port, METRICS_PATH)

    def close(self):
        """Stop serving and release the socket."""
        if self._server is None:
            return
        self._server.shutdown()
        self._server.server_close()
        if self._thread is not None:
            self._thread.join(timeout=5)
            if self._thread.is_alive():
                logger.warning("Metrics server thread failed to stop")
        self._server = None
        self._thread = None
