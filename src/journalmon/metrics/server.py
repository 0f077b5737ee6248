"""Metrics server exposing Prometheus metrics and a health endpoint."""

import json
import threading
from collections.abc import Callable
from typing import Any
from wsgiref.simple_server import WSGIRequestHandler, make_server

import structlog
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

log = structlog.get_logger()

# Returns (healthy, details) for /health
HealthCheck = Callable[[], tuple[bool, dict[str, Any]]]
StartResponse = Callable[[str, list[tuple[str, str]]], Any]

_server_lock = threading.Lock()
_server_thread: threading.Thread | None = None


class _QuietHandler(WSGIRequestHandler):
    """WSGI handler that doesn't log every scrape."""

    def log_message(self, format: str, *args: object) -> None:
        pass


def make_app(health: HealthCheck | None = None) -> Callable[..., list[bytes]]:
    """Build the WSGI app serving /metrics and /health."""

    def app(environ: dict[str, Any], start_response: StartResponse) -> list[bytes]:
        path = environ.get("PATH_INFO", "/")

        if path == "/metrics":
            output = generate_latest(REGISTRY)
            status = "200 OK"
            headers = [("Content-Type", CONTENT_TYPE_LATEST)]
        elif path == "/health":
            healthy, details = health() if health else (True, {})
            output = json.dumps({"status": "ok" if healthy else "down", **details}).encode()
            status = "200 OK" if healthy else "503 Service Unavailable"
            headers = [("Content-Type", "application/json")]
        else:
            output = b"Not Found"
            status = "404 Not Found"
            headers = [("Content-Type", "text/plain")]

        start_response(status, headers)
        return [output]

    return app


def start_metrics_server(
    port: int, host: str = "0.0.0.0", health: HealthCheck | None = None
) -> threading.Thread:
    """Start a background thread serving metrics.

    Idempotent: a second call returns the thread already running.

    Args:
        port: Port to listen on
        host: Host to bind to
        health: Optional callback reporting monitor health for /health
    """
    global _server_thread
    with _server_lock:
        if _server_thread is not None and _server_thread.is_alive():
            log.debug("Metrics server already running")
            return _server_thread

        server = make_server(host, port, make_app(health), handler_class=_QuietHandler)

        def serve_forever() -> None:
            try:
                log.info("Metrics server listening", host=host, port=port)
                server.serve_forever()
            except Exception:
                log.exception("Metrics server failed unexpectedly")

        thread = threading.Thread(target=serve_forever, name="metrics-server", daemon=True)
        thread.start()
        _server_thread = thread
        return thread
