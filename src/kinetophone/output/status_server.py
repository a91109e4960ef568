"""
Status HTTP Server for kinetophone.

Exposes playback state of a running engine for monitoring.

Endpoints:
    GET /health     - Basic health check (200 OK if running)
    GET /status     - JSON playback status
    GET /metrics    - Prometheus-compatible metrics

Usage:
    from kinetophone.output.status_server import StatusServer

    server = StatusServer(port=8080)
    server.set_engine(engine)
    server.start()
"""

import json
import logging
import threading
import time
from http.server import HTTPServer, BaseHTTPRequestHandler
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class StatusRequestHandler(BaseHTTPRequestHandler):
    """HTTP request handler for status endpoints."""

    # Set per server on a dedicated subclass (see StatusServer.start)
    get_status: Optional[Callable[[], Dict[str, Any]]] = None

    def log_message(self, format, *args):
        logger.debug("%s - %s", self.address_string(), format % args)

    def do_GET(self):
        if self.path == '/health':
            self._handle_health()
        elif self.path == '/status':
            self._handle_status()
        elif self.path == '/metrics':
            self._handle_metrics()
        else:
            self.send_error(404, "Not Found")

    def _respond(self, code: int, content_type: str, body: bytes):
        self.send_response(code)
        self.send_header('Content-Type', content_type)
        self.end_headers()
        self.wfile.write(body)

    def _handle_health(self):
        self._respond(200, 'text/plain', b'OK\n')

    def _handle_status(self):
        if not self.get_status:
            self._respond(503, 'application/json', json.dumps({'error': 'No engine connected'}).encode())
            return
        try:
            status = self.get_status()
        except Exception as e:
            logger.error(f"Status request failed: {e}")
            self._respond(500, 'application/json', json.dumps({'error': str(e)}).encode())
            return
        self._respond(200, 'application/json', json.dumps(status, indent=2, default=str).encode())

    def _handle_metrics(self):
        if not self.get_status:
            self._respond(503, 'text/plain', b'# No engine connected\n')
            return
        try:
            metrics = self._format_prometheus_metrics(self.get_status())
        except Exception as e:
            logger.error(f"Metrics request failed: {e}")
            self._respond(500, 'text/plain', f'# Error: {e}\n'.encode())
            return
        self._respond(200, 'text/plain; version=0.0.4', metrics.encode())

    def _format_prometheus_metrics(self, status: Dict[str, Any]) -> str:
        """Format status as Prometheus metrics."""
        stats = status.get('stats', {})
        lines = [
            '# HELP kinetophone_current_time Playback clock position',
            '# TYPE kinetophone_current_time gauge',
            f'kinetophone_current_time {status.get("current_time", 0):.3f}',
            '',
            '# HELP kinetophone_total_duration Length of the timeline',
            '# TYPE kinetophone_total_duration gauge',
            f'kinetophone_total_duration {status.get("total_duration", 0)}',
            '',
            '# HELP kinetophone_playing 1 while playing, 0 while paused',
            '# TYPE kinetophone_playing gauge',
            f'kinetophone_playing {1 if status.get("playing") else 0}',
            '',
            '# HELP kinetophone_playback_rate Clock rate multiplier',
            '# TYPE kinetophone_playback_rate gauge',
            f'kinetophone_playback_rate {status.get("playback_rate", 1.0)}',
            '',
            '# HELP kinetophone_ticks_total Clock callbacks received',
            '# TYPE kinetophone_ticks_total counter',
            f'kinetophone_ticks_total {stats.get("ticks", 0)}',
            '',
            '# HELP kinetophone_enters_total Enter transitions emitted',
            '# TYPE kinetophone_enters_total counter',
            f'kinetophone_enters_total {stats.get("enters", 0)}',
            '',
            '# HELP kinetophone_exits_total Exit transitions emitted',
            '# TYPE kinetophone_exits_total counter',
            f'kinetophone_exits_total {stats.get("exits", 0)}',
            '',
            '# HELP kinetophone_ends_total Times the timeline end was reached',
            '# TYPE kinetophone_ends_total counter',
            f'kinetophone_ends_total {stats.get("ends", 0)}',
        ]

        channels = status.get('channels', {})
        if channels:
            lines.extend([
                '',
                '# HELP kinetophone_channel_active_timings Timings active on a channel',
                '# TYPE kinetophone_channel_active_timings gauge',
            ])
            for name, ch_status in channels.items():
                safe_name = name.replace('\\', '\\\\').replace('"', '\\"')
                lines.append(
                    f'kinetophone_channel_active_timings{{channel="{safe_name}"}} '
                    f'{len(ch_status.get("active", []))}'
                )

        lines.append('')
        return '\n'.join(lines)


class StatusServer:
    """
    HTTP server for playback monitoring.

    Runs in a background thread.
    """

    def __init__(self, port: int = 8080, bind_address: str = '127.0.0.1'):
        """
        Initialize the status server.

        Args:
            port: HTTP port to listen on
            bind_address: Address to bind to
        """
        self.port = port
        self.bind_address = bind_address
        self.server: Optional[HTTPServer] = None
        self.thread: Optional[threading.Thread] = None
        self.engine = None
        self.started_at: Optional[float] = None
        self._running = False

    def set_engine(self, engine):
        """
        Connect to a Kinetophone engine for status reporting.

        Args:
            engine: Kinetophone instance
        """
        self.engine = engine

    def _get_status(self) -> Dict[str, Any]:
        if not self.engine:
            return {'error': 'No engine connected'}

        status = self.engine.status()
        status['timestamp'] = time.time()
        status['uptime_seconds'] = time.time() - (self.started_at or time.time())
        return status

    def start(self):
        """Start the status server in a background thread."""
        if self._running:
            logger.warning("Status server already running")
            return

        handler = type('BoundStatusRequestHandler', (StatusRequestHandler,), {
            'get_status': staticmethod(self._get_status),
        })

        try:
            self.server = HTTPServer((self.bind_address, self.port), handler)
        except OSError as e:
            logger.error(f"Failed to start status server: {e}")
            raise

        # Set timeout so handle_request doesn't block forever
        self.server.timeout = 1.0
        self.started_at = time.time()
        self._running = True

        self.thread = threading.Thread(
            target=self._serve,
            name="StatusServer",
            daemon=True
        )
        self.thread.start()

        logger.info(f"Status server started on http://{self.bind_address}:{self.port}")
        logger.info(f"  GET /health  - Health check")
        logger.info(f"  GET /status  - JSON status")
        logger.info(f"  GET /metrics - Prometheus metrics")

    def _serve(self):
        """Server loop (runs in background thread)."""
        while self._running:
            try:
                self.server.handle_request()
            except OSError as e:
                # Socket closed by stop()
                logger.debug(f"Status server loop ended: {e}")
                break

    def stop(self):
        """Stop the status server."""
        self._running = False
        if self.thread:
            self.thread.join(timeout=2.0)
            self.thread = None
        if self.server:
            self.server.server_close()
            self.server = None
        logger.info("Status server stopped")
