"""Local listener that receives uploader configs pushed from the website.

The browser extension / config wizard POSTs a JSON document to
``http://127.0.0.1:3234/``. The raw bytes are forwarded to the outbound
queue as ``ConfigPushed``; parsing and applying them is up to the consumer.
"""

import logging
import queue
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional
from urllib.parse import urlparse

from .messages import ConfigPushed
from .notifications import send_notification

__all__ = ["ConfigPushServer", "DEFAULT_PORT", "TRUSTED_ORIGIN"]

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3234
TRUSTED_ORIGIN = "https://ascella.host"

MAX_BODY_SIZE = 1024 * 1024


class _ConfigPushHandler(BaseHTTPRequestHandler):
    """Accepts ``POST /`` and answers everything else with an empty 200."""

    def _respond(self, status: int) -> None:
        self.send_response(status)
        self.send_header("Access-Control-Allow-Origin", TRUSTED_ORIGIN)
        self.send_header("Access-Control-Allow-Methods", "GET, POST, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        self.send_header("Content-Length", "0")
        self.end_headers()

    def do_POST(self):  # noqa: N802 - required by BaseHTTPRequestHandler
        try:
            if urlparse(self.path).path != "/":
                self._respond(200)
                return

            length = int(self.headers.get("Content-Length") or 0)
            if length < 0 or length > MAX_BODY_SIZE:
                raise ValueError(f"Refusing body of {length} bytes")
            body = self.rfile.read(length)

            self.server.outbound.put(ConfigPushed(raw=body))
            logger.info(f"Received pushed config ({len(body)} bytes)")
            if self.server.notify:
                send_notification("Ascella", "Config Imported successfully")
        except Exception as e:
            logger.error(f"Failed handling pushed config: {e}")
            self._respond(500)
            return
        self._respond(200)

    def do_GET(self):  # noqa: N802
        self._respond(200)

    def do_OPTIONS(self):  # noqa: N802
        self._respond(200)

    def log_message(self, format, *args):
        """Route default HTTP server logs to debug."""
        logger.debug(f"Config listener: {format % args}")


class ConfigPushServer:
    """Runs the listener on a daemon thread until ``stop``."""

    def __init__(
        self,
        outbound: queue.Queue,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        notify: bool = True,
    ):
        """Initialize the listener.

        Args:
            outbound: Queue shared with the dispatcher
            host: Bind address, loopback only
            port: Bind port (0 picks a free one, for tests)
            notify: Show a desktop notification for each pushed config
        """
        self._outbound = outbound
        self._address = (host, port)
        self._notify = notify
        self._server: Optional[ThreadingHTTPServer] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        if self._server is None:
            return self._address[1]
        return self._server.server_address[1]

    def start(self) -> None:
        """Bind and start serving.

        Raises:
            OSError: If the port is already taken
        """
        self._server = ThreadingHTTPServer(self._address, _ConfigPushHandler)
        self._server.daemon_threads = True
        self._server.outbound = self._outbound
        self._server.notify = self._notify

        self._thread = threading.Thread(
            target=self._server.serve_forever, name="ascella-listener", daemon=True
        )
        self._thread.start()
        logger.info(f"Config listener on {self._address[0]}:{self.port}")

    def stop(self) -> None:
        if self._server is None:
            return
        self._server.shutdown()
        self._server.server_close()
        if self._thread is not None:
            self._thread.join(timeout=2.0)
        self._server = None
        self._thread = None

    def __enter__(self) -> "ConfigPushServer":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
