"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the pieces together: the socket server accepts, a worker thread per
connection parses, routes and responds, then closes.

=============================================================================
ARCHITECTURE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          HTTPServer                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   SocketServer (main thread)                                         │
    │       accept() ──► Connection ──► new worker thread                  │
    │                                        │                             │
    │   Worker thread (one per connection)   ▼                             │
    │       RequestParser.parse(conn.reader)                               │
    │           │                                                          │
    │           ├── TransportError ──► log, close (no response)           │
    │           ├── HTTPParseError ──► 4xx, empty body, close             │
    │           ▼                                                          │
    │       HTTPResponse(version=request.version)                          │
    │       Router.dispatch(request, response)                             │
    │           │                                                          │
    │           ▼                                                          │
    │       conn.send(response.to_bytes()) ──► access log ──► close        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Workers share nothing but the read-only config, parser and router, so no
locking is needed. A failure in one connection never reaches the others
or the accept loop.

=============================================================================
"""

import logging
import threading
import time
from typing import Optional, Tuple

from .access_log import RequestLog, log_request
from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionState
from .handlers import FileHandler, build_router
from .http import (
    HTTPRequest, HTTPResponse, HTTPStatus,
    RequestParser, HTTPParseError, TransportError,
    Router, error_response,
)


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    HTTP/1.1 server, one request per connection.

    =========================================================================
    USAGE
    =========================================================================

        server = HTTPServer(ServerConfig(directory="/tmp/data"))
        server.run()   # Blocks until Ctrl+C / SIGTERM

    From another thread (tests):

        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        server.wait_until_ready(5.0)
        ...
        server.shutdown()

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None, router: Optional[Router] = None):
        """
        Args:
            config: Server configuration. Defaults are used if omitted.
            router: Route table. Defaults to the built-in routes with a
                    file handler rooted at config.directory.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._parser = RequestParser(
            max_line_length=self.config.max_line_length,
            max_header_count=self.config.max_header_count,
            max_body_size=self.config.max_body_size,
        )
        self._router = router or build_router(FileHandler(self.config.directory))

    @property
    def router(self) -> Router:
        return self._router

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the real port once listening on port 0."""
        return self._socket_server.address

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self):
        """
        Listen and serve until shutdown() or SIGINT/SIGTERM (blocking).

        Raises:
            OSError: The configured address could not be bound.
        """
        self._setup_logging()
        if self.config.directory:
            logger.info(f"Serving files from {self.config.directory}")
        else:
            logger.info("No --directory given, /files/* will answer 404")

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Interrupted")
        finally:
            logger.info("Server stopped")

    def shutdown(self):
        """Stop accepting connections. In-flight workers finish on their own."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the listening socket is bound."""
        return self._socket_server.wait_until_ready(timeout)

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("minihttp").setLevel(level)

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Hand a new connection to its own worker thread.

        Called on the accept loop's thread, so it must not block.
        """
        worker = threading.Thread(
            target=self._process_connection,
            args=(conn,),
            name=f"conn-{conn.id}",
            daemon=True,
        )
        try:
            worker.start()
        except RuntimeError as e:
            logger.error(f"[{conn.id}] Could not start worker: {e}")
            conn.close()

    def _process_connection(self, conn: Connection):
        """
        One read-parse-route-respond-close cycle (runs in a worker thread).
        """
        started = time.perf_counter()
        request: Optional[HTTPRequest] = None

        with conn:
            try:
                request = self._parser.parse(conn.reader, conn.address)
            except TransportError as e:
                logger.warning(f"[{conn.id}] Error reading request: {e}")
                return
            except HTTPParseError as e:
                logger.info(f"[{conn.id}] Rejected request ({e.status_code}): {e}")
                response = error_response(e.status_code)
            else:
                conn.state = ConnectionState.PROCESSING
                response = self.handle_request(request, conn.id)

            if not conn.send(response.to_bytes()):
                return

            if self.config.access_log:
                duration_ms = (time.perf_counter() - started) * 1000
                record = RequestLog.create(conn.id, conn.client_ip, request, response, duration_ms)
                log_request(record, self.config.log_format)

    def handle_request(self, request: HTTPRequest, conn_id: str = "-") -> HTTPResponse:
        """
        Route a parsed request and return the filled-in response.

        A handler that raises produces an empty 500 instead of killing the
        worker.
        """
        response = HTTPResponse(version=request.version)
        try:
            self._router.dispatch(request, response)
        except Exception as e:
            logger.exception(f"[{conn_id}] Handler error: {e}")
            response = HTTPResponse(
                status=HTTPStatus.INTERNAL_SERVER_ERROR,
                version=request.version,
            )
        return response
