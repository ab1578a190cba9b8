"""
=============================================================================
TCP LISTENER
=============================================================================

Owns the listening socket and the accept loop. Every accepted client is
wrapped in a Connection and passed to a callback; what happens next is the
HTTP layer's business.

=============================================================================
LIFECYCLE
=============================================================================

    start(on_connection)
        │
        ├── _open_listener()     socket → setsockopt → bind → listen
        │                        (bind failure is logged and re-raised)
        ├── _install_signals()   SIGINT / SIGTERM → shutdown()
        │                        (main thread only)
        ├── ready.set()          wait_until_ready() returns True from here
        │
        ├── accept loop ─────────────────────────────────────────┐
        │     accept() ──► Connection ──► on_connection(conn)    │
        │     timeout  ──► re-check the stop flag                │
        │     OSError  ──► log, keep accepting                   │
        │ ◄──────────────────────────────────────────────────────┘
        │
        └── _close_listener()    restore signals, close socket

The accept loop runs with a short socket timeout. shutdown() only flips a
flag, so it is safe from signal handlers and other threads, and the loop
notices within POLL_INTERVAL seconds.

=============================================================================
SOCKET OPTIONS
=============================================================================

    SO_REUSEADDR   rebind right after a restart instead of failing with
                   "Address already in use" while old sockets sit in
                   TIME_WAIT
    TCP_NODELAY    responses are written in one sendall(); do not hold
                   the tail back waiting for more data (Nagle)

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Callable, Dict, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


ConnectionCallback = Callable[[Connection], None]


class SocketServer:
    """
    Accepts TCP connections until told to stop.

    Usage:
        listener = SocketServer(config)
        listener.start(lambda conn: ...)   # blocks

        # elsewhere
        listener.wait_until_ready(5.0)
        listener.shutdown()
    """

    POLL_INTERVAL = 0.5

    def __init__(self, config: ServerConfig):
        self.config = config
        self._listener: Optional[socket.socket] = None
        self._accepting = False
        self._ready = threading.Event()
        self._saved_handlers: Dict[signal.Signals, object] = {}

    @property
    def address(self) -> Tuple[str, int]:
        """
        (host, port) actually bound, or the configured pair before start().

        With port 0 this is where the OS-assigned port shows up.
        """
        if self._listener is None:
            return (self.config.host, self.config.port)
        host, port = self._listener.getsockname()[:2]
        return (host, port)

    # =========================================================================
    # START / STOP
    # =========================================================================

    def start(self, on_connection: ConnectionCallback) -> None:
        """
        Listen and accept until shutdown().

        Args:
            on_connection: Receives each accepted Connection. Runs on the
                           accept thread, so it must hand off and return.

        Raises:
            OSError: The configured address could not be bound.
        """
        self._listener = self._open_listener()
        self._accepting = True
        self._install_signals()

        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")
        self._ready.set()

        try:
            while self._accepting:
                conn = self._accept_one()
                if conn is not None:
                    on_connection(conn)
        finally:
            self._close_listener()

    def shutdown(self) -> None:
        """Ask the accept loop to exit. Idempotent, callable from any thread."""
        if self._accepting:
            logger.info("Shutting down listener")
        self._accepting = False

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. False on timeout."""
        return self._ready.wait(timeout)

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _open_listener(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.settimeout(self.POLL_INTERVAL)

        try:
            sock.bind((self.config.host, self.config.port))
            sock.listen(self.config.backlog)
        except OSError as e:
            logger.error(f"Cannot listen on {self.config.host}:{self.config.port}: {e}")
            sock.close()
            raise
        return sock

    def _accept_one(self) -> Optional[Connection]:
        """
        Accept a single client.

        Returns None when the poll interval elapsed or accept() failed. A
        failed accept() affects only that client, so it is logged and the
        loop goes on.
        """
        try:
            client, address = self._listener.accept()
        except socket.timeout:
            return None
        except OSError as e:
            if self._accepting:
                logger.error(f"accept() failed: {e}")
            return None

        logger.debug(f"Accepted {address[0]}:{address[1]}")
        return Connection(
            socket=client,
            address=address,
            timeout=self.config.timeout,
            buffer_size=self.config.buffer_size,
        )

    def _install_signals(self) -> None:
        """
        Route SIGINT/SIGTERM to shutdown().

        signal.signal() only works on the main thread; servers started from
        a background thread (tests, embedding) are stopped via shutdown().
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def on_signal(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, stopping")
            self.shutdown()

        for sig in (signal.SIGINT, signal.SIGTERM):
            self._saved_handlers[sig] = signal.signal(sig, on_signal)

    def _close_listener(self) -> None:
        for sig, previous in self._saved_handlers.items():
            signal.signal(sig, previous)
        self._saved_handlers.clear()

        if self._listener is not None:
            self._listener.close()
            self._listener = None

        self._ready.clear()
        logger.info("Listener closed")
