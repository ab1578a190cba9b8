"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps an accepted client socket with the small API the server needs:
a buffered reader for parsing, a send for the response, and a clean close.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL
=============================================================================

TCP does not preserve message boundaries. A request sent as

    POST /files/a HTTP/1.1\r\nContent-Length: 5\r\n\r\nhello

may arrive as any number of recv() chunks:

    recv() → "POST /fi"
    recv() → "les/a HTTP/1.1\r\nContent-Len"
    recv() → "gth: 5\r\n\r\nhel"
    recv() → "lo"

socket.makefile("rb") gives a buffered reader whose readline() and read(n)
loop over recv() for us, which is exactly what the parser needs.

=============================================================================
ONE REQUEST PER CONNECTION
=============================================================================

    NEW ──► READING ──► PROCESSING ──► WRITING ──► CLOSED

There is no keep-alive: after one response the connection is closed.

=============================================================================
"""

import socket
import time
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, Optional, Tuple


logger = logging.getLogger(__name__)

# close() discards unread client bytes before releasing the socket, but
# never more than DRAIN_LIMIT bytes or for longer than DRAIN_DEADLINE
# seconds in total, waiting at most DRAIN_TIMEOUT for each chunk.
DRAIN_TIMEOUT = 0.5
DRAIN_DEADLINE = 2.0
DRAIN_LIMIT = 64 * 1024


class ConnectionState(Enum):
    """Where a connection is in its single exchange."""

    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    CLOSED = "closed"


def _short_id() -> str:
    return uuid.uuid4().hex[:8]


@dataclass
class Connection:
    """
    One accepted client.

    Attributes:
        socket: Socket returned by accept().
        address: Peer (ip, port).
        timeout: Seconds any single read or write may block; None for no limit.
        buffer_size: Buffer size of the reader.
        id: Short random id that prefixes every log line for this client.
    """

    socket: socket.socket
    address: Tuple[str, int]
    timeout: Optional[float] = 30.0
    buffer_size: int = 8192
    id: str = field(default_factory=_short_id)
    state: ConnectionState = ConnectionState.NEW
    accepted_at: float = field(default_factory=time.monotonic)

    _reader: Optional[BinaryIO] = field(default=None, repr=False)

    def __post_init__(self):
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0] if self.address else ""

    @property
    def reader(self) -> BinaryIO:
        """
        Buffered binary reader over the socket, created on first use.

        Reads raise socket.timeout (an OSError) once self.timeout passes.
        """
        if self._reader is None:
            self.state = ConnectionState.READING
            self._reader = self.socket.makefile("rb", buffering=self.buffer_size)
        return self._reader

    def send(self, data: bytes) -> bool:
        """
        Write the whole payload with sendall().

        Returns:
            False if the peer went away before everything was written.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False
        return True

    def close(self):
        """
        Finish the exchange and release the socket.

            1. shutdown(SHUT_WR)  the client sees EOF right after the response
            2. drain              unread request bytes would make close()
                                  send RST, which can discard the response
            3. close()            release the reader and the descriptor

        Calling it again is a no-op.
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # peer already gone
        else:
            self._drain()

        if self._reader is not None:
            self._reader.close()
        self.socket.close()

        self.state = ConnectionState.CLOSED
        elapsed = time.monotonic() - self.accepted_at
        logger.debug(f"[{self.id}] Closed after {elapsed:.3f}s")

    def _drain(self):
        """
        Discard pending input within a byte budget and a deadline.

        A client that keeps streaming (say, after a 413) is cut off once
        either runs out; close() then resets the connection.
        """
        deadline = time.monotonic() + DRAIN_DEADLINE
        budget = DRAIN_LIMIT
        try:
            while budget > 0:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self.socket.settimeout(min(DRAIN_TIMEOUT, remaining))
                chunk = self.socket.recv(min(4096, budget))
                if not chunk:
                    return
                budget -= len(chunk)
        except OSError:
            return  # timeout or reset, nothing left to protect

        logger.debug(f"[{self.id}] Client still sending, closing without draining")

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
