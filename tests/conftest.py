"""
pytest configuration and fixtures.
"""

import io
import socket
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Generator, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from minihttp import HTTPServer, ServerConfig


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /echo/hello HTTP/1.1\r\n"
        b"Host: localhost:4221\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: */*\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request writing a file."""
    body = b"file contents\n"
    return (
        b"POST /files/notes.txt HTTP/1.1\r\n"
        b"Host: localhost:4221\r\n"
        b"Content-Type: application/octet-stream\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
    ) + body


@pytest.fixture
def stream() -> Callable[[bytes], io.BytesIO]:
    """Wrap raw bytes in a readable binary stream."""
    return io.BytesIO


@pytest.fixture
def file_root(tmp_path: Path) -> Path:
    """Root directory for the file handler."""
    root = tmp_path / "files"
    root.mkdir()
    return root


@dataclass
class RawResponse:
    """A response as read off the wire."""

    raw: bytes
    status_line: str = ""
    status: int = 0
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @classmethod
    def parse(cls, raw: bytes) -> "RawResponse":
        head, _, body = raw.partition(b"\r\n\r\n")
        lines = head.decode("iso-8859-1").split("\r\n")
        headers = {}
        for line in lines[1:]:
            name, _, value = line.partition(": ")
            headers[name] = value
        status = int(lines[0].split(" ")[1]) if lines[0] else 0
        return cls(raw=raw, status_line=lines[0], status=status, headers=headers, body=body)


def exchange(port: int, raw_request: bytes, half_close: bool = False) -> RawResponse:
    """
    Send raw bytes and read until the server closes the connection.

    Args:
        half_close: Shut down our write side after sending, so the server
                    sees EOF (used to exercise truncated requests).
    """
    with socket.create_connection(("127.0.0.1", port), timeout=5.0) as s:
        s.sendall(raw_request)
        if half_close:
            s.shutdown(socket.SHUT_WR)
        chunks = []
        while True:
            chunk = s.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
    return RawResponse.parse(b"".join(chunks))


class TestServer:
    """Test server helper that runs in a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread and wait until it listens."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(5.0):
            raise RuntimeError("Server failed to start")

    def request(self, raw_request: bytes, half_close: bool = False) -> RawResponse:
        return exchange(self.port, raw_request, half_close)

    def stop(self):
        """Stop the server."""
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def config(file_root: Path) -> ServerConfig:
    """Test configuration: OS-assigned port, files under file_root."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        directory=str(file_root),
        timeout=5.0,
        log_level="WARNING",
    )


@pytest.fixture
def server_factory() -> Generator[Callable[..., TestServer], None, None]:
    """
    Start servers with custom config or routes; all are stopped afterwards.

    Usage:
        server = server_factory(config, router=my_router)
    """
    started = []

    def start(config: ServerConfig, router=None) -> TestServer:
        test_srv = TestServer(HTTPServer(config, router=router))
        test_srv.start()
        started.append(test_srv)
        return test_srv

    yield start

    for test_srv in started:
        test_srv.stop()


@pytest.fixture
def test_server(server_factory, config: ServerConfig) -> TestServer:
    """A running server with the built-in routes."""
    return server_factory(config)
