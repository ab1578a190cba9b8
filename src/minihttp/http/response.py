"""
=============================================================================
HTTP RESPONSE
=============================================================================

A mutable response that handlers fill in, and its serialization to wire
bytes.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─ STATUS LINE ───────────────────────────────────────────────────────┐
    │    HTTP/1.1 201 Created\r\n                                         │
    │    ────┬─── ─┬─ ───┬───                                             │
    │     Version Code Phrase                                             │
    └─────────────────────────────────────────────────────────────────────┘
    ┌─ HEADERS ───────────────────────────────────────────────────────────┐
    │    Content-Type: text/plain\r\n                                     │
    │    Content-Length: 0\r\n           ← always computed, never set     │
    └─────────────────────────────────────────────────────────────────────┘
    ┌─ EMPTY LINE ────────────────────────────────────────────────────────┐
    │    \r\n                                                             │
    └─────────────────────────────────────────────────────────────────────┘
    ┌─ BODY ──────────────────────────────────────────────────────────────┐
    │    raw bytes, exactly Content-Length of them                        │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
RESPONSE LIFECYCLE
=============================================================================

    parse ok ──► HTTPResponse(version=request.version)
                     │
                     ▼
                 one handler mutates status / headers / body
                     │
                     ▼
                 to_bytes() ──► Connection.send() ──► close

Content-Length is derived from the final body inside to_bytes(), so it can
never disagree with what is actually sent.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Union

from .headers import Headers
from .request import WIRE_ENCODING
from .status_codes import HTTPStatus, reason_phrase


DEFAULT_CONTENT_TYPE = "text/plain"


def _default_headers() -> Headers:
    return Headers({"Content-Type": DEFAULT_CONTENT_TYPE})


@dataclass
class HTTPResponse:
    """
    Response accumulator.

    Defaults describe a valid empty response:
        HTTPResponse()  →  200 OK, Content-Type: text/plain, empty body
    """

    status: int = HTTPStatus.OK
    headers: Headers = field(default_factory=_default_headers)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """
        The HTTP status line without its CRLF.

        Example: "HTTP/1.1 404 Not Found"
        """
        return f"{self.version} {int(self.status)} {reason_phrase(self.status)}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Replace a header. Returns self for chaining."""
        self.headers.set(name, value)
        return self

    def set_body(self, body: Union[str, bytes]) -> "HTTPResponse":
        """
        Set the body.

        Strings are encoded as UTF-8. Returns self for chaining.
        """
        if isinstance(body, str):
            self.body = body.encode("utf-8")
        else:
            self.body = bytes(body)
        return self

    def to_bytes(self) -> bytes:
        """
        Serialize to the exact bytes written to the socket.

        =====================================================================
        SERIALIZATION FORMAT
        =====================================================================

            {version} {status} {phrase}\r\n
            {Name}: {first value}\r\n        ← one line per header name
            Content-Length: {len(body)}\r\n  ← always last, always computed
            \r\n
            {body}

        A Content-Length a handler may have set is dropped in favour of the
        computed one.
        =====================================================================
        """
        lines = [self.status_line]

        for name, value in self.headers.items():
            if name == "Content-Length":
                continue
            lines.append(f"{name}: {value}")

        lines.append(f"Content-Length: {len(self.body)}")
        lines.append("")

        head = "\r\n".join(lines).encode(WIRE_ENCODING, errors="replace") + b"\r\n"
        return head + self.body


def error_response(status: int, version: str = "HTTP/1.1") -> HTTPResponse:
    """
    Build the empty-bodied response sent when a request could not be parsed.

    Example:
        error_response(HTTPStatus.LENGTH_REQUIRED).to_bytes()
        # b"HTTP/1.1 411 Length Required\r\nContent-Type: text/plain\r\n..."
    """
    return HTTPResponse(status=status, version=version)
