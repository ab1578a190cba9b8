"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Reads one HTTP/1.1 request from a byte stream and turns it into an
immutable HTTPRequest.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─ REQUEST LINE ──────────────────────────────────────────────────────┐
    │    POST /files/notes.txt HTTP/1.1\r\n                               │
    │    ─┬── ────────┬─────── ────┬───                                   │
    │   Method       Path       Version                                   │
    └─────────────────────────────────────────────────────────────────────┘
    ┌─ HEADERS ───────────────────────────────────────────────────────────┐
    │    Host: localhost:4221\r\n                                         │
    │    User-Agent: curl/8.4.0\r\n                                       │
    │    Content-Length: 5\r\n                                            │
    └─────────────────────────────────────────────────────────────────────┘
    ┌─ EMPTY LINE ────────────────────────────────────────────────────────┐
    │    \r\n                                                             │
    └─────────────────────────────────────────────────────────────────────┘
    ┌─ BODY (exactly Content-Length bytes, never for GET/HEAD) ───────────┐
    │    hello                                                            │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
READING FROM A STREAM
=============================================================================

TCP is a byte stream with no message boundaries, so the parser pulls from
a buffered reader (socket.makefile("rb")) instead of a single recv():

    readline()  ──► request line
    readline()  ──► header, header, ... until an empty line
    read(n)     ──► body, where n is the declared Content-Length

The same code runs against io.BytesIO in tests.

=============================================================================
ERROR TAXONOMY
=============================================================================

    ┌──────────────────────────────┬────────┬────────────────────────────┐
    │  Exception                   │ Status │  Cause                     │
    ├──────────────────────────────┼────────┼────────────────────────────┤
    │  MalformedRequestLineError   │  400   │  not METHOD SP PATH SP VER │
    │  HeaderParseError            │  400   │  bad "Name: Value" line    │
    │  MissingLengthError          │  411   │  no/invalid Content-Length │
    │  TruncatedBodyError          │  400   │  EOF before full body      │
    │  BodyTooLargeError           │  413   │  length above the limit    │
    ├──────────────────────────────┼────────┼────────────────────────────┤
    │  TransportError              │   -    │  I/O failure or early EOF  │
    └──────────────────────────────┴────────┴────────────────────────────┘

HTTPParseError subclasses are the client's fault and carry the status to
answer with. TransportError means the connection itself is gone, so no
response is attempted.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import BinaryIO, Optional, Tuple
import re

from .headers import Headers


# Request-line and header text is decoded as ISO-8859-1: every byte maps to
# exactly one code point, so paths can be re-encoded byte for byte.
WIRE_ENCODING = "iso-8859-1"

# Methods that never carry a body.
BODYLESS_METHODS = frozenset({"GET", "HEAD"})


class TransportError(Exception):
    """
    Raised when reading from the connection fails.

    Covers socket errors, timeouts and the peer closing the connection
    before a complete request arrived. Aborts this connection only.
    """


class HTTPParseError(Exception):
    """
    Raised when the request bytes are not a valid request.

    Carries the HTTP status code that should be returned to the client.
    """

    status_code = 400

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class MalformedRequestLineError(HTTPParseError):
    """Request line is not exactly METHOD SP PATH SP VERSION."""


class HeaderParseError(HTTPParseError):
    """Header block contains a line that is not a valid header."""


class MissingLengthError(HTTPParseError):
    """Body-carrying method without a usable Content-Length."""

    status_code = 411


class TruncatedBodyError(HTTPParseError):
    """Connection ended before the declared body length was read."""


class BodyTooLargeError(HTTPParseError):
    """Declared Content-Length exceeds the configured maximum."""

    status_code = 413


@dataclass(frozen=True)
class HTTPRequest:
    """
    A parsed HTTP request. Immutable once the parser returns it.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         Request method token, exactly as sent ("GET", "POST")

        path:           Raw request target. Never percent-decoded and the
                        query string is kept: "/echo/a%20b?x=1" stays as is.

        version:        Protocol version token, echoed verbatim in the
                        response status line.

        headers:        Headers mapping (case-insensitive, multi-valued)

        body:           Request body, or None for GET/HEAD. When present its
                        length equals the declared Content-Length.

        client_address: (ip, port) of the peer, for logging

    =========================================================================
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Headers = field(default_factory=Headers)
    body: Optional[bytes] = None
    client_address: Tuple[str, int] = ("", 0)

    @property
    def user_agent(self) -> str:
        """User-Agent header value, or "" when the client sent none."""
        return self.get_header("User-Agent")

    @property
    def content_length(self) -> int:
        """Length of the body actually read (0 when there is none)."""
        return len(self.body) if self.body is not None else 0

    def get_header(self, name: str, default: str = "") -> str:
        """
        Get the first value of a header (case-insensitive lookup).

        Example:
            request.get_header("content-type")
        """
        return self.headers.get(name, default)


class RequestParser:
    """
    Parses one HTTP request from a binary stream.

    ==========================================================================
    PARSER PIPELINE
    ==========================================================================

        stream
          │
          ▼
        1. Request line ──► split on " " into exactly 3 non-empty tokens
          │                  otherwise MalformedRequestLineError
          ▼
        2. Headers ───────► "Name: Value" until an empty line
          │                  otherwise HeaderParseError
          ▼
        3. GET / HEAD? ───► yes: done, body is None
          │
          ▼
        4. Content-Length ► required, digits only
          │                  otherwise MissingLengthError
          ▼
        5. Body ──────────► read exactly that many bytes
                             otherwise TruncatedBodyError

    ==========================================================================
    LIMITS
    ==========================================================================

    A buffered readline() with no limit would happily read a gigabyte of
    junk looking for "\n". Every line is read with max_line_length + 1 so an
    overlong line is detected without buffering it all, and the header
    count and declared body size are capped as well.

    ==========================================================================
    """

    # RFC 7230 token characters allowed in a header name
    HEADER_NAME_PATTERN = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")
    CONTENT_LENGTH_PATTERN = re.compile(r"^[0-9]+$")

    def __init__(
        self,
        max_line_length: int = 8192,
        max_header_count: int = 100,
        max_body_size: int = 10 * 1024 * 1024,
    ):
        """
        Initialize the parser.

        Args:
            max_line_length: Longest accepted request or header line, in bytes.
            max_header_count: Most header lines accepted in one request.
            max_body_size: Largest Content-Length accepted, in bytes.
        """
        self.max_line_length = max_line_length
        self.max_header_count = max_header_count
        self.max_body_size = max_body_size

    def parse(
        self,
        stream: BinaryIO,
        client_address: Tuple[str, int] = ("", 0),
    ) -> HTTPRequest:
        """
        Read and parse a single request.

        Args:
            stream: Readable binary stream positioned at the request start.
            client_address: Peer (ip, port) recorded on the request.

        Returns:
            The parsed HTTPRequest.

        Raises:
            HTTPParseError: The bytes are not a valid request.
            TransportError: Reading failed or the stream ended early.
        """
        method, path, version = self._parse_request_line(
            self._read_line(stream, MalformedRequestLineError)
        )
        headers = self._parse_headers(stream)

        body = None
        if method not in BODYLESS_METHODS:
            length = self._content_length(method, headers)
            body = self._read_body(stream, length)

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            body=body,
            client_address=client_address,
        )

    # =========================================================================
    # LINE READING
    # =========================================================================

    def _read_line(self, stream: BinaryIO, too_long: type) -> str:
        """
        Read one line and strip its terminator.

        CRLF is the HTTP line ending; a bare LF is tolerated.

        Args:
            stream: Source stream.
            too_long: HTTPParseError subclass raised for an overlong line.
        """
        try:
            raw = stream.readline(self.max_line_length + 1)
        except OSError as e:
            raise TransportError(f"Read failed: {e}") from e

        if not raw:
            raise TransportError("Connection closed before the request was complete")

        if not raw.endswith(b"\n"):
            if len(raw) > self.max_line_length:
                raise too_long(f"Line exceeds {self.max_line_length} bytes")
            raise TransportError("Connection closed in the middle of a line")

        line = raw[:-1]
        if line.endswith(b"\r"):
            line = line[:-1]
        return line.decode(WIRE_ENCODING)

    # =========================================================================
    # REQUEST LINE
    # =========================================================================

    def _parse_request_line(self, line: str) -> Tuple[str, str, str]:
        """
        Split "METHOD SP PATH SP VERSION" into its three tokens.

        Splitting is on single spaces, so "GET  / HTTP/1.1" (two spaces)
        yields an empty token and is rejected like "GET /".
        """
        parts = line.split(" ")
        if len(parts) != 3 or not all(parts):
            raise MalformedRequestLineError(f"Invalid request line: {line!r}")

        method, path, version = parts
        return method, path, version

    # =========================================================================
    # HEADERS
    # =========================================================================

    def _parse_headers(self, stream: BinaryIO) -> Headers:
        """
        Read header lines up to and including the empty line.

        Repeated names keep every value in order. A line starting with
        whitespace continues the previous header (obsolete line folding).
        """
        headers = Headers()
        last_name: Optional[str] = None
        count = 0

        while True:
            line = self._read_line(stream, HeaderParseError)
            if not line:
                return headers

            if line[0] in (" ", "\t"):
                if last_name is None:
                    raise HeaderParseError(f"Continuation line before any header: {line!r}")
                headers.extend_last(last_name, line.strip())
                continue

            name, separator, value = line.partition(":")
            if not separator or not self.HEADER_NAME_PATTERN.match(name):
                raise HeaderParseError(f"Malformed header line: {line!r}")

            count += 1
            if count > self.max_header_count:
                raise HeaderParseError(f"More than {self.max_header_count} headers")

            headers.add(name, value.strip())
            last_name = name

    # =========================================================================
    # BODY
    # =========================================================================

    def _content_length(self, method: str, headers: Headers) -> int:
        """
        Extract the mandatory Content-Length for a body-carrying method.

        Several Content-Length headers are only accepted when they agree,
        since disagreeing lengths are the classic request-smuggling vector.
        """
        values = {value.strip() for value in headers.get_all("Content-Length")}
        if not values:
            raise MissingLengthError(f"Content-Length is required for {method}")
        if len(values) > 1:
            raise MissingLengthError(f"Conflicting Content-Length values: {sorted(values)}")

        value = values.pop()
        if not self.CONTENT_LENGTH_PATTERN.match(value):
            raise MissingLengthError(f"Invalid Content-Length: {value!r}")

        # int() refuses strings past a few thousand digits, so anything
        # longer than the limit itself is rejected before conversion.
        digits = value.lstrip("0") or "0"
        if len(digits) > len(str(self.max_body_size)):
            raise BodyTooLargeError(
                f"Content-Length of {len(digits)} digits exceeds limit of {self.max_body_size}"
            )

        length = int(digits)
        if length > self.max_body_size:
            raise BodyTooLargeError(
                f"Body of {length} bytes exceeds limit of {self.max_body_size}"
            )
        return length

    def _read_body(self, stream: BinaryIO, length: int) -> bytes:
        """Read exactly length bytes of body."""
        if length == 0:
            return b""

        try:
            body = stream.read(length)
        except OSError as e:
            raise TransportError(f"Read failed: {e}") from e

        if body is None or len(body) < length:
            received = len(body) if body else 0
            raise TruncatedBodyError(
                f"Incomplete body: expected {length} bytes, got {received}"
            )
        return body


# =============================================================================
# CONVENIENCE FUNCTION
# =============================================================================

def parse_request(
    stream: BinaryIO,
    client_address: Tuple[str, int] = ("", 0),
) -> HTTPRequest:
    """
    Parse a request with default limits.

    Use RequestParser directly when the limits come from configuration.
    """
    return RequestParser().parse(stream, client_address)
