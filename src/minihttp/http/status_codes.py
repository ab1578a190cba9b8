"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this server can actually produce, and their reason
phrases.

    HTTP/1.1 404 Not Found
             ─── ─────────
              │      │
              │      └── Reason phrase (human readable)
              └───────── Status code (machine readable)

Handlers only ever produce a handful of codes, so the table is kept short.
Any other code is still serialized, with the reason phrase "Unknown".

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes used by the server.

    IntEnum, so members compare equal to plain integers:
        >>> HTTPStatus.NOT_FOUND == 404
        True
    """

    # 2xx SUCCESS
    OK = 200                        # Default for every response
    CREATED = 201                   # File written

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400               # Malformed request line, headers or body
    FORBIDDEN = 403                 # File name escapes the root directory
    NOT_FOUND = 404                 # No route, or no such file
    LENGTH_REQUIRED = 411           # Body-carrying method without Content-Length
    PAYLOAD_TOO_LARGE = 413         # Declared body exceeds the configured limit

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500     # File write failed, or a handler crashed

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line."""
        return _STATUS_PHRASES[self]


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.LENGTH_REQUIRED: "Length Required",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}


def reason_phrase(status: int) -> str:
    """
    Look up the reason phrase for any integer status.

    Example:
        reason_phrase(201)  # "Created"
        reason_phrase(418)  # "Unknown"
    """
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return "Unknown"
