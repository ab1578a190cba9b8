"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Everything that turns bytes from TCP into HTTP messages and back:

    headers.py       Case-insensitive, multi-valued header map
    request.py       Request parser and its error taxonomy
    response.py      Response accumulator and serialization
    router.py        Ordered, first-match-wins route table
    status_codes.py  Status codes and reason phrases

=============================================================================
"""

from .headers import Headers, canonical_name
from .request import (
    HTTPRequest,
    RequestParser,
    parse_request,
    TransportError,
    HTTPParseError,
    MalformedRequestLineError,
    HeaderParseError,
    MissingLengthError,
    TruncatedBodyError,
    BodyTooLargeError,
)
from .response import HTTPResponse, error_response
from .router import Router, Route, RouteMatch, exact, prefix
from .status_codes import HTTPStatus, reason_phrase

__all__ = [
    "Headers",
    "canonical_name",
    "HTTPRequest",
    "RequestParser",
    "parse_request",
    "TransportError",
    "HTTPParseError",
    "MalformedRequestLineError",
    "HeaderParseError",
    "MissingLengthError",
    "TruncatedBodyError",
    "BodyTooLargeError",
    "HTTPResponse",
    "error_response",
    "Router",
    "Route",
    "RouteMatch",
    "exact",
    "prefix",
    "HTTPStatus",
    "reason_phrase",
]
