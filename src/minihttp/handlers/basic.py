"""
Fixed, file-free behaviors: root probe, echo and user-agent reflection.
"""

from ..http.request import HTTPRequest, WIRE_ENCODING
from ..http.response import HTTPResponse


def root(request: HTTPRequest, response: HTTPResponse, remainder: str) -> None:
    """GET / is a liveness probe: 200, empty body, default content type."""


def echo(request: HTTPRequest, response: HTTPResponse, remainder: str) -> None:
    """
    Reflect the path remainder as the body.

    The remainder was decoded as ISO-8859-1, so encoding it back yields the
    exact bytes the client sent. An empty remainder leaves the body empty.
    """
    if remainder:
        response.body = remainder.encode(WIRE_ENCODING)


def user_agent(request: HTTPRequest, response: HTTPResponse, remainder: str) -> None:
    """Reflect the User-Agent header (empty when absent)."""
    response.body = request.user_agent.encode(WIRE_ENCODING)
