"""
=============================================================================
URL ROUTER
=============================================================================

Maps a request path to exactly one handler using an ordered route table.

=============================================================================
FIRST MATCH WINS
=============================================================================

Routes are tried top to bottom and the first one whose matcher accepts the
path handles the request. Priority is the registration order, not how
specific a pattern looks:

    ┌────┬──────────────┬──────────────────┬──────────────────────────────┐
    │ #  │ Name         │ Matcher          │ GET /echo/files/x            │
    ├────┼──────────────┼──────────────────┼──────────────────────────────┤
    │ 1  │ root         │ exact("/")       │ no                           │
    │ 2  │ files        │ prefix("/files/")│ no                           │
    │ 3  │ user_agent   │ exact(...)       │ no                           │
    │ 4  │ echo         │ prefix("/echo/") │ YES → remainder "files/x"    │
    │ -  │ fallback     │ (anything)       │ not reached                  │
    └────┴──────────────┴──────────────────┴──────────────────────────────┘

=============================================================================
MATCHERS
=============================================================================

A matcher is a plain function of the path:

    matcher(path) → None        no match
    matcher(path) → ""          exact match, nothing captured
    matcher(path) → "rest"      prefix match, everything after the prefix

The remainder is taken verbatim: it may contain slashes, it is never
percent-decoded, and a query string stays attached.

=============================================================================
HANDLERS
=============================================================================

Handlers mutate the response they are given instead of returning one:

    def handler(request, response, remainder): ...

=============================================================================
"""

from dataclasses import dataclass
from typing import Callable, List, Optional
import logging

from .request import HTTPRequest
from .response import HTTPResponse
from .status_codes import HTTPStatus


logger = logging.getLogger(__name__)


Matcher = Callable[[str], Optional[str]]
Handler = Callable[[HTTPRequest, HTTPResponse, str], None]


def exact(expected: str) -> Matcher:
    """Match one path exactly. Captures nothing."""
    def matcher(path: str) -> Optional[str]:
        return "" if path == expected else None
    matcher.__qualname__ = f"exact({expected!r})"
    return matcher


def prefix(expected: str) -> Matcher:
    """
    Match any path starting with a prefix. Captures the rest.

    Example:
        prefix("/echo/")("/echo/a/b?c")  # "a/b?c"
        prefix("/echo/")("/echo/")       # ""
        prefix("/echo/")("/echo")        # None
    """
    def matcher(path: str) -> Optional[str]:
        return path[len(expected):] if path.startswith(expected) else None
    matcher.__qualname__ = f"prefix({expected!r})"
    return matcher


def not_found(request: HTTPRequest, response: HTTPResponse, remainder: str) -> None:
    """Default fallback: 404 with the body left untouched."""
    response.status = HTTPStatus.NOT_FOUND


@dataclass
class Route:
    """A registered route: name for logs, matcher, handler."""

    name: str
    matcher: Matcher
    handler: Handler


@dataclass
class RouteMatch:
    """The route that accepted a path and what its matcher captured."""

    route: Route
    remainder: str


class Router:
    """
    Ordered route table.

    Usage:
        router = Router()
        router.add("root", exact("/"), root)
        router.add("echo", prefix("/echo/"), echo)

        response = HTTPResponse(version=request.version)
        router.dispatch(request, response)
    """

    def __init__(self, fallback: Handler = not_found):
        """
        Args:
            fallback: Handler called when no route matches.
        """
        self._routes: List[Route] = []
        self._fallback = fallback

    def add(self, name: str, matcher: Matcher, handler: Handler) -> Route:
        """Append a route. It has lower priority than every route before it."""
        route = Route(name=name, matcher=matcher, handler=handler)
        self._routes.append(route)
        return route

    def match(self, path: str) -> Optional[RouteMatch]:
        """Return the first route accepting path, or None."""
        for route in self._routes:
            remainder = route.matcher(path)
            if remainder is not None:
                return RouteMatch(route=route, remainder=remainder)
        return None

    def dispatch(self, request: HTTPRequest, response: HTTPResponse) -> Optional[Route]:
        """
        Invoke exactly one handler for the request.

        Returns:
            The route that handled it, or None if the fallback did.
        """
        match = self.match(request.path)
        if match is None:
            logger.debug(f"No route for {request.method} {request.path}")
            self._fallback(request, response, "")
            return None

        logger.debug(f"{request.method} {request.path} → {match.route.name}")
        match.route.handler(request, response, match.remainder)
        return match.route

    def routes(self) -> List[Route]:
        """Registered routes in priority order."""
        return list(self._routes)
