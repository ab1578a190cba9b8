"""
Request handlers and the server's fixed route table.

    GET  /                → basic.root
    ANY  /files/<name>    → files.FileHandler.handle
    GET  /user-agent      → basic.user_agent
    GET  /echo/<text>     → basic.echo
    *                     → 404
"""

from typing import Optional

from ..http.router import Router, exact, prefix
from .basic import root, echo, user_agent
from .files import FileHandler


def build_router(file_handler: Optional[FileHandler] = None) -> Router:
    """
    Build the route table in priority order.

    Args:
        file_handler: Handler for /files/*. A handler with no root is used
                      when omitted, so those requests are all 404.
    """
    files = file_handler or FileHandler(None)

    router = Router()
    router.add("root", exact("/"), root)
    router.add("files", prefix("/files/"), files.handle)
    router.add("user_agent", exact("/user-agent"), user_agent)
    router.add("echo", prefix("/echo/"), echo)
    return router


__all__ = [
    "FileHandler",
    "build_router",
    "root",
    "echo",
    "user_agent",
]
