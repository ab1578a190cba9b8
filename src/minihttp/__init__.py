"""
=============================================================================
MINIHTTP - Minimal HTTP/1.1 Server
=============================================================================

A small HTTP/1.1 server on raw sockets. One request per connection, one
worker thread per connection, five fixed behaviors:

    GET  /                  200, empty body
    GET  /echo/<text>       200, body = <text>
    GET  /user-agent        200, body = User-Agent header
    GET  /files/<name>      200 + file contents, or 404
    POST /files/<name>      201 after writing the body, or 500
    anything else           404

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    minihttp/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m minihttp)
    ├── server.py            # HTTPServer: accept → worker thread → respond
    ├── config.py            # ServerConfig dataclass
    ├── access_log.py        # Per-request access log records
    ├── core/
    │   ├── socket_server.py # Listening socket and accept loop
    │   └── connection.py    # Client socket wrapper
    ├── http/
    │   ├── headers.py       # Case-insensitive multi-valued headers
    │   ├── request.py       # Request parser and errors
    │   ├── response.py      # Response accumulator and serialization
    │   ├── router.py        # Ordered first-match route table
    │   └── status_codes.py  # Status codes and reason phrases
    └── handlers/
        ├── basic.py         # Root, echo, user-agent
        └── files.py         # File read/write under a root directory

=============================================================================
QUICK START
=============================================================================

    from minihttp import HTTPServer, ServerConfig

    server = HTTPServer(ServerConfig(port=4221, directory="/tmp/data"))
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer
from .config import ServerConfig

__all__ = ["HTTPServer", "ServerConfig", "__version__"]
