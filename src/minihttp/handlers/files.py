"""
=============================================================================
FILE HANDLER
=============================================================================

Reads and writes files under one root directory for /files/<name>.

    GET   /files/notes.txt           → 200 + contents, or 404
    POST  /files/notes.txt  (body)   → 201, or 500 + error text

Every method other than GET is treated as a write, HEAD included. A HEAD
request has no body, so it truncates the file to zero bytes.

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

The file name comes straight from the URL, so it is attacker controlled:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  GET /files/../../etc/passwd        ".." escapes the root          │
    │  GET /files//etc/passwd             absolute path replaces root    │
    │  GET /files/link-to-etc/passwd      symlink inside root points out │
    └─────────────────────────────────────────────────────────────────────┘

The handler only ever names files inside its root:

    1. Reject names that are absolute or contain a ".." segment
    2. Join onto the root and resolve() (normalizes, follows symlinks)
    3. Check the resolved path is still relative to the resolved root

Anything failing those checks is answered with 403 Forbidden.

=============================================================================
"""

import os
import logging
from pathlib import Path, PurePosixPath
from typing import Optional

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)

# rw-r--r--
FILE_MODE = 0o644

OCTET_STREAM = "application/octet-stream"


class FileHandler:
    """
    Serves and stores files under a root directory.

    The root is passed in explicitly; with no root every request is a 404.

    Usage:
        files = FileHandler("/srv/data")
        router.add("files", prefix("/files/"), files.handle)
    """

    def __init__(self, root_dir: Optional[str] = None):
        """
        Args:
            root_dir: Directory to read from and write to, or None to
                      disable file access.

        Raises:
            ValueError: root_dir is given but is not a directory.
        """
        self.root_dir: Optional[Path] = None
        if root_dir is not None:
            self.root_dir = Path(root_dir).resolve()
            if not self.root_dir.is_dir():
                raise ValueError(f"File root directory does not exist: {root_dir}")

    def handle(self, request: HTTPRequest, response: HTTPResponse, name: str) -> None:
        """
        Route handler for /files/<name>.

        An empty name is a 404, as is any request when no root is set.
        """
        if not name or self.root_dir is None:
            response.status = HTTPStatus.NOT_FOUND
            return

        path = self.resolve(name)
        if path is None:
            logger.warning(f"Path traversal attempt: {name!r}")
            response.status = HTTPStatus.FORBIDDEN
            return

        if request.method == "GET":
            self.serve(path, response)
        else:
            self.write(path, request.body or b"", response)

    def resolve(self, name: str) -> Optional[Path]:
        """
        Map a URL file name to an absolute path inside the root.

        Returns:
            The resolved path, or None when there is no root or the name
            would escape it.
        """
        if self.root_dir is None or "\x00" in name:
            return None

        candidate = PurePosixPath(name)
        if candidate.is_absolute() or ".." in candidate.parts:
            return None

        # resolve() follows symlinks, so a link pointing outside the root is
        # caught by the relative_to() check below.
        try:
            full_path = (self.root_dir / candidate).resolve()
            full_path.relative_to(self.root_dir)
        except (ValueError, OSError, RuntimeError):
            # RuntimeError: symlink loop on interpreters before 3.13
            return None
        return full_path

    def serve(self, path: Path, response: HTTPResponse) -> None:
        """
        Put a file's contents into the response.

        Missing or unreadable paths (directories included) become 404.
        """
        try:
            content = path.read_bytes()
        except OSError as e:
            logger.debug(f"Cannot read {path}: {e}")
            response.status = HTTPStatus.NOT_FOUND
            return

        response.set_header("Content-Type", OCTET_STREAM)
        response.body = content

    def write(self, path: Path, content: bytes, response: HTTPResponse) -> None:
        """
        Create or truncate a file with the given content.

        Success is 201 with an empty body. Failure is 500 with the error
        text as the body.
        """
        try:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, FILE_MODE)
            with os.fdopen(fd, "wb") as f:
                f.write(content)
        except OSError as e:
            logger.error(f"Failed to write {path}: {e}")
            response.status = HTTPStatus.INTERNAL_SERVER_ERROR
            response.set_body(str(e))
            return

        logger.info(f"Wrote {len(content)} bytes to {path}")
        response.status = HTTPStatus.CREATED
