"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All server settings in one dataclass, read-only once the server starts.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    Priority (highest to lowest):

    1. Command-line arguments
       └── python -m minihttp --directory /tmp/data --port 4221

    2. Environment variables
       └── HTTP_DIRECTORY=/tmp/data python -m minihttp

    3. Default values (in this dataclass)

=============================================================================
"""

import math
import os
from dataclasses import dataclass
from typing import Optional


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK
    - host, port, backlog, buffer_size, timeout

    REQUEST LIMITS
    - max_line_length, max_header_count, max_body_size

    FILES
    - directory

    LOGGING
    - log_level, log_format, access_log

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "localhost"
    """Address to bind. Loopback only by default."""

    port: int = 4221
    """Port to listen on. 0 lets the OS pick a free one."""

    backlog: int = 128
    """Maximum number of queued, not yet accepted, connections."""

    buffer_size: int = 8192
    """Read buffer size for each connection's stream, in bytes."""

    timeout: Optional[float] = 30.0
    """
    Per-connection socket timeout in seconds.

    None blocks forever on a silent peer.
    """

    # ─────────────────────────────────────────────────────────────────────
    # REQUEST LIMITS
    # ─────────────────────────────────────────────────────────────────────

    max_line_length: int = 8192
    """Longest request line or header line accepted, in bytes."""

    max_header_count: int = 100
    """Most header lines accepted in one request."""

    max_body_size: int = 10 * 1024 * 1024  # 10 MB
    """Largest Content-Length accepted. Larger requests get 413."""

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    directory: Optional[str] = None
    """
    Root directory for /files/*.

    None disables file access: every /files/* request is a 404.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_format: str = "text"
    """Access log format: 'text' (Apache style) or 'json'."""

    access_log: bool = True
    """Emit one access log record per response."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTP_HOST        Server host (default: localhost)
        HTTP_PORT        Server port (default: 4221)
        HTTP_DIRECTORY   Root directory for /files/* (default: unset)
        HTTP_TIMEOUT     Socket timeout in seconds, "none" to block forever
        HTTP_LOG_LEVEL   Logging level (default: INFO)
        HTTP_LOG_FORMAT  Access log format (default: text)

        =====================================================================
        """
        defaults = cls()
        return cls(
            host=os.getenv("HTTP_HOST", defaults.host),
            port=int(os.getenv("HTTP_PORT", str(defaults.port))),
            directory=os.getenv("HTTP_DIRECTORY") or None,
            timeout=parse_timeout(os.getenv("HTTP_TIMEOUT", str(defaults.timeout))),
            log_level=os.getenv("HTTP_LOG_LEVEL", defaults.log_level).upper(),
            log_format=os.getenv("HTTP_LOG_FORMAT", defaults.log_format).lower(),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called at startup so a bad value fails immediately, not on the
        first request that happens to need it.

        Raises:
            ValueError: Describing the first invalid setting found.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and not (math.isfinite(self.timeout) and self.timeout > 0):
            raise ValueError(f"timeout must be a finite number > 0 (or None to block), got {self.timeout}")

        if self.max_line_length < 64:
            raise ValueError("max_line_length must be >= 64")

        if self.max_header_count < 1:
            raise ValueError("max_header_count must be >= 1")

        if self.max_body_size < 0:
            raise ValueError("max_body_size must be >= 0")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.log_level}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"Unknown log format: {self.log_format}")

        if self.directory is not None and not os.path.isdir(self.directory):
            raise ValueError(f"Directory does not exist: {self.directory}")


def parse_timeout(value: Optional[str]) -> Optional[float]:
    """
    Parse a timeout setting.

    "", "none" and "0" all mean no timeout (None): reads block until the
    peer sends or disconnects. Range checks are left to validate().

    Example:
        parse_timeout("2.5")   # 2.5
        parse_timeout("none")  # None
        parse_timeout("0")     # None
    """
    if value is None or value.strip().lower() in ("", "none", "0"):
        return None
    return float(value)
