"""
=============================================================================
ACCESS LOG
=============================================================================

One structured record per response, written to the "minihttp.access"
logger so it can be routed or silenced separately from diagnostics:

    logging.getLogger("minihttp.access").setLevel(logging.WARNING)

=============================================================================
LOG FORMATS
=============================================================================

    TEXT (Apache style, default):
        127.0.0.1 - - [18/Oct/2026:10:55:36 +0000] "GET /echo/hi HTTP/1.1" 200 2 0.41ms

    JSON (for log aggregators):
        {"connection_id": "a1b2c3d4", "method": "GET", "path": "/echo/hi",
         "client_ip": "127.0.0.1", "status_code": 200, ...}

=============================================================================
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from .http.request import HTTPRequest
from .http.response import HTTPResponse


logger = logging.getLogger("minihttp.access")


@dataclass
class RequestLog:
    """
    Structured log entry for one exchange.

    method/path/version are "-" when the request could not be parsed.
    request_length is the request body size, content_length the response's.
    """

    connection_id: str
    client_ip: str
    method: str
    path: str
    version: str
    user_agent: str
    request_length: int
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    @classmethod
    def create(
        cls,
        connection_id: str,
        client_ip: str,
        request: Optional[HTTPRequest],
        response: HTTPResponse,
        duration_ms: float,
    ) -> "RequestLog":
        """Build a record from the exchange, tolerating a missing request."""
        return cls(
            connection_id=connection_id,
            client_ip=client_ip,
            method=request.method if request else "-",
            path=request.path if request else "-",
            version=request.version if request else "-",
            user_agent=request.user_agent if request else "",
            request_length=request.content_length if request else 0,
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=duration_ms,
            timestamp=datetime.now(timezone.utc).strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

    def to_dict(self) -> dict:
        """Convert to a dictionary for JSON serialization."""
        return {
            "connection_id": self.connection_id,
            "client_ip": self.client_ip,
            "method": self.method,
            "path": self.path,
            "version": self.version,
            "user_agent": self.user_agent,
            "request_length": self.request_length,
            "status_code": self.status_code,
            "content_length": self.content_length,
            "duration_ms": round(self.duration_ms, 2),
            "timestamp": self.timestamp,
        }

    def to_text(self) -> str:
        """Format as an Apache-style access log line."""
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path} {self.version}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


def log_request(record: RequestLog, log_format: str = "text") -> None:
    """Emit a record in the configured format."""
    if log_format == "json":
        logger.info(json.dumps(record.to_dict()))
    else:
        logger.info(record.to_text())
