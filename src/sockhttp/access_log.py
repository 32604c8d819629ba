"""
=============================================================================
ACCESS LOG
=============================================================================

One line per dispatched request, on its own logger so it can be routed
or silenced independently of the diagnostic logs:

    logging.getLogger("sockhttp.access").setLevel(logging.WARNING)

=============================================================================
FORMATS
=============================================================================

text (Apache-style, human readable):

    127.0.0.1 - - [16/Oct/2026:10:02:11 +0000] "GET /echo/abc" 200 3 0.41ms

json (one object per line, for log aggregators):

    {"request_id": "3f2a9c1e", "method": "GET", "path": "/echo/abc",
     "endpoint": "/echo/:str", "client_ip": "127.0.0.1", ...}

=============================================================================
WHAT NOT TO LOG
=============================================================================

Request bodies are never logged: POST /files/:filename uploads can be
large and may hold anything.

=============================================================================
"""

import json
import logging
import time
import uuid
from dataclasses import asdict, dataclass
from typing import Optional

from .http.request import HTTPRequest

logger = logging.getLogger("sockhttp.access")


@dataclass
class RequestLog:
    """
    Structured log entry for one request.

    =========================================================================
    FIELDS
    =========================================================================

    request_id:     Short random ID to correlate with diagnostic logs
    method:         HTTP method (GET, POST, ...)
    path:           Raw request path as received
    endpoint:       Matched route pattern, "-" when nothing matched
    client_ip:      Client's IP address
    user_agent:     Client identifier, "-" when absent
    status_code:    HTTP status written
    content_length: Body bytes written (after compression)
    duration_ms:    Parse + handler + serialization time
    timestamp:      When the request finished

    =========================================================================
    """

    request_id: str
    method: str
    path: str
    endpoint: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        """Apache-style line."""
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


def new_request_id() -> str:
    return str(uuid.uuid4())[:8]


def build_entry(
    request: Optional[HTTPRequest],
    status_code: int,
    content_length: int,
    started_at: float,
    endpoint: Optional[str] = None,
    client_address: tuple = ("", 0),
    method: str = "-",
) -> RequestLog:
    """
    Assemble a RequestLog.

    Args:
        request: The parsed request, or None when dispatch answered
                 before parsing (method without routes).
        status_code: Status actually written.
        content_length: Body bytes actually written.
        started_at: time.perf_counter() value taken when dispatch began.
        endpoint: The route pattern that handled the request, if any.
        client_address: Peer address used when there is no request.
        method: Method used when there is no request.
    """
    duration_ms = (time.perf_counter() - started_at) * 1000

    if request is not None:
        return RequestLog(
            request_id=new_request_id(),
            method=request.method or "-",
            path=request.raw_path or "-",
            endpoint=endpoint or "-",
            client_ip=request.client_address[0] or "-",
            user_agent=request.user_agent or "-",
            status_code=int(status_code),
            content_length=content_length,
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

    return RequestLog(
        request_id=new_request_id(),
        method=method or "-",
        path="-",
        endpoint="-",
        client_ip=client_address[0] or "-",
        user_agent="-",
        status_code=int(status_code),
        content_length=content_length,
        duration_ms=duration_ms,
        timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
    )


class AccessLogger:
    """Emits RequestLog entries in the configured format."""

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        """
        Args:
            log_format: "text" (Apache-style) or "json".
            log_level: Level the entries are logged at.
        """
        self.log_format = log_format
        self.log_level = log_level

    def format(self, entry: RequestLog) -> str:
        if self.log_format == "json":
            return json.dumps(entry.to_dict())
        return entry.to_text()

    def log(self, entry: RequestLog) -> None:
        logger.log(self.log_level, self.format(entry))
