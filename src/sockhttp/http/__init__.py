"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Translates the raw bytes of one message into an HTTPRequest, finds the
handler for it, and turns the handler's answer back into bytes.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    HTTP Request-Response Cycle                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   CLIENT                                         SERVER              │
    │      │                                              │                │
    │      │   GET /echo/abc HTTP/1.1                     │                │
    │      │   Accept-Encoding: gzip                      │                │
    │      │  ─────────────────────────────────────────►  │                │
    │      │                                              │  parse         │
    │      │                                              │  route         │
    │      │                                              │  handler       │
    │      │               HTTP/1.1 200 OK                │                │
    │      │               Content-Type: text/plain       │                │
    │      │               Content-Encoding: gzip         │                │
    │      │  ◄─────────────────────────────────────────  │                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
MODULE COMPONENTS
=============================================================================

    request.py        RequestParser: bytes → HTTPRequest
    router.py         RouteTable: (method, pattern) → handler, :param capture
    response.py       HTTPResponse: status/header/send, serialize_response
    compression.py    Accept-Encoding negotiation, gzip
    status_codes.py   HTTPStatus: 200, 201, 404

=============================================================================
"""

from .compression import CompressionError, accepts_gzip, gzip_body
from .request import HTTPRequest, RequestParser, parse_request
from .response import (
    NOT_FOUND_RESPONSE,
    HTTPResponse,
    ResponseAlreadySent,
    serialize_response,
)
from .router import Handler, Route, RouteMatch, RouteTable, RouteType
from .status_codes import HTTPStatus

__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "parse_request",

    # Response writing
    "HTTPResponse",
    "ResponseAlreadySent",
    "serialize_response",
    "NOT_FOUND_RESPONSE",

    # Content encoding
    "accepts_gzip",
    "gzip_body",
    "CompressionError",

    # Routing
    "RouteTable",
    "Route",
    "RouteMatch",
    "RouteType",
    "Handler",

    # Status codes
    "HTTPStatus",
]
