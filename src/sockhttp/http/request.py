"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the raw bytes of ONE complete message into an HTTPRequest.

The parser is intentionally forgiving: it performs no structural
validation and never raises. A garbage request simply produces empty or
garbage fields, the route lookup misses, and the client receives a 404.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  ┌─ REQUEST LINE (lines[0]) ──────────────────────────────────────┐ │
    │  │                                                                 │ │
    │  │    POST /files/notes.txt HTTP/1.1\r\n                          │ │
    │  │    ──┬─ ────────┬──────── ────┬───                             │ │
    │  │      │          │             │                                 │ │
    │  │   method     raw path      ignored                              │ │
    │  │                                                                 │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ HEADERS (lines[1:-1]) ────────────────────────────────────────┐ │
    │  │                                                                 │ │
    │  │    Host: localhost:4221\r\n        → host                       │ │
    │  │    User-Agent: curl/8.4.0\r\n      → user_agent                 │ │
    │  │    Accept-Encoding: gzip\r\n       → accept_encoding            │ │
    │  │    Content-Length: 11\r\n          → content_length             │ │
    │  │    \r\n                            (no colon: skipped)          │ │
    │  │                                                                 │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ BODY (lines[-1]) ─────────────────────────────────────────────┐ │
    │  │                                                                 │ │
    │  │    hello world                                                  │ │
    │  │                                                                 │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
HEADER NAME NORMALIZATION
=============================================================================

Header names are case-insensitive, so they are stored in ONE spelling:
lower-case, every hyphen replaced by an underscore.

    "User-Agent"       → "user_agent"
    "ACCEPT-ENCODING"  → "accept_encoding"
    "X-Forwarded-For"  → "x_forwarded_for"

That makes headers read naturally as identifiers in handlers:

    request.headers["user_agent"]
    request.user_agent

=============================================================================
KNOWN LIMITATIONS
=============================================================================

1. BODY IS THE LAST LINE: everything after the final CRLF. A body that
   itself contains CRLF keeps only its last line.

2. NO CONTENT-LENGTH TRUNCATION: the connection layer frames messages;
   the parser trusts what it is given.

3. NO HEADER FOLDING: continuation lines are treated like any other line.

=============================================================================
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

if TYPE_CHECKING:
    from .router import RouteTable


logger = logging.getLogger(__name__)

# Raw bytes are decoded with surrogateescape so that bytes which are not
# valid UTF-8 survive the round trip back to the exact original bytes.
ENCODING = "utf-8"
ENCODING_ERRORS = "surrogateescape"

CRLF = "\r\n"


def normalize_header_name(name: str) -> str:
    """
    Canonical spelling of a header name.

        >>> normalize_header_name("Accept-Encoding")
        'accept_encoding'
    """
    return name.lower().replace("-", "_")


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    =========================================================================
    REQUEST LIFECYCLE
    =========================================================================

        Raw bytes                  HTTPRequest                 Handler
        from socket    ──parse──►   dataclass    ──lookup──►   function
           │                            │                          │
        b"GET /echo/hi ..."     HTTPRequest(                 def echo(
                                  method="GET",                request,
                                  path="/echo/:str",           response):
                                  raw_path="/echo/hi",          ...
                                  params={"str": "hi"},
                                  ...)

    A request is built fresh for every message and discarded as soon as
    its handler returns.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:     First token of the request line ("GET", "POST", ...).

        path:       The MATCHED route pattern ("/files/:filename") when a
                    route matched, otherwise the raw path. Dispatch looks
                    the handler up by this exact string.

        raw_path:   The request-target exactly as received.

        params:     Route parameters. "/echo/:str" + "/echo/hi"
                    → {"str": "hi"}. Empty when nothing matched.

        headers:    Normalized name → value ("user_agent": "curl/8.4.0").

        body:       Raw body text, possibly empty.

    =========================================================================
    """

    method: str
    path: str
    raw_path: str = ""
    params: Dict[str, str] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""

    # Filled in by the connection layer for logging only
    client_address: Tuple[str, int] = ("", 0)

    def __post_init__(self):
        if not self.raw_path:
            self.raw_path = self.path

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def user_agent(self) -> Optional[str]:
        """The User-Agent header, or None when the client sent none."""
        return self.headers.get("user_agent")

    @property
    def accept_encoding(self) -> str:
        """The raw Accept-Encoding header ("" when absent)."""
        return self.headers.get("accept_encoding", "")

    @property
    def body_bytes(self) -> bytes:
        """
        The body as bytes.

        Reverses the surrogateescape decode, so binary uploads are written
        to disk byte-for-byte.
        """
        return self.body.encode(ENCODING, ENCODING_ERRORS)

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        Header lookup accepting either spelling.

            request.get_header("User-Agent")
            request.get_header("user_agent")    # same value
        """
        return self.headers.get(normalize_header_name(name), default)


class RequestParser:
    """
    Parses one complete raw message into an HTTPRequest.

    ==========================================================================
    PARSER ARCHITECTURE
    ==========================================================================

        Raw message bytes
              │
              ▼
        ┌───────────────────────────────────────────────────────────────────┐
        │  REQUEST PARSER                                                   │
        ├───────────────────────────────────────────────────────────────────┤
        │                                                                    │
        │  1. Decode (UTF-8, surrogateescape) ─────────────────────────────►│
        │     ▼                                                             │
        │  2. Split on CRLF into lines ────────────────────────────────────►│
        │     ▼                                                             │
        │  3. Request line: split on " " → method, raw path ──────────────►│
        │     ▼                                                             │
        │  4. lines[1:-1]: "Name: value" → normalized headers ─────────────►│
        │     ▼                                                             │
        │  5. lines[-1] → body ────────────────────────────────────────────►│
        │     ▼                                                             │
        │  6. Route table match → path = pattern, params ─────────────────►│
        │                                                                    │
        └───────────────────────────────────────────────────────────────────┘
              │
              ▼
        HTTPRequest dataclass

    ==========================================================================
    """

    def parse(
        self,
        data: bytes,
        routes: Optional["RouteTable"] = None,
        client_address: Tuple[str, int] = ("", 0),
    ) -> HTTPRequest:
        """
        Parse raw request data.

        Args:
            data: The complete bytes of one message.
            routes: Route table used to resolve path and params. When
                    omitted, path stays the raw path.
            client_address: Peer (ip, port), carried for logging.

        Returns:
            The parsed HTTPRequest. Never raises for malformed input.
        """
        text = data.decode(ENCODING, ENCODING_ERRORS)
        lines = text.split(CRLF)

        method, raw_path = self._parse_request_line(lines[0])

        # A single line has no header section and no body
        if len(lines) > 1:
            headers = self._parse_headers(lines[1:-1])
            body = lines[-1]
        else:
            headers = {}
            body = ""

        request = HTTPRequest(
            method=method,
            path=raw_path,
            raw_path=raw_path,
            headers=headers,
            body=body,
            client_address=client_address,
        )

        if routes is not None:
            match = routes.match(method, raw_path)
            if match is not None:
                request.path = match.pattern
                request.params = match.params

        logger.debug(
            f"Parsed {request.method} {request.raw_path} "
            f"(endpoint={request.path}, {len(request.headers)} headers)"
        )
        return request

    def _parse_request_line(self, line: str) -> Tuple[str, str]:
        """
        Split the request line on single spaces.

            "GET /echo/hi HTTP/1.1" → ("GET", "/echo/hi")

        Missing tokens become empty strings; the version is ignored.
        """
        tokens = line.split(" ")
        method = tokens[0]
        raw_path = tokens[1] if len(tokens) > 1 else ""
        return method, raw_path

    def _parse_headers(self, lines: List[str]) -> Dict[str, str]:
        """
        Parse header lines into a normalized dictionary.

        =====================================================================
        RULES
        =====================================================================

        - Split on the FIRST colon only, so values may contain colons:
              "Host: localhost:4221" → host = "localhost:4221"
        - One leading space is removed from the value; any other
          whitespace is kept.
        - Lines without a colon (the blank separator line included)
          are skipped.
        - Repeated names: the later value replaces the earlier one.

        =====================================================================
        """
        headers: Dict[str, str] = {}

        for line in lines:
            name, sep, value = line.partition(":")
            if not sep:
                continue

            if value.startswith(" "):
                value = value[1:]

            headers[normalize_header_name(name)] = value

        return headers


# =============================================================================
# CONVENIENCE FUNCTION
# =============================================================================

_parser = RequestParser()


def parse_request(
    data: bytes,
    routes: Optional["RouteTable"] = None,
    client_address: Tuple[str, int] = ("", 0),
) -> HTTPRequest:
    """
    Parse a request with the shared module-level parser.

    The parser holds no state, so one instance serves every connection.
    """
    return _parser.parse(data, routes, client_address)
