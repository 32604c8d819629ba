"""
=============================================================================
HTTP RESPONSE WRITER
=============================================================================

Accumulates a status and headers, then serializes and writes the whole
response to the connection in ONE terminal send() call.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  ┌─ STATUS LINE ──────────────────────────────────────────────────┐ │
    │  │                                                                 │ │
    │  │    HTTP/1.1 200 OK\r\n                                         │ │
    │  │    ────┬─── ─┬─ ─┬─                                            │ │
    │  │        │     │   │                                              │ │
    │  │    Version  Code Phrase                                        │ │
    │  │                                                                 │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ HEADERS (insertion order) ────────────────────────────────────┐ │
    │  │                                                                 │ │
    │  │    Content-Type: text/plain\r\n         ← from body type       │ │
    │  │    Content-Length: 23\r\n               ← bytes actually sent  │ │
    │  │    Content-Encoding: gzip\r\n           ← only when negotiated │ │
    │  │                                                                 │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ EMPTY LINE ───────────────────────────────────────────────────┐ │
    │  │    \r\n                                                         │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ BODY (no trailing terminator) ────────────────────────────────┐ │
    │  │    hello                                                        │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
BODY TYPES
=============================================================================

send() inspects the body and fills in the framing headers:

    ┌────────────────────┬───────────────────────────┬─────────────────────┐
    │  Body              │  Content-Type             │  Payload            │
    ├────────────────────┼───────────────────────────┼─────────────────────┤
    │  None              │  (none)                   │  empty, no headers  │
    │  str               │  text/plain               │  UTF-8 bytes        │
    │  bytes, bytearray  │  application/octet-stream │  as-is              │
    │  anything else     │  application/json         │  json.dumps, UTF-8  │
    └────────────────────┴───────────────────────────┴─────────────────────┘

A Content-Type the handler already set is kept. Content-Length is always
computed from the bytes that actually go on the wire, so a handler can
never produce a response whose framing lies.

=============================================================================
FLUENT INTERFACE
=============================================================================

    response.status(HTTPStatus.OK).header("X-Id", "7").send("hello")

status() and header() return self; send() is terminal. A second send()
raises ResponseAlreadySent, because the bytes are already on the socket.

=============================================================================
"""

import json
import logging
from typing import Any, Callable, Dict, Optional, Tuple, Union

from .compression import DEFAULT_LEVEL, CompressionError, gzip_body
from .status_codes import HTTPStatus

logger = logging.getLogger(__name__)

HTTP_VERSION = "HTTP/1.1"

# The bare frame sent when no route matches: status line, blank line,
# no headers and no body.
NOT_FOUND_RESPONSE = b"HTTP/1.1 404 Not Found\r\n\r\n"

# Content-Type per body kind
TEXT_PLAIN = "text/plain"
OCTET_STREAM = "application/octet-stream"
APPLICATION_JSON = "application/json"

# Anything the connection accepts: Connection.send, socket.sendall, list.append
Writer = Callable[[bytes], Any]


class ResponseAlreadySent(RuntimeError):
    """Raised by a second send() on the same response."""


# =============================================================================
# PURE HELPERS
# =============================================================================

def encode_body(body: Any) -> Tuple[Optional[bytes], Optional[str]]:
    """
    Turn a handler's body into (payload, content_type).

        encode_body(None)          → (None, None)
        encode_body("hi")          → (b"hi", "text/plain")
        encode_body(b"\\x00")      → (b"\\x00", "application/octet-stream")
        encode_body({"a": 1})      → (b'{"a": 1}', "application/json")

    Raises:
        TypeError: If structured data is not JSON-serializable.
    """
    if body is None:
        return None, None
    if isinstance(body, str):
        return body.encode("utf-8"), TEXT_PLAIN
    if isinstance(body, (bytes, bytearray)):
        return bytes(body), OCTET_STREAM
    return json.dumps(body).encode("utf-8"), APPLICATION_JSON


def serialize_response(
    status: Union[HTTPStatus, int],
    headers: Dict[str, str],
    body: bytes = b"",
) -> bytes:
    """
    Serialize a response to wire bytes.

    =====================================================================
    SERIALIZATION FORMAT
    =====================================================================

        HTTP/1.1 200 OK\\r\\n              ← Status line
        Content-Type: text/plain\\r\\n
        Content-Length: 5\\r\\n
        \\r\\n                             ← Empty line (separator)
        hello                             ← Body bytes, no terminator

    =====================================================================

    Pure: nothing is computed or added here. Headers are written exactly
    as given, in their insertion order.
    """
    status = HTTPStatus(status)

    lines = [f"{HTTP_VERSION} {status.value} {status.phrase}"]
    for name, value in headers.items():
        lines.append(f"{name}: {value}")

    # Trailing "" produces the blank separator line
    lines.append("")
    head = "\r\n".join(lines).encode("utf-8") + b"\r\n"
    return head + body


def _find_header(headers: Dict[str, str], name: str) -> Optional[str]:
    """Existing key spelled differently ("content-type" vs "Content-Type")."""
    lowered = name.lower()
    for key in headers:
        if key.lower() == lowered:
            return key
    return None


def _upsert_header(headers: Dict[str, str], name: str, value: str) -> None:
    key = _find_header(headers, name)
    headers[key if key is not None else name] = value


def _default_header(headers: Dict[str, str], name: str, value: str) -> None:
    if _find_header(headers, name) is None:
        headers[name] = value


# =============================================================================
# RESPONSE WRITER
# =============================================================================

class HTTPResponse:
    """
    A response bound to one connection.

    =========================================================================
    RESPONSE LIFECYCLE
    =========================================================================

        dispatch creates          handler fills in          send() writes
        HTTPResponse     ─────►   status, headers  ─────►   bytes ONCE
            │                         │                         │
        HTTPResponse(             .status(200)              writer(b"HTTP/1.1
          writer=conn.send,       .header("X", "y")           200 OK\\r\\n...")
          compress=True)          .send("hello")

    The status defaults to 404 so that a handler which forgets to set one
    fails visibly instead of claiming success.

    The encoding decision (compress) is fixed at construction; handlers
    cannot change it.

    =========================================================================
    """

    def __init__(
        self,
        writer: Writer,
        compress: bool = False,
        compression_level: int = DEFAULT_LEVEL,
    ):
        """
        Args:
            writer: Callable receiving the serialized response bytes.
            compress: True if the client accepts gzip.
            compression_level: gzip level used when compressing.
        """
        self._writer = writer
        self._compress = compress
        self._compression_level = compression_level

        self._status = HTTPStatus.NOT_FOUND
        self._headers: Dict[str, str] = {}
        self._sent = False

        # Payload size after encoding, for the access log
        self.bytes_sent = 0

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def status_code(self) -> HTTPStatus:
        return self._status

    @property
    def headers(self) -> Dict[str, str]:
        """A copy of the headers set so far."""
        return dict(self._headers)

    @property
    def compress(self) -> bool:
        """The encoding decision made before the handler ran."""
        return self._compress

    @property
    def sent(self) -> bool:
        return self._sent

    # =========================================================================
    # FLUENT SETTERS
    # =========================================================================

    def status(self, code: Union[HTTPStatus, int]) -> "HTTPResponse":
        """
        Set the status code. The last call wins.

        Raises:
            ValueError: For any code other than 200, 201 or 404.
        """
        try:
            self._status = HTTPStatus(code)
        except ValueError:
            raise ValueError(f"Unsupported status code: {code!r}") from None
        return self

    def header(self, name: str, value: str) -> "HTTPResponse":
        """
        Set a header, replacing any earlier value.

        Replacing keeps the header's original position, and names match
        case-insensitively.
        """
        _upsert_header(self._headers, name, str(value))
        return self

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def prepare(self, body: Any = None) -> Tuple[HTTPStatus, Dict[str, str], bytes]:
        """
        Compute what send() would write, without writing or changing state.

        =====================================================================
        STEPS
        =====================================================================

        1. Encode the body and pick its Content-Type (kept if already set)
        2. Content-Length = payload length
        3. If compressing: gzip the payload, overwrite Content-Length,
           add Content-Encoding: gzip
        4. If gzip fails: log it and keep the uncompressed payload; the
           Content-Length from step 2 still matches

        =====================================================================

        Returns:
            (status, headers, payload)
        """
        headers = dict(self._headers)
        payload, content_type = encode_body(body)

        if payload is None:
            return self._status, headers, b""

        _default_header(headers, "Content-Type", content_type)
        _upsert_header(headers, "Content-Length", str(len(payload)))

        if self._compress and payload:
            try:
                payload = gzip_body(payload, self._compression_level)
            except CompressionError:
                logger.exception("Compression failed, sending body uncompressed")
            else:
                _upsert_header(headers, "Content-Length", str(len(payload)))
                _upsert_header(headers, "Content-Encoding", "gzip")

        return self._status, headers, payload

    def to_bytes(self, body: Any = None) -> bytes:
        """The complete wire bytes for `body`."""
        return serialize_response(*self.prepare(body))

    def send(self, body: Any = None) -> None:
        """
        Serialize the response and write it to the connection.

        Terminal: call it exactly once per request.

        Raises:
            ResponseAlreadySent: On a second call.
            TypeError: If structured data is not JSON-serializable.
        """
        if self._sent:
            raise ResponseAlreadySent(
                f"Response already sent with status {self._status.value}"
            )

        status, headers, payload = self.prepare(body)
        data = serialize_response(status, headers, payload)

        self._sent = True
        self.bytes_sent = len(payload)
        self._writer(data)
