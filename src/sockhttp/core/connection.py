"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted, non-blocking client socket: buffers inbound bytes
until a whole message has arrived, queues outbound bytes until the socket
accepts them, and tears the socket down.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

TCP does NOT preserve message boundaries. One request may arrive split
over several recv() calls, and two requests may arrive in one:

    Client sends:
        POST /files/a.txt HTTP/1.1\r\nContent-Length: 5\r\n\r\nhello

    Server might receive:
        First recv():  b"POST /files/a.txt HTT"
        Second recv(): b"P/1.1\r\nContent-Length: 5\r\n\r\nhel"
        Third recv():  b"lo"

So every recv() result is FED into a buffer, and complete messages are
cut out of it:

    1. Wait until the buffer contains \r\n\r\n (end of headers)
    2. Read Content-Length from the header section
    3. Wait until Content-Length body bytes follow the separator
    4. Cut the message out; leftovers stay buffered for the next one

Without a Content-Length header, everything already buffered after the
separator is the body:

    POST /files/a.txt HTTP/1.1\r\n\r\nhello    → one message, body "hello"

=============================================================================
NON-BLOCKING WRITES
=============================================================================

The socket is non-blocking, so send() may accept only PART of a response.
Unsent bytes wait in an outbox and are flushed, in order, whenever the
selector reports the socket writable:

    send(b"HTTP/1.1 200 OK...")     socket takes 10 of 60 bytes
        outbox: [50 bytes]          server watches EVENT_WRITE
    flush()                         socket takes the remaining 50
        outbox: []                  server stops watching EVENT_WRITE

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    IDLE ──────► DISPATCHING ──────► IDLE ──── ... ────► CLOSED
     │               │                                      ▲
     │               └── handler runs to completion         │
     │                                                      │
     └── peer closed, reset, oversized or idle too long ────┘

=============================================================================
"""

import logging
import socket
import time
import uuid
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Iterator, Optional

logger = logging.getLogger(__name__)

HEADER_TERMINATOR = b"\r\n\r\n"


class ConnectionState(Enum):
    """
    Connection lifecycle states.

    Tracked for logging and so the server never touches a closed socket.
    """

    IDLE = "idle"                  # Accepted, waiting for (more) bytes
    DISPATCHING = "dispatching"    # Parse, route lookup, handler
    CLOSED = "closed"              # Socket released


@dataclass
class Connection:
    """
    A client connection managed by the selector loop.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    Connection Responsibilities                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  1. BUFFERED READING                                                 │
    │     └── feed() appends recv() results to _buffer                     │
    │     └── messages() yields every complete message                     │
    │                                                                      │
    │  2. BUFFERED WRITING                                                 │
    │     └── send() queues bytes and writes what the socket accepts       │
    │     └── flush() continues on writability                             │
    │                                                                      │
    │  3. IDLE TRACKING                                                    │
    │     └── last_activity lets the server sweep silent clients           │
    │                                                                      │
    │  4. CLOSE                                                            │
    │     └── shutdown(SHUT_RDWR) + close(), errors ignored                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Attributes:
        socket: The client socket (switched to non-blocking).
        address: Client's (ip, port) tuple.
        id: Short identifier for log lines.
        state: Current connection state.
        requests_handled: Messages dispatched on this connection.
        broken: Set when a write failed; the server closes the connection.
    """

    # Required parameters
    socket: socket.socket
    address: tuple

    # Generated/default parameters
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.IDLE
    created_at: float = field(default_factory=time.monotonic)
    last_activity: float = field(default_factory=time.monotonic)
    requests_handled: int = 0
    broken: bool = False

    # Configuration (passed from ServerConfig)
    buffer_size: int = 8192
    max_request_size: int = 10 * 1024 * 1024

    # Internal state (not shown in repr for cleaner logs)
    _buffer: bytearray = field(default_factory=bytearray, repr=False)
    _outbox: Deque[memoryview] = field(default_factory=deque, repr=False)

    def __post_init__(self):
        self.socket.setblocking(False)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def client_port(self) -> int:
        return self.address[1]

    @property
    def idle_time(self) -> float:
        """Seconds since the last successful read or write."""
        return time.monotonic() - self.last_activity

    @property
    def buffered(self) -> int:
        """Inbound bytes not yet emitted as a message."""
        return len(self._buffer)

    @property
    def wants_write(self) -> bool:
        """True while outbound bytes are waiting for the socket."""
        return bool(self._outbox)

    @property
    def closed(self) -> bool:
        return self.state is ConnectionState.CLOSED

    # =========================================================================
    # READING
    # =========================================================================

    def recv(self) -> Optional[bytes]:
        """
        Read whatever the socket has.

        Returns:
            The bytes read; b"" when the peer closed or reset the
            connection; None when nothing is available yet.
        """
        try:
            data = self.socket.recv(self.buffer_size)
        except BlockingIOError:
            return None
        except (ConnectionResetError, ConnectionAbortedError):
            logger.debug(f"[{self.id}] Connection reset by peer")
            return b""

        if data:
            self.last_activity = time.monotonic()
        return data

    def feed(self, data: bytes) -> None:
        """
        Append received bytes to the inbound buffer.

        Raises:
            ValueError: If the buffer grows past max_request_size.
        """
        self._buffer += data
        if len(self._buffer) > self.max_request_size:
            raise ValueError(f"Request too large: {len(self._buffer)} bytes")

    def next_message(self) -> Optional[bytes]:
        """
        Cut the next complete message out of the buffer.

        Returns:
            The message bytes (headers, separator and exactly
            Content-Length body bytes, or every buffered byte after the
            separator when Content-Length is absent), or None if
            incomplete.
        """
        header_end = self._buffer.find(HEADER_TERMINATOR)
        if header_end == -1:
            return None

        body_start = header_end + len(HEADER_TERMINATOR)
        content_length = self._parse_content_length(bytes(self._buffer[:header_end]))

        if content_length is None:
            message_end = len(self._buffer)
        else:
            message_end = body_start + content_length

        if len(self._buffer) < message_end:
            return None

        message = bytes(self._buffer[:message_end])
        del self._buffer[:message_end]
        return message

    def messages(self) -> Iterator[bytes]:
        """Yield every complete message currently buffered."""
        while not self.closed:
            message = self.next_message()
            if message is None:
                return
            yield message

    def _parse_content_length(self, headers: bytes) -> Optional[int]:
        """
        Find Content-Length in the raw header section.

        A plain scan is enough here: framing has to happen BEFORE the
        request is parsed. Returns None when the header is missing; an
        invalid value counts as 0.
        """
        header_str = headers.decode("utf-8", errors="replace").lower()
        for line in header_str.split("\r\n")[1:]:
            name, sep, value = line.partition(":")
            if sep and name.strip() == "content-length":
                try:
                    return max(int(value.strip()), 0)
                except ValueError:
                    return 0
        return None

    # =========================================================================
    # WRITING
    # =========================================================================

    def send(self, data: bytes) -> bool:
        """
        Queue bytes and write as much as the socket accepts right now.

        Used as the writer of every HTTPResponse on this connection.

        Returns:
            False if the connection is closed or broken.
        """
        if self.closed or self.broken:
            logger.debug(f"[{self.id}] Dropping {len(data)} bytes on dead connection")
            return False

        if data:
            self._outbox.append(memoryview(data))
        self.flush()
        return not self.broken

    def flush(self) -> bool:
        """
        Write queued bytes until the socket would block.

        Returns:
            True once the outbox is empty.
        """
        while self._outbox:
            view = self._outbox[0]
            try:
                sent = self.socket.send(view)
            except BlockingIOError:
                return False
            except OSError as e:
                logger.warning(f"[{self.id}] Send failed: {e}")
                self.broken = True
                self._outbox.clear()
                return False

            self.last_activity = time.monotonic()
            if sent < len(view):
                self._outbox[0] = view[sent:]
                return False
            self._outbox.popleft()

        return True

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self) -> None:
        """
        Shut the socket down in both directions and release it.

        Idempotent. Errors are ignored: the peer may already be gone.
        """
        if self.state is ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        self._outbox.clear()
        logger.debug(
            f"[{self.id}] Connection closed after {self.requests_handled} requests"
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
