"""
=============================================================================
SOCKET SERVER
=============================================================================

The TCP layer: one listening socket and one selector event loop serving
every client from a single thread.

=============================================================================
ONE THREAD, MANY SOCKETS
=============================================================================

Instead of a thread per connection, all sockets are non-blocking and
registered with a selector (epoll/kqueue/select under the hood). The loop
sleeps until at least one socket is ready, then services exactly the
ready ones:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     SELECTOR EVENT LOOP                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   while running:                                                     │
    │       │                                                              │
    │       ├──► select(timeout=poll_interval)                             │
    │       │       │                                                      │
    │       │       ├── listening socket readable                          │
    │       │       │       └──► accept() until BlockingIOError            │
    │       │       │                                                      │
    │       │       ├── client readable                                    │
    │       │       │       └──► recv() → on_data(conn, chunk)             │
    │       │       │            recv() == b"" → close                     │
    │       │       │                                                      │
    │       │       └── client writable                                    │
    │       │               └──► flush queued response bytes               │
    │       │                                                              │
    │       └──► sweep connections idle longer than config.timeout         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Every message runs to completion (handler included) before the next
event is looked at, so handlers never race each other.

=============================================================================
SIGNALS
=============================================================================

SIGINT (Ctrl+C) and SIGTERM (kill, docker stop) trigger a graceful
shutdown. Python only lets the MAIN thread install signal handlers, so
when the server runs in a background thread (as in the test suite) the
handlers are simply not installed and shutdown() is called directly.

=============================================================================
"""

import logging
import selectors
import signal
import socket
import threading
from typing import Callable, Dict, List, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection

logger = logging.getLogger(__name__)

# on_data(conn, chunk): called with every non-empty recv() result
DataCallback = Callable[[Connection, bytes], None]

# on_close(conn): called once, just before a connection is released
CloseCallback = Callable[[Connection], None]


class SocketServer:
    """
    Listening socket plus selector loop.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer Internals                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    bind()            Create, bind and listen (non-blocking)          │
    │        │                                                             │
    │        ▼                                                             │
    │    serve_forever()   Register with selector, install signals         │
    │        │             and run the loop (BLOCKS here)                  │
    │        │                                                             │
    │    shutdown()        _running = False; loop exits within             │
    │        │             poll_interval                                   │
    │        ▼                                                             │
    │    _cleanup()        Close clients, selector and listening socket,   │
    │                      restore signal handlers                         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        def on_data(conn: Connection, chunk: bytes):
            conn.feed(chunk)
            for message in conn.messages():
                conn.send(answer(message))

        server = SocketServer(config, on_data)
        server.serve_forever()  # Blocks until shutdown
    """

    def __init__(
        self,
        config: ServerConfig,
        on_data: DataCallback,
        on_close: Optional[CloseCallback] = None,
    ):
        """
        Args:
            config: Host, port, backlog, buffer size, timeouts.
            on_data: Receives each chunk read from a client.
            on_close: Notified before a connection is released.

        Note: no socket is created until bind() or serve_forever().
        """
        self.config = config
        self._on_data = on_data
        self._on_close = on_close

        self._socket: Optional[socket.socket] = None
        self._selector: Optional[selectors.BaseSelector] = None
        self._connections: Dict[str, Connection] = {}

        self._running = False
        self._lock = threading.Lock()

        # Set once the loop has fully stopped and cleaned up
        self._stopped = threading.Event()
        self._stopped.set()

        # Saved so they can be restored when the loop exits
        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The bound (host, port).

        Reports the real port after bind(), so port 0 resolves to the
        ephemeral port the OS picked.
        """
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return host, port
        return self.config.host, self.config.port

    @property
    def connections(self) -> List[Connection]:
        """Currently open client connections."""
        return list(self._connections.values())

    # =========================================================================
    # SETUP
    # =========================================================================

    def _create_socket(self) -> socket.socket:
        """
        Create the listening socket.

        AF_INET + SOCK_STREAM = IPv4 TCP. SO_REUSEADDR lets a restarted
        server bind while the old socket is still in TIME_WAIT.
        """
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return sock

    def bind(self) -> Tuple[str, int]:
        """
        Bind and start listening. Idempotent.

        Returns:
            The bound address.

        Raises:
            OSError: If the address is in use or not permitted.
        """
        if self._socket is not None:
            return self.address

        sock = self._create_socket()
        try:
            sock.bind((self.config.host, self.config.port))
        except OSError as e:
            sock.close()
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            raise

        sock.listen(self.config.backlog)
        sock.setblocking(False)
        self._socket = sock

        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")
        return host, port

    def _setup_signals(self):
        """
        Install SIGTERM/SIGINT handlers that call shutdown().

        Only possible on the main thread; elsewhere this is a no-op.
        """
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on main thread, skipping signal handlers")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    # =========================================================================
    # EVENT LOOP
    # =========================================================================

    def serve_forever(self):
        """
        Accept and serve connections until shutdown() is called.

        This method BLOCKS.
        """
        self.bind()

        self._selector = selectors.DefaultSelector()
        self._selector.register(self._socket, selectors.EVENT_READ, data=None)

        with self._lock:
            self._running = True
            self._stopped.clear()

        self._setup_signals()

        try:
            while self._running:
                events = self._selector.select(timeout=self.config.poll_interval)

                for key, mask in events:
                    if key.data is None:
                        self._accept()
                        continue

                    conn: Connection = key.data
                    if mask & selectors.EVENT_READ:
                        self._read(conn)
                    if mask & selectors.EVENT_WRITE and not conn.closed:
                        self._write(conn)

                self._sweep_idle()
        finally:
            self._cleanup()

    def _accept(self):
        """Accept every pending client; the listening socket is non-blocking."""
        while True:
            try:
                client_socket, client_address = self._socket.accept()
            except BlockingIOError:
                return
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                return

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                max_request_size=self.config.max_request_size,
            )
            self._connections[conn.id] = conn
            self._selector.register(client_socket, selectors.EVENT_READ, data=conn)
            logger.debug(f"[{conn.id}] Accepted {client_address[0]}:{client_address[1]}")

    def _read(self, conn: Connection):
        try:
            chunk = conn.recv()
        except OSError as e:
            logger.warning(f"[{conn.id}] Read failed: {e}")
            self._close_connection(conn)
            return

        if chunk is None:
            return

        if not chunk:
            logger.debug(f"[{conn.id}] Peer closed connection")
            self._close_connection(conn)
            return

        self._on_data(conn, chunk)
        self._after_io(conn)

    def _write(self, conn: Connection):
        conn.flush()
        self._after_io(conn)

    def _after_io(self, conn: Connection):
        """Close dead connections; watch EVENT_WRITE only while bytes are queued."""
        if conn.closed or conn.broken:
            self._close_connection(conn)
            return

        events = selectors.EVENT_READ
        if conn.wants_write:
            events |= selectors.EVENT_WRITE
        self._selector.modify(conn.socket, events, data=conn)

    def _sweep_idle(self):
        timeout = self.config.timeout
        if timeout is None:
            return

        for conn in list(self._connections.values()):
            if conn.idle_time > timeout:
                logger.info(f"[{conn.id}] Closing idle connection after {timeout:.0f}s")
                self._close_connection(conn)

    def _close_connection(self, conn: Connection):
        """Unregister and close a client. Safe to call twice."""
        if self._connections.pop(conn.id, None) is None:
            return

        if self._on_close is not None:
            self._on_close(conn)

        try:
            self._selector.unregister(conn.socket)
        except (KeyError, ValueError):
            pass

        conn.close()

    # =========================================================================
    # SHUTDOWN
    # =========================================================================

    def shutdown(self):
        """
        Ask the loop to stop.

        Safe to call from a signal handler, from another thread, or more
        than once. The loop notices within poll_interval seconds.
        """
        with self._lock:
            if not self._running:
                return
            logger.info("Shutting down socket server...")
            self._running = False

    def _cleanup(self):
        for conn in list(self._connections.values()):
            self._close_connection(conn)

        self._restore_signals()

        if self._selector is not None:
            self._selector.close()
            self._selector = None

        if self._socket is not None:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._running = False
        self._stopped.set()
        logger.info("Socket server stopped")

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the loop has stopped and released its sockets.

        Returns:
            True if stopped, False on timeout.
        """
        return self._stopped.wait(timeout)
