"""
=============================================================================
MAIN HTTP SERVER
=============================================================================

Ties the pieces together: the socket layer delivers bytes, the
Connection frames them into messages, and dispatch() turns each message
into exactly one response.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    HTTP SERVER ARCHITECTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │                        ┌─────────────────┐                          │
    │                        │   HTTPServer    │                          │
    │                        │  (Orchestrator) │                          │
    │                        └────────┬────────┘                          │
    │                                 │                                    │
    │            ┌────────────────────┼────────────────────┐              │
    │            │                    │                    │              │
    │            ▼                    ▼                    ▼              │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐        │
    │    │ SocketServer │    │RequestParser │    │  RouteTable  │        │
    │    │  (selector)  │    │  (bytes →    │    │ (dispatching)│        │
    │    └──────┬───────┘    │  HTTPRequest)│    └──────┬───────┘        │
    │           │            └──────────────┘           │                │
    │           ▼                                       ▼                │
    │    ┌──────────────┐                       ┌──────────────┐         │
    │    │  Connection  │ ◄──── writer ──────── │ HTTPResponse │         │
    │    │  (framing)   │                       │  (handlers)  │         │
    │    └──────────────┘                       └──────────────┘         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    1. CLIENT SENDS BYTES
       └── SocketServer recv() → handle_data(conn, chunk)

    2. FRAMING
       └── Connection buffers until headers + Content-Length body arrived

    3. METHOD CHECK
       └── No routes for the method → bare 404

    4. PARSE
       └── RequestParser resolves path to the matched pattern + params

    5. LOOKUP
       └── RouteTable.lookup(method, request.path) → handler or bare 404

    6. HANDLER
       └── handler(request, response) calls response.send() once
       └── raised or never sent → logged, bare 404

    7. ACCESS LOG
       └── one line per message

=============================================================================
"""

import logging
import time
from typing import Callable, Optional, Tuple

from .access_log import AccessLogger, build_entry
from .config import ServerConfig
from .core import Connection, ConnectionState, SocketServer
from .http import (
    NOT_FOUND_RESPONSE,
    HTTPResponse,
    HTTPStatus,
    RequestParser,
    Route,
    RouteTable,
    accepts_gzip,
)
from .http.router import Handler

logger = logging.getLogger(__name__)


def request_method(data: bytes) -> str:
    """
    The method token of a raw message, without parsing the rest.

        request_method(b"POST /files/a HTTP/1.1\\r\\n...")  → "POST"
    """
    request_line = data.split(b"\r\n", 1)[0]
    return request_line.split(b" ", 1)[0].decode("utf-8", errors="surrogateescape")


class HTTPServer:
    """
    HTTP/1.1 server over raw sockets.

    =========================================================================
    FEATURES
    =========================================================================

    - Single-threaded selector loop, no thread per connection
    - Route table with :param capture, first registration wins
    - gzip when the client accepts it
    - Every message gets exactly one response, even when a handler fails
    - Graceful shutdown on SIGINT/SIGTERM
    - Configurable via ServerConfig

    =========================================================================
    USAGE
    =========================================================================

        server = HTTPServer()

        @server.get("/echo/:str")
        def echo(request, response):
            response.status(HTTPStatus.OK).send(request.params["str"])

        server.run()   # blocks

    =========================================================================
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        routes: Optional[RouteTable] = None,
    ):
        """
        Initialize the HTTP server.

        Args:
            config: Server configuration. Defaults to localhost:4221.
            routes: An existing route table to serve. A new empty one
                    is created when omitted.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()  # Fail-fast on invalid config

        # ─────────────────────────────────────────────────────────────────
        # CORE COMPONENTS
        # ─────────────────────────────────────────────────────────────────

        self._socket_server = SocketServer(
            self.config,
            on_data=self.handle_data,
            on_close=self.handle_close,
        )
        self._parser = RequestParser()

        # ─────────────────────────────────────────────────────────────────
        # APPLICATION COMPONENTS
        # ─────────────────────────────────────────────────────────────────

        self._routes = routes if routes is not None else RouteTable()
        self._access_log = AccessLogger(self.config.log_format)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def routes(self) -> RouteTable:
        return self._routes

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the real port once listening."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def register(self, method: str, pattern: str, handler: Handler) -> Route:
        """
        Register a handler.

        Raises:
            RuntimeError: Once the server is running.
        """
        return self._routes.register(method, pattern, handler)

    def route(self, method: str, pattern: str) -> Callable[[Handler], Handler]:
        """Decorator form of register()."""
        return self._routes.route(method, pattern)

    def get(self, pattern: str) -> Callable[[Handler], Handler]:
        """Register a GET route."""
        return self._routes.get(pattern)

    def post(self, pattern: str) -> Callable[[Handler], Handler]:
        """Register a POST route."""
        return self._routes.post(pattern)

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self):
        """
        Start the server (blocking).

        Blocks until shutdown() is called or SIGINT/SIGTERM arrives.
        """
        self._setup_logging()

        self._socket_server.bind()

        # No registration once requests can arrive
        self._routes.freeze()

        self._print_startup_banner()

        try:
            self._socket_server.serve_forever()
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            logger.info("Server stopped")

    def shutdown(self):
        """Stop the server. Safe from any thread, idempotent."""
        self._socket_server.shutdown()

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_for_shutdown(timeout)

    def _print_startup_banner(self):
        """Print server startup information."""
        host, port = self.address
        print()
        print("╔══════════════════════════════════════════════════════════════╗")
        print(f"  {self.config.server_name} running on http://{host}:{port}")
        if self.config.directory:
            print(f"  Serving files from {self.config.directory}")
        print("  Press Ctrl+C to stop")
        print("╚══════════════════════════════════════════════════════════════╝")
        print()

        for route in self._routes.routes():
            logger.info(f"Route: {route.method:<6} {route.path}")

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        # Configure root logger
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        # Set sockhttp logger level
        logging.getLogger("sockhttp").setLevel(level)

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def handle_data(self, conn: Connection, chunk: bytes):
        """
        Socket callback: buffer a chunk and dispatch every complete message.

        Messages on one connection are answered strictly in arrival order.
        """
        try:
            conn.feed(chunk)
        except ValueError as e:
            logger.warning(f"[{conn.id}] {e}, closing connection")
            conn.close()
            return

        for message in conn.messages():
            conn.state = ConnectionState.DISPATCHING
            conn.requests_handled += 1
            self.dispatch(message, conn.send, conn.address)

            if conn.broken:
                break
            conn.state = ConnectionState.IDLE

    def handle_close(self, conn: Connection):
        """Socket callback: a connection is about to be released."""
        leftover = f", {conn.buffered} bytes unanswered" if conn.buffered else ""
        logger.debug(
            f"[{conn.id}] {conn.client_ip}:{conn.client_port} done after "
            f"{conn.requests_handled} requests{leftover}"
        )

    def dispatch(
        self,
        data: bytes,
        write: Callable[[bytes], object],
        client_address: Tuple[str, int] = ("", 0),
    ) -> None:
        """
        Answer one complete message.

        =====================================================================
        DISPATCH ALGORITHM
        =====================================================================

        1. Method has no routes               → bare 404
        2. Parse with the route table
        3. lookup(method, request.path) fails → bare 404
        4. Fresh HTTPResponse with the encoding decision, run the handler
        5. Handler raised, or returned without sending → bare 404
        6. Access log

        Nothing raised by a handler escapes this method.

        =====================================================================

        Args:
            data: One framed message.
            write: Receives response bytes (Connection.send in production).
            client_address: Peer address, for logging.
        """
        started_at = time.perf_counter()
        method = request_method(data)

        if not self._routes.has_method(method):
            write(NOT_FOUND_RESPONSE)
            self._access_log.log(
                build_entry(
                    None, HTTPStatus.NOT_FOUND, 0, started_at,
                    client_address=client_address, method=method,
                )
            )
            return

        request = self._parser.parse(data, self._routes, client_address)
        route = self._routes.lookup(method, request.path)

        # A raw path that merely spells a pattern ("/echo/:str") has no params
        if route is not None and not set(route.param_names).issubset(request.params):
            route = None

        if route is None:
            write(NOT_FOUND_RESPONSE)
            self._access_log.log(build_entry(request, HTTPStatus.NOT_FOUND, 0, started_at))
            return

        response = HTTPResponse(
            write,
            compress=accepts_gzip(request.accept_encoding),
            compression_level=self.config.compression_level,
        )

        try:
            route.handler(request, response)
        except Exception as e:
            logger.exception(f"Handler error for {method} {route.path}: {e}")
        else:
            if not response.sent:
                logger.warning(
                    f"Handler for {method} {route.path} returned without sending a response"
                )

        if response.sent:
            status, length = response.status_code, response.bytes_sent
        else:
            write(NOT_FOUND_RESPONSE)
            status, length = HTTPStatus.NOT_FOUND, 0

        self._access_log.log(
            build_entry(request, status, length, started_at, endpoint=route.path)
        )
