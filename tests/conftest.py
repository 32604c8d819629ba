"""
pytest configuration and fixtures.
"""

import socket
import threading
import time
from typing import BinaryIO, Generator, List
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sockhttp import HTTPServer, ServerConfig
from sockhttp.handlers import register_default_routes
from sockhttp.http import RouteTable


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /echo/abc HTTP/1.1\r\n"
        b"Host: localhost:4221\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: */*\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a file body."""
    body = b"hello world"
    return (
        b"POST /files/notes.txt HTTP/1.1\r\n"
        b"Host: localhost:4221\r\n"
        b"Content-Type: application/octet-stream\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
        + body
    )


@pytest.fixture
def routes(tmp_path: Path) -> RouteTable:
    """Route table with the default endpoints, serving tmp_path."""
    table = RouteTable()
    register_default_routes(table, str(tmp_path))
    return table


@pytest.fixture
def config() -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        timeout=5.0,
        poll_interval=0.05,
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False

    def __init__(self, server: HTTPServer, port: int):
        self.server = server
        self.port = port
        self._thread: threading.Thread = None

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        # Wait for server to be ready
        for _ in range(50):  # 5 seconds max
            try:
                with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
                    s.connect(('127.0.0.1', self.port))
                    return
            except ConnectionRefusedError:
                time.sleep(0.1)

        raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def connect(self) -> socket.socket:
        """Open a client connection to the running server."""
        sock = socket.create_connection(('127.0.0.1', self.port), timeout=5.0)
        return sock

    def request(self, data: bytes) -> bytes:
        """Send one raw request on a fresh connection and return the raw response."""
        with self.connect() as sock, sock.makefile("rb") as reader:
            sock.sendall(data)
            return read_response(reader)

    @staticmethod
    def read(reader: BinaryIO) -> bytes:
        return read_response(reader)

    @staticmethod
    def split(raw: bytes):
        return split_response(raw)


def read_response(reader: BinaryIO) -> bytes:
    """
    Read exactly one response from a socket's makefile("rb") reader.

    Reads the header section line by line, then as many body bytes as
    Content-Length announces (none when the header is absent). Bytes of
    a following response stay buffered in `reader`.
    """
    head = b""
    length = 0
    while True:
        line = reader.readline()
        if not line:
            return head
        head += line
        if line == b"\r\n":
            break
        name, _, value = line.partition(b":")
        if name.strip().lower() == b"content-length":
            length = int(value.strip())

    return head + reader.read(length)


def split_response(raw: bytes):
    """Split a raw response into (status line, headers dict, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("utf-8").split("\r\n")
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(": ")
        headers[name] = value
    return lines[0], headers, body


@pytest.fixture
def test_server(free_port: int, tmp_path: Path) -> Generator[TestServer, None, None]:
    """Create a test server with the default routes, serving tmp_path."""
    server = HTTPServer(ServerConfig(
        host="127.0.0.1",
        port=free_port,
        directory=str(tmp_path),
        poll_interval=0.05,
        log_level="WARNING",
    ))
    register_default_routes(server, str(tmp_path))

    test_srv = TestServer(server, free_port)
    test_srv.start()

    yield test_srv

    test_srv.stop()


@pytest.fixture
def writes() -> List[bytes]:
    """Collects what a response writer receives (pass writes.append)."""
    return []
