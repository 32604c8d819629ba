"""
Unit tests for HTTPServer.dispatch, driven without sockets.

The writer is a plain list.append, so each test sees exactly the bytes
that would have gone to the client.
"""

import gzip
import logging
import socket

import pytest

from sockhttp import HTTPServer, ServerConfig
from sockhttp.core import Connection
from sockhttp.handlers import register_default_routes
from sockhttp.http import NOT_FOUND_RESPONSE, HTTPStatus
from sockhttp.server import request_method


@pytest.fixture
def server(tmp_path) -> HTTPServer:
    srv = HTTPServer(ServerConfig(directory=str(tmp_path)))
    register_default_routes(srv, str(tmp_path))
    return srv


def dispatch(server: HTTPServer, data: bytes) -> bytes:
    writes = []
    server.dispatch(data, writes.append, ("127.0.0.1", 5000))
    assert len(writes) == 1, "every message gets exactly one response"
    return writes[0]


class TestDefaultRoutes:

    def test_index(self, server):
        assert dispatch(server, b"GET / HTTP/1.1\r\n\r\n") == b"HTTP/1.1 200 OK\r\n\r\n"

    def test_echo(self, server):
        assert dispatch(server, b"GET /echo/abc HTTP/1.1\r\n\r\n") == (
            b"HTTP/1.1 200 OK\r\n"
            b"Content-Type: text/plain\r\n"
            b"Content-Length: 3\r\n"
            b"\r\n"
            b"abc"
        )

    def test_echo_gzip(self, server):
        raw = dispatch(
            server,
            b"GET /echo/abc HTTP/1.1\r\nAccept-Encoding: invalid-1, gzip\r\n\r\n",
        )
        head, _, body = raw.partition(b"\r\n\r\n")

        assert head.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"Content-Encoding: gzip" in head
        assert f"Content-Length: {len(body)}".encode() in head
        assert gzip.decompress(body) == b"abc"

    def test_echo_unknown_encoding_not_compressed(self, server):
        raw = dispatch(
            server, b"GET /echo/abc HTTP/1.1\r\nAccept-Encoding: invalid-encoding\r\n\r\n"
        )
        assert b"Content-Encoding" not in raw
        assert raw.endswith(b"\r\n\r\nabc")

    def test_user_agent(self, server):
        raw = dispatch(
            server, b"GET /user-agent HTTP/1.1\r\nUser-Agent: foobar/1.2.3\r\n\r\n"
        )
        assert raw == (
            b"HTTP/1.1 200 OK\r\n"
            b"Content-Type: text/plain\r\n"
            b"Content-Length: 12\r\n"
            b"\r\n"
            b"foobar/1.2.3"
        )

    def test_user_agent_empty(self, server):
        raw = dispatch(server, b"GET /user-agent HTTP/1.1\r\nUser-Agent:\r\n\r\n")

        assert raw.startswith(b"HTTP/1.1 404 Not Found\r\n")
        assert raw.endswith(b"No user-agent header found.")

    def test_user_agent_missing(self, server):
        raw = dispatch(server, b"GET /user-agent HTTP/1.1\r\n\r\n")

        assert raw.startswith(b"HTTP/1.1 404 Not Found\r\n")
        assert raw.endswith(b"No user-agent header found.")


class TestNotFound:

    def test_unregistered_path(self, server):
        assert dispatch(server, b"GET /nowhere HTTP/1.1\r\n\r\n") == NOT_FOUND_RESPONSE

    def test_unregistered_method(self, server):
        assert dispatch(server, b"DELETE / HTTP/1.1\r\n\r\n") == NOT_FOUND_RESPONSE

    def test_lowercase_method(self, server):
        """Methods are case-sensitive: "get" has no routes."""
        assert dispatch(server, b"get /echo/abc HTTP/1.1\r\n\r\n") == NOT_FOUND_RESPONSE

    def test_garbage(self, server):
        assert dispatch(server, b"\x00\x01garbage") == NOT_FOUND_RESPONSE

    def test_pattern_spelled_literally(self, server):
        """A raw path equal to a pattern has no captured params."""
        assert dispatch(server, b"GET /echo/:str HTTP/1.1\r\n\r\n") == NOT_FOUND_RESPONSE

    def test_param_with_invalid_characters(self, server):
        assert dispatch(server, b"GET /echo/a%20b HTTP/1.1\r\n\r\n") == NOT_FOUND_RESPONSE


class TestHandlerFailures:

    def test_handler_raises(self, tmp_path):
        server = HTTPServer(ServerConfig())

        @server.get("/boom")
        def boom(request, response):
            raise RuntimeError("boom")

        assert dispatch(server, b"GET /boom HTTP/1.1\r\n\r\n") == NOT_FOUND_RESPONSE

    def test_handler_never_sends(self):
        server = HTTPServer(ServerConfig())

        @server.get("/silent")
        def silent(request, response):
            response.status(HTTPStatus.OK)

        assert dispatch(server, b"GET /silent HTTP/1.1\r\n\r\n") == NOT_FOUND_RESPONSE

    def test_handler_sends_then_raises(self):
        server = HTTPServer(ServerConfig())

        @server.get("/twice")
        def twice(request, response):
            response.status(HTTPStatus.OK).send("one")
            response.send("two")

        raw = dispatch(server, b"GET /twice HTTP/1.1\r\n\r\n")
        assert raw.endswith(b"\r\n\r\none")


class TestRegistration:

    def test_first_registration_wins(self):
        server = HTTPServer(ServerConfig())
        server.register("GET", "/echo/:str", lambda req, res: res.status(200).send("first"))
        server.register("GET", "/echo/:str", lambda req, res: res.status(200).send("second"))

        assert dispatch(server, b"GET /echo/x HTTP/1.1\r\n\r\n").endswith(b"first")

    def test_post_decorator(self):
        server = HTTPServer(ServerConfig())

        @server.post("/submit")
        def submit(request, response):
            response.status(HTTPStatus.CREATED).send(request.body)

        raw = dispatch(server, b"POST /submit HTTP/1.1\r\nContent-Length: 2\r\n\r\nhi")
        assert raw.startswith(b"HTTP/1.1 201 Created\r\n")
        assert raw.endswith(b"\r\n\r\nhi")

    def test_invalid_config_rejected(self):
        with pytest.raises(ValueError):
            HTTPServer(ServerConfig(port=70000))


def test_handle_close_logs_connection_summary(caplog):
    server = HTTPServer(ServerConfig())
    server_sock, client_sock = socket.socketpair()
    try:
        conn = Connection(socket=server_sock, address=("127.0.0.1", 5000))
        conn.requests_handled = 2
        conn.feed(b"GET /echo/partial")

        with caplog.at_level(logging.DEBUG, logger="sockhttp.server"):
            server.handle_close(conn)

        assert "127.0.0.1:5000 done after 2 requests" in caplog.text
        assert "17 bytes unanswered" in caplog.text
    finally:
        server_sock.close()
        client_sock.close()


def test_request_method():
    assert request_method(b"POST /files/a HTTP/1.1\r\n\r\n") == "POST"
    assert request_method(b"") == ""
