"""
Unit tests for the route table.
"""

import pytest

from sockhttp.http.router import (
    Route,
    RouteTable,
    RouteType,
    compile_pattern,
    is_param_value,
)
from sockhttp.http.request import HTTPRequest
from sockhttp.http.response import HTTPResponse


def dummy_handler(request: HTTPRequest, response: HTTPResponse) -> None:
    """Dummy handler for testing."""
    response.status(200).send(request.path)


def other_handler(request: HTTPRequest, response: HTTPResponse) -> None:
    response.status(200).send("other")


class TestCompilePattern:
    """Tests for pattern compilation."""

    def test_static_pattern(self):
        segments = compile_pattern("/user-agent")
        assert [s.kind for s in segments] == [RouteType.STATIC, RouteType.STATIC]
        assert segments[1].value == "user-agent"

    def test_param_pattern(self):
        segments = compile_pattern("/files/:filename")
        assert segments[-1].kind is RouteType.PARAM
        assert segments[-1].value == "filename"

    def test_lone_colon_is_literal(self):
        segments = compile_pattern("/a/:")
        assert segments[-1].kind is RouteType.STATIC
        assert segments[-1].value == ":"

    def test_param_values(self):
        assert is_param_value("abc")
        assert is_param_value("new_file-2.txt")
        assert not is_param_value("")
        assert not is_param_value("a b")
        assert not is_param_value("a?b")


class TestRoute:
    """Tests for Route matching."""

    def test_match_static(self):
        route = Route("GET", "/", dummy_handler)
        assert route.match("/") == {}
        assert route.match("/echo") is None

    def test_match_param(self):
        route = Route("GET", "/echo/:str", dummy_handler)
        assert route.match("/echo/abc") == {"str": "abc"}
        assert route.param_names == ["str"]

    def test_param_does_not_cross_slash(self):
        route = Route("GET", "/echo/:str", dummy_handler)
        assert route.match("/echo/a/b") is None

    def test_param_requires_a_character(self):
        route = Route("GET", "/echo/:str", dummy_handler)
        assert route.match("/echo/") is None

    def test_multiple_params(self):
        route = Route("GET", "/users/:user_id/posts/:post_id", dummy_handler)
        assert route.match("/users/4/posts/9") == {"user_id": "4", "post_id": "9"}


class TestRouteTable:
    """Tests for RouteTable class."""

    def test_register(self):
        table = RouteTable()
        route = table.register("get", "/echo/:str", dummy_handler)

        assert route.method == "GET"
        assert len(table) == 1
        assert table.routes("GET") == [route]

    def test_match_returns_pattern_and_params(self):
        table = RouteTable()
        table.register("GET", "/files/:filename", dummy_handler)

        match = table.match("GET", "/files/notes.txt")
        assert match is not None
        assert match.pattern == "/files/:filename"
        assert match.params == {"filename": "notes.txt"}
        assert match.handler is dummy_handler

    def test_match_with_method(self):
        table = RouteTable()
        table.register("GET", "/files/:filename", dummy_handler)
        table.register("POST", "/files/:filename", other_handler)

        assert table.match("GET", "/files/a").handler is dummy_handler
        assert table.match("POST", "/files/a").handler is other_handler
        assert table.match("PUT", "/files/a") is None

    def test_first_registration_wins(self):
        table = RouteTable()
        table.register("GET", "/echo/:str", dummy_handler)
        table.register("GET", "/echo/:str", other_handler)

        assert table.match("GET", "/echo/x").handler is dummy_handler
        assert table.lookup("GET", "/echo/:str").handler is dummy_handler
        assert len(table) == 2

    def test_earlier_param_route_shadows_static(self):
        table = RouteTable()
        table.register("GET", "/echo/:str", dummy_handler)
        table.register("GET", "/echo/special", other_handler)

        assert table.match("GET", "/echo/special").pattern == "/echo/:str"

    def test_no_match(self):
        table = RouteTable()
        table.register("GET", "/", dummy_handler)

        assert table.match("GET", "/missing") is None
        assert table.lookup("GET", "/missing") is None

    def test_lookup_is_exact(self):
        table = RouteTable()
        table.register("GET", "/echo/:str", dummy_handler)

        assert table.lookup("GET", "/echo/:str") is not None
        assert table.lookup("GET", "/echo/abc") is None

    def test_has_method(self):
        table = RouteTable()
        table.register("GET", "/", dummy_handler)

        assert table.has_method("GET")
        assert not table.has_method("get")
        assert table.match("get", "/") is None
        assert not table.has_method("DELETE")
        assert table.methods() == ["GET"]

    def test_routes_in_registration_order(self):
        table = RouteTable()
        table.register("GET", "/", dummy_handler)
        table.register("POST", "/files/:filename", dummy_handler)
        table.register("GET", "/user-agent", dummy_handler)

        assert [r.path for r in table.routes("GET")] == ["/", "/user-agent"]
        assert len(table.routes()) == 3

    def test_freeze(self):
        table = RouteTable()
        table.freeze()

        assert table.frozen
        with pytest.raises(RuntimeError):
            table.register("GET", "/", dummy_handler)


class TestRouteTableDecorators:
    """Tests for route decorators."""

    def test_get_decorator(self):
        table = RouteTable()

        @table.get("/test")
        def test_handler(request, response):
            pass

        assert table.lookup("GET", "/test").handler is test_handler

    def test_post_decorator(self):
        table = RouteTable()

        @table.post("/test")
        def test_handler(request, response):
            pass

        assert table.lookup("POST", "/test").handler is test_handler
        assert table.lookup("GET", "/test") is None

    def test_route_decorator(self):
        table = RouteTable()

        @table.route("put", "/test")
        def test_handler(request, response):
            pass

        assert table.has_method("PUT")
