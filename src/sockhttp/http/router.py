"""
=============================================================================
ROUTE TABLE
=============================================================================

Maps (method, path pattern) pairs to handler functions.

Supported patterns:
- Static paths: /, /user-agent
- Dynamic parameters: /echo/:str, /files/:filename

=============================================================================
ROUTING FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ROUTING FLOW                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Incoming Request                                                   │
    │   GET /files/notes.txt                                               │
    │        │                                                             │
    │        ▼                                                             │
    │   ┌─────────────────────────────────────────────────────────────┐   │
    │   │  ROUTE TABLE (per method, insertion ordered)                 │   │
    │   │                                                              │   │
    │   │  GET:                                                        │   │
    │   │    /                 → index                                 │   │
    │   │    /echo/:str        → echo                                  │   │
    │   │    /user-agent       → user_agent                            │   │
    │   │    /files/:filename  → read_file        ← MATCH!             │   │
    │   │  POST:                                                       │   │
    │   │    /files/:filename  → write_file                            │   │
    │   │                                                              │   │
    │   │  Extracted: params = {"filename": "notes.txt"}               │   │
    │   └─────────────────────────────────────────────────────────────┘   │
    │        │                                                             │
    │        ▼                                                             │
    │   request.path == "/files/:filename"   (the canonical endpoint)     │
    │   read_file(request, response)                                       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PATTERN MATCHING ALGORITHM
=============================================================================

Patterns are compiled ONCE, at registration, into a tuple of segments.
No regex engine is involved:

    Pattern:  /files/:filename
    Split:    ["", "files", ":filename"]
    Segments: (STATIC "", STATIC "files", PARAM filename)

    Path:     /files/notes.txt
    Split:    ["", "files", "notes.txt"]

    1. Segment counts must be equal          3 == 3  ✓
    2. STATIC segments compare by equality   "files" == "files"  ✓
    3. PARAM segments capture the part       filename = "notes.txt"
       if it is one or more characters from
       {letters, digits, "_", "-", "."}

A parameter can never swallow a "/": a path with more segments than the
pattern simply has a different segment count.

=============================================================================
ORDERING
=============================================================================

First registered, first matched. Registering the same pattern twice is
allowed and silently shadowed: lookups walk the routes in insertion order,
so the EARLIEST registration always wins.

    table.register("GET", "/echo/:str", first)
    table.register("GET", "/echo/:str", second)   # never reached

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from .request import HTTPRequest
from .response import HTTPResponse


# Handler: receives the parsed request and a response bound to the
# connection. It answers by calling response.send(); the return value
# is ignored.
Handler = Callable[[HTTPRequest, HTTPResponse], None]


class RouteType(Enum):
    """How a single pattern segment is matched."""

    STATIC = "static"   # files - exact match required
    PARAM = "param"     # :filename - captures one path segment


# Characters a parameter value may contain besides letters and digits
_PARAM_PUNCTUATION = frozenset("_-.")


def is_param_value(value: str) -> bool:
    """
    Check whether a path segment can be captured by a :param.

    One or more word characters, hyphens or dots.
    """
    return bool(value) and all(
        ch.isalnum() or ch in _PARAM_PUNCTUATION for ch in value
    )


@dataclass(frozen=True)
class Segment:
    """One compiled piece of a route pattern."""

    kind: RouteType
    value: str          # literal text (STATIC) or parameter name (PARAM)

    def matches(self, part: str) -> bool:
        if self.kind is RouteType.STATIC:
            return part == self.value
        return is_param_value(part)


def compile_pattern(pattern: str) -> Tuple[Segment, ...]:
    """
    Compile a route pattern into segments.

        "/echo/:str" → (STATIC "", STATIC "echo", PARAM "str")

    A lone ":" has no name and is treated as literal text.
    """
    segments = []
    for part in pattern.split("/"):
        if part.startswith(":") and len(part) > 1:
            segments.append(Segment(RouteType.PARAM, part[1:]))
        else:
            segments.append(Segment(RouteType.STATIC, part))
    return tuple(segments)


@dataclass
class Route:
    """
    A registered route.

        Route(
            method="GET",
            path="/files/:filename",     # pattern, also the endpoint name
            handler=read_file,
            segments=(...),              # compiled at registration
        )
    """

    method: str
    path: str
    handler: Handler
    segments: Tuple[Segment, ...] = field(default=(), repr=False)

    def __post_init__(self):
        if not self.segments:
            self.segments = compile_pattern(self.path)

    @property
    def param_names(self) -> List[str]:
        """Parameter names in pattern order."""
        return [s.value for s in self.segments if s.kind is RouteType.PARAM]

    def match(self, path: str) -> Optional[Dict[str, str]]:
        """
        Match a raw request path against this route.

        Returns:
            Captured parameters (empty dict for static routes), or None.
        """
        parts = path.split("/")
        if len(parts) != len(self.segments):
            return None

        params: Dict[str, str] = {}
        for segment, part in zip(self.segments, parts):
            if not segment.matches(part):
                return None
            if segment.kind is RouteType.PARAM:
                params[segment.value] = part
        return params


@dataclass
class RouteMatch:
    """
    Result of a successful match.

        Pattern: /echo/:str
        Path:    /echo/hello
        Result:  RouteMatch(route=<Route>, params={"str": "hello"})
    """

    route: Route
    params: Dict[str, str]

    @property
    def pattern(self) -> str:
        """The matched pattern, used downstream as the endpoint name."""
        return self.route.path

    @property
    def handler(self) -> Handler:
        return self.route.handler


class RouteTable:
    """
    Method → ordered patterns → handler.

    ==========================================================================
    LIFECYCLE
    ==========================================================================

    Routes are registered before the server starts accepting connections.
    HTTPServer.run() calls freeze(); after that the table is read-only and
    shared by every connection without locking.

        table = RouteTable()

        @table.get("/echo/:str")
        def echo(request, response):
            response.status(HTTPStatus.OK).send(request.params["str"])

        match = table.match("GET", "/echo/abc")
        match.params  # {"str": "abc"}

    ==========================================================================
    """

    def __init__(self):
        self._routes: Dict[str, List[Route]] = {}
        self._frozen = False

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def register(self, method: str, pattern: str, handler: Handler) -> Route:
        """
        Store a handler under (method, pattern).

        Pattern syntax is not validated. Duplicates are kept; the first
        registration shadows later ones.

        Raises:
            RuntimeError: If the table was frozen by a running server.
        """
        if self._frozen:
            raise RuntimeError(
                f"Cannot register {method} {pattern}: route table is frozen"
            )

        route = Route(method=method.upper(), path=pattern, handler=handler)
        self._routes.setdefault(route.method, []).append(route)
        return route

    def route(self, method: str, pattern: str) -> Callable[[Handler], Handler]:
        """
        Decorator form of register().

            @table.route("POST", "/files/:filename")
            def write_file(request, response):
                ...
        """
        def decorator(handler: Handler) -> Handler:
            self.register(method, pattern, handler)
            return handler
        return decorator

    def get(self, pattern: str) -> Callable[[Handler], Handler]:
        """Register a GET route."""
        return self.route("GET", pattern)

    def post(self, pattern: str) -> Callable[[Handler], Handler]:
        """Register a POST route."""
        return self.route("POST", pattern)

    def freeze(self) -> None:
        """Make the table read-only."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def match(self, method: str, raw_path: str) -> Optional[RouteMatch]:
        """
        Find the first pattern registered under `method` matching `raw_path`.

        `method` is compared exactly as received: registration upper-cases
        method names, so a request for "get" finds no routes.

        Returns:
            RouteMatch with captured parameters, or None.
        """
        for route in self._routes.get(method, ()):
            params = route.match(raw_path)
            if params is not None:
                return RouteMatch(route=route, params=params)
        return None

    def lookup(self, method: str, path: str) -> Optional[Route]:
        """
        Exact lookup: the first route whose pattern string equals `path`.

        Dispatch uses this after parsing, when request.path holds either
        the matched pattern or the unmatched raw path.
        """
        for route in self._routes.get(method, ()):
            if route.path == path:
                return route
        return None

    def has_method(self, method: str) -> bool:
        """Check whether any route is registered for `method` (case-sensitive)."""
        return bool(self._routes.get(method))

    def methods(self) -> List[str]:
        """Registered methods in registration order."""
        return [m for m, routes in self._routes.items() if routes]

    def routes(self, method: Optional[str] = None) -> List[Route]:
        """All routes, or the routes of one method, in registration order."""
        if method is not None:
            return list(self._routes.get(method.upper(), ()))
        return [route for routes in self._routes.values() for route in routes]

    def __len__(self) -> int:
        return sum(len(routes) for routes in self._routes.values())
