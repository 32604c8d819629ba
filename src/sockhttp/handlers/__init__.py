"""
=============================================================================
HANDLERS - Application Endpoints
=============================================================================

Every handler has the same shape:

    def handler(request: HTTPRequest, response: HTTPResponse) -> None:
        response.status(HTTPStatus.OK).send("...")

The handler answers by calling response.send() exactly once. Its return
value is ignored.

=============================================================================
DEFAULT ROUTES
=============================================================================

    ┌────────┬────────────────────┬──────────────────────────────────────┐
    │ Method │ Pattern            │ Handler                              │
    ├────────┼────────────────────┼──────────────────────────────────────┤
    │ GET    │ /                  │ echo.index                           │
    │ GET    │ /echo/:str         │ echo.echo                            │
    │ GET    │ /user-agent        │ echo.user_agent                      │
    │ GET    │ /files/:filename   │ FileHandler.read                     │
    │ POST   │ /files/:filename   │ FileHandler.write                    │
    └────────┴────────────────────┴──────────────────────────────────────┘

    from sockhttp import HTTPServer, ServerConfig
    from sockhttp.handlers import register_default_routes

    server = HTTPServer(ServerConfig(directory="/tmp/data"))
    register_default_routes(server, "/tmp/data")
    server.run()

=============================================================================
"""

from typing import Optional

from .echo import echo, index, user_agent
from .files import FileHandler


def register_default_routes(server, directory: Optional[str] = None) -> FileHandler:
    """
    Register the five default routes.

    Args:
        server: An HTTPServer or a RouteTable (anything with register()).
        directory: Directory served by /files/:filename.

    Returns:
        The FileHandler bound to `directory`.
    """
    files = FileHandler(directory)

    server.register("GET", "/", index)
    server.register("GET", "/echo/:str", echo)
    server.register("GET", "/user-agent", user_agent)
    server.register("GET", "/files/:filename", files.read)
    server.register("POST", "/files/:filename", files.write)

    return files


__all__ = [
    "FileHandler",
    "register_default_routes",
    "index",
    "echo",
    "user_agent",
]
