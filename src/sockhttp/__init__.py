"""
=============================================================================
SOCKHTTP - Minimal HTTP/1.1 Server Over Raw Sockets
=============================================================================

No HTTP library involved: bytes come off a non-blocking socket, are framed
into messages, parsed, routed through a :param route table, answered by a
handler, and written back, gzip-compressed when the client asks for it.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    sockhttp/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m sockhttp)
    ├── server.py            # HTTPServer: lifecycle + dispatch
    ├── config.py            # ServerConfig dataclass
    ├── access_log.py        # One structured line per request
    ├── core/                # TCP layer
    │   ├── socket_server.py # Listening socket + selector loop
    │   └── connection.py    # Framing, buffered writes, close
    ├── http/                # HTTP protocol components
    │   ├── request.py       # Raw bytes → HTTPRequest
    │   ├── response.py      # HTTPResponse writer + serialization
    │   ├── router.py        # RouteTable with :param patterns
    │   ├── compression.py   # Accept-Encoding, gzip
    │   └── status_codes.py  # 200, 201, 404
    └── handlers/            # Application endpoints
        ├── echo.py          # /, /echo/:str, /user-agent
        └── files.py         # GET/POST /files/:filename

=============================================================================
QUICK START
=============================================================================

    from sockhttp import HTTPServer, ServerConfig
    from sockhttp.http import HTTPStatus

    server = HTTPServer(ServerConfig(port=4221))

    @server.get("/echo/:str")
    def echo(request, response):
        response.status(HTTPStatus.OK).send(request.params["str"])

    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import HTTPServer

__all__ = ["HTTPServer", "ServerConfig", "__version__"]
