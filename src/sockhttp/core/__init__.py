"""
=============================================================================
CORE - TCP LAYER
=============================================================================

Everything below HTTP: the listening socket, the selector loop, and the
per-client Connection that frames inbound bytes into messages.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        LAYERS                                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   HTTPServer (server.py)          dispatch: parse → route → handler  │
    │        ▲                                                             │
    │        │ on_data(conn, chunk)                                        │
    │        │                                                             │
    │   SocketServer (socket_server.py) accept, select, recv, flush        │
    │        │                                                             │
    │        ▼                                                             │
    │   Connection (connection.py)      buffer, framing, outbox, close     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .connection import Connection, ConnectionState
from .socket_server import SocketServer

__all__ = [
    "SocketServer",     # Listening socket + selector loop
    "Connection",       # Client socket wrapper - framing and buffered writes
    "ConnectionState",  # Enum for connection lifecycle states
]
