"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Every tunable of the server in one typed dataclass.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m sockhttp --port 4221 --directory /tmp/files     │
    │                                                                      │
    │   2. Keyword arguments in code                                      │
    │      └── ServerConfig(port=0, directory="/tmp/files")              │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

There is deliberately no environment-variable layer: the command line is
the single external source.

=============================================================================
"""

from dataclasses import dataclass
from typing import Optional

LOG_FORMATS = ("text", "json")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, timeout, poll_interval

    HTTP SETTINGS
    - max_request_size, compression_level, server_name

    FILES
    - directory

    LOGGING
    - log_level, log_format

    =========================================================================
    EXAMPLES
    =========================================================================

    Default (what the CLI runs):
        ServerConfig()                       # localhost:4221

    Tests:
        ServerConfig(
            port=0,                          # ephemeral port
            directory=str(tmp_path),
            poll_interval=0.05,              # fast shutdown
        )

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "localhost"
    """
    The address to bind to.
    - "localhost" - Loopback only (default)
    - "0.0.0.0" - All network interfaces
    """

    port: int = 4221
    """
    The port number to listen on.
    0 asks the OS for a free ephemeral port; the bound port is then
    available from HTTPServer.address.
    """

    backlog: int = 128
    """
    Maximum number of queued connections waiting to be accepted.
    """

    buffer_size: int = 8192
    """
    Bytes requested per recv() call (8 KB default).
    """

    timeout: Optional[float] = 30.0
    """
    Idle timeout in seconds. A connection that sends nothing for this
    long is closed by the sweep. None disables the sweep.
    """

    poll_interval: float = 0.5
    """
    Seconds the event loop blocks in select() before checking for
    shutdown and sweeping idle connections.
    """

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    max_request_size: int = 10 * 1024 * 1024  # 10 MB
    """
    Maximum bytes buffered for one connection. Exceeding it closes the
    connection.
    """

    compression_level: int = 6
    """
    gzip level (1-9) used when the client accepts gzip.
    """

    server_name: str = "sockhttp/1.0"
    """
    Identifies the server in the startup log.
    """

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    directory: Optional[str] = None
    """
    Directory served by /files/:filename. Resolved to an absolute path at
    startup. None means the file routes always answer 404.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """
    Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """

    log_format: str = "text"
    """
    Access log format: 'text' (one Apache-style line) or 'json'.
    """

    def validate(self) -> None:
        """
        Validate configuration values.

        Called by HTTPServer.__init__ so a bad value fails at startup,
        before any socket is opened.

        Raises:
            ValueError: Describing the first invalid field.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")

        if self.max_request_size < self.buffer_size:
            raise ValueError("max_request_size must be >= buffer_size")

        if not 1 <= self.compression_level <= 9:
            raise ValueError(
                f"Invalid compression_level: {self.compression_level}. Must be 1-9."
            )

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Unknown log_level: {self.log_level}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(
                f"Unknown log_format: {self.log_format}. "
                f"Expected one of {', '.join(LOG_FORMATS)}."
            )
