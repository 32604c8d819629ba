"""
=============================================================================
COMMAND-LINE ENTRY POINT
=============================================================================

    python -m sockhttp [--directory DIR] [--host HOST] [--port PORT]
                       [--log-level LEVEL] [--log-format {text,json}] [DIR]

Examples:

    # Serve /tmp/data on localhost:4221
    python -m sockhttp --directory /tmp/data

    # Same, directory given positionally
    sockhttp /tmp/data

    # JSON access logs on another port
    sockhttp --port 8080 --log-format json --directory ./files

Exit codes: 0 after a clean shutdown, 1 on a configuration or bind error.

=============================================================================
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .config import LOG_FORMATS, LOG_LEVELS, ServerConfig
from .handlers import register_default_routes
from .server import HTTPServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sockhttp",
        description="Minimal HTTP/1.1 server over raw sockets",
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host",
        default="localhost",
        help="Address to bind to (default: localhost)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=4221,
        help="Port to listen on (default: 4221)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # FEATURE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--directory", "-d",
        default=None,
        help="Directory served by /files/:filename"
    )

    parser.add_argument(
        "dir",
        nargs="?",
        default=None,
        metavar="DIR",
        help="Served directory, if --directory is not given"
    )

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        default="INFO",
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default="text",
        help="Access log format (default: text)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"sockhttp {__version__}"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Parse arguments, build the server and run it until shutdown.

    Args:
        argv: Arguments without the program name. Defaults to sys.argv[1:].

    Returns:
        Process exit code.
    """
    args = build_parser().parse_args(argv)

    directory = args.directory or args.dir

    try:
        config = ServerConfig(
            host=args.host,
            port=args.port,
            directory=directory,
            log_level=args.log_level,
            log_format=args.log_format,
        )
        server = HTTPServer(config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    register_default_routes(server, directory)

    try:
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
