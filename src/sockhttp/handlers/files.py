"""
=============================================================================
FILE HANDLER
=============================================================================

Reads and writes files in ONE served directory:

    GET  /files/:filename   → 200 + file bytes (application/octet-stream)
    POST /files/:filename   → request body written to disk, 201 Created

There is no 5xx in this server. Every failure is a 404 with a short
plain-text explanation:

    ┌──────────────────────────────────────┬────────────────────────────────┐
    │  Situation                           │  Response                      │
    ├──────────────────────────────────────┼────────────────────────────────┤
    │  GET: missing, unreadable, directory │  404 File not found            │
    │  GET: outside the served directory   │  404 File not found            │
    │  POST: write failed                  │  404 Something went terribly   │
    │  POST: outside the served directory  │      wrong                     │
    │  No directory configured             │  same as above, per method     │
    └──────────────────────────────────────┴────────────────────────────────┘

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

A :filename parameter can never contain "/", but it CAN be "..":

    GET /files/.. HTTP/1.1        → <directory>/..  → the PARENT directory

So every filename goes through the same check:

    full_path = (directory / filename).resolve()
    full_path.relative_to(directory)  # Raises if outside the directory!

=============================================================================
"""

import logging
from pathlib import Path
from typing import Optional

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from ..http.status_codes import HTTPStatus

logger = logging.getLogger(__name__)

FILE_NOT_FOUND = "File not found"
WRITE_FAILED = "Something went terribly wrong"


class FileHandler:
    """
    GET/POST handlers bound to a served directory.

    Usage:
        files = FileHandler("/tmp/data")
        server.get("/files/:filename")(files.read)
        server.post("/files/:filename")(files.write)
    """

    def __init__(self, directory: Optional[str] = None):
        """
        Args:
            directory: Directory to serve. Resolved to an absolute path
                       now. None disables file access: every request
                       answers 404.
        """
        self.directory: Optional[Path] = None

        if directory is not None:
            self.directory = Path(directory).resolve()
            if not self.directory.is_dir():
                # Not fatal: reads will 404 and writes fail until it exists
                logger.warning(f"Served directory does not exist: {self.directory}")

    def resolve(self, filename: str) -> Optional[Path]:
        """
        Map a filename to a path inside the served directory.

        Returns:
            The resolved path, or None when no directory is configured
            or the result escapes it.
        """
        if self.directory is None:
            return None

        full_path = (self.directory / filename).resolve()
        try:
            full_path.relative_to(self.directory)
        except ValueError:
            logger.warning(f"Path traversal attempt: {filename!r}")
            return None
        return full_path

    # =========================================================================
    # HANDLERS
    # =========================================================================

    def read(self, request: HTTPRequest, response: HTTPResponse) -> None:
        """GET /files/:filename"""
        filename = request.params.get("filename", "")
        path = self.resolve(filename)

        if path is None:
            response.status(HTTPStatus.NOT_FOUND).send(FILE_NOT_FOUND)
            return

        try:
            content = path.read_bytes()
        except OSError as e:
            logger.debug(f"Cannot read {path}: {e}")
            response.status(HTTPStatus.NOT_FOUND).send(FILE_NOT_FOUND)
            return

        response.status(HTTPStatus.OK).send(content)

    def write(self, request: HTTPRequest, response: HTTPResponse) -> None:
        """
        POST /files/:filename

        The body is written byte-for-byte, replacing any existing file.
        An empty body creates an empty file.
        """
        filename = request.params.get("filename", "")
        path = self.resolve(filename)

        if path is None:
            response.status(HTTPStatus.NOT_FOUND).send(WRITE_FAILED)
            return

        try:
            path.write_bytes(request.body_bytes)
        except OSError as e:
            logger.error(f"Error writing file {path}: {e}")
            response.status(HTTPStatus.NOT_FOUND).send(WRITE_FAILED)
            return

        logger.info(f"Wrote {len(request.body_bytes)} bytes to {path}")
        response.status(HTTPStatus.CREATED).send()
