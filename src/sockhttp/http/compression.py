"""
=============================================================================
CONTENT ENCODING
=============================================================================

Accept-Encoding negotiation and gzip body encoding.

=============================================================================
CONTENT NEGOTIATION
=============================================================================

The client lists the encodings it understands:

    Request:
    ┌───────────────────────────────────────────────────────────────┐
    │ GET /echo/abc HTTP/1.1                                        │
    │ Accept-Encoding: invalid-encoding-1, gzip;q=1.0, identity     │
    │                  ──────────┬──────── ────┬───── ────┬───      │
    │                            │             │          │         │
    │                      ignored        ACCEPTED     ignored      │
    └───────────────────────────────────────────────────────────────┘

    Response:
    ┌───────────────────────────────────────────────────────────────┐
    │ HTTP/1.1 200 OK                                               │
    │ Content-Type: text/plain                                      │
    │ Content-Length: 23      (compressed size)                     │
    │ Content-Encoding: gzip                                        │
    │                                                               │
    │ [gzip compressed body]                                        │
    └───────────────────────────────────────────────────────────────┘

Rules:
- Entries are comma-separated and whitespace-trimmed.
- Parameters after ";" (q-values) are dropped, not evaluated.
- Names compare case-insensitively.
- gzip is the ONLY supported coding. Everything else is ignored, so
  "identity", "br" or garbage all mean "send the body as-is".

The decision is made ONCE per request, before the handler runs, and
fixed on the response. Handlers cannot change it.

=============================================================================
COMPRESSION LEVELS
=============================================================================

    Level 1:  Fastest compression, lowest ratio
    Level 6:  Balanced (default)
    Level 9:  Best compression, slowest

Unlike a general-purpose compression middleware, there is no minimum
size and no content-type filter: a client that accepts gzip gets every
non-empty body gzipped, even when that makes it larger.

=============================================================================
"""

import gzip
import logging
import zlib
from typing import List

logger = logging.getLogger(__name__)

GZIP = "gzip"
DEFAULT_LEVEL = 6


class CompressionError(Exception):
    """Raised when a body cannot be gzip-encoded."""


def parse_accept_encoding(header: str) -> List[str]:
    """
    Split an Accept-Encoding value into bare, lower-case coding names.

        >>> parse_accept_encoding("GZIP;q=0.8 , br")
        ['gzip', 'br']

    Empty entries are dropped.
    """
    codings = []
    for entry in header.split(","):
        name = entry.split(";", 1)[0].strip().lower()
        if name:
            codings.append(name)
    return codings


def accepts_gzip(header: str) -> bool:
    """
    The encoding decision: True if the client listed gzip.

        accepts_gzip("gzip")                          → True
        accepts_gzip("invalid-encoding-1, gzip")      → True
        accepts_gzip("identity")                      → False
        accepts_gzip("")                              → False
    """
    return GZIP in parse_accept_encoding(header)


def gzip_body(body: bytes, level: int = DEFAULT_LEVEL) -> bytes:
    """
    gzip-encode a response body.

    Args:
        body: Uncompressed bytes.
        level: Compression level 1-9.

    Returns:
        A complete gzip member, decodable with gzip.decompress().

    Raises:
        CompressionError: If encoding fails.
    """
    try:
        compressed = gzip.compress(body, compresslevel=level)
    except (zlib.error, ValueError, TypeError) as e:
        raise CompressionError(f"gzip encoding failed: {e}") from e

    logger.debug(f"gzip: {len(body)} → {len(compressed)} bytes (level {level})")
    return compressed
