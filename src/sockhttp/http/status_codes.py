"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The server speaks a deliberately tiny subset of RFC 7231 status codes.

    ┌────────┬──────────────┬──────────────────────────────────────────┐
    │  Code  │ Phrase       │ Used for                                 │
    ├────────┼──────────────┼──────────────────────────────────────────┤
    │  200   │ OK           │ Successful GET                           │
    │  201   │ Created      │ File written by POST /files/:filename    │
    │  404   │ Not Found    │ Unknown route, missing file, failed write│
    └────────┴──────────────┴──────────────────────────────────────────┘

The set is CLOSED. There is no server-error status: every failure a
handler can observe is reported as 404 with an explanatory body.

Asking for any other code is a programming error, so HTTPStatus(500)
raises ValueError instead of producing a status line with a made-up
reason phrase.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes understood by the response writer.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus(404).phrase
        'Not Found'
    """

    OK = 200            # Request succeeded
    CREATED = 201       # Resource written (POST)
    NOT_FOUND = 404     # Route or resource missing; also the default status

    @property
    def phrase(self) -> str:
        """
        Reason phrase for the status line.

            HTTP/1.1 201 Created
                     ─── ───────
                      │     └── phrase
                      └──────── code
        """
        return _STATUS_PHRASES[self]

    @property
    def is_success(self) -> bool:
        """True for 2xx codes."""
        return 200 <= self < 300

    @property
    def is_error(self) -> bool:
        """True for 4xx codes (the only error class modeled)."""
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.NOT_FOUND: "Not Found",
}
