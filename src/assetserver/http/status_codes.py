"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes an asset server actually emits, with reason phrases.

=============================================================================
WHAT THIS SERVER ANSWERS WITH
=============================================================================

A read-only asset server needs far fewer codes than a general web
framework. Every response it writes uses one of these:

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  200   │ Asset, bundle, or welcome text                            │
    │  304   │ Browser copy still valid (both validators matched)        │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  400   │ Non-GET method, mixed bundle, malformed request           │
    │  403   │ Directory, device, or path outside the asset root         │
    │  404   │ No such asset                                             │
    │  405   │ Router fallback (no route for the method)                 │
    │  408   │ Client too slow sending the request head                  │
    │  413   │ Request head larger than max_request_size                 │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  500   │ Filesystem fault or handler crash                         │
    │  503   │ Worker queue full                                         │
    └────────┴───────────────────────────────────────────────────────────┘

Error responses carry the status line text as their body, for example
"404 Not Found", which is exactly f"{status.value} {status.phrase}".

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    IntEnum, so a status compares equal to its number:

        >>> HTTPStatus.NOT_MODIFIED == 304
        True
        >>> HTTPStatus.NOT_MODIFIED.phrase
        'Not Modified'
    """

    # 2xx
    OK = 200

    # 3xx
    NOT_MODIFIED = 304

    # 4xx
    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    REQUEST_TIMEOUT = 408
    PAYLOAD_TOO_LARGE = 413

    # 5xx
    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503

    @property
    def phrase(self) -> str:
        """
        Reason phrase for the status line:

            HTTP/1.1 304 Not Modified
                     ─── ────────────
                      │       │
                      │       └── phrase
                      └────────── value
        """
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def status_line(self) -> str:
        """Code and phrase together, used as the plaintext error body."""
        return f"{self.value} {self.phrase}"

    @property
    def has_body(self) -> bool:
        """False for 304, which must not carry a message body."""
        return self != HTTPStatus.NOT_MODIFIED

    @property
    def is_error(self) -> bool:
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
}
