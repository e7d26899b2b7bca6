"""
=============================================================================
ASSET HANDLER
=============================================================================

Turns a RequestOutcome from the resolver into an HTTPResponse.

=============================================================================
HEADER ASSEMBLY
=============================================================================

    Outcome         Status  Headers                                   Body
    ───────         ──────  ───────                                   ────
    Welcome         200     Content-Type: text/plain                  welcome text
    Serve           200     Expires, Cache-Control, Last-Modified,    file stream
                            ETag, Content-Type
    NotModified     304     Expires, Cache-Control, Last-Modified,    (none)
                            ETag
    Rejected        4xx/5xx Content-Type: text/plain                  "404 Not Found"

    Expires        = now + max_age, as an HTTP-date
    Cache-Control  = max-age=<max_age>

The welcome page carries no cache headers. Content-Encoding and Vary are
added later by CompressionMiddleware, Content-Length / Transfer-Encoding by
the response serialiser.

=============================================================================
USAGE
=============================================================================

    resolver = AssetResolver("./assets", welcome="hello")
    assets = AssetHandler(resolver, max_age=30 * 24 * 3600)
    router.add_route("/*path", assets.handle, method="GET")

=============================================================================
"""

from datetime import datetime, timezone
from typing import Callable, Optional
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder, error_response, ok
from ..http.status_codes import HTTPStatus
from ..pipeline.descriptors import (
    Fingerprint,
    NotModified,
    Rejected,
    RequestOutcome,
    Serve,
    Welcome,
)
from ..pipeline.resolver import AssetResolver


logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE = 30 * 24 * 60 * 60  # 30 days


class AssetHandler:
    """
    Request handler for the asset pipeline.

    `clock` returns the current UTC time; tests pin it to check Expires.
    """

    def __init__(
        self,
        resolver: AssetResolver,
        max_age: int = DEFAULT_MAX_AGE,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.resolver = resolver
        self.max_age = max_age
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        outcome = self.resolver.resolve(
            request.method,
            request.path,
            if_modified_since=request.if_modified_since,
            if_none_match=request.if_none_match,
        )
        return self.respond(outcome)

    def respond(self, outcome: RequestOutcome) -> HTTPResponse:
        if isinstance(outcome, Serve):
            return (self._cached(HTTPStatus.OK, outcome.fingerprint)
                .stream(outcome.stream, outcome.media_type)
                .build())

        if isinstance(outcome, NotModified):
            return self._cached(HTTPStatus.NOT_MODIFIED, outcome.fingerprint).build()

        if isinstance(outcome, Rejected):
            logger.debug("Rejected with %d: %s", int(outcome.status), outcome.error)
            return error_response(outcome.status)

        if isinstance(outcome, Welcome):
            return ok(outcome.text)

        raise TypeError(f"Unknown outcome: {outcome!r}")

    def _cached(self, status: HTTPStatus, fp: Fingerprint) -> ResponseBuilder:
        return (ResponseBuilder()
            .status(status)
            .cache(self.max_age, now=self._clock())
            .validators(fp.last_modified, fp.etag))
