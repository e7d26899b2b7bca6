"""
=============================================================================
MIDDLEWARE BASE
=============================================================================

Middleware wraps the router: each layer sees the request on the way in and
the response on the way out, and may answer early without calling next.

=============================================================================
THE ASSET SERVER'S STACK
=============================================================================

    ┌─────────────────────────────────────────────────────────────────┐
    │  LoggingMiddleware        access log, X-Request-ID              │
    │  ┌───────────────────────────────────────────────────────────┐  │
    │  │  MethodGuardMiddleware   non-GET → 400, no disk access    │  │
    │  │  ┌─────────────────────────────────────────────────────┐  │  │
    │  │  │  CompressionMiddleware   gzip the 200 body stream   │  │  │
    │  │  │  ┌───────────────────────────────────────────────┐  │  │  │
    │  │  │  │  router.handle → AssetHandler.handle          │  │  │  │
    │  │  │  └───────────────────────────────────────────────┘  │  │  │
    │  │  └─────────────────────────────────────────────────────┘  │  │
    │  └───────────────────────────────────────────────────────────┘  │
    └─────────────────────────────────────────────────────────────────┘

First added is outermost. The request flows inward in that order and the
response flows back outward in reverse, so logging sees the final status
and headers, including those set by compression.

Middleware must not drain a streamed response body. It may wrap the stream
in another generator (compression does) because nothing is read until the
server writes the response.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)

# The next middleware, or the final handler
NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    A layer of the request pipeline.

        class AddHeader(Middleware):
            def __call__(self, request, next):
                response = next(request)
                response.set_header("X-Asset-Server", "1")
                return response
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        ...

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """Ordered middleware plus the code that nests them around a handler."""

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._middleware.append(middleware)
        logger.debug("Added middleware: %s", middleware.name)
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Nest every middleware around `handler`.

            [A, B, C] + handler  →  A(B(C(handler)))

        Wrapping happens in reverse so that the first-added middleware ends
        up outermost.
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._bind(middleware, current)
        return current

    @staticmethod
    def _bind(middleware: Middleware, next_handler: NextHandler) -> NextHandler:
        def wrapped(request: HTTPRequest) -> HTTPResponse:
            return middleware(request, next_handler)
        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)


class FunctionMiddleware(Middleware):
    """Adapts a plain `(request, next) -> response` function."""

    def __init__(
        self,
        func: Callable[[HTTPRequest, NextHandler], HTTPResponse],
        name: Optional[str] = None
    ):
        self._func = func
        self._name = name or func.__name__

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        return self._func(request, next)

    @property
    def name(self) -> str:
        return self._name


def function_middleware(
    func: Callable[[HTTPRequest, NextHandler], HTTPResponse]
) -> FunctionMiddleware:
    """
    Decorator form of FunctionMiddleware:

        @function_middleware
        def server_header(request, next):
            response = next(request)
            response.set_header("X-Served-By", socket.gethostname())
            return response

        server.use(server_header)
    """
    return FunctionMiddleware(func)
