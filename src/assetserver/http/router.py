"""
=============================================================================
ROUTER
=============================================================================

Maps (method, path) to a handler, with :param and *wildcard captures.

=============================================================================
HOW THE ASSET SERVER USES IT
=============================================================================

The asset server registers a single catch-all route:

    router.add_route("/*path", assets.handle, method="GET")

    GET /                      → assets.handle   (welcome text)
    GET /css/site.css          → assets.handle   params={"path": "css/site.css"}
    GET /js/a.js,/js/b.js      → assets.handle   params={"path": "js/a.js,/js/b.js"}

so every GET reaches the asset pipeline, which decides between welcome,
single file and bundle. The router remains a general one so an embedding
application can mount extra routes (a health check, say) before the
catch-all. Routes are tried in registration order.

=============================================================================
PATTERN COMPILATION
=============================================================================

    "/files/:name/*rest"
        │      │     │
        │      │     └── (?P<rest>.*)      everything that is left
        │      └──────── (?P<name>[^/]+)   one segment
        └─────────────── files             literal, re.escape()d

    → ^/files/(?P<name>[^/]+)/(?P<rest>.*)$

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Optional, Dict, List
import re

from .request import HTTPRequest
from .response import HTTPResponse, not_found, method_not_allowed


Handler = Callable[[HTTPRequest], HTTPResponse]


@dataclass
class Route:
    """A URL pattern bound to a handler. method=None matches any method."""

    path: str
    method: Optional[str]
    handler: Handler
    name: Optional[str] = None
    _pattern: Optional[re.Pattern] = field(default=None, repr=False)
    _param_names: List[str] = field(default_factory=list, repr=False)


@dataclass
class RouteMatch:
    route: Route
    params: Dict[str, str]


class Router:
    """
    First-match router.

        router = Router()

        @router.get("/healthz")
        def health(request):
            return ok("ok")

        router.add_route("/*path", assets.handle, method="GET")
    """

    def __init__(self):
        self._routes: List[Route] = []

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Route:
        pattern, param_names = self._compile_pattern(path)
        route = Route(
            path=path,
            method=method.upper() if method else None,
            handler=handler,
            name=name,
            _pattern=pattern,
            _param_names=param_names,
        )
        self._routes.append(route)
        return route

    def _compile_pattern(self, path: str) -> tuple[re.Pattern, List[str]]:
        param_names: List[str] = []
        regex_parts = ["^"]

        for segment in path.split("/"):
            if not segment:
                continue

            if segment.startswith("*"):
                # Wildcard swallows the leading slash's remainder, even ""
                param_name = segment[1:] or "wildcard"
                param_names.append(param_name)
                regex_parts.append(f"/(?P<{param_name}>.*)")
                break

            regex_parts.append("/")
            if segment.startswith(":"):
                param_name = segment[1:]
                param_names.append(param_name)
                regex_parts.append(f"(?P<{param_name}>[^/]+)")
            else:
                regex_parts.append(re.escape(segment))

        if len(regex_parts) == 1:
            regex_parts.append("/")
        regex_parts.append("$")
        return re.compile("".join(regex_parts)), param_names

    @staticmethod
    def _normalize(path: str) -> str:
        # "/css/" and "/css" route the same; handlers still see request.path
        return "/" + path.strip("/") if path != "/" else "/"

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        path = self._normalize(path)
        for route in self._routes:
            if route.method and route.method != method.upper():
                continue
            match = route._pattern.match(path)
            if match:
                return RouteMatch(route=route, params=match.groupdict())
        return None

    def get_allowed_methods(self, path: str) -> List[str]:
        """Methods that have a route for `path`, for the 405 Allow header."""
        path = self._normalize(path)
        methods = set()
        for route in self._routes:
            if route._pattern.match(path):
                methods.add(route.method or "GET")
        return sorted(methods)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Dispatch to the first matching route.

        No route for the path gives 404; a route that exists only for other
        methods gives 405 with an Allow header.
        """
        match = self.match(request.method, request.path)
        if match:
            request.path_params = match.params
            return match.route.handler(request)

        allowed = self.get_allowed_methods(request.path)
        if allowed:
            return method_not_allowed(allowed)
        return not_found()

    def route(
        self,
        path: str,
        method: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Callable[[Handler], Handler]:
        """Decorator form of add_route()."""
        def decorator(handler: Handler) -> Handler:
            self.add_route(path, handler, method, name)
            return handler
        return decorator

    def get(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        return self.route(path, "GET", name)

    def routes(self) -> List[Route]:
        return list(self._routes)
