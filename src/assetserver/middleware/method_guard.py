"""
Refuses every method except the allowed ones with a plain-text 400.

The asset server is read-only, so anything but GET is a bad request rather
than a routing miss. Rejecting here, before the router and handler run,
guarantees that a refused request never reaches the filesystem:

    POST /missing.js  →  400 Bad Request   (not 404: no stat() is issued)
"""

from typing import Iterable
import logging

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, bad_request


logger = logging.getLogger(__name__)


class MethodGuardMiddleware(Middleware):

    def __init__(self, allowed_methods: Iterable[str] = ("GET",)):
        self.allowed_methods = frozenset(m.upper() for m in allowed_methods)

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        if request.method not in self.allowed_methods:
            logger.debug("Refusing %s %s", request.method, request.path)
            return bad_request()
        return next(request)
