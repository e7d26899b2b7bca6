"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Message framing for the asset server: parsing requests, building and
serialising (possibly streamed) responses, routing, status codes and the
extension -> media type table.

    request.py       bytes → HTTPRequest, HTTPParseError
    response.py      HTTPResponse, ResponseBuilder, plain-text error responses
    router.py        (method, path) → handler
    status_codes.py  HTTPStatus with reason phrases
    mime_types.py    ".css" → "text/css; charset=utf-8"

Nothing here touches the filesystem.

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError
from .response import (
    HTTPResponse,
    ResponseBuilder,
    format_http_date,
    ok,                  # 200, plain text
    error_response,      # any status, body = status line
    bad_request,         # 400
    not_found,           # 404
    method_not_allowed,  # 405
    internal_error,      # 500
)
from .router import Router, Route
from .status_codes import HTTPStatus
from .mime_types import MIME_TYPES, get_mime_type, get_content_type

__all__ = [
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "HTTPResponse",
    "ResponseBuilder",
    "format_http_date",
    "ok",
    "error_response",
    "bad_request",
    "not_found",
    "method_not_allowed",
    "internal_error",
    "Router",
    "Route",
    "HTTPStatus",
    "MIME_TYPES",
    "get_mime_type",
    "get_content_type",
]
