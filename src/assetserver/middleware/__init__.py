"""
=============================================================================
MIDDLEWARE
=============================================================================

Layers wrapped around the router, outermost first:

    LoggingMiddleware      access log + X-Request-ID
    MethodGuardMiddleware  non-GET → 400 before any filesystem access
    CompressionMiddleware  streaming gzip for compressible 200s

=============================================================================
"""

from .base import Middleware, MiddlewarePipeline, FunctionMiddleware, function_middleware
from .logging import LoggingMiddleware, RequestLog
from .method_guard import MethodGuardMiddleware
from .compression import (
    CompressionMiddleware,
    DEFAULT_GZIP_EXTENSIONS,
    accepts_gzip,
    gzip_stream,
    is_compressible,
)

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "FunctionMiddleware",
    "function_middleware",
    "LoggingMiddleware",
    "RequestLog",
    "MethodGuardMiddleware",
    "CompressionMiddleware",
    "DEFAULT_GZIP_EXTENSIONS",
    "accepts_gzip",
    "gzip_stream",
    "is_compressible",
]
