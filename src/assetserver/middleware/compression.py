"""
=============================================================================
COMPRESSION MIDDLEWARE
=============================================================================

Gzips asset bodies on the fly, without ever holding a whole file in memory.

=============================================================================
WHEN A RESPONSE IS COMPRESSED
=============================================================================

All three must hold:

    1. status is 200 (304s and errors pass through untouched)
    2. the client lists gzip in Accept-Encoding
           "gzip"               yes
           "deflate, GZIP;q=1"  yes   (case-insensitive, parameters ignored)
           "gzip;q=0"           no    (explicitly refused)
           "x-gzip", "xgzip"    no    (only the exact token counts)
    3. the request's extension is in the compressible set
           default {".js", ".css", ".html", ".htm"}; images and fonts are
           already compressed and gain nothing

Otherwise the raw bytes go out unchanged.

=============================================================================
STREAMING GZIP
=============================================================================

    file chunks ──▶ zlib.compressobj(level, DEFLATED, 16 + MAX_WBITS)
                           │                    └── 16 + : gzip header/trailer
                           ▼
                    compressed pieces ──▶ HTTP chunks

The compressed size is not known until the last file has been read, so the
response loses any Content-Length and is sent with chunked transfer coding.
Vary: Accept-Encoding tells shared caches that the body depends on that
request header.

=============================================================================
"""

from typing import AbstractSet, Iterable, Iterator, Optional
import posixpath
import zlib

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from ..http.status_codes import HTTPStatus


DEFAULT_GZIP_EXTENSIONS = frozenset({".js", ".css", ".html", ".htm"})


def accepts_gzip(accept_encoding: Optional[str]) -> bool:
    """True if `gzip` is one of the header's codings and not q=0."""
    if not accept_encoding:
        return False

    for token in accept_encoding.split(","):
        coding, *params = token.split(";")
        if coding.strip().lower() != "gzip":
            continue

        for param in params:
            name, _, value = param.partition("=")
            if name.strip().lower() != "q":
                continue
            try:
                if float(value.strip()) == 0:
                    return False
            except ValueError:
                pass  # malformed q-value counts as q=1
        return True

    return False


def is_compressible(
    extension: str,
    extensions: AbstractSet[str] = DEFAULT_GZIP_EXTENSIONS,
) -> bool:
    return extension.lower() in extensions


def gzip_stream(chunks: Iterable[bytes], level: int = 6) -> Iterator[bytes]:
    """
    Gzip-encode a chunk iterator incrementally.

    Empty compressor output is not yielded (it would terminate a chunked
    body early). The source iterator is closed when this one is.
    """
    compressor = zlib.compressobj(level, zlib.DEFLATED, 16 + zlib.MAX_WBITS)
    try:
        for chunk in chunks:
            compressed = compressor.compress(chunk)
            if compressed:
                yield compressed
        tail = compressor.flush()
        if tail:
            yield tail
    finally:
        close = getattr(chunks, "close", None)
        if close is not None:
            close()


def request_extension(path: str) -> str:
    """
    Extension of the last comma-separated member of a request path.

    Bundles are homogeneous by the time they are served, so the last
    member's extension is the bundle's.
    """
    members = [member for member in path.split(",") if member]
    if not members:
        return ""
    return posixpath.splitext(members[-1])[1]


class CompressionMiddleware(Middleware):
    """
    Gzip 200 responses for compressible assets.

        server.use(CompressionMiddleware(extensions={".js", ".css"}, level=6))
    """

    def __init__(
        self,
        extensions: Optional[Iterable[str]] = None,
        level: int = 6,
    ):
        self.extensions = (
            frozenset(extensions) if extensions is not None else DEFAULT_GZIP_EXTENSIONS
        )
        self.level = level

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        response = next(request)

        if not self._should_compress(request, response):
            return response

        body = response.stream if response.is_streamed else iter([response.body])
        response.stream = gzip_stream(body, self.level)
        response.body = b""
        response.remove_header("Content-Length")
        response.set_header("Content-Encoding", "gzip")

        vary = response.get_header("Vary", "")
        if "accept-encoding" not in vary.lower():
            response.set_header("Vary", f"{vary}, Accept-Encoding".lstrip(", "))

        return response

    def _should_compress(self, request: HTTPRequest, response: HTTPResponse) -> bool:
        if response.status != HTTPStatus.OK:
            return False
        if response.get_header("Content-Encoding") is not None:
            return False
        if not accepts_gzip(request.accept_encoding):
            return False
        return is_compressible(request_extension(request.path), self.extensions)
