"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP/1.x responses, buffered or streamed.

=============================================================================
TWO KINDS OF BODY
=============================================================================

Small responses (errors, the welcome text, 304s) keep their body in memory
and are sent with a Content-Length. Assets are never loaded whole: their
body is an iterator of chunks read lazily from disk.

    BUFFERED                              STREAMED
    ────────                              ────────
    HTTP/1.1 404 Not Found\\r\\n           HTTP/1.1 200 OK\\r\\n
    Content-Type: text/plain\\r\\n         Content-Type: text/css\\r\\n
    Content-Length: 13\\r\\n               Transfer-Encoding: chunked\\r\\n
    \\r\\n                                  \\r\\n
    404 Not Found                         4000\\r\\n <16 KiB of file 1>\\r\\n
                                          1a2\\r\\n  <418 bytes of file 2>\\r\\n
                                          0\\r\\n\\r\\n

The length of a streamed body is unknown up front: gzip changes it, and a
bundle is several files. HTTP/1.1 clients get chunked transfer coding.
HTTP/1.0 has no chunking, so the raw bytes are written and the end of the
body is signalled by closing the connection (the server does that).

=============================================================================
SERIALISATION IS LAZY TOO
=============================================================================

iter_bytes() yields the header block first and then one piece per body
chunk. The connection writes each piece with sendall() before asking for
the next, so a file chunk is only read from disk once the previous one has
been accepted by the kernel. A slow client therefore slows the reads down
instead of filling memory.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Iterable, Iterator, Union

from .status_codes import HTTPStatus


TEXT_PLAIN = "text/plain; charset=utf-8"


@dataclass
class HTTPResponse:
    """
    A response ready to be written to a socket.

    Exactly one of `body` and `stream` carries the content. When `stream`
    is set, `body` is ignored.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    stream: Optional[Iterator[bytes]] = None
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        return f"{self.version} {self.status.value} {self.status.phrase}"

    @property
    def is_streamed(self) -> bool:
        return self.stream is not None

    @property
    def content_length(self) -> Optional[int]:
        """Body size in bytes, or None while it is still a stream."""
        if self.is_streamed:
            return None
        return len(self.body) if self.status.has_body else 0

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def remove_header(self, name: str) -> "HTTPResponse":
        """Remove a header regardless of the case it was set with."""
        for key in [k for k in self.headers if k.lower() == name.lower()]:
            del self.headers[key]
        return self

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        for key, value in self.headers.items():
            if key.lower() == name.lower():
                return value
        return default

    def head_bytes(self, server_name: str = "assetserver", chunked: bool = True) -> bytes:
        """
        Serialise the status line and headers, including the blank line.

        Date and Server are added unless already present. The framing
        header depends on the body:

            buffered               →  Content-Length: <len>
            streamed, chunked      →  Transfer-Encoding: chunked
            streamed, not chunked  →  neither (ends when the socket closes)
            304                    →  neither (no body allowed)
        """
        response_headers = dict(self.headers)

        if self.is_streamed:
            response_headers.pop("Content-Length", None)
            if chunked:
                response_headers["Transfer-Encoding"] = "chunked"
        elif self.status.has_body:
            response_headers.setdefault("Content-Length", str(len(self.body)))

        response_headers.setdefault("Date", format_http_date(datetime.now(timezone.utc)))
        response_headers.setdefault("Server", server_name)

        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in response_headers.items())
        return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")

    def iter_bytes(
        self,
        server_name: str = "assetserver",
        chunked: bool = True,
    ) -> Iterator[bytes]:
        """
        Yield the serialised response piece by piece.

        The body stream is closed when this generator finishes or is closed,
        so abandoning a half-sent response releases the underlying files.
        """
        yield self.head_bytes(server_name, chunked)

        if not self.is_streamed:
            if self.status.has_body and self.body:
                yield self.body
            return

        try:
            for chunk in self.stream:
                if not chunk:
                    continue
                if chunked:
                    yield b"%x\r\n%s\r\n" % (len(chunk), chunk)
                else:
                    yield chunk
            if chunked:
                yield b"0\r\n\r\n"
        finally:
            close = getattr(self.stream, "close", None)
            if close is not None:
                close()

    def to_bytes(self, server_name: str = "assetserver", chunked: bool = True) -> bytes:
        """Serialise the whole response at once. Drains the stream."""
        return b"".join(self.iter_bytes(server_name, chunked))


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .stream(chunks, "text/css; charset=utf-8")
            .cache(max_age=2592000)
            .validators(last_modified, etag)
            .build())

    Every method except build() returns the builder.
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""
        self._stream: Optional[Iterator[bytes]] = None

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        self._headers.update(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str, content_type: str = TEXT_PLAIN) -> "ResponseBuilder":
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = content_type
        return self

    def stream(
        self,
        chunks: Iterable[bytes],
        content_type: Optional[str] = None,
    ) -> "ResponseBuilder":
        """Use a lazily produced body instead of a buffered one."""
        self._stream = iter(chunks)
        if content_type:
            self._headers["Content-Type"] = content_type
        return self

    def cache(self, max_age: int, now: Optional[datetime] = None) -> "ResponseBuilder":
        """
        Allow caching for `max_age` seconds.

        Sends both the HTTP/1.1 directive and the HTTP/1.0 absolute date:

            Cache-Control: max-age=2592000
            Expires: <now + max_age as an HTTP-date>
        """
        now = now or datetime.now(timezone.utc)
        self._headers["Expires"] = format_http_date(now + timedelta(seconds=max_age))
        self._headers["Cache-Control"] = f"max-age={max_age}"
        return self

    def validators(self, last_modified: str, etag: str) -> "ResponseBuilder":
        """Attach the validators a browser echoes back on revalidation."""
        self._headers["Last-Modified"] = last_modified
        self._headers["ETag"] = etag
        return self

    def close_connection(self) -> "ResponseBuilder":
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
            stream=self._stream,
        )


_DAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
_MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an RFC 7231 HTTP-date.

        Wed, 01 Jan 2026 12:00:00 GMT

    Aware datetimes are converted to UTC first; naive ones are taken as
    UTC. Sub-second precision is dropped, which is why Last-Modified and
    the ETag agree on one-second resolution.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return (
        f"{_DAYS[dt.weekday()]}, "
        f"{dt.day:02d} {_MONTHS[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CANNED RESPONSES
# =============================================================================
#
# Errors are answered with their status line as a plain-text body:
#
#     HTTP/1.1 403 Forbidden
#     Content-Type: text/plain; charset=utf-8
#
#     403 Forbidden
#
# =============================================================================

def ok(text: str = "") -> HTTPResponse:
    """200 with a plain-text body and no cache headers."""
    return ResponseBuilder().status(HTTPStatus.OK).text(text).build()


def error_response(status: HTTPStatus) -> HTTPResponse:
    return ResponseBuilder().status(status).text(status.status_line).build()


def bad_request() -> HTTPResponse:
    return error_response(HTTPStatus.BAD_REQUEST)


def not_found() -> HTTPResponse:
    return error_response(HTTPStatus.NOT_FOUND)


def method_not_allowed(allowed_methods: list[str]) -> HTTPResponse:
    """405 with the Allow header RFC 7231 requires."""
    response = error_response(HTTPStatus.METHOD_NOT_ALLOWED)
    return response.set_header("Allow", ", ".join(allowed_methods))


def internal_error() -> HTTPResponse:
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR)
