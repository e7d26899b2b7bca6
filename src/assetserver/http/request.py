"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Parses raw HTTP/1.x request bytes into HTTPRequest objects.

=============================================================================
WHAT AN ASSET REQUEST LOOKS LIKE
=============================================================================

    GET /js/app.js,/js/vendor.js HTTP/1.1\r\n
    ─┬─ ─────────────┬────────── ────┬───
     │               │               │
   Method          Path           Version
                     │
          comma-separated bundle members (split later by the classifier)

    Host: static.example.com\r\n
    Accept-Encoding: gzip, deflate\r\n          ─┐
    If-Modified-Since: Tue, 01 Oct 2024 ...\r\n  ├─ the headers the asset
    If-None-Match: 2jmj7l5rSw0yVb/vlWAYkK/YBwk=\r\n ─┘  pipeline reads
    \r\n

The parser only understands the message framing. It does NOT decide what
the path means: commas, extensions and file lookups belong to the pipeline.

=============================================================================
WHAT THE PARSER REJECTS
=============================================================================

    ┌─────────────────────────────────────────────┬─────────┐
    │  Request larger than max_request_size       │   413   │
    │  No blank line after the headers            │   400   │
    │  Request line not "METHOD SP URI SP HTTP/x" │   400   │
    │  Version other than HTTP/1.0 or HTTP/1.1    │   400   │
    │  A ".." path segment after URL decoding     │   400   │
    │  Content-Length not a number                │   400   │
    └─────────────────────────────────────────────┴─────────┘

Any upper-case token is accepted as a method. Refusing non-GET methods is a
policy decision (400, before any filesystem access) made by
MethodGuardMiddleware, not a syntax error.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict
from urllib.parse import urlparse, unquote
import re


class HTTPParseError(Exception):
    """
    Raised when HTTP request parsing fails.

    Carries the status code that should be returned to the client, so the
    server answers without having to inspect the message.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Header names are stored lower-cased (RFC 7230 makes them
    case-insensitive), values as received.

        method:         Request method, any upper-case token
        path:           URL-decoded path without the query string
        version:        "HTTP/1.1" or "HTTP/1.0"
        headers:        Lower-cased header name -> value
        query:          Raw query string (ignored by the asset pipeline)
        body:           Raw body bytes, usually empty for GET
        path_params:    Values captured by the router
        client_address: (ip, port) of the peer, for logging
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    query: str = ""
    body: bytes = b""
    path_params: Dict[str, str] = field(default_factory=dict)
    client_address: tuple[str, int] = ("", 0)

    @property
    def content_length(self) -> int:
        try:
            return int(self.headers.get("content-length", 0))
        except ValueError:
            return 0

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    # ─── Headers read by the asset pipeline ───────────────────────────────

    @property
    def if_modified_since(self) -> Optional[str]:
        return self.headers.get("if-modified-since")

    @property
    def if_none_match(self) -> Optional[str]:
        return self.headers.get("if-none-match")

    @property
    def accept_encoding(self) -> str:
        return self.headers.get("accept-encoding", "")

    @property
    def is_keep_alive(self) -> bool:
        """
        Whether the connection stays open after the response.

            HTTP/1.1:  open unless "Connection: close"
            HTTP/1.0:  closed unless "Connection: keep-alive"
        """
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    @property
    def supports_chunked(self) -> bool:
        """Chunked transfer coding exists from HTTP/1.1 on."""
        return self.version == "HTTP/1.1"

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)


class RequestParser:
    """
    Parses raw request bytes into HTTPRequest objects.

        data ──► size check ──► split at \\r\\n\\r\\n ──► request line
                                                      ──► headers
                                                      ──► body (Content-Length)
    """

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")
    SUPPORTED_VERSIONS = ("HTTP/1.0", "HTTP/1.1")

    def __init__(self, max_request_size: int = 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse one complete request.

        Args:
            data: Raw request bytes as read from the socket
            client_address: Peer (ip, port), copied onto the request

        Raises:
            HTTPParseError: If the request is malformed or too large
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=413,
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("latin-1")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, path, query, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        raw_length = headers.get("content-length", "0")
        if not raw_length.isdigit():
            raise HTTPParseError(f"Invalid Content-Length: {raw_length!r}")
        content_length = int(raw_length)
        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query=query,
            body=body[:content_length],
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> tuple[str, str, str, str]:
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, uri, version = match.groups()

        if version not in self.SUPPORTED_VERSIONS:
            raise HTTPParseError(f"Unsupported HTTP version: {version}")

        parsed = urlparse(uri)
        path = unquote(parsed.path) or "/"

        # Whole segments only ("jquery..min.js" is a file name), checked
        # after decoding so "%2e%2e" is caught too
        if ".." in re.split(r"[/,]", path):
            raise HTTPParseError("Invalid path: contains a .. segment")

        return method, path, parsed.query, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse "Name: value" lines into a dict with lower-cased names.

        Obsolete line folding is joined onto the previous header, and a
        repeated header is combined with ", " as RFC 7230 allows:

            Accept-Encoding: gzip
            Accept-Encoding: br        →   {"accept-encoding": "gzip, br"}
        """
        headers: Dict[str, str] = {}
        current_name = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue  # lenient: skip malformed lines

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 1024 * 1024
) -> HTTPRequest:
    """Parse one request with a throwaway RequestParser."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
