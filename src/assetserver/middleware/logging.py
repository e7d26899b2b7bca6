"""
=============================================================================
ACCESS LOG MIDDLEWARE
=============================================================================

One access-log line per request on the `assetserver.access` logger, plus an
X-Request-ID response header that ties the client's view to the log line.

=============================================================================
FORMATS
=============================================================================

text (Apache-like):

    127.0.0.1 - - [03/Oct/2024:08:30:00 +0000] "GET /js/a.js,/js/b.js" 200 - 1.84ms

json:

    {"request_id": "9f2c41d0", "method": "GET", "path": "/js/a.js,/js/b.js",
     "status_code": 200, "content_length": null, "encoding": "gzip", ...}

Asset bodies are streamed, so their size is unknown when the line is
written: it is logged as "-" (null in JSON). Buffered bodies (errors,
304s, the welcome text) log their real length. The duration covers
resolution (classify, stat, fingerprint), not the transfer.

Route the logger separately if needed:

    logging.getLogger("assetserver.access").addHandler(file_handler)

=============================================================================
"""

from dataclasses import asdict, dataclass
from typing import Optional
import json
import logging
import time
import uuid

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("assetserver.access")


@dataclass
class RequestLog:
    """One access-log record."""

    request_id: str
    method: str
    path: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: Optional[int]
    encoding: str
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        length = "-" if self.content_length is None else self.content_length
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Access logging. Add it first so it sees every request, including those
    refused by the method guard, and the final response headers.

        server.use(LoggingMiddleware(log_format="json"))
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
    ):
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = uuid.uuid4().hex[:8]
        start_time = time.perf_counter()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "Request failed: %s %s - %s: %s (%.2fms)",
                request.method, request.path, type(e).__name__, e, duration_ms,
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000

        entry = RequestLog(
            request_id=request_id,
            method=request.method,
            path=request.path,
            client_ip=request.client_address[0] or "-",
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=response.content_length,
            encoding=response.get_header("Content-Encoding", "identity"),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())

        if self.include_request_id:
            response.set_header("X-Request-ID", request_id)

        return response
