"""
Unit tests for the middleware stack.
"""

import gzip
import json
import logging

import pytest

from assetserver.http.request import HTTPRequest
from assetserver.http.response import HTTPResponse, ResponseBuilder, ok, not_found
from assetserver.http.status_codes import HTTPStatus
from assetserver.middleware import (
    MiddlewarePipeline,
    function_middleware,
    LoggingMiddleware,
    MethodGuardMiddleware,
    CompressionMiddleware,
    accepts_gzip,
    gzip_stream,
)
from assetserver.middleware.compression import request_extension


def make_request(
    method: str = "GET",
    path: str = "/a.js",
    accept_encoding: str = "gzip",
) -> HTTPRequest:
    headers = {"accept-encoding": accept_encoding} if accept_encoding else {}
    return HTTPRequest(
        method=method,
        path=path,
        headers=headers,
        client_address=("10.0.0.1", 5000),
    )


def streamed(*chunks: bytes):
    return lambda request: ResponseBuilder().stream(list(chunks), "text/javascript").build()


class TestMiddlewarePipeline:

    def test_order(self):
        calls = []

        def tag(name):
            @function_middleware
            def middleware(request, next):
                calls.append(name)
                return next(request)
            return middleware

        pipeline = MiddlewarePipeline().use(tag("outer"), tag("inner"))
        handler = pipeline.wrap(lambda request: ok("done"))

        assert handler(make_request()).body == b"done"
        assert calls == ["outer", "inner"]
        assert len(pipeline) == 2


class TestMethodGuard:

    def test_get_passes(self):
        guard = MethodGuardMiddleware()
        assert guard(make_request("GET"), lambda r: ok("x")).status == HTTPStatus.OK

    @pytest.mark.parametrize("method", ["POST", "PUT", "DELETE", "HEAD", "OPTIONS"])
    def test_other_methods_refused_without_calling_next(self, method):
        called = []

        def handler(request):
            called.append(request)
            return not_found()

        response = MethodGuardMiddleware()(make_request(method), handler)

        assert response.status == HTTPStatus.BAD_REQUEST
        assert response.body == b"400 Bad Request"
        assert called == []


class TestAcceptsGzip:

    @pytest.mark.parametrize("header,expected", [
        ("gzip", True),
        ("GZIP", True),
        ("deflate, gzip;q=0.5", True),
        ("gzip;q=0", False),
        ("gzip; q=0.0", False),
        ("gzip;q=abc", True),
        ("deflate, br", False),
        ("x-gzip", False),
        ("*", False),
        ("", False),
        (None, False),
    ])
    def test_accepts_gzip(self, header, expected):
        assert accepts_gzip(header) is expected


class TestGzipStream:

    def test_round_trip(self):
        data = [b"function a(){}\n" * 100, b"function b(){}\n" * 100]

        compressed = b"".join(gzip_stream(iter(data)))

        assert gzip.decompress(compressed) == b"".join(data)

    def test_empty_input_is_valid_gzip(self):
        assert gzip.decompress(b"".join(gzip_stream(iter([])))) == b""

    def test_no_empty_pieces(self):
        assert all(gzip_stream(iter([b"x"] * 50)))

    def test_closes_source(self):
        closed = []

        def source():
            try:
                yield b"a"
                yield b"b"
            finally:
                closed.append(True)

        stream = gzip_stream(source())
        list(stream)

        assert closed == [True]


class TestCompressionMiddleware:

    def test_compresses_streamed_js(self):
        response = CompressionMiddleware()(make_request(), streamed(b"A", b"B"))

        assert response.headers["Content-Encoding"] == "gzip"
        assert response.headers["Vary"] == "Accept-Encoding"
        assert gzip.decompress(b"".join(response.stream)) == b"AB"

    def test_compresses_buffered_body(self):
        response = CompressionMiddleware()(
            make_request(path="/index.html"),
            lambda r: ResponseBuilder().body(b"<p>hi</p>").header("Content-Length", "9").build(),
        )

        assert response.is_streamed
        assert response.get_header("Content-Length") is None
        assert gzip.decompress(b"".join(response.stream)) == b"<p>hi</p>"

    def test_bundle_uses_member_extension(self):
        response = CompressionMiddleware()(
            make_request(path="/a.css,b.css"), streamed(b"a{}")
        )
        assert response.headers["Content-Encoding"] == "gzip"

    def test_extension_match_ignores_case(self):
        response = CompressionMiddleware()(make_request(path="/APP.JS"), streamed(b"A"))

        assert response.headers["Content-Encoding"] == "gzip"
        assert gzip.decompress(b"".join(response.stream)) == b"A"

    def test_skips_without_accept_encoding(self):
        response = CompressionMiddleware()(make_request(accept_encoding=""), streamed(b"A"))

        assert "Content-Encoding" not in response.headers
        assert list(response.stream) == [b"A"]

    def test_skips_incompressible_types(self):
        response = CompressionMiddleware()(make_request(path="/logo.png"), streamed(b"\x89PNG"))
        assert "Content-Encoding" not in response.headers

    def test_custom_extensions(self):
        middleware = CompressionMiddleware(extensions={".svg"})

        assert "Content-Encoding" in middleware(make_request(path="/i.svg"), streamed(b"<svg/>")).headers
        assert "Content-Encoding" not in middleware(make_request(path="/a.js"), streamed(b"A")).headers

    def test_skips_non_200(self):
        response = CompressionMiddleware()(make_request(), lambda r: not_found())

        assert "Content-Encoding" not in response.headers
        assert response.body == b"404 Not Found"

    def test_skips_not_modified(self):
        response = CompressionMiddleware()(
            make_request(),
            lambda r: ResponseBuilder().status(HTTPStatus.NOT_MODIFIED).build(),
        )
        assert "Content-Encoding" not in response.headers

    def test_extends_existing_vary(self):
        def handler(request):
            return ResponseBuilder().stream([b"A"]).header("Vary", "Origin").build()

        response = CompressionMiddleware()(make_request(), handler)

        assert response.headers["Vary"] == "Origin, Accept-Encoding"

    @pytest.mark.parametrize("path,expected", [
        ("/a.js", ".js"),
        ("/a.css,b.css", ".css"),
        ("/a.js,", ".js"),
        ("/", ""),
    ])
    def test_request_extension(self, path, expected):
        assert request_extension(path) == expected


class TestLoggingMiddleware:

    def test_text_log_and_request_id(self, caplog):
        middleware = LoggingMiddleware()

        with caplog.at_level(logging.INFO, logger="assetserver.access"):
            response = middleware(make_request(path="/a.js"), lambda r: ok("hello"))

        assert len(response.headers["X-Request-ID"]) == 8
        [record] = caplog.records
        assert '"GET /a.js" 200 5' in record.getMessage()
        assert record.getMessage().startswith("10.0.0.1 - - [")

    def test_streamed_length_is_dash(self, caplog):
        with caplog.at_level(logging.INFO, logger="assetserver.access"):
            LoggingMiddleware()(make_request(), streamed(b"A"))

        assert '" 200 - ' in caplog.records[0].getMessage()

    def test_json_log(self, caplog):
        middleware = LoggingMiddleware(log_format="json", include_request_id=False)

        with caplog.at_level(logging.INFO, logger="assetserver.access"):
            response = middleware(make_request(method="POST"), lambda r: not_found())

        entry = json.loads(caplog.records[0].getMessage())
        assert entry["method"] == "POST"
        assert entry["status_code"] == 404
        assert entry["client_ip"] == "10.0.0.1"
        assert entry["encoding"] == "identity"
        assert "X-Request-ID" not in response.headers

    def test_logs_and_reraises_handler_errors(self, caplog):
        def broken(request):
            raise RuntimeError("boom")

        with caplog.at_level(logging.ERROR, logger="assetserver.access"):
            with pytest.raises(RuntimeError):
                LoggingMiddleware()(make_request(), broken)

        assert "RuntimeError: boom" in caplog.records[0].getMessage()
