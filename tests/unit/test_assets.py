"""
Unit tests for AssetResolver and AssetHandler.
"""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from assetserver.handlers import AssetHandler
from assetserver.http.request import HTTPRequest
from assetserver.http.status_codes import HTTPStatus
from assetserver.pipeline import (
    AssetResolver,
    ErrorKind,
    NotModified,
    Rejected,
    Serve,
    Welcome,
)


NOW = datetime(2025, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def resolver(assets_dir: Path):
    with AssetResolver(assets_dir, welcome="hello assets", stat_workers=2) as r:
        yield r


@pytest.fixture
def handler(resolver: AssetResolver) -> AssetHandler:
    return AssetHandler(resolver, max_age=3600, clock=lambda: NOW)


def get(path: str, **headers) -> HTTPRequest:
    return HTTPRequest(
        method="GET",
        path=path,
        headers={name.replace("_", "-"): value for name, value in headers.items()},
    )


class TestAssetResolver:
    """Tests for AssetResolver.resolve()."""

    def test_root_must_exist(self, tmp_path: Path):
        with pytest.raises(ValueError):
            AssetResolver(tmp_path / "missing")

    def test_welcome(self, resolver: AssetResolver):
        assert resolver.resolve("GET", "/") == Welcome("hello assets")

    def test_single_file(self, resolver: AssetResolver):
        outcome = resolver.resolve("GET", "/css/a.css")

        assert isinstance(outcome, Serve)
        assert outcome.media_type == "text/css; charset=utf-8"
        assert outcome.extension == ".css"
        assert b"".join(outcome.stream) == b"a{}"

    def test_bundle(self, resolver: AssetResolver):
        outcome = resolver.resolve("GET", "/js/test1.js,js/test2.js")

        assert isinstance(outcome, Serve)
        assert b"".join(outcome.stream) == b"AB"
        assert outcome.fingerprint.last_modified == "Tue, 14 Nov 2023 22:13:20 GMT"

    def test_not_modified(self, resolver: AssetResolver):
        first = resolver.resolve("GET", "/js/test1.js,js/test2.js")
        first.stream.close()

        second = resolver.resolve(
            "GET", "/js/test1.js,js/test2.js",
            if_modified_since=first.fingerprint.last_modified,
            if_none_match=first.fingerprint.etag,
        )

        assert second == NotModified(first.fingerprint)

    def test_stale_etag_serves_again(self, resolver: AssetResolver):
        outcome = resolver.resolve(
            "GET", "/js/test1.js",
            if_modified_since="Tue, 14 Nov 2023 22:13:20 GMT",
            if_none_match="stale=",
        )
        assert isinstance(outcome, Serve)

    @pytest.mark.parametrize("method,path,kind", [
        ("POST", "/js/test1.js", ErrorKind.BAD_METHOD),
        ("GET", "/js/test1.js,css/a.css", ErrorKind.MIXED_FILE_TYPES),
        ("GET", "/js/none.js", ErrorKind.NOT_FOUND),
        ("GET", "/js/lib", ErrorKind.NOT_REGULAR_FILE),
        ("GET", "/js/none.js,js/lib", ErrorKind.NOT_REGULAR_FILE),
    ])
    def test_rejections(self, resolver: AssetResolver, method, path, kind):
        outcome = resolver.resolve(method, path)

        assert isinstance(outcome, Rejected)
        assert outcome.error.kind is kind

    def test_stream_is_lazy(self, resolver: AssetResolver, assets_dir: Path):
        outcome = resolver.resolve("GET", "/js/test1.js")
        (assets_dir / "js" / "test1.js").write_bytes(b"changed")

        assert b"".join(outcome.stream) == b"changed"


class TestAssetHandler:
    """Tests for AssetHandler.handle()."""

    def test_serve_headers(self, handler: AssetHandler):
        response = handler.handle(get("/js/test1.js,js/test2.js"))

        assert response.status == HTTPStatus.OK
        assert response.is_streamed
        assert response.headers["Content-Type"] == "text/javascript; charset=utf-8"
        assert response.headers["Cache-Control"] == "max-age=3600"
        assert response.headers["Expires"] == "Wed, 01 Jan 2025 01:00:00 GMT"
        assert response.headers["Last-Modified"] == "Tue, 14 Nov 2023 22:13:20 GMT"
        assert response.headers["ETag"]
        assert b"".join(response.stream) == b"AB"

    def test_binary_content_type(self, handler: AssetHandler):
        response = handler.handle(get("/logo.png"))
        assert response.headers["Content-Type"] == "image/png"
        response.stream.close()

    def test_not_modified(self, handler: AssetHandler):
        first = handler.handle(get("/css/a.css"))
        first.stream.close()

        response = handler.handle(get(
            "/css/a.css",
            if_modified_since=first.headers["Last-Modified"],
            if_none_match=first.headers["ETag"],
        ))

        assert response.status == HTTPStatus.NOT_MODIFIED
        assert not response.is_streamed
        assert response.headers["ETag"] == first.headers["ETag"]
        assert response.headers["Cache-Control"] == "max-age=3600"

    @pytest.mark.parametrize("method,path,status,body", [
        ("POST", "/js/test1.js", 400, b"400 Bad Request"),
        ("GET", "/js/test1.js,css/a.css", 400, b"400 Bad Request"),
        ("GET", "/missing.css", 404, b"404 Not Found"),
        ("GET", "/css", 403, b"403 Forbidden"),
    ])
    def test_errors(self, handler: AssetHandler, method, path, status, body):
        response = handler.handle(HTTPRequest(method=method, path=path))

        assert response.status == status
        assert response.body == body
        assert response.headers["Content-Type"] == "text/plain; charset=utf-8"
        assert "ETag" not in response.headers

    def test_welcome(self, handler: AssetHandler):
        response = handler.handle(get("/"))

        assert response.status == HTTPStatus.OK
        assert response.body == b"hello assets"
        assert "Cache-Control" not in response.headers

    def test_unknown_outcome(self, handler: AssetHandler):
        with pytest.raises(TypeError):
            handler.respond(object())
