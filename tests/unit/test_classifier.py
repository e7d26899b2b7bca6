"""
Unit tests for request classification.
"""

import pytest

from assetserver.pipeline.classifier import (
    RequestKind,
    classify,
    extension_of,
    split_segments,
)
from assetserver.pipeline.errors import AssetError, ErrorKind


class TestClassify:
    """Tests for classify()."""

    def test_root_is_welcome(self):
        request = classify("GET", "/")

        assert request.kind is RequestKind.WELCOME
        assert request.segments == ()

    def test_single_file(self):
        request = classify("GET", "/css/site.css")

        assert request.kind is RequestKind.SINGLE
        assert request.segments == ("/css/site.css",)
        assert request.extension == ".css"
        assert not request.is_bundle

    def test_single_file_of_any_type(self):
        """Only bundles are restricted to .js/.css."""
        request = classify("GET", "/img/logo.png")

        assert request.kind is RequestKind.SINGLE
        assert request.extension == ".png"

    def test_js_bundle_keeps_order(self):
        request = classify("GET", "/js/b.js,js/a.js,/js/c.js")

        assert request.kind is RequestKind.BUNDLE
        assert request.segments == ("/js/b.js", "js/a.js", "/js/c.js")
        assert request.extension == ".js"
        assert request.is_bundle

    def test_css_bundle(self):
        request = classify("GET", "/a.css,b.css")
        assert request.extension == ".css"

    def test_duplicate_members_are_kept(self):
        request = classify("GET", "/a.js,a.js")
        assert request.segments == ("/a.js", "a.js")

    def test_empty_segments_dropped(self):
        request = classify("GET", "/a.js,,b.js,")
        assert request.segments == ("/a.js", "b.js")

    def test_trailing_comma_leaves_single(self):
        request = classify("GET", "/a.png,")
        assert request.kind is RequestKind.SINGLE

    @pytest.mark.parametrize("path", [
        "/a.js,b.css",
        "/a.html,b.html",
        "/a.js,b",
        "/a.png,b.png",
        "/a.JS,b.js",
    ])
    def test_mixed_or_unbundleable_types(self, path):
        with pytest.raises(AssetError) as exc_info:
            classify("GET", path)

        assert exc_info.value.kind is ErrorKind.MIXED_FILE_TYPES
        assert exc_info.value.status == 400

    @pytest.mark.parametrize("method", ["POST", "HEAD", "PUT", "DELETE", "get"])
    def test_non_get_rejected(self, method):
        with pytest.raises(AssetError) as exc_info:
            classify(method, "/a.js")

        assert exc_info.value.kind is ErrorKind.BAD_METHOD
        assert exc_info.value.status == 400

    def test_method_checked_before_path(self):
        with pytest.raises(AssetError) as exc_info:
            classify("POST", "/a.js,b.css")

        assert exc_info.value.kind is ErrorKind.BAD_METHOD

    def test_only_commas_is_not_found(self):
        with pytest.raises(AssetError) as exc_info:
            classify("GET", ",,")

        assert exc_info.value.kind is ErrorKind.NOT_FOUND


class TestHelpers:

    @pytest.mark.parametrize("segment,expected", [
        ("/js/app.js", ".js"),
        ("/js/app.min.js", ".js"),
        ("/README", ""),
        ("/.hidden", ""),
        ("/dir.d/file", ""),
    ])
    def test_extension_of(self, segment, expected):
        assert extension_of(segment) == expected

    def test_split_segments(self):
        assert split_segments("/a,b,,c") == ("/a", "b", "c")
        assert split_segments("") == ()
