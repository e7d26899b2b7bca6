"""
Unit tests for media type detection.
"""

import pytest

from assetserver.http.mime_types import get_content_type, get_mime_type, is_text_type


class TestMimeTypes:

    @pytest.mark.parametrize("extension,expected", [
        (".js", "text/javascript"),
        (".css", "text/css"),
        (".PNG", "image/png"),
        (".woff2", "font/woff2"),
        ("", "application/octet-stream"),
        (".unknown", "application/octet-stream"),
    ])
    def test_get_mime_type(self, extension, expected):
        assert get_mime_type(extension) == expected

    def test_custom_table(self):
        assert get_mime_type(".js", {".js": "application/javascript"}) == "application/javascript"
        assert get_mime_type(".css", {}) == "application/octet-stream"

    def test_text_types_get_charset(self):
        assert get_content_type(".css") == "text/css; charset=utf-8"
        assert get_content_type(".svg") == "image/svg+xml; charset=utf-8"
        assert get_content_type(".png") == "image/png"

    def test_is_text_type(self):
        assert is_text_type("text/html")
        assert is_text_type("application/json")
        assert not is_text_type("image/png")
