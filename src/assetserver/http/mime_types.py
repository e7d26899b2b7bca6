"""
=============================================================================
MEDIA TYPE TABLE
=============================================================================

Maps file extensions to the Content-Type sent with a 200 response.

=============================================================================
EXTENSION, NOT PATH
=============================================================================

Lookups take an extension (".js") rather than a file name. A bundle such as

    GET /js/app.js,/js/vendor.js

has no single file name, but it does have one common extension, chosen by
the classifier. Single files pass their own extension the same way, so both
request kinds go through one code path:

    ┌────────────────────┐   extension   ┌──────────────────────────────┐
    │  RequestClassifier │ ────────────▶ │ content_type_for(".js")      │
    └────────────────────┘               │ → "text/javascript;          │
                                         │    charset=utf-8"            │
                                         └──────────────────────────────┘

The table is plain data and can be replaced per handler (AssetHandler takes
a `media_types` mapping) without touching this module.

=============================================================================
"""

from typing import Mapping, Optional


MIME_TYPES = {
    # Text assets (bundleable: .js and .css)
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".json": "application/json",
    ".map": "application/json",     # source maps
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".csv": "text/csv",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".avif": "image/avif",

    # Fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",
    ".eot": "application/vnd.ms-fontobject",

    # Everything else a front end tends to ship
    ".wasm": "application/wasm",
    ".pdf": "application/pdf",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".mp3": "audio/mpeg",
}

# "I don't know what this is, treat as binary"
DEFAULT_MIME_TYPE = "application/octet-stream"

_TEXT_APPLICATION_TYPES = frozenset({
    "application/json",
    "application/xml",
    "image/svg+xml",
})


def get_mime_type(
    extension: str,
    table: Optional[Mapping[str, str]] = None,
    default: str = DEFAULT_MIME_TYPE,
) -> str:
    """
    Look up the media type for an extension.

    Args:
        extension: Extension including the dot. Matched case-insensitively
        table: Extension -> media type mapping (defaults to MIME_TYPES)
        default: Returned for unknown extensions

    Examples:
        >>> get_mime_type(".css")
        'text/css'
        >>> get_mime_type(".PNG")
        'image/png'
        >>> get_mime_type("")
        'application/octet-stream'
    """
    table = MIME_TYPES if table is None else table
    return table.get(extension.lower(), default)


def is_text_type(mime_type: str) -> bool:
    """True for text/* and the application/* types that are really text."""
    return mime_type.startswith("text/") or mime_type in _TEXT_APPLICATION_TYPES


def get_content_type(
    extension: str,
    table: Optional[Mapping[str, str]] = None,
    charset: str = "utf-8",
) -> str:
    """
    Full Content-Type header value for an extension.

    Text types get a charset parameter, binary types are returned bare:

        >>> get_content_type(".js")
        'text/javascript; charset=utf-8'
        >>> get_content_type(".png")
        'image/png'
    """
    mime_type = get_mime_type(extension, table)
    if is_text_type(mime_type):
        return f"{mime_type}; charset={charset}"
    return mime_type
