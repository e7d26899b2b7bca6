"""
=============================================================================
REQUEST CLASSIFIER
=============================================================================

Turns (method, path) into an AssetRequest before anything touches the disk.

=============================================================================
DECISION ORDER
=============================================================================

    method != "GET" ───────────────────────────▶ AssetError(BAD_METHOD)
         │
    path == "/" ───────────────────────────────▶ WELCOME
         │
    split on ",", drop empty pieces
         │
         ├── nothing left (e.g. "/,") ─────────▶ AssetError(NOT_FOUND)
         ├── one piece ────────────────────────▶ SINGLE
         └── several pieces
                 │
                 ├── all ".js" or all ".css" ──▶ BUNDLE
                 └── anything else ────────────▶ AssetError(MIXED_FILE_TYPES)

The method is checked first so a POST to a missing file is still a 400,
and no stat() is ever issued for a refused method.

Extensions are compared exactly, as returned by posixpath.splitext():
"a.JS" is not ".js", and a dot-file such as ".js" has no extension at all.

=============================================================================
"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple
import posixpath

from .errors import AssetError, ErrorKind


# Only these types can be concatenated into one response
BUNDLE_EXTENSIONS = (".js", ".css")


class RequestKind(Enum):
    WELCOME = "welcome"
    SINGLE = "single"
    BUNDLE = "bundle"


@dataclass(frozen=True)
class AssetRequest:
    """
    A classified request.

        segments   logical paths in request order, as sent ("/js/a.js")
        extension  the single file's extension, or the bundle's common one
    """

    kind: RequestKind
    segments: Tuple[str, ...] = ()
    extension: str = ""

    @property
    def is_bundle(self) -> bool:
        return self.kind is RequestKind.BUNDLE


def extension_of(segment: str) -> str:
    return posixpath.splitext(segment)[1]


def split_segments(path: str) -> Tuple[str, ...]:
    """Split a comma-joined path, dropping empty pieces, keeping order."""
    return tuple(segment for segment in path.split(",") if segment)


def classify(method: str, path: str) -> AssetRequest:
    """
    Classify a request.

    Raises:
        AssetError: BAD_METHOD, NOT_FOUND (no segments) or MIXED_FILE_TYPES
    """
    if method != "GET":
        raise AssetError(ErrorKind.BAD_METHOD, f"method {method} not allowed")

    if path == "/":
        return AssetRequest(RequestKind.WELCOME)

    segments = split_segments(path)
    if not segments:
        raise AssetError(ErrorKind.NOT_FOUND, f"no file named in {path!r}")

    if len(segments) == 1:
        return AssetRequest(RequestKind.SINGLE, segments, extension_of(segments[0]))

    extensions = {extension_of(segment) for segment in segments}
    if len(extensions) != 1 or not extensions <= set(BUNDLE_EXTENSIONS):
        raise AssetError(
            ErrorKind.MIXED_FILE_TYPES,
            f"bundle must be all .js or all .css, got {sorted(extensions)}",
        )

    return AssetRequest(RequestKind.BUNDLE, segments, extensions.pop())
