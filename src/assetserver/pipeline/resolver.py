"""
=============================================================================
ASSET RESOLVER
=============================================================================

Runs the request-resolution pipeline and returns a RequestOutcome.

=============================================================================
PIPELINE
=============================================================================

    resolve(method, path, if_modified_since, if_none_match)
        │
        ▼
    classify(method, path) ───── WELCOME ─────────────────▶ Welcome(text)
        │ SINGLE / BUNDLE
        ▼
    lookup_all(root, segments, stat pool)     ◀── stat()s run concurrently
        │ descriptors, in request order
        ▼
    fingerprint_all(descriptors)
        │
        ▼
    is_not_modified(fp, IMS, INM) ── yes ─────────────────▶ NotModified(fp)
        │ no
        ▼
    Serve(fp, stream_files(paths), media type, extension)

    Any AssetError on the way ────────────────────────────▶ Rejected(error)

No file is opened before the Serve outcome is consumed: the stream is a
generator that the server drives while writing the response.

=============================================================================
THE STAT POOL
=============================================================================

Bundle lookups run on a ThreadPoolExecutor owned by the resolver. It is
deliberately separate from the server's connection workers: a connection
worker waiting on its own pool could deadlock once every worker is busy
waiting.

=============================================================================
"""

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Mapping, Optional, Union
import logging

from ..http.mime_types import get_content_type
from .aggregator import DEFAULT_CHUNK_SIZE, stream_files
from .cache import is_not_modified
from .classifier import RequestKind, classify
from .descriptors import NotModified, Rejected, RequestOutcome, Serve, Welcome
from .errors import AssetError
from .fingerprint import fingerprint_all
from .lookup import lookup, lookup_all


logger = logging.getLogger(__name__)


class AssetResolver:
    """
    Resolves requests against one asset root.

    Example:
        with AssetResolver("./assets", welcome="hello") as resolver:
            outcome = resolver.resolve("GET", "/js/a.js,/js/b.js")
    """

    def __init__(
        self,
        root: Union[str, Path],
        welcome: str = "",
        stat_workers: int = 8,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        media_types: Optional[Mapping[str, str]] = None,
    ):
        self.root = Path(root).resolve()
        if not self.root.is_dir():
            raise ValueError(f"Asset root is not a directory: {root}")

        self.welcome = welcome
        self.chunk_size = chunk_size
        self.media_types = media_types
        self._executor = ThreadPoolExecutor(
            max_workers=stat_workers,
            thread_name_prefix="stat",
        )

    def resolve(
        self,
        method: str,
        path: str,
        if_modified_since: Optional[str] = None,
        if_none_match: Optional[str] = None,
    ) -> RequestOutcome:
        try:
            request = classify(method, path)

            if request.kind is RequestKind.WELCOME:
                return Welcome(self.welcome)

            if request.kind is RequestKind.SINGLE:
                descriptors = [lookup(self.root, request.segments[0])]
            else:
                descriptors = lookup_all(self.root, request.segments, self._executor)

        except AssetError as e:
            logger.debug("Rejected %s %s: %s", method, path, e)
            return Rejected(e)

        fp = fingerprint_all(descriptors)
        if is_not_modified(fp, if_modified_since, if_none_match):
            return NotModified(fp)

        return Serve(
            fingerprint=fp,
            stream=stream_files([d.path for d in descriptors], self.chunk_size),
            media_type=get_content_type(request.extension, self.media_types),
            extension=request.extension,
        )

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "AssetResolver":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
