"""
=============================================================================
FILE LOOKUP
=============================================================================

Logical request path → FileDescriptor, or a typed AssetError.

=============================================================================
ONE LOOKUP
=============================================================================

    "/js/app.js"
        │  strip leading "/", join onto the asset root, normalise
        ▼
    <root>/js/app.js ── outside the root? ──────────▶ NOT_REGULAR_FILE (403)
        │  resolve symlinks
        ▼
    real path ──────── outside the root? ──────────▶ NOT_REGULAR_FILE (403)
        │  stat()
        ├── FileNotFoundError / NotADirectoryError ─▶ NOT_FOUND (404)
        ├── any other OSError ──────────────────────▶ STAT_FAILURE (500)
        ├── not a regular file ─────────────────────▶ NOT_REGULAR_FILE (403)
        ▼
    FileDescriptor

=============================================================================
MANY LOOKUPS
=============================================================================

A bundle's members are stat()ed concurrently on an executor. We wait for
every one of them before deciding, then report the highest-priority
failure (see errors.worst_error). Results come back in request order,
whatever order the lookups finished in:

    submit: a.js ──┐
    submit: b.js ──┼──▶ executor ──▶ result(a), result(b), result(c)
    submit: c.js ──┘                 (each .result() blocks until done)

=============================================================================
"""

from concurrent.futures import Executor
from pathlib import Path
from typing import List, Optional, Sequence
import logging
import os

from .descriptors import FileDescriptor
from .errors import AssetError, ErrorKind, worst_error


logger = logging.getLogger(__name__)


def _within(path: Path, root: Path) -> bool:
    return path == root or path.is_relative_to(root)


def _stat_failure(segment: str, exc: BaseException) -> AssetError:
    if isinstance(exc, (FileNotFoundError, NotADirectoryError)):
        logger.warning("File not found: %s", segment)
        return AssetError(ErrorKind.NOT_FOUND, f"{segment}: not found")
    logger.error("Cannot stat %s: %s", segment, exc)
    return AssetError(ErrorKind.STAT_FAILURE, f"{segment}: {exc}")


def lookup(root: Path, segment: str) -> FileDescriptor:
    """
    Stat one logical path below `root`.

    Args:
        root: Absolute, already resolved asset root
        segment: Path as it appeared in the request, e.g. "/css/site.css"

    Raises:
        AssetError: NOT_FOUND, NOT_REGULAR_FILE or STAT_FAILURE
    """
    candidate = Path(os.path.normpath(root / segment.lstrip("/")))
    if not _within(candidate, root):
        logger.error("Path escapes asset root: %s", segment)
        raise AssetError(ErrorKind.NOT_REGULAR_FILE, f"{segment}: outside asset root")

    try:
        resolved = candidate.resolve(strict=True)
    except (OSError, RuntimeError) as e:
        # RuntimeError: symlink loop on interpreters before 3.13
        raise _stat_failure(segment, e) from e

    if not _within(resolved, root):
        logger.error("Symlink escapes asset root: %s", segment)
        raise AssetError(ErrorKind.NOT_REGULAR_FILE, f"{segment}: outside asset root")

    try:
        descriptor = FileDescriptor.from_stat(resolved, resolved.stat())
    except OSError as e:
        raise _stat_failure(segment, e) from e

    if not descriptor.is_regular_file:
        logger.error("Not a regular file: %s", segment)
        raise AssetError(ErrorKind.NOT_REGULAR_FILE, f"{segment}: not a regular file")

    return descriptor


def lookup_all(
    root: Path,
    segments: Sequence[str],
    executor: Optional[Executor] = None,
) -> List[FileDescriptor]:
    """
    Stat several logical paths, concurrently when an executor is given.

    Every lookup runs to completion even when an earlier one has failed.

    Returns:
        Descriptors in the order of `segments`

    Raises:
        AssetError: the worst failure among all members
    """
    if executor is None:
        outcomes = []
        for segment in segments:
            try:
                outcomes.append(lookup(root, segment))
            except AssetError as e:
                outcomes.append(e)
    else:
        futures = [executor.submit(lookup, root, segment) for segment in segments]
        outcomes = []
        for future in futures:
            try:
                outcomes.append(future.result())
            except AssetError as e:
                outcomes.append(e)

    error = worst_error(o for o in outcomes if isinstance(o, AssetError))
    if error is not None:
        raise error
    return outcomes
