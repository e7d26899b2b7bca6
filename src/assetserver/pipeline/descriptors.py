"""
=============================================================================
PIPELINE VALUES
=============================================================================

Immutable, request-scoped values passed between pipeline stages.

    FileDescriptor        one stat() snapshot of one file
    AggregateDescriptor   a bundle's combined metadata
    Fingerprint           Last-Modified + ETag derived from either of them

    RequestOutcome        what the resolver decided:

        ┌─────────────┬──────────────────────────────────────────────────┐
        │ Welcome     │ site root, fixed text, no cache headers          │
        │ NotModified │ 304, validators only                             │
        │ Serve       │ 200, validators + lazily read body               │
        │ Rejected    │ 4xx/5xx, carries the AssetError                  │
        └─────────────┴──────────────────────────────────────────────────┘

Nothing here is persisted or shared between requests, so no locking is
needed anywhere in the pipeline.

=============================================================================
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Union
import os
import stat

from .errors import AssetError


@dataclass(frozen=True)
class FileDescriptor:
    """Metadata of one file, captured by a single stat() call."""

    path: Path
    inode: int
    mtime: datetime
    size: int
    is_regular_file: bool

    @classmethod
    def from_stat(cls, path: Path, st: os.stat_result) -> "FileDescriptor":
        return cls(
            path=path,
            inode=st.st_ino,
            mtime=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
            size=st.st_size,
            is_regular_file=stat.S_ISREG(st.st_mode),
        )


@dataclass(frozen=True)
class AggregateDescriptor:
    """
    Combined metadata of a bundle.

        inode  arithmetic mean of the member inodes (may be fractional)
        mtime  newest member mtime
        size   sum of member sizes
        count  number of members
    """

    inode: float
    mtime: datetime
    size: int
    count: int


@dataclass(frozen=True)
class Fingerprint:
    last_modified: str
    etag: str


# ─── Outcomes ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Welcome:
    text: str


@dataclass(frozen=True)
class NotModified:
    fingerprint: Fingerprint


@dataclass(frozen=True)
class Serve:
    """
    A 200 response waiting to be written.

    `stream` has not read anything yet; files are opened as it is iterated.
    `extension` is the request's extension (".js" for a js bundle), used for
    compressibility. `media_type` is the full Content-Type value.
    """

    fingerprint: Fingerprint
    stream: Iterator[bytes]
    media_type: str
    extension: str


@dataclass(frozen=True)
class Rejected:
    error: AssetError

    @property
    def status(self):
        return self.error.status


RequestOutcome = Union[Welcome, NotModified, Serve, Rejected]
