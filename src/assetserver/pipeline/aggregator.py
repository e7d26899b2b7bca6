"""
=============================================================================
MULTI-FILE AGGREGATOR
=============================================================================

Combines a bundle's members: their metadata into one AggregateDescriptor,
their contents into one ordered byte stream.

=============================================================================
AGGREGATE METADATA
=============================================================================

    member      inode     mtime                  size
    ──────      ─────     ─────                  ────
    a.js        1001      2024-10-01 12:00:00    120
    b.js        1004      2024-10-03 08:30:00     80
                ─────     ───────────────────    ────
    aggregate   1002.5    2024-10-03 08:30:00    200
                (mean)    (max)                  (sum)

Touching any member moves the max mtime or changes the sum, so the bundle's
ETag changes with it.

=============================================================================
ORDERED STREAM
=============================================================================

stream_files() is a generator. It opens file 1, yields its chunks, closes
it, then opens file 2, and so on:

    consumer:  next() next() next()     next() next()      next() → StopIteration
    files:     [──── a.js open ────]    [── b.js open ──]
                                  ▲                    ▲
                                close                close

At most one file is open at a time, a file is only opened once the one
before it is exhausted, and closing the generator early (client went away)
closes whichever file is open. A read error propagates out of next() as
OSError; by then the status line has been sent, so the server can only
log it and drop the connection.

=============================================================================
"""

from pathlib import Path
from typing import Iterable, Iterator, Sequence

from .descriptors import AggregateDescriptor, FileDescriptor


DEFAULT_CHUNK_SIZE = 64 * 1024


def aggregate(descriptors: Sequence[FileDescriptor]) -> AggregateDescriptor:
    """Mean inode, newest mtime, total size of a non-empty bundle."""
    if not descriptors:
        raise ValueError("cannot aggregate an empty bundle")
    return AggregateDescriptor(
        inode=sum(d.inode for d in descriptors) / len(descriptors),
        mtime=max(d.mtime for d in descriptors),
        size=sum(d.size for d in descriptors),
        count=len(descriptors),
    )


def stream_files(
    paths: Iterable[Path],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Iterator[bytes]:
    """
    Yield the contents of `paths`, one after another, in order.

    Args:
        paths: Files to concatenate (one path for a single-file response)
        chunk_size: Maximum bytes per yielded chunk

    Raises:
        OSError: from open() or read(), at the point the failing file is reached
    """
    for path in paths:
        with open(path, "rb") as f:
            while True:
                chunk = f.read(chunk_size)
                if not chunk:
                    break
                yield chunk
