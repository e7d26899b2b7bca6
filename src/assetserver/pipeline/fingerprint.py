"""
Validators (Last-Modified, ETag) for files and bundles.

The ETag is the base64 SHA-1 of "<inode>-<HTTP-date of mtime>-<size>":

    "1002.5-Thu, 03 Oct 2024 08:30:00 GMT-200"  ──sha1──▶  base64

The mtime is taken at the one-second resolution of the HTTP-date, so the
ETag changes exactly when Last-Modified, the inode or the size does. The
same triple always gives the same ETag, across requests and processes.
"""

from typing import Sequence, Union
import base64
import hashlib

from ..http.response import format_http_date
from .aggregator import aggregate
from .descriptors import AggregateDescriptor, FileDescriptor, Fingerprint


Descriptor = Union[FileDescriptor, AggregateDescriptor]


def _format_number(value: Union[int, float]) -> str:
    # A whole mean inode renders like a plain inode: 1002.0 -> "1002"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def fingerprint(descriptor: Descriptor) -> Fingerprint:
    last_modified = format_http_date(descriptor.mtime)
    seed = f"{_format_number(descriptor.inode)}-{last_modified}-{descriptor.size}"
    digest = hashlib.sha1(seed.encode("utf-8")).digest()
    return Fingerprint(
        last_modified=last_modified,
        etag=base64.b64encode(digest).decode("ascii"),
    )


def fingerprint_all(descriptors: Sequence[FileDescriptor]) -> Fingerprint:
    """Fingerprint of one file, or of the aggregate of several."""
    if len(descriptors) == 1:
        return fingerprint(descriptors[0])
    return fingerprint(aggregate(descriptors))
