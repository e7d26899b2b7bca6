"""
=============================================================================
REQUEST-RESOLUTION PIPELINE
=============================================================================

The core of the asset server: from (method, path, validators) to a
decision, independent of sockets and HTTP framing.

    classifier.py   method + path → welcome / single / bundle
    lookup.py       logical path → FileDescriptor (concurrent for bundles)
    aggregator.py   bundle metadata and the ordered byte stream
    fingerprint.py  descriptor → Last-Modified + ETag
    cache.py        validators vs fingerprint → 304 or not
    resolver.py     AssetResolver, which runs all of the above
    errors.py       ErrorKind / AssetError
    descriptors.py  the immutable values passed between stages

=============================================================================
"""

from .aggregator import aggregate, stream_files
from .cache import is_not_modified
from .classifier import AssetRequest, RequestKind, classify
from .descriptors import (
    AggregateDescriptor,
    FileDescriptor,
    Fingerprint,
    NotModified,
    Rejected,
    RequestOutcome,
    Serve,
    Welcome,
)
from .errors import AssetError, ErrorKind
from .fingerprint import fingerprint, fingerprint_all
from .lookup import lookup, lookup_all
from .resolver import AssetResolver

__all__ = [
    "AssetResolver",
    "AssetRequest",
    "RequestKind",
    "classify",
    "lookup",
    "lookup_all",
    "aggregate",
    "stream_files",
    "fingerprint",
    "fingerprint_all",
    "is_not_modified",
    "AssetError",
    "ErrorKind",
    "FileDescriptor",
    "AggregateDescriptor",
    "Fingerprint",
    "RequestOutcome",
    "Welcome",
    "NotModified",
    "Serve",
    "Rejected",
]
