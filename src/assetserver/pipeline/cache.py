"""
Conditional GET decision.

A request is answered with 304 only when the browser sends BOTH validators
back and BOTH equal the current fingerprint:

    If-Modified-Since   If-None-Match   →  response
    ─────────────────   ─────────────      ────────
    matches             matches            304
    matches             absent/differs     200
    absent/differs      matches            200
    absent              absent             200

Comparison is exact string equality; the values are the ones this server
handed out, so no date parsing or weak-ETag handling is attempted.
"""

from typing import Optional

from .descriptors import Fingerprint


def is_not_modified(
    fingerprint: Fingerprint,
    if_modified_since: Optional[str],
    if_none_match: Optional[str],
) -> bool:
    if if_modified_since is None or if_none_match is None:
        return False
    return (
        if_modified_since == fingerprint.last_modified
        and if_none_match == fingerprint.etag
    )
