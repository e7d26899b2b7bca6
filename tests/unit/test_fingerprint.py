"""
Unit tests for fingerprints and conditional-request evaluation.
"""

import base64
import hashlib
from datetime import datetime, timezone
from pathlib import Path

from assetserver.pipeline.cache import is_not_modified
from assetserver.pipeline.descriptors import (
    AggregateDescriptor,
    FileDescriptor,
    Fingerprint,
)
from assetserver.pipeline.fingerprint import fingerprint, fingerprint_all


T0 = datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)
T1 = datetime(2023, 11, 14, 22, 13, 25, tzinfo=timezone.utc)


def make_file(name: str, inode: int, mtime: datetime, size: int) -> FileDescriptor:
    return FileDescriptor(
        path=Path("/assets") / name,
        inode=inode,
        mtime=mtime,
        size=size,
        is_regular_file=True,
    )


def sha1_b64(seed: str) -> str:
    return base64.b64encode(hashlib.sha1(seed.encode()).digest()).decode()


class TestFingerprint:
    """Tests for fingerprint() and fingerprint_all()."""

    def test_single_file(self):
        fp = fingerprint(make_file("a.js", 1001, T0, 3))

        assert fp.last_modified == "Tue, 14 Nov 2023 22:13:20 GMT"
        assert fp.etag == sha1_b64("1001-Tue, 14 Nov 2023 22:13:20 GMT-3")

    def test_etag_is_unquoted_base64(self):
        fp = fingerprint(make_file("a.js", 7, T0, 0))

        assert not fp.etag.startswith('"')
        assert len(base64.b64decode(fp.etag)) == 20

    def test_bundle_uses_aggregate(self):
        files = [make_file("a.js", 1001, T0, 1), make_file("b.js", 1003, T1, 1)]

        fp = fingerprint_all(files)

        # mean inode 1002 (rendered without ".0"), newest mtime, total size
        assert fp.last_modified == "Tue, 14 Nov 2023 22:13:25 GMT"
        assert fp.etag == sha1_b64("1002-Tue, 14 Nov 2023 22:13:25 GMT-2")

    def test_fractional_mean_inode(self):
        files = [make_file("a.js", 1001, T0, 1), make_file("b.js", 1002, T0, 1)]

        fp = fingerprint_all(files)

        assert fp.etag == sha1_b64("1001.5-Tue, 14 Nov 2023 22:13:20 GMT-2")

    def test_single_element_list_matches_file(self):
        descriptor = make_file("a.css", 42, T0, 10)
        assert fingerprint_all([descriptor]) == fingerprint(descriptor)

    def test_order_does_not_matter(self):
        a = make_file("a.js", 10, T0, 1)
        b = make_file("b.js", 20, T1, 2)

        assert fingerprint_all([a, b]) == fingerprint_all([b, a])

    def test_deterministic(self):
        descriptor = AggregateDescriptor(inode=5.0, mtime=T0, size=9, count=2)
        assert fingerprint(descriptor) == fingerprint(descriptor)

    def test_size_change_changes_etag(self):
        before = fingerprint(make_file("a.js", 1, T0, 1))
        after = fingerprint(make_file("a.js", 1, T0, 2))

        assert before.last_modified == after.last_modified
        assert before.etag != after.etag


class TestIsNotModified:
    """Both validators must be present and match exactly."""

    FP = Fingerprint(last_modified="Tue, 14 Nov 2023 22:13:20 GMT", etag="abc=")

    def test_both_match(self):
        assert is_not_modified(self.FP, self.FP.last_modified, self.FP.etag)

    def test_no_validators(self):
        assert not is_not_modified(self.FP, None, None)

    def test_only_if_modified_since(self):
        assert not is_not_modified(self.FP, self.FP.last_modified, None)

    def test_only_if_none_match(self):
        assert not is_not_modified(self.FP, None, self.FP.etag)

    def test_etag_mismatch(self):
        assert not is_not_modified(self.FP, self.FP.last_modified, "xyz=")

    def test_date_mismatch(self):
        assert not is_not_modified(self.FP, "Wed, 15 Nov 2023 00:00:00 GMT", self.FP.etag)

    def test_quoted_etag_does_not_match(self):
        assert not is_not_modified(self.FP, self.FP.last_modified, '"abc="')
