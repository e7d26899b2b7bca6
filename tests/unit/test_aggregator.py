"""
Unit tests for bundle aggregation and streaming.
"""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from assetserver.pipeline.aggregator import aggregate, stream_files
from assetserver.pipeline.descriptors import FileDescriptor


def make_file(inode: int, second: int, size: int) -> FileDescriptor:
    return FileDescriptor(
        path=Path(f"/assets/{inode}.js"),
        inode=inode,
        mtime=datetime(2024, 5, 1, 0, 0, second, tzinfo=timezone.utc),
        size=size,
        is_regular_file=True,
    )


class TestAggregate:

    def test_combines_members(self):
        result = aggregate([make_file(10, 5, 100), make_file(21, 9, 50), make_file(5, 1, 1)])

        assert result.inode == 12
        assert result.mtime.second == 9
        assert result.size == 151
        assert result.count == 3

    def test_mean_inode_can_be_fractional(self):
        assert aggregate([make_file(1, 0, 0), make_file(2, 0, 0)]).inode == 1.5

    def test_empty_bundle(self):
        with pytest.raises(ValueError):
            aggregate([])


class TestStreamFiles:

    def test_concatenates_in_order(self, assets_dir: Path):
        paths = [assets_dir / "js" / "test1.js", assets_dir / "js" / "test2.js"]

        assert b"".join(stream_files(paths)) == b"AB"

    def test_repeated_member(self, assets_dir: Path):
        path = assets_dir / "js" / "test1.js"

        assert b"".join(stream_files([path, path])) == b"AA"

    def test_chunk_size_bounds_pieces(self, assets_dir: Path):
        chunks = list(stream_files([assets_dir / "logo.png"], chunk_size=100))

        assert [len(c) for c in chunks] == [100, 100, 56]
        assert b"".join(chunks) == bytes(range(256))

    def test_chunks_never_span_files(self, assets_dir: Path):
        paths = [assets_dir / "css" / "a.css", assets_dir / "css" / "b.css"]

        assert list(stream_files(paths, chunk_size=1024)) == [b"a{}", b"b{}"]

    def test_nothing_opened_until_iterated(self, tmp_path: Path):
        stream = stream_files([tmp_path / "missing.js"])

        with pytest.raises(FileNotFoundError):
            next(stream)

    def test_empty_file_yields_nothing(self, tmp_path: Path):
        empty = tmp_path / "empty.css"
        empty.write_bytes(b"")

        assert list(stream_files([empty])) == []

    def test_file_removed_mid_stream_raises(self, assets_dir: Path):
        """A member that vanishes after the stat pass breaks the stream."""
        second = assets_dir / "js" / "test2.js"
        stream = stream_files([assets_dir / "js" / "test1.js", second])

        assert next(stream) == b"A"
        second.unlink()

        with pytest.raises(FileNotFoundError):
            next(stream)
