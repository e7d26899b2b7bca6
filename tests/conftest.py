"""
pytest configuration and fixtures.
"""

import os
import socket
import threading
from pathlib import Path
from typing import Generator

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from assetserver import HTTPServer, ServerConfig, create_app


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample conditional GET for a bundle."""
    return (
        b"GET /js/test1.js,js/test2.js?v=3 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept-Encoding: gzip, deflate\r\n"
        b"If-Modified-Since: Wed, 01 Jan 2025 00:00:00 GMT\r\n"
        b"If-None-Match: abc=\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def assets_dir(tmp_path: Path) -> Path:
    """
    A small asset tree:

        js/test1.js   "A"
        js/test2.js   "B"
        js/lib/       (directory)
        css/a.css     "a{}"
        css/b.css     "b{}"
        index.html
        logo.png      binary
    """
    root = tmp_path / "assets"
    (root / "js" / "lib").mkdir(parents=True)
    (root / "css").mkdir()

    (root / "js" / "test1.js").write_bytes(b"A")
    (root / "js" / "test2.js").write_bytes(b"B")
    (root / "css" / "a.css").write_bytes(b"a{}")
    (root / "css" / "b.css").write_bytes(b"b{}")
    (root / "index.html").write_bytes(b"<h1>hi</h1>")
    (root / "logo.png").write_bytes(bytes(range(256)))

    # Fixed mtimes so Last-Modified is predictable
    for path in root.rglob("*"):
        if path.is_file():
            os.utime(path, (1700000000, 1700000000))
    return root


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def config(assets_dir: Path, free_port: int) -> ServerConfig:
    """Test server configuration over the asset tree."""
    return ServerConfig(
        host="127.0.0.1",
        port=free_port,
        assets_dir=str(assets_dir),
        welcome="hello assets",
        min_workers=2,
        max_workers=4,
        stat_workers=2,
        timeout=5.0,
        log_level="WARNING",
    )


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.config.port

    def start(self):
        """Start server in background thread and wait until it listens."""
        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"announce": False},
            daemon=True,
        )
        self._thread.start()

        if not self.server.ready.wait(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)


@pytest.fixture
def test_server(config: ServerConfig) -> Generator[TestServer, None, None]:
    """A running asset server."""
    test_srv = TestServer(create_app(config))
    test_srv.start()

    yield test_srv

    test_srv.stop()
