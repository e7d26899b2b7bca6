"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Every tunable of the asset server in one dataclass.

=============================================================================
SOURCES AND PRIORITY
=============================================================================

    highest ┌─────────────────────────────────────────┐
            │ 1. command-line flags (__main__.py)     │
            │ 2. JSON file given with --config        │  ServerConfig.from_file
            │ 3. ASSET_* environment variables        │  ServerConfig.from_env
            │ 4. dataclass defaults                   │
    lowest  └─────────────────────────────────────────┘

Each layer only overrides the values it actually names. A config file may
use the field names below, or the short names of the classic static-server
config (assets, maxAge, gzipTypes):

    {
        "host": "0.0.0.0",
        "port": 8080,
        "assets": "./public",
        "maxAge": 2592000,
        "gzipTypes": [".js", ".css", ".html", ".htm"],
        "welcome": "static files live here"
    }

=============================================================================
"""

import dataclasses
import json
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union


DEFAULT_GZIP_EXTENSIONS: Tuple[str, ...] = (".js", ".css", ".html", ".htm")


def normalize_extensions(extensions: Union[str, Iterable[str]]) -> Tuple[str, ...]:
    """
    Normalise an extension list: "js, .CSS" → (".js", ".css").

    Accepts a comma-separated string (environment variables) or an iterable.
    """
    if isinstance(extensions, str):
        extensions = extensions.split(",")
    result = []
    for ext in extensions:
        ext = ext.strip().lower()
        if not ext:
            continue
        result.append(ext if ext.startswith(".") else "." + ext)
    return tuple(result)


@dataclass
class ServerConfig:
    """
    Configuration for the asset server.

        ServerConfig(
            host="0.0.0.0",
            port=8080,
            assets_dir="/srv/www/assets",
            max_age=7 * 24 * 3600,
            processes=4,
        )
    """

    # ─── Network ──────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Address to bind. "0.0.0.0" for all interfaces."""

    port: int = 8080

    backlog: int = 128
    """Length of the kernel's pending-connection queue."""

    buffer_size: int = 8192
    """Bytes per recv() call."""

    timeout: Optional[float] = 30.0
    """Socket timeout for the first request and for every send()."""

    # ─── HTTP ─────────────────────────────────────────────────────────────

    keep_alive: bool = True

    keep_alive_timeout: float = 5.0
    """Idle seconds before a kept-alive connection is closed."""

    max_request_size: int = 1024 * 1024
    """
    Upper bound on a request's head and body. Asset requests are small GETs;
    anything bigger is refused with 413.
    """

    # ─── Concurrency ──────────────────────────────────────────────────────

    min_workers: int = 4
    """Connection worker threads started up front."""

    max_workers: int = 16
    """Upper bound the connection pool may grow to under load."""

    stat_workers: int = 8
    """Threads that stat() bundle members concurrently."""

    processes: int = 1
    """
    Server processes sharing the port via SO_REUSEPORT. 1 runs in-process.
    """

    # ─── Assets ───────────────────────────────────────────────────────────

    assets_dir: str = "./assets"
    """Root directory assets are served from. Must exist."""

    welcome: str = "Welcome to the static asset server!"
    """Plain-text body served for GET /."""

    max_age: int = 30 * 24 * 60 * 60
    """Seconds browsers may cache an asset (Cache-Control and Expires)."""

    gzip_extensions: Tuple[str, ...] = DEFAULT_GZIP_EXTENSIONS
    """Extensions compressed when the client accepts gzip."""

    gzip_level: int = 6
    """zlib compression level, 1 (fastest) to 9 (smallest)."""

    chunk_size: int = 64 * 1024
    """Bytes read from disk per body chunk."""

    # ─── Logging ──────────────────────────────────────────────────────────

    log_level: str = "INFO"

    log_format: str = "text"
    """Access-log format: "text" (Apache-like) or "json"."""

    # ─── Identity ─────────────────────────────────────────────────────────

    server_name: str = "assetserver"
    """Value of the Server response header."""

    def __post_init__(self):
        self.gzip_extensions = normalize_extensions(self.gzip_extensions)

    # =========================================================================
    # LOADING
    # =========================================================================

    # Environment variable → (field, converter)
    ENV_VARS = {
        "ASSET_HOST": ("host", str),
        "ASSET_PORT": ("port", int),
        "ASSET_DIR": ("assets_dir", str),
        "ASSET_WELCOME": ("welcome", str),
        "ASSET_MAX_AGE": ("max_age", int),
        "ASSET_GZIP_EXTENSIONS": ("gzip_extensions", normalize_extensions),
        "ASSET_GZIP_LEVEL": ("gzip_level", int),
        "ASSET_WORKERS": ("max_workers", int),
        "ASSET_STAT_WORKERS": ("stat_workers", int),
        "ASSET_PROCESSES": ("processes", int),
        "ASSET_TIMEOUT": ("timeout", float),
        "ASSET_LOG_LEVEL": ("log_level", str),
        "ASSET_LOG_FORMAT": ("log_format", str),
    }

    # Short names accepted in config files
    FILE_ALIASES = {
        "assets": "assets_dir",
        "maxAge": "max_age",
        "gzipTypes": "gzip_extensions",
    }

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        base: Optional["ServerConfig"] = None,
    ) -> "ServerConfig":
        """
        Overlay ASSET_* environment variables onto `base` (or the defaults).

            ASSET_PORT=9000 ASSET_DIR=/srv/assets python -m assetserver

        Raises:
            ValueError: If a variable cannot be converted
        """
        environ = os.environ if environ is None else environ
        overrides: Dict[str, Any] = {}
        for name, (field_name, convert) in cls.ENV_VARS.items():
            raw = environ.get(name)
            if raw is None:
                continue
            try:
                overrides[field_name] = convert(raw)
            except ValueError as e:
                raise ValueError(f"Invalid value for {name}: {raw!r}") from e
        return dataclasses.replace(base or cls(), **overrides)

    @classmethod
    def from_file(
        cls,
        path: Union[str, Path],
        base: Optional["ServerConfig"] = None,
    ) -> "ServerConfig":
        """
        Overlay a JSON config file onto `base` (or the defaults).

        Raises:
            ValueError: On unreadable JSON, a non-object document or
                unknown keys
            OSError: If the file cannot be read
        """
        with open(path, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON in config file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a JSON object")

        known = {f.name for f in fields(cls)}
        overrides: Dict[str, Any] = {}
        for key, value in data.items():
            name = cls.FILE_ALIASES.get(key, key)
            if name not in known:
                raise ValueError(f"Unknown config key in {path}: {key!r}")
            overrides[name] = value

        return dataclasses.replace(base or cls(), **overrides)

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def validate(self) -> None:
        """
        Fail fast on values that would only break later, under traffic.

        Raises:
            ValueError: Describing the first invalid value found
        """
        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 1-65535.")
        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")
        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")
        if self.stat_workers < 1:
            raise ValueError("stat_workers must be >= 1")
        if self.processes < 1:
            raise ValueError("processes must be >= 1")
        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")
        if self.max_request_size < self.buffer_size:
            raise ValueError("max_request_size must be >= buffer_size")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        if self.max_age < 0:
            raise ValueError("max_age must be >= 0")
        if not 1 <= self.gzip_level <= 9:
            raise ValueError("gzip_level must be between 1 and 9")
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        if self.log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', not {self.log_format!r}")
        if not Path(self.assets_dir).is_dir():
            raise ValueError(f"assets_dir is not a directory: {self.assets_dir}")
