"""
=============================================================================
ASSET SERVER CLI ENTRY POINT
=============================================================================

    # Serve ./assets on localhost:8080
    python -m assetserver

    # Config file, then override the port
    python -m assetserver --config server.json --port 3000

    # All interfaces, one process per CPU
    python -m assetserver --host 0.0.0.0 --processes 0

Settings are layered: flags over the --config file over ASSET_* environment
variables over defaults (see config.py).

=============================================================================
"""

import argparse
import dataclasses
import logging
import os
import sys
from typing import List, Optional

from . import __version__
from .config import ServerConfig, normalize_extensions
from .core import ProcessGroup
from .server import create_app, serve


logger = logging.getLogger("assetserver")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="assetserver",
        description="Static asset server with comma-joined JS/CSS bundles",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m assetserver                           # ./assets on 127.0.0.1:8080
  python -m assetserver -c server.json            # settings from a file
  python -m assetserver -a ./public -p 3000       # custom root and port
  python -m assetserver --gzip-ext .js --gzip-ext .svg
  python -m assetserver -H 0.0.0.0 -P 0           # one process per CPU

Bundles:
  GET /js/a.js,js/b.js    → a.js followed by b.js, one ETag for both
        """
    )

    # ─── Network ──────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        help="Host to bind to (default: 127.0.0.1, use 0.0.0.0 for containers)"
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        help="Port to listen on (default: 8080)"
    )

    # ─── Assets ───────────────────────────────────────────────────────────

    parser.add_argument(
        "--config", "-c",
        help="JSON config file"
    )
    parser.add_argument(
        "--assets", "-a",
        dest="assets_dir",
        help="Directory to serve (default: ./assets)"
    )
    parser.add_argument(
        "--welcome",
        help="Text served for GET /"
    )
    parser.add_argument(
        "--max-age",
        type=int,
        help="Cache lifetime in seconds (default: 30 days)"
    )
    parser.add_argument(
        "--gzip-ext",
        action="append",
        dest="gzip_extensions",
        metavar="EXT",
        help="Extension to gzip; repeat for several (default: .js .css .html .htm)"
    )

    # ─── Performance ──────────────────────────────────────────────────────

    parser.add_argument(
        "--workers", "-w",
        type=int,
        help="Connection worker threads per process (max will be 4x this)"
    )
    parser.add_argument(
        "--processes", "-P",
        type=int,
        help="Server processes sharing the port; 0 means one per CPU (default: 1)"
    )

    # ─── Logging ──────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)"
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        help="Access log format (default: text)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"assetserver {__version__}"
    )
    return parser


def load_config(args: argparse.Namespace) -> ServerConfig:
    """
    Layer defaults, environment, config file and flags into one config.

    Raises:
        ValueError: On invalid settings in any layer
        OSError: If the config file cannot be read
    """
    config = ServerConfig.from_env()
    if args.config:
        config = ServerConfig.from_file(args.config, base=config)

    overrides = {}
    for name in ("host", "port", "assets_dir", "welcome", "max_age", "log_level", "log_format"):
        value = getattr(args, name)
        if value is not None:
            overrides[name] = value

    if args.gzip_extensions:
        overrides["gzip_extensions"] = normalize_extensions(args.gzip_extensions)
    if args.workers is not None:
        overrides["min_workers"] = args.workers
        overrides["max_workers"] = args.workers * 4
    if args.processes is not None:
        overrides["processes"] = args.processes or os.cpu_count() or 1

    config = dataclasses.replace(config, **overrides)
    config.validate()
    return config


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args)
    except (ValueError, OSError) as e:
        print(f"assetserver: {e}", file=sys.stderr)
        return 2

    if config.processes > 1:
        logging.basicConfig(
            level=getattr(logging, config.log_level, logging.INFO),
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        print(f"Static server is running at http://{config.host}:{config.port}")
        ProcessGroup(config, serve).start()
        return 0

    try:
        create_app(config).run()
    except OSError as e:
        logger.error("Server failed: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
