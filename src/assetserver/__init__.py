"""
=============================================================================
ASSETSERVER - Static Asset Server with On-the-fly Bundling
=============================================================================

Serves files from one directory over HTTP/1.1, with:

    - bundles: GET /a.js,b.js returns both files, concatenated in order
    - one Last-Modified / ETag per bundle, and 304 revalidation
    - long-lived Cache-Control and Expires headers
    - streaming gzip for text assets
    - constant memory per response, whatever the bundle size

=============================================================================
ARCHITECTURE
=============================================================================

    ┌──────────────────────────────────────────────────────────────────┐
    │ core/        sockets, connections, worker threads, processes     │
    ├──────────────────────────────────────────────────────────────────┤
    │ http/        request parsing, streamed responses, routing        │
    ├──────────────────────────────────────────────────────────────────┤
    │ middleware/  access log, method guard, gzip                      │
    ├──────────────────────────────────────────────────────────────────┤
    │ handlers/    AssetHandler: outcome → HTTPResponse                │
    ├──────────────────────────────────────────────────────────────────┤
    │ pipeline/    classify → lookup → fingerprint → 304? → stream     │
    └──────────────────────────────────────────────────────────────────┘

=============================================================================
QUICK START
=============================================================================

    from assetserver import ServerConfig, create_app

    app = create_app(ServerConfig(assets_dir="./public", port=8080))
    app.run()

or from the shell:

    python -m assetserver --assets ./public --port 8080

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer, create_app
from .config import ServerConfig

__all__ = ["HTTPServer", "ServerConfig", "create_app", "__version__"]
