"""
=============================================================================
ASSET SERVER
=============================================================================

Ties the pieces together: socket server, connection pool, request parser,
middleware pipeline and router, with the asset pipeline mounted on it.

=============================================================================
REQUEST FLOW
=============================================================================

    SocketServer.accept()
        │ Connection
        ▼
    ThreadPool.submit(_process_connection) ── queue full ──▶ 503, close
        │
        ▼  (worker thread, once per request on a kept-alive connection)
    conn.read_request() ─── timeout ───▶ 408     too large ──▶ 413
        │
        ▼
    RequestParser.parse() ─ malformed ─▶ 400 (or 413), close
        │ HTTPRequest
        ▼
    LoggingMiddleware → MethodGuardMiddleware → CompressionMiddleware
        │
        ▼
    Router ─ "/*path" ─▶ AssetHandler ─▶ AssetResolver.resolve()
        │ HTTPResponse (body or stream)
        ▼
    conn.send_stream(response.iter_bytes(...))
        chunked on HTTP/1.1, raw + close on HTTP/1.0

The body of a Serve outcome is a generator over the bundle's files, read
and written one chunk at a time. sendall() blocks while the client's
window is full, so the reader never runs ahead of the socket.

=============================================================================
"""

import logging
from typing import Callable, List, Optional

from .config import ServerConfig
from .core import SocketServer, Connection, ThreadPool, RequestTooLarge
from .handlers import AssetHandler
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPResponse, HTTPStatus, Router,
    error_response, internal_error,
)
from .middleware import (
    MiddlewarePipeline, Middleware,
    LoggingMiddleware, MethodGuardMiddleware, CompressionMiddleware,
)
from .pipeline import AssetResolver


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Thread-pooled HTTP/1.1 server.

        server = HTTPServer(config)
        server.use(LoggingMiddleware())

        @server.get("/*path")
        def assets(request):
            ...

        server.run()

    create_app() returns one with the asset pipeline already mounted.
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)

        self._router = Router()
        self._middleware = MiddlewarePipeline()

        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None
        self._on_shutdown: List[Callable[[], None]] = []
        self._running = False

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def use(self, middleware: Middleware) -> "HTTPServer":
        """Add middleware. The first one added sees the request first."""
        self._middleware.add(middleware)
        return self

    def on_shutdown(self, callback: Callable[[], None]) -> "HTTPServer":
        """Register a callback run after the server has stopped."""
        self._on_shutdown.append(callback)
        return self

    @property
    def router(self) -> Router:
        return self._router

    def route(self, path: str, method: Optional[str] = None, **kwargs):
        return self._router.route(path, method, **kwargs)

    def get(self, path: str, **kwargs):
        return self._router.get(path, **kwargs)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @property
    def ready(self):
        """Event set once the socket is listening."""
        return self._socket_server.ready

    @property
    def address(self):
        return self._socket_server.address

    def run(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        announce: bool = True,
    ) -> None:
        """
        Serve until shutdown() or SIGINT/SIGTERM.

        Args:
            host: Override config host
            port: Override config port
            announce: Print the startup line. Worker processes of a
                ProcessGroup leave this to the master.
        """
        if host:
            self.config.host = host
        if port:
            self.config.port = port

        self._running = True
        self._setup_logging()

        self._handler = self._middleware.wrap(self._router.handle)
        self._thread_pool.start()

        logger.info(
            "Serving %s on %s:%s",
            self.config.assets_dir, self.config.host, self.config.port,
        )
        if announce:
            print(f"Static server is running at http://{self.config.host}:{self.config.port}")

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self) -> None:
        """Ask a running server to stop. Safe from any thread."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("assetserver").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False
        self._thread_pool.shutdown(wait=True, timeout=30.0)
        for callback in self._on_shutdown:
            try:
                callback()
            except Exception:
                logger.exception("Shutdown callback %r failed", callback)
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTIONS
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        submitted = self._thread_pool.submit(
            self._process_connection,
            args=(conn,),
            timeout=self.config.timeout,
            on_expired=lambda: self._reject(conn),
        )
        if not submitted:
            logger.warning("[%s] Thread pool full, rejecting connection", conn.id)
            self._reject(conn)

    def _reject(self, conn: Connection):
        """Answer 503 without reading the request, then close."""
        with conn:
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE)

    def _process_connection(self, conn: Connection):
        """
        Serve one connection: read, parse, handle, write, and repeat while
        the client keeps the connection alive.
        """
        with conn:
            while self._running:
                try:
                    raw_request = conn.read_request()
                    if raw_request is None:
                        break

                    try:
                        request = self._parser.parse(raw_request, conn.address)
                    except HTTPParseError as e:
                        logger.info("[%s] Bad request: %s", conn.id, e)
                        self._send_error(conn, HTTPStatus(e.status_code))
                        break

                    try:
                        response = self._handler(request)
                    except Exception as e:
                        logger.exception("[%s] Handler error: %s", conn.id, e)
                        response = internal_error()

                    keep_alive = self._apply_connection_headers(request, response)

                    if not conn.send_stream(response.iter_bytes(
                        self.config.server_name,
                        chunked=request.supports_chunked,
                    )):
                        break

                    if not keep_alive:
                        break
                    conn.set_keep_alive()

                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT)
                    break
                except RequestTooLarge as e:
                    logger.info("[%s] %s", conn.id, e)
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE)
                    break
                except OSError as e:
                    # The head is already on the wire; all we can do is cut
                    # the connection so the client sees a truncated body.
                    logger.error("[%s] Failed while streaming response: %s", conn.id, e)
                    break
                except Exception as e:
                    logger.exception("[%s] Connection error: %s", conn.id, e)
                    break

    def _apply_connection_headers(self, request: HTTPRequest, response: HTTPResponse) -> bool:
        """Set Connection/Keep-Alive and return whether to keep the connection."""
        keep_alive = (
            self.config.keep_alive
            and request.is_keep_alive
            and response.get_header("Connection", "").lower() != "close"
            # A stream without chunked framing ends at EOF
            and (request.supports_chunked or not response.is_streamed)
        )
        if keep_alive:
            response.headers.setdefault("Connection", "keep-alive")
            response.headers.setdefault(
                "Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}"
            )
        else:
            response.set_header("Connection", "close")
        return keep_alive

    def _send_error(self, conn: Connection, status: HTTPStatus):
        """Plain-text error outside the handler chain (parse errors, timeouts)."""
        response = error_response(status)
        response.set_header("Connection", "close")
        conn.send_response(response.to_bytes(self.config.server_name))


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def create_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    """
    Build a server with the asset pipeline mounted at "/*path".

        app = create_app(ServerConfig(assets_dir="./public"))
        app.run()
    """
    server = HTTPServer(config)
    config = server.config

    resolver = AssetResolver(
        config.assets_dir,
        welcome=config.welcome,
        stat_workers=config.stat_workers,
        chunk_size=config.chunk_size,
    )
    assets = AssetHandler(resolver, max_age=config.max_age)

    server.use(LoggingMiddleware(log_format=config.log_format))
    server.use(MethodGuardMiddleware(("GET",)))
    server.use(CompressionMiddleware(
        extensions=config.gzip_extensions,
        level=config.gzip_level,
    ))

    server.router.add_route("/*path", assets.handle, "GET", name="assets")
    server.on_shutdown(resolver.close)
    return server


def serve(config: ServerConfig) -> None:
    """Process entry point for ProcessGroup children."""
    create_app(config).run(announce=False)
