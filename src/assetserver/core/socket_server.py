"""
=============================================================================
SOCKET SERVER
=============================================================================

Owns the listening socket: create, bind, listen, accept, and hand every
accepted client to a callback as a Connection.

=============================================================================
SOCKET OPTIONS
=============================================================================

    SO_REUSEADDR   rebind immediately after a restart (TIME_WAIT)
    SO_REUSEPORT   let several processes bind the same port; the kernel
                   spreads new connections across them (multi-process mode)
    TCP_NODELAY    send small header packets without Nagle delay
    timeout 1s     accept() wakes up regularly to notice shutdown()

=============================================================================
LIFECYCLE
=============================================================================

    start(handler)
        ├── create + bind + listen
        ├── SIGTERM/SIGINT → shutdown()   (main thread only; a server run
        │                                  from a test thread cannot install
        │                                  signal handlers)
        ├── ready.set()
        └── accept loop ─ Connection(...) ─▶ handler(conn)
                 │
    shutdown() ──┘ loop exits within a second, socket closed

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Blocking TCP accept loop.

        server = SocketServer(config)
        server.start(handle_connection)   # returns after shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False
        self._shutdown_event = threading.Event()
        self._original_handlers: dict = {}
        self.ready = threading.Event()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); reflects the real port when 0 was requested."""
        if self._socket is not None:
            return self._socket.getsockname()[:2]
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        if hasattr(socket, "SO_REUSEPORT"):
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.settimeout(1.0)
        return sock

    def _setup_signals(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            logger.info("Received %s, shutting down", signal.Signals(signum).name)
            self.shutdown()

        for sig in (signal.SIGTERM, signal.SIGINT):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self) -> None:
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]) -> None:
        """
        Bind, listen and accept until shutdown() is called.

        Raises:
            OSError: If the address cannot be bound
        """
        self._socket = self._create_socket()
        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error("Failed to bind to %s:%s: %s", self.config.host, self.config.port, e)
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)
        self._running = True
        self._shutdown_event.clear()
        self._setup_signals()

        host, port = self.address
        logger.info("Listening on %s:%s", host, port)
        self.ready.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]) -> None:
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error("Accept error: %s", e)
                break

            logger.debug("Accepted connection from %s:%s", *client_address[:2])
            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                keep_alive_timeout=self.config.keep_alive_timeout,
                max_request_size=self.config.max_request_size,
            )
            connection_handler(conn)

    def shutdown(self) -> None:
        """Stop accepting. Idempotent and safe from any thread."""
        if self._running:
            logger.info("Shutting down socket server")
        self._running = False
        self._shutdown_event.set()

    def _cleanup(self) -> None:
        self._restore_signals()
        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None
        self.ready.clear()
        logger.info("Socket server stopped")

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        return self._shutdown_event.wait(timeout)
