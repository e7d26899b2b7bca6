"""
=============================================================================
CORE NETWORKING
=============================================================================

Transport and concurrency, independent of HTTP semantics:

    socket_server.py   listening socket and accept loop
    connection.py      one client: buffered reads, streamed writes
    thread_pool.py     bounded worker threads serving connections
    process_group.py   N server processes sharing a port

    ┌──────────────┐  Connection  ┌────────────┐  conn  ┌──────────────┐
    │ SocketServer │ ───────────▶ │ ThreadPool │ ─────▶ │ HTTPServer.  │
    │ accept()     │              │ queue      │        │ _process_... │
    └──────────────┘              └────────────┘        └──────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState, RequestTooLarge
from .thread_pool import ThreadPool
from .process_group import ProcessGroup

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "RequestTooLarge",
    "ThreadPool",
    "ProcessGroup",
]
