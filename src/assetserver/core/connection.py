"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps one accepted client socket: buffered request reading, blocking
writes with back-pressure, keep-alive timeouts and an orderly close.

=============================================================================
LIFECYCLE
=============================================================================

    accept()
       │
       ▼
     NEW ──▶ READING ──▶ PROCESSING ──▶ WRITING ──┬──▶ KEEP_ALIVE ──▶ READING ...
                                                  │
                                                  └──▶ CLOSING ──▶ CLOSED

The first request may take `timeout` seconds to arrive; later ones on the
same connection only `keep_alive_timeout`, after which an idle connection
is simply closed.

=============================================================================
WRITING A STREAM
=============================================================================

    send_stream(response.iter_bytes(...))

    for piece in pieces:          ◀── the producer reads the next file chunk
        sendall(piece)            ◀── blocks until the kernel accepted it

The producer is only advanced after the previous piece was accepted, so a
slow reader throttles disk reads instead of growing a buffer. Two kinds of
failure are kept apart:

    sendall() fails (client gone, timeout)  → logged, returns False
    producer raises (file read error)       → propagates to the caller

Either way the producer is closed, which closes any open file.

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Iterable, Optional
import uuid


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


class RequestTooLarge(ValueError):
    """The request head grew past max_request_size before it was complete."""


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The accepted client socket
        address: Peer (ip, port)
        id: Short random id used in log lines
        requests_handled: Requests read so far on this connection
        bytes_sent: Bytes written so far, headers included
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)
    requests_handled: int = 0
    bytes_sent: int = 0

    buffer_size: int = 8192
    timeout: float = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def age(self) -> float:
        return time.time() - self.created_at

    # ─── Reading ──────────────────────────────────────────────────────────

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete request (head plus Content-Length body).

        Bytes beyond the request stay buffered for the next call, so
        pipelined requests are served in order.

        Returns:
            The request bytes, or None when the client closed the connection
            or an idle keep-alive connection timed out.

        Raises:
            TimeoutError: The first request did not arrive in time
            RequestTooLarge: The request exceeds max_request_size
        """
        self.state = ConnectionState.READING
        self.last_activity = time.time()

        if self.requests_handled > 0:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            while b"\r\n\r\n" not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    return None
                self._buffer += chunk
                self._check_size()

            header_end = self._buffer.find(b"\r\n\r\n")
            body_start = header_end + 4
            content_length = self._parse_content_length(self._buffer[:header_end])

            while len(self._buffer) - body_start < content_length:
                chunk = self._recv()
                if not chunk:
                    break
                self._buffer += chunk
                self._check_size()

            request_end = body_start + content_length
            request_data = self._buffer[:request_end]
            self._buffer = self._buffer[request_end:]

            self.requests_handled += 1
            self.state = ConnectionState.PROCESSING
            self.last_activity = time.time()
            return request_data

        except socket.timeout:
            if self.requests_handled > 0 or not self._buffer:
                logger.debug("[%s] Idle timeout", self.id)
                return None
            raise TimeoutError("Request read timeout")

        finally:
            self.socket.settimeout(self.timeout)

    def _check_size(self) -> None:
        if len(self._buffer) > self.max_request_size:
            raise RequestTooLarge(f"Request too large: {len(self._buffer)} bytes")

    def _recv(self) -> bytes:
        try:
            data = self.socket.recv(self.buffer_size)
            self.last_activity = time.time()
            return data
        except (ConnectionResetError, BrokenPipeError):
            return b""

    @staticmethod
    def _parse_content_length(head: bytes) -> int:
        # Only the framing is needed here; RequestParser validates properly
        for line in head.decode("latin-1").lower().split("\r\n"):
            if line.startswith("content-length:"):
                value = line.split(":", 1)[1].strip()
                return int(value) if value.isdigit() else 0
        return 0

    # ─── Writing ──────────────────────────────────────────────────────────

    def send_response(self, data: bytes) -> bool:
        """Send a fully serialised response. False if the client is gone."""
        return self.send_stream([data])

    def send_stream(self, pieces: Iterable[bytes]) -> bool:
        """
        Write pieces one at a time with sendall().

        Returns:
            True when every piece was sent, False when the peer went away

        Raises:
            Whatever the producer raises while generating the next piece
        """
        self.state = ConnectionState.WRITING
        self.last_activity = time.time()
        try:
            for piece in pieces:
                try:
                    self.socket.sendall(piece)
                except OSError as e:
                    logger.warning("[%s] Send failed: %s", self.id, e)
                    return False
                self.bytes_sent += len(piece)
                self.last_activity = time.time()
            return True
        finally:
            close = getattr(pieces, "close", None)
            if close is not None:
                close()

    # ─── Closing ──────────────────────────────────────────────────────────

    def set_keep_alive(self) -> None:
        self.state = ConnectionState.KEEP_ALIVE

    def close(self) -> None:
        """
        Close with a FIN first, then drain what the client still sends, so
        the kernel does not answer unread data with a RST that could
        destroy the tail of our response.
        """
        if self.state == ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # peer already gone

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(
            "[%s] Closed after %d requests, %d bytes sent",
            self.id, self.requests_handled, self.bytes_sent,
        )

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
