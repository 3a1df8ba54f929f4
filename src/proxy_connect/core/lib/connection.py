"""Established tunnel connection.

This module wraps the socket returned by a successful proxy handshake. The
wrapper adds what the relay needs on top of a plain socket:
- Payload bytes read past the end of the proxy's reply are served first
- Half-close of the write side
- An idempotent ``close`` that is safe to call from both relay threads

Closing shuts the socket down before releasing it, which wakes up a ``recv``
blocked in the other relay thread.
"""

import contextlib
import socket
from types import TracebackType

from loguru import logger

from proxy_connect.core.endpoint import EndpointAddress


def open_transport(address: EndpointAddress, port: int) -> socket.socket:
    """Open a TCP connection to ``address`` on the already resolved ``port``.

    Raises:
        OSError: If the host cannot be resolved or the connection fails
    """
    sock = socket.create_connection((address.host, port))
    logger.debug(f"Connected to {address} from {sock.getsockname()}")
    return sock


class TunnelConnection:
    """Duplex byte stream to the destination, reached through the proxy."""

    def __init__(
        self,
        sock: socket.socket,
        proxy: EndpointAddress,
        destination: EndpointAddress,
        pending: bytes = b"",
    ) -> None:
        """Initialize the tunnel connection.

        Args:
            sock: Connected socket, positioned after the proxy handshake
            proxy: Address of the proxy the socket is connected to
            destination: Address the tunnel reaches
            pending: Payload bytes already read during the handshake
        """
        self.sock = sock
        self.proxy = proxy
        self.destination = destination
        self._pending = pending
        self._closed = False

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<TunnelConnection {self.destination} via {self.proxy} {state}>"

    @property
    def closed(self) -> bool:
        return self._closed

    def recv(self, size: int) -> bytes:
        """Read up to ``size`` bytes; an empty result means end-of-stream."""
        if self._pending:
            data, self._pending = self._pending[:size], self._pending[size:]
            return data
        return self.sock.recv(size)

    def sendall(self, data: bytes) -> None:
        self.sock.sendall(data)

    def shutdown_write(self) -> None:
        """Signal end-of-stream to the destination but keep reading."""
        with contextlib.suppress(OSError):
            self.sock.shutdown(socket.SHUT_WR)

    def close(self) -> None:
        """Close the tunnel. Repeated and concurrent calls are harmless."""
        if self._closed:
            return
        self._closed = True
        # Not connected any more is fine, the peer may have gone first
        with contextlib.suppress(OSError):
            self.sock.shutdown(socket.SHUT_RDWR)
        self.sock.close()
        logger.debug(f"Closed tunnel to {self.destination}")

    def __enter__(self) -> "TunnelConnection":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
