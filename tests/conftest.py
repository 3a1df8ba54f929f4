"""Mock proxies and helpers shared by the tests.

The mock proxies are small ``socketserver`` servers on an ephemeral loopback
port. After a successful handshake they echo whatever the client sends, so the
tunnel itself acts as the destination.
"""

import socket
import socketserver
import struct
import threading
from collections.abc import Iterator

import pytest
from loguru import logger

from proxy_connect.core.endpoint import EndpointAddress

DESTINATION = EndpointAddress("example.org", "80")


class MockProxy(socketserver.ThreadingMixIn, socketserver.TCPServer):
    """Threaded TCP server that records what clients sent."""

    allow_reuse_address = True
    daemon_threads = True

    def __init__(self, handler: type[socketserver.BaseRequestHandler], **options: object) -> None:
        super().__init__(("127.0.0.1", 0), handler)
        self.options = options
        self.received: list[bytes] = []

    @property
    def endpoint(self) -> EndpointAddress:
        host, port = self.server_address[:2]
        return EndpointAddress(host, str(port))


def recv_exactly(conn, size: int) -> bytes:
    """Read exactly ``size`` bytes from a socket or tunnel."""
    data = b""
    while len(data) < size:
        chunk = conn.recv(size - len(data))
        if not chunk:
            break
        data += chunk
    return data


def echo(sock: socket.socket) -> None:
    while True:
        data = sock.recv(4096)
        if not data:
            return
        sock.sendall(data)


class HTTPConnectHandler(socketserver.BaseRequestHandler):
    """Answer a CONNECT request with the configured reply, then echo."""

    def handle(self) -> None:
        head = b""
        while b"\r\n\r\n" not in head:
            chunk = self.request.recv(4096)
            if not chunk:
                return
            head += chunk
        self.server.received.append(head)

        reply = self.server.options.get("reply", b"HTTP/1.1 200 Connection established\r\n\r\n")
        self.request.sendall(reply)
        if reply.startswith(b"HTTP/1.1 200") and not self.server.options.get("close_after_reply"):
            echo(self.request)


class Socks5Handler(socketserver.BaseRequestHandler):
    """Server side of a SOCKS5 negotiation, then echo."""

    def handle(self) -> None:
        options = self.server.options
        version, nmethods = struct.unpack("!BB", recv_exactly(self.request, 2))
        methods = recv_exactly(self.request, nmethods)
        self.server.received.append(bytes([version, nmethods]) + methods)

        method = options.get("method", 0x00)
        self.request.sendall(struct.pack("!BB", 5, method))
        if method != 0x00:
            return

        header = recv_exactly(self.request, 4)
        addr_type = header[3]
        if addr_type == 1:
            addr = recv_exactly(self.request, 4)
        elif addr_type == 4:  # noqa: PLR2004
            addr = recv_exactly(self.request, 16)
        else:
            length = recv_exactly(self.request, 1)
            addr = length + recv_exactly(self.request, length[0])
        port = recv_exactly(self.request, 2)
        self.server.received.append(header + addr + port)

        reply_code = options.get("reply", 0)
        bound = options.get("bound", b"\x01" + socket.inet_aton("10.0.0.1") + struct.pack("!H", 4321))
        self.request.sendall(struct.pack("!BBB", 5, reply_code, 0) + bound)
        if reply_code == 0:
            echo(self.request)


@pytest.fixture
def mock_proxy() -> Iterator:
    """Factory starting mock proxies that are shut down after the test."""
    servers: list[MockProxy] = []

    def start(handler: type[socketserver.BaseRequestHandler], **options: object) -> MockProxy:
        server = MockProxy(handler, **options)
        threading.Thread(target=server.serve_forever, daemon=True).start()
        servers.append(server)
        return server

    yield start

    for server in servers:
        server.shutdown()
        server.server_close()


@pytest.fixture
def closed_port() -> int:
    """A loopback port nothing listens on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def log_messages() -> Iterator[list[str]]:
    """Capture debug log messages emitted during the test."""
    messages: list[str] = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
