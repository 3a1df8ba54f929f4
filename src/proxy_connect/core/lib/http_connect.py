"""HTTP CONNECT handshake.

Asks an HTTP proxy to open a raw TCP connection to the destination:

    CONNECT dest.example.com:22 HTTP/1.1
    Host: proxy.example.com:3128

The proxy answers with an HTTP response head. Only status 200 opens the
tunnel; from then on the connection carries the payload without framing.
The head is read without any buffering layer so that payload bytes sent right
after it are handed back to the caller instead of being lost.
"""

import http.client
import io
import re
import socket
from http import HTTPStatus
from typing import Final

from loguru import logger

from proxy_connect.core.endpoint import EndpointAddress
from proxy_connect.core.exceptions import DialError

STEP: Final = "http-connect"
RECV_SIZE: Final = 4096
MAX_HEAD_SIZE: Final = 64 * 1024
HTTP_OK: Final = 200

HEAD_END: Final = re.compile(rb"\r?\n\r?\n")
STATUS_LINE: Final = re.compile(r"HTTP/(\d)\.(\d) (\d{3})(?: (.*))?")


class MalformedResponseError(ValueError):
    """Raised when the proxy's reply is not an HTTP response head."""


def build_request(proxy: EndpointAddress, destination: EndpointAddress) -> bytes:
    """Build the CONNECT request head."""
    return f"CONNECT {destination} HTTP/1.1\r\nHost: {proxy}\r\n\r\n".encode("ascii")


def read_head(sock: socket.socket) -> tuple[bytes, bytes]:
    """Read the response head up to the blank line.

    Returns:
        tuple: The head (without the blank line) and any bytes after it

    Raises:
        MalformedResponseError: On end-of-stream or an oversized head
        OSError: If reading from the socket fails
    """
    buffer = b""
    while True:
        match = HEAD_END.search(buffer)
        if match:
            return buffer[: match.start()], buffer[match.end() :]
        if len(buffer) > MAX_HEAD_SIZE:
            msg = f"response head exceeds {MAX_HEAD_SIZE} bytes"
            raise MalformedResponseError(msg)
        chunk = sock.recv(RECV_SIZE)
        if not chunk:
            msg = "unexpected EOF" if buffer else "connection closed before response"
            raise MalformedResponseError(msg)
        buffer += chunk


def parse_status(head: bytes) -> tuple[int, str, http.client.HTTPMessage]:
    """Parse the status line and headers of a response head.

    Returns:
        tuple: Status code, reason phrase and parsed headers

    Raises:
        MalformedResponseError: If the status line is not HTTP
    """
    status_line, _, header_block = head.partition(b"\n")
    text = status_line.rstrip(b"\r").decode("latin-1")
    match = STATUS_LINE.fullmatch(text)
    if not match:
        msg = f"malformed HTTP status line {text[:80]!r}"
        raise MalformedResponseError(msg)

    status = int(match.group(3))
    reason = (match.group(4) or "").strip()
    if not reason:
        try:
            reason = HTTPStatus(status).phrase
        except ValueError:
            reason = "unknown status"

    headers = http.client.parse_headers(io.BytesIO(header_block + b"\r\n"))
    return status, reason, headers


def handshake(sock: socket.socket, proxy: EndpointAddress, destination: EndpointAddress) -> bytes:
    """Run the CONNECT handshake on a socket connected to the proxy.

    Args:
        sock: Socket connected to the proxy
        proxy: Address of the proxy, sent as the ``Host`` header
        destination: Address to tunnel to

    Returns:
        bytes: Payload bytes that arrived together with the response head

    Raises:
        DialError: If the proxy cannot be read, replies with something other
            than HTTP or refuses the tunnel
    """
    logger.debug(f"Sending CONNECT {destination} to {proxy}")
    try:
        sock.sendall(build_request(proxy, destination))
        head, leftover = read_head(sock)
        status, reason, headers = parse_status(head)
    except (OSError, MalformedResponseError, http.client.HTTPException) as e:
        msg = f"reading HTTP response from CONNECT to {destination} via proxy {proxy} failed: {e}"
        raise DialError(msg, proxy=proxy, destination=destination, step=STEP, cause=e) from e

    logger.debug(f"Proxy {proxy} answered {status} {reason}")
    for name, value in headers.items():
        logger.debug(f"  {name}: {value}")

    if status != HTTP_OK:
        msg = f"proxy error from {proxy} while dialing {destination}: {status} {reason}"
        raise DialError(
            msg,
            proxy=proxy,
            destination=destination,
            step=STEP,
            status=status,
            reason=reason,
        )

    return leftover
