"""SOCKS5 client negotiation.

This module implements the client side of RFC 1928, providing:
- Method negotiation (no-authentication only)
- The CONNECT command for IPv4, IPv6 and domain name destinations
- Reply parsing, including the variable-length bound address

Username/password and GSSAPI authentication, BIND and UDP ASSOCIATE are not
supported.

Example:
    sock = open_transport(proxy)
    leftover = handshake(sock, proxy, EndpointAddress("example.org", "80"))
"""

import ipaddress
import socket
import struct
from typing import Final

from loguru import logger

from proxy_connect.core.endpoint import EndpointAddress
from proxy_connect.core.exceptions import DialError

# SOCKS protocol constants
SOCKS_VERSION: Final = 5
CONNECT_CMD: Final = 1
RESERVED: Final = 0

# Authentication methods
METHOD_NO_AUTH: Final = 0x00
METHOD_NO_ACCEPTABLE: Final = 0xFF

# Address types
ADDR_TYPE_IPV4: Final = 1
ADDR_TYPE_DOMAIN: Final = 3
ADDR_TYPE_IPV6: Final = 4

ADDR_LENGTHS: Final = {ADDR_TYPE_IPV4: 4, ADDR_TYPE_IPV6: 16}
MAX_DOMAIN_LENGTH: Final = 255

# Reply codes
RESP_SUCCESS: Final = 0
REPLY_MESSAGES: Final = {
    0x01: "general SOCKS server failure",
    0x02: "connection not allowed by ruleset",
    0x03: "network unreachable",
    0x04: "host unreachable",
    0x05: "connection refused",
    0x06: "TTL expired",
    0x07: "command not supported",
    0x08: "address type not supported",
}


class Socks5ProtocolError(Exception):
    """Raised when the proxy's reply violates the SOCKS5 protocol."""


def recv_exact(sock: socket.socket, size: int) -> bytes:
    """Read exactly ``size`` bytes.

    Raises:
        Socks5ProtocolError: If the proxy closes the connection first
    """
    data = b""
    while len(data) < size:
        chunk = sock.recv(size - len(data))
        if not chunk:
            msg = f"connection closed after {len(data)} of {size} bytes"
            raise Socks5ProtocolError(msg)
        data += chunk
    return data


def encode_address(host: str) -> bytes:
    """Encode a destination host as ``ATYP`` followed by ``DST.ADDR``."""
    try:
        ip = ipaddress.ip_address(host.strip("[]"))
    except ValueError:
        name = host.encode("idna")
        if not name or len(name) > MAX_DOMAIN_LENGTH:
            msg = f"domain name must be 1-{MAX_DOMAIN_LENGTH} bytes, got {len(name)}"
            raise ValueError(msg) from None
        return struct.pack("!BB", ADDR_TYPE_DOMAIN, len(name)) + name

    if ip.version == 4:  # noqa: PLR2004
        return struct.pack("!B", ADDR_TYPE_IPV4) + ip.packed
    return struct.pack("!B", ADDR_TYPE_IPV6) + ip.packed


def build_connect_request(destination: EndpointAddress) -> bytes:
    """Build the CONNECT request for ``destination``.

    Raises:
        ValueError: If the host cannot be encoded or the port is invalid
        OSError: If the port is an unknown service name
    """
    header = struct.pack("!BBB", SOCKS_VERSION, CONNECT_CMD, RESERVED)
    port = struct.pack("!H", destination.port_number())
    return header + encode_address(destination.host) + port


def read_bound_address(sock: socket.socket, addr_type: int) -> str:
    """Consume ``BND.ADDR`` and ``BND.PORT`` from a reply."""
    if addr_type == ADDR_TYPE_DOMAIN:
        length = recv_exact(sock, 1)[0]
        host = recv_exact(sock, length).decode("ascii", errors="replace")
    elif addr_type in ADDR_LENGTHS:
        host = str(ipaddress.ip_address(recv_exact(sock, ADDR_LENGTHS[addr_type])))
    else:
        msg = f"unknown address type 0x{addr_type:02x} in reply"
        raise Socks5ProtocolError(msg)

    port = struct.unpack("!H", recv_exact(sock, 2))[0]
    return f"{host}:{port}"


def _negotiate(sock: socket.socket) -> None:
    """Offer the no-authentication method and check the proxy accepts it."""
    sock.sendall(struct.pack("!BBB", SOCKS_VERSION, 1, METHOD_NO_AUTH))
    version, method = struct.unpack("!BB", recv_exact(sock, 2))
    if version != SOCKS_VERSION:
        msg = f"unexpected SOCKS version {version} in method reply"
        raise Socks5ProtocolError(msg)
    if method == METHOD_NO_ACCEPTABLE:
        msg = "proxy rejected the no-authentication method"
        raise Socks5ProtocolError(msg)
    if method != METHOD_NO_AUTH:
        msg = f"proxy selected unsupported method 0x{method:02x}"
        raise Socks5ProtocolError(msg)


def _connect(sock: socket.socket, destination: EndpointAddress) -> str:
    """Send CONNECT and read the reply. Returns the bound address."""
    sock.sendall(build_connect_request(destination))
    version, reply, _, addr_type = struct.unpack("!BBBB", recv_exact(sock, 4))
    if version != SOCKS_VERSION:
        msg = f"unexpected SOCKS version {version} in connect reply"
        raise Socks5ProtocolError(msg)
    if reply != RESP_SUCCESS:
        text = REPLY_MESSAGES.get(reply, "unknown error")
        msg = f"0x{reply:02x} {text}"
        raise Socks5ProtocolError(msg)
    return read_bound_address(sock, addr_type)


def handshake(sock: socket.socket, proxy: EndpointAddress, destination: EndpointAddress) -> bytes:
    """Run the SOCKS5 negotiation on a socket connected to the proxy.

    Args:
        sock: Socket connected to the proxy
        proxy: Address of the proxy, used in diagnostics
        destination: Address to tunnel to

    Returns:
        bytes: Always empty; replies are read exactly so no payload is consumed

    Raises:
        DialError: If negotiation or the CONNECT command fails
    """
    step = "socks5-greeting"
    try:
        _negotiate(sock)
        step = "socks5-connect"
        bound = _connect(sock, destination)
    except (OSError, ValueError, Socks5ProtocolError) as e:
        msg = f"SOCKS5 {step.removeprefix('socks5-')} with proxy {proxy} for {destination} failed: {e}"
        raise DialError(msg, proxy=proxy, destination=destination, step=step, cause=e) from e

    logger.debug(f"SOCKS5 proxy {proxy} connected to {destination}, bound {bound}")
    return b""
