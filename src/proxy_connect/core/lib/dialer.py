"""Proxy dialer.

``dial`` picks the handshake for the proxy type, connects to the proxy and
returns the established tunnel. A single attempt is made; any failure closes
the socket and raises ``DialError``.
"""

import socket
from collections.abc import Callable
from typing import Final

from loguru import logger

from proxy_connect.core.endpoint import EndpointAddress, ProxyType
from proxy_connect.core.exceptions import DialError

from . import http_connect, socks5
from .connection import TunnelConnection, open_transport

Handshake = Callable[[socket.socket, EndpointAddress, EndpointAddress], bytes]

HANDSHAKES: Final[dict[ProxyType, Handshake]] = {
    ProxyType.HTTP: http_connect.handshake,
    ProxyType.SOCKS5: socks5.handshake,
}


def dial(
    proxy_type: ProxyType, proxy: EndpointAddress, destination: EndpointAddress
) -> TunnelConnection:
    """Open a tunnel to ``destination`` through the proxy at ``proxy``.

    Args:
        proxy_type: Handshake to perform
        proxy: Address of the proxy
        destination: Address to tunnel to

    Returns:
        TunnelConnection: The connection, ready to carry payload

    Raises:
        DialError: If the proxy cannot be reached or refuses the tunnel
    """
    handshake = HANDSHAKES[proxy_type]

    logger.debug(f"Dialing {destination} via {proxy_type.value} proxy {proxy}")
    try:
        port = proxy.port_number()
    except (OSError, ValueError) as e:
        msg = f'dialing proxy "{proxy}" failed: invalid port: {e}'
        raise DialError(msg, proxy=proxy, destination=destination, step="resolve", cause=e) from e

    try:
        sock = open_transport(proxy, port)
    except OSError as e:
        step = "resolve" if isinstance(e, socket.gaierror) else "connect"
        msg = f'dialing proxy "{proxy}" failed: {e}'
        raise DialError(msg, proxy=proxy, destination=destination, step=step, cause=e) from e

    try:
        leftover = handshake(sock, proxy, destination)
    except BaseException:
        sock.close()
        raise

    logger.debug(f"Tunnel to {destination} established ({len(leftover)} early bytes)")
    return TunnelConnection(sock, proxy, destination, pending=leftover)
