"""Endpoint and proxy type models.

This module provides the immutable values a run is built from:
- ``ProxyType``: which handshake is used to reach the destination
- ``EndpointAddress``: a host/port pair for the proxy or the destination

Addresses are opaque. The only processing done here is the ``host:port``
join; host resolution is left to the network layer and the port is turned
into a number only when dialing.

Example:
    proxy = EndpointAddress("proxy.example.com", "3128")
    str(proxy)  # 'proxy.example.com:3128'
    str(EndpointAddress("::1", "1080"))  # '[::1]:1080'
"""

import socket
from dataclasses import dataclass
from enum import Enum
from typing import Final

from proxy_connect.core.exceptions import ConfigurationError

MAX_PORT: Final = 65535


class ProxyType(str, Enum):
    """Proxy protocol used to open the tunnel."""

    HTTP = "http"
    SOCKS5 = "socks5"

    @classmethod
    def parse(cls, value: str) -> "ProxyType":
        """Return the proxy type named by ``value`` (case-insensitive).

        Raises:
            ConfigurationError: If ``value`` names no supported proxy type
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            supported = ", ".join(member.value for member in cls)
            msg = f'unsupported proxy type "{value}" (expected one of: {supported})'
            raise ConfigurationError(msg) from None


def join_host_port(host: str, port: str | int) -> str:
    """Combine host and port into ``host:port``, bracketing IPv6 literals."""
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


@dataclass(frozen=True)
class EndpointAddress:
    """A host/port pair used for both the proxy and the destination.

    Attributes:
        host: Host name or IP literal, passed through unresolved
        port: Port number or service name, kept as given
    """

    host: str
    port: str

    def __str__(self) -> str:
        return join_host_port(self.host, self.port)

    def port_number(self) -> int:
        """Resolve the port to a number.

        Numeric strings are used as-is; anything else is looked up in the
        system services database (``https`` -> 443).

        Raises:
            OSError: If the service name is unknown
            ValueError: If the port is out of range
        """
        port = self.port.strip()
        number = int(port) if port.isascii() and port.isdigit() else socket.getservbyname(port, "tcp")
        if not 0 <= number <= MAX_PORT:
            msg = f"port {port} out of range"
            raise ValueError(msg)
        return number
