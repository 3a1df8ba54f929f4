"""Custom exceptions for proxy-connect.

This module defines the errors raised by the core:
- Configuration problems detected before any connection is made
- Dial failures while reaching the proxy or negotiating the tunnel
- Relay failures once the tunnel carries payload

Every error renders as a single diagnostic line through ``str()``, which the
command-line layer prints after an ``ERROR:`` prefix.

Example:
    try:
        tunnel = dial(ProxyType.HTTP, proxy, destination)
    except DialError as e:
        console.print(f"ERROR: {e}")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from proxy_connect.core.endpoint import EndpointAddress
    from proxy_connect.core.lib.relay import Direction


class ProxyConnectError(Exception):
    """Base exception for proxy-connect errors."""


class ConfigurationError(ProxyConnectError):
    """Raised when the run configuration is invalid or unsupported."""


class DialError(ProxyConnectError):
    """Raised when the tunnel to the destination cannot be established.

    Attributes:
        proxy: Address of the proxy being dialed
        destination: Address the tunnel was requested for
        step: Protocol step that failed (``connect``, ``http-connect``, ...)
        cause: Underlying exception, if any
        status: HTTP status code returned by the proxy, if any
        reason: HTTP reason phrase returned by the proxy, if any
    """

    def __init__(
        self,
        message: str,
        *,
        proxy: EndpointAddress,
        destination: EndpointAddress,
        step: str,
        cause: BaseException | None = None,
        status: int | None = None,
        reason: str | None = None,
    ) -> None:
        super().__init__(message)
        self.proxy = proxy
        self.destination = destination
        self.step = step
        self.cause = cause
        self.status = status
        self.reason = reason


class RelayError(ProxyConnectError):
    """Raised (and reported) when copying fails in one relay direction."""

    def __init__(self, direction: Direction, cause: BaseException) -> None:
        super().__init__(f"relay {direction.label} failed: {cause}")
        self.direction = direction
        self.cause = cause
