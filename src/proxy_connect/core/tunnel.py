"""Core tunnel functionality and main entry point for proxy-connect.

This module exposes the two operations the command-line layer needs:
- ``dial``: open a tunnel to a destination through an HTTP or SOCKS5 proxy
- ``relay``: copy bytes between that tunnel and local streams until one
  direction ends

Example:
    from proxy_connect.core.tunnel import dial, relay

    tunnel = dial(ProxyType.SOCKS5, proxy, destination)
    outcome = relay(tunnel, local_in, local_out)

Attributes:
    __all__ (list): List of public components exposed by this module
"""

from .lib import Direction, TransferOutcome, TunnelConnection, dial, relay

__all__ = ["dial", "Direction", "relay", "TransferOutcome", "TunnelConnection"]
