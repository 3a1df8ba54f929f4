"""Core tunnel library components."""

from .connection import TunnelConnection
from .dialer import dial
from .relay import Direction, DuplexRelay, TransferOutcome, relay

__all__ = [
    "dial",
    "Direction",
    "DuplexRelay",
    "relay",
    "TransferOutcome",
    "TunnelConnection",
]
