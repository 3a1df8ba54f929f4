"""Full-duplex relay between the tunnel and the local streams.

This module copies bytes in both directions at once:
- Tunnel to local output
- Local input to tunnel

Each direction runs in its own daemon thread and, when it stops, closes the
source and destination it owns. The tunnel is shared, so closing it also wakes
the other direction, which then unwinds on its own. The first direction to
stop decides the outcome of the run; whatever the other one does afterwards
is only logged.

Example:
    with dial(ProxyType.HTTP, proxy, destination) as tunnel:
        outcome = relay(tunnel, local_in, local_out)
    if not outcome.ok:
        print(f"ERROR: {outcome.error}")
"""

import contextlib
import queue
import threading
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, Final

from loguru import logger

from proxy_connect.core.exceptions import RelayError

from .connection import TunnelConnection

CHUNK_SIZE: Final = 32 * 1024


class Direction(Enum):
    """One half of the relay."""

    TUNNEL_TO_LOCAL = "tunnel -> local output"
    LOCAL_TO_TUNNEL = "local input -> tunnel"

    @property
    def label(self) -> str:
        return self.value


@dataclass(frozen=True)
class TransferOutcome:
    """Terminal result of a relay run.

    Attributes:
        direction: Direction that finished first
        error: ``None`` on a clean end-of-stream, otherwise the failure
    """

    direction: Direction
    error: RelayError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _read_chunk(stream: BinaryIO) -> bytes:
    """Read whatever is available, up to one chunk."""
    # Buffered read() would wait for a full chunk
    read1 = getattr(stream, "read1", None)
    if read1 is not None:
        return read1(CHUNK_SIZE)
    return stream.read(CHUNK_SIZE)


def _write_all(stream: BinaryIO, data: bytes) -> None:
    """Write ``data`` completely, even to raw streams that write partially."""
    view = memoryview(data)
    while view:
        written = stream.write(view)
        if written is None:
            written = 0
        view = view[written:]
    flush = getattr(stream, "flush", None)
    if flush is not None:
        flush()


def _close_stream(stream: BinaryIO) -> None:
    with contextlib.suppress(OSError, ValueError):
        stream.close()


class DuplexRelay:
    """Run both copy directions and collect the first outcome."""

    def __init__(
        self,
        tunnel: TunnelConnection,
        local_in: BinaryIO,
        local_out: BinaryIO,
        *,
        half_close: bool = False,
    ) -> None:
        """Initialize the relay.

        Args:
            tunnel: Established tunnel, owned by the relay from now on
            local_in: Binary stream copied into the tunnel
            local_out: Binary stream receiving the tunnel's bytes
            half_close: On local end-of-stream only shut down the tunnel's
                write side and keep relaying the tunnel's remaining output
        """
        self.tunnel = tunnel
        self.local_in = local_in
        self.local_out = local_out
        self.half_close = half_close
        self.bytes_copied = dict.fromkeys(Direction, 0)
        self._outcomes: queue.Queue[TransferOutcome] = queue.Queue(maxsize=1)
        self._winner: Direction | None = None
        self._lock = threading.Lock()

    def _tunnel_to_local(self) -> None:
        direction = Direction.TUNNEL_TO_LOCAL
        error: RelayError | None = None
        try:
            while True:
                data = self.tunnel.recv(CHUNK_SIZE)
                if not data:
                    break
                _write_all(self.local_out, data)
                self.bytes_copied[direction] += len(data)
        except Exception as e:  # noqa: BLE001
            error = RelayError(direction, e)

        # Report before closing, the close makes the other direction fail
        self._finish(TransferOutcome(direction, error))
        self.tunnel.close()
        _close_stream(self.local_out)

    def _local_to_tunnel(self) -> None:
        direction = Direction.LOCAL_TO_TUNNEL
        error: RelayError | None = None
        try:
            while True:
                data = _read_chunk(self.local_in)
                if not data:
                    break
                self.tunnel.sendall(data)
                self.bytes_copied[direction] += len(data)
        except Exception as e:  # noqa: BLE001
            error = RelayError(direction, e)

        if error is None and self.half_close:
            logger.debug("Local input ended, half-closing the tunnel")
            _close_stream(self.local_in)
            self.tunnel.shutdown_write()
            return

        self._finish(TransferOutcome(direction, error))
        _close_stream(self.local_in)
        self.tunnel.close()

    def _finish(self, outcome: TransferOutcome) -> None:
        copied = self.bytes_copied[outcome.direction]
        result = outcome.error or "EOF"
        name = f"{outcome.direction.label} for {self.tunnel.destination}"
        with self._lock:
            first = self._winner is None
            if first:
                self._winner = outcome.direction
        if first:
            logger.debug(f"{name} finished first after {copied} bytes: {result}")
            self._outcomes.put(outcome)
            return
        logger.debug(f"{name} unwound after {copied} bytes: {result}")

    def run(self) -> TransferOutcome:
        """Start both directions and wait for the first one to finish.

        Only the winning direction is joined, so its closes are done when this
        returns. The other direction may still be blocked and is left behind.
        """
        workers = {
            Direction.TUNNEL_TO_LOCAL: threading.Thread(
                target=self._tunnel_to_local, name="relay-tunnel-to-local", daemon=True
            ),
            Direction.LOCAL_TO_TUNNEL: threading.Thread(
                target=self._local_to_tunnel, name="relay-local-to-tunnel", daemon=True
            ),
        }
        for worker in workers.values():
            worker.start()

        outcome = self._outcomes.get()
        workers[outcome.direction].join()
        return outcome


def relay(
    tunnel: TunnelConnection,
    local_in: BinaryIO,
    local_out: BinaryIO,
    *,
    half_close: bool = False,
) -> TransferOutcome:
    """Relay bytes between ``tunnel`` and the local streams until one side ends.

    Args:
        tunnel: Established tunnel from ``dial``
        local_in: Binary stream copied into the tunnel
        local_out: Binary stream receiving the tunnel's bytes
        half_close: Keep relaying tunnel output after local input ends

    Returns:
        TransferOutcome: The first direction to finish and its error, if any
    """
    return DuplexRelay(tunnel, local_in, local_out, half_close=half_close).run()
