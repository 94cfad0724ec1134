"""
Network ingestion - UDP listener and main-thread work queue.

The socket is served by an asyncio event loop running in a background
thread. Its receive callback never touches gameplay state; it posts a
unit of work onto a thread-safe queue that the tick loop drains once per
frame, in arrival order, on the gameplay thread.
"""

import asyncio
import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from .config import UDP_PORT

logger = logging.getLogger(__name__)


class WorkQueue:
    """
    Multiple-producer, single-consumer queue of callables.

    Producers may post from any thread; drain() runs on the gameplay
    thread. A failing item is logged and does not stop the drain.
    """

    def __init__(self):
        self._queue: "queue.Queue[Callable[[], None]]" = queue.Queue()
        self._executed = 0
        self._failed = 0

    def post(self, action: Callable[[], None]) -> None:
        self._queue.put_nowait(action)

    def drain(self) -> int:
        """
        Run every queued action in FIFO order.

        Returns:
            Number of actions run (including failed ones)
        """
        count = 0
        while True:
            try:
                action = self._queue.get_nowait()
            except queue.Empty:
                break

            count += 1
            try:
                action()
                self._executed += 1
            except Exception as e:
                self._failed += 1
                logger.error(f"Queued work failed: {e}", exc_info=True)
        return count

    def __len__(self) -> int:
        return self._queue.qsize()

    def get_stats(self) -> dict:
        """Get queue statistics."""
        return {
            "pending": self._queue.qsize(),
            "executed": self._executed,
            "failed": self._failed,
        }


@dataclass
class ReceiverStats:
    """Statistics about the UDP listener."""
    datagrams_received: int = 0
    handoff_errors: int = 0
    socket_errors: int = 0
    last_receive_time: Optional[float] = None


class _DatagramProtocol(asyncio.DatagramProtocol):
    """Forwards each datagram to the receiver's hand-off callback."""

    def __init__(self, on_datagram: Callable[[bytes, str], None], stats: ReceiverStats):
        self._on_datagram = on_datagram
        self._stats = stats

    def datagram_received(self, data: bytes, addr: Tuple) -> None:
        self._stats.datagrams_received += 1
        self._stats.last_receive_time = time.time()
        try:
            self._on_datagram(data, addr[0])
        except Exception as e:
            self._stats.handoff_errors += 1
            logger.error(f"Datagram hand-off failed: {e}")

    def error_received(self, exc: Exception) -> None:
        self._stats.socket_errors += 1
        logger.warning(f"UDP socket error: {exc}")


class UdpReceiver:
    """
    Background UDP listener.

    Runs its own asyncio event loop in a daemon thread. `on_datagram`
    is called from that thread with (payload, sender_address) and must
    only hand the data off (e.g. WorkQueue.post).
    """

    def __init__(
        self,
        on_datagram: Callable[[bytes, str], None],
        host: str = "0.0.0.0",
        port: int = UDP_PORT,
        startup_timeout: float = 5.0,
    ):
        """
        Args:
            on_datagram: Hand-off callback, called on the receiver thread
            host: Bind address
            port: Bind port (0 picks a free port)
            startup_timeout: Seconds to wait for the socket to bind
        """
        self.on_datagram = on_datagram
        self.host = host
        self.port = port
        self.startup_timeout = startup_timeout

        self.stats = ReceiverStats()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._transport: Optional[asyncio.DatagramTransport] = None
        self._started = False

    @property
    def running(self) -> bool:
        return self._started

    @property
    def local_address(self) -> Optional[Tuple[str, int]]:
        """Bound (host, port), available once started."""
        if self._transport is None:
            return None
        sockname = self._transport.get_extra_info("sockname")
        return sockname[0], sockname[1]

    def start(self) -> None:
        """
        Bind the socket and start receiving.

        Raises:
            OSError: If the socket cannot be bound
        """
        if self._started:
            return

        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="udp-receiver",
            daemon=True,
        )
        self._thread.start()

        future = asyncio.run_coroutine_threadsafe(self._open_endpoint(), self._loop)
        try:
            self._transport = future.result(timeout=self.startup_timeout)
        except Exception:
            self._shutdown_loop()
            raise

        self._started = True
        host, port = self.local_address
        logger.info(f"UDP receiver listening on {host}:{port}")

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()
        self._loop.close()

    async def _open_endpoint(self) -> asyncio.DatagramTransport:
        transport, _ = await self._loop.create_datagram_endpoint(
            lambda: _DatagramProtocol(self.on_datagram, self.stats),
            local_addr=(self.host, self.port),
        )
        return transport

    def stop(self) -> None:
        """Close the socket and stop the background loop."""
        if not self._started:
            return

        if self._transport is not None:
            future = asyncio.run_coroutine_threadsafe(self._close_endpoint(), self._loop)
            try:
                future.result(timeout=self.startup_timeout)
            except Exception as e:
                logger.warning(f"Error closing UDP socket: {e}")
            self._transport = None
        self._shutdown_loop()
        self._started = False
        logger.info("UDP receiver stopped")

    async def _close_endpoint(self) -> None:
        self._transport.close()
        # let connection_lost run so the socket is released before the loop stops
        await asyncio.sleep(0)

    def _shutdown_loop(self) -> None:
        if self._loop is not None:
            self._loop.call_soon_threadsafe(self._loop.stop)
        if self._thread is not None:
            self._thread.join(timeout=self.startup_timeout)
        self._loop = None
        self._thread = None

    def get_stats(self) -> dict:
        """Get listener statistics."""
        return {
            "running": self._started,
            "datagrams_received": self.stats.datagrams_received,
            "handoff_errors": self.stats.handoff_errors,
            "socket_errors": self.stats.socket_errors,
            "last_receive_time": self.stats.last_receive_time,
        }
