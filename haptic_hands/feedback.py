"""
Feedback Dispatcher - vibration/stop messages back to the phones.

Targets are resolved through the phone registry: a known hand with a
registered phone gets exactly one suffixed message, anything else is
broadcast to every distinct registered phone. Each target is a separate
connectionless datagram sent from a short-lived socket.
"""

import logging
import socket
import time
from typing import Callable, List, NamedTuple, Optional, Union

from .config import UDP_PORT
from .message import HandId, format_feedback
from .registry import PhoneRegistry

logger = logging.getLogger(__name__)


class FeedbackTarget(NamedTuple):
    """One resolved feedback datagram."""
    address: str
    message: str


def send_datagram(address: str, port: int, message: str) -> None:
    """
    Send one UTF-8 datagram from a throwaway socket.

    Raises:
        OSError: If the socket cannot be created or the send fails
    """
    family = socket.AF_INET6 if ":" in address else socket.AF_INET
    with socket.socket(family, socket.SOCK_DGRAM) as sock:
        sock.sendto(message.encode("utf-8"), (address, port))


class FeedbackDispatcher:
    """
    Resolves and sends haptic feedback.

    Args:
        registry: Phone registry shared with the ingestion side
        port: Port the phones listen on
        transport: Callable(address, port, message) used to send; defaults
            to send_datagram
    """

    def __init__(
        self,
        registry: PhoneRegistry,
        port: int = UDP_PORT,
        transport: Optional[Callable[[str, int, str], None]] = None,
    ):
        self.registry = registry
        self.port = port
        self.transport = transport or send_datagram

        # Statistics
        self._messages_sent = 0
        self._messages_failed = 0
        self._last_send_time: Optional[float] = None

    def resolve(self, hand_key: Union[HandId, str, None], vibrate: bool) -> List[FeedbackTarget]:
        """
        Work out who should receive a feedback message.

        Args:
            hand_key: Hand that caused the feedback, or None if unknown
            vibrate: True for VIBRATE, False for STOP

        Returns:
            List of (address, message) targets, empty if no phone is registered
        """
        hand = hand_key if isinstance(hand_key, HandId) else HandId.parse(hand_key)
        if hand is not None:
            address = self.registry.lookup(hand)
            if address:
                return [FeedbackTarget(address, format_feedback(vibrate, hand))]

        message = format_feedback(vibrate)
        return [FeedbackTarget(address, message) for address in self.registry.all_addresses()]

    def dispatch(self, hand_key: Union[HandId, str, None], vibrate: bool) -> int:
        """
        Resolve and send feedback.

        A failure on one target is logged and does not stop the others.

        Returns:
            Number of datagrams sent successfully
        """
        targets = self.resolve(hand_key, vibrate)
        if not targets:
            logger.debug("No phone registered, feedback dropped")
            return 0

        sent = 0
        for target in targets:
            try:
                self.transport(target.address, self.port, target.message)
            except Exception as e:
                self._messages_failed += 1
                logger.warning(f"Feedback send to {target.address}:{self.port} failed: {e}")
                continue

            sent += 1
            self._messages_sent += 1
            self._last_send_time = time.time()
            logger.debug(f"Sent {target.message} -> {target.address}:{self.port}")
        return sent

    def vibrate(self, hand_key: Union[HandId, str, None] = None) -> int:
        return self.dispatch(hand_key, vibrate=True)

    def stop(self, hand_key: Union[HandId, str, None] = None) -> int:
        return self.dispatch(hand_key, vibrate=False)

    def get_stats(self) -> dict:
        """Get dispatcher statistics."""
        return {
            "messages_sent": self._messages_sent,
            "messages_failed": self._messages_failed,
            "last_send_time": self._last_send_time,
        }
