"""
Phone Registry - remembers which phone drives which hand.

Entries are created lazily from the sender prefix of inbound datagrams and
overwritten on every datagram (last writer wins). Nothing expires; the
registry lives as long as the gateway that owns it.
"""

import logging
from typing import Dict, List, Optional, Union

from .message import HandId

logger = logging.getLogger(__name__)


class PhoneRegistry:
    """Maps each HandId to the network address of the phone driving it."""

    def __init__(self):
        self._addresses: Dict[HandId, str] = {}
        self._last_address: Optional[str] = None
        self._updates: int = 0
        self._ignored: int = 0

    def register(self, hand_token: Optional[str], address: str) -> Optional[HandId]:
        """
        Record the phone address for a hand.

        Args:
            hand_token: Raw sender token, e.g. " hand_a"
            address: Sender address in string form

        Returns:
            The HandId that was updated, or None if the token is not a hand
        """
        hand = HandId.parse(hand_token)
        if hand is None:
            self._ignored += 1
            logger.debug(f"Not registering unknown hand token {hand_token!r} from {address}")
            return None

        previous = self._addresses.get(hand)
        self._addresses[hand] = address
        self._updates += 1
        if previous != address:
            logger.info(f"Phone {address} registered for {hand.value}")
        return hand

    def note_sender(self, address: str) -> None:
        """Remember the most recent sender address, whatever it claimed to be."""
        self._last_address = address

    def lookup(self, hand: Union[HandId, str, None]) -> Optional[str]:
        """Return the last address registered for a hand, or None."""
        if not isinstance(hand, HandId):
            hand = HandId.parse(hand)
        if hand is None:
            return None
        return self._addresses.get(hand)

    def all_addresses(self) -> List[str]:
        """Distinct registered addresses, in registration order."""
        seen: List[str] = []
        for address in self._addresses.values():
            if address not in seen:
                seen.append(address)
        return seen

    @property
    def last_address(self) -> Optional[str]:
        """Address of the most recent datagram of any kind."""
        return self._last_address

    def snapshot(self) -> Dict[str, str]:
        """Registered addresses keyed by hand name."""
        return {hand.value: address for hand, address in self._addresses.items()}

    def get_stats(self) -> dict:
        """Get registry statistics."""
        return {
            "registered": self.snapshot(),
            "last_address": self._last_address,
            "updates": self._updates,
            "ignored_tokens": self._ignored,
        }
