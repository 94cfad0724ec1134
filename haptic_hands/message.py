"""
Wire protocol for phone gesture datagrams and feedback replies.

Inbound datagrams are UTF-8 text of the form

    SENDER:COMMAND:normX,normY[,pinch[,rot[,_[,width,height[,axis]]]]]

and anything that does not parse is dropped with a diagnostic log line.
Outbound feedback is one of VIBRATE, STOP, optionally suffixed with the
hand letter (VIBRATE:A, STOP:B, ...).
"""

import enum
import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from .config import DEFAULT_AXIS_TOKEN

logger = logging.getLogger(__name__)


class HandId(str, enum.Enum):
    """The two phone-driven hands."""
    HAND_A = "HAND_A"
    HAND_B = "HAND_B"

    @property
    def suffix(self) -> str:
        """Letter appended to feedback messages for this hand."""
        return self.value[-1]

    @classmethod
    def parse(cls, token: Optional[str]) -> Optional['HandId']:
        """Strict lookup: trims and uppercases, returns None for unknown tokens."""
        if token is None:
            return None
        try:
            return cls(token.strip().upper())
        except ValueError:
            return None

    @classmethod
    def guess(cls, token: Optional[str]) -> Optional['HandId']:
        """
        Lenient lookup for gesture routing.

        Accepts spellings such as "hand-a" or "HandB" that reduce to
        HANDA/HANDB once punctuation and whitespace are removed.
        """
        hand = cls.parse(token)
        if hand is not None or token is None:
            return hand
        squashed = "".join(ch for ch in token.upper() if ch.isalnum())
        for candidate in cls:
            if squashed == candidate.value.replace("_", ""):
                return candidate
        return None


class Command(str, enum.Enum):
    """Gesture commands sent by the phone."""
    START = "START"
    MOVE = "MOVE"
    STOP = "STOP"


@dataclass
class InboundMessage:
    """
    Parsed gesture datagram.

    Attributes:
        sender: Normalized sender token as received (e.g. "HAND_A")
        command: Gesture command
        norm_x: Touch X in phone pixels
        norm_y: Touch Y in phone pixels (origin top-left)
        pinch_distance: Distance between the two fingers (0 if absent)
        rotation_delta: Twist since the previous message in degrees (0 if absent)
        phone_width: Declared phone touch-area width, None to use the local display
        phone_height: Declared phone touch-area height, None to use the local display
        axis_token: Raw axis token, "Y" selects screen rays
    """
    sender: str
    command: Command
    norm_x: float
    norm_y: float
    pinch_distance: float = 0.0
    rotation_delta: float = 0.0
    phone_width: Optional[float] = None
    phone_height: Optional[float] = None
    axis_token: str = DEFAULT_AXIS_TOKEN

    @property
    def hand(self) -> Optional[HandId]:
        """Hand this message drives, if the sender resolves to one."""
        return HandId.guess(self.sender)


def _parse_float(text: str) -> Optional[float]:
    """Locale-invariant float parse that rejects NaN/Inf."""
    try:
        value = float(text.strip())
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _optional_float(fields: List[str], index: int, default: Optional[float]) -> Optional[float]:
    if len(fields) <= index:
        return default
    value = _parse_float(fields[index])
    return default if value is None else value


def sender_token(text: str) -> Optional[str]:
    """
    Extract the sender prefix of a raw datagram.

    Returns the trimmed, uppercased text before the first colon, or None
    when there is no colon or nothing before it.
    """
    colon = text.find(":")
    if colon <= 0:
        return None
    return text[:colon].strip().upper()


def decode(payload: Union[bytes, str]) -> Optional[str]:
    """Decode a raw datagram payload as UTF-8."""
    if isinstance(payload, str):
        return payload
    try:
        return payload.decode("utf-8")
    except UnicodeDecodeError:
        return None


def parse_datagram(payload: Union[bytes, str]) -> Tuple[Optional[InboundMessage], str]:
    """
    Parse one gesture datagram.

    Args:
        payload: Raw datagram bytes or already-decoded text

    Returns:
        Tuple of (message or None, reason_string). The reason is "ok" on
        success and names the first failed check otherwise.
    """
    text = decode(payload)
    if text is None:
        return None, "decode_error"

    if ":" not in text:
        return None, "missing_separator"

    parts = text.strip().split(":")
    if len(parts) < 3:
        return None, "too_few_sections"

    try:
        command = Command(parts[1].strip().upper())
    except ValueError:
        return None, "unknown_command"

    fields = parts[2].split(",")
    if len(fields) < 2:
        return None, "bad_coordinates"

    norm_x = _parse_float(fields[0])
    norm_y = _parse_float(fields[1])
    if norm_x is None or norm_y is None:
        return None, "bad_coordinates"

    # Width and height are only honored as a pair
    phone_width = phone_height = None
    if len(fields) >= 7:
        phone_width = _optional_float(fields, 5, None)
        phone_height = _optional_float(fields, 6, None)

    axis_token = fields[7].strip().upper() if len(fields) >= 8 else DEFAULT_AXIS_TOKEN

    message = InboundMessage(
        sender=parts[0].strip().upper(),
        command=command,
        norm_x=norm_x,
        norm_y=norm_y,
        pinch_distance=_optional_float(fields, 2, 0.0),
        rotation_delta=_optional_float(fields, 3, 0.0),
        phone_width=phone_width,
        phone_height=phone_height,
        axis_token=axis_token,
    )
    return message, "ok"


class DatagramParser:
    """
    Parses inbound datagrams and keeps drop statistics.

    Malformed datagrams never raise; they are counted, logged and
    returned as None.
    """

    def __init__(self):
        self._parsed_count: int = 0
        self._dropped_count: int = 0
        self._drop_reasons: dict = {}

    def parse(self, payload: Union[bytes, str]) -> Optional[InboundMessage]:
        """
        Parse a datagram.

        Args:
            payload: Raw datagram bytes or text

        Returns:
            InboundMessage, or None if the datagram was discarded
        """
        message, reason = parse_datagram(payload)
        if message is None:
            self._dropped_count += 1
            self._drop_reasons[reason] = self._drop_reasons.get(reason, 0) + 1
            logger.warning(f"Discarded datagram ({reason}): {payload!r}")
            return None

        self._parsed_count += 1
        return message

    def get_stats(self) -> dict:
        """Get parsing statistics."""
        total = self._parsed_count + self._dropped_count
        return {
            "total_datagrams": total,
            "parsed": self._parsed_count,
            "dropped": self._dropped_count,
            "drop_reasons": dict(self._drop_reasons),
            "drop_rate": self._dropped_count / total if total > 0 else 0.0,
        }

    def reset_stats(self) -> None:
        """Reset statistics counters."""
        self._parsed_count = 0
        self._dropped_count = 0
        self._drop_reasons = {}


def format_feedback(vibrate: bool, hand: Optional[HandId] = None) -> str:
    """
    Serialize a feedback command.

    Args:
        vibrate: True for VIBRATE, False for STOP
        hand: Target hand, or None for the bare broadcast form

    Returns:
        Message text such as "VIBRATE:A" or "STOP"
    """
    verb = "VIBRATE" if vibrate else "STOP"
    if hand is None:
        return verb
    return f"{verb}:{hand.suffix}"
