"""
Hand Gesture State Machine - one instance per hand.

Turns parsed datagrams into ray/rotation/grab state:

    IDLE      no active ray, not grabbing
    TRACKING  ray active, not grabbing
    GRABBING  ray active, holding one Grabbable

START/MOVE with a small pinch keep the ray alive, a wide pinch or STOP
releases. When the phone switches axis mode, the next START only
re-baselines so the hand does not jump.
"""

import enum
import logging
from typing import Callable, Iterable, Optional

from .collaborators import PhysicsEngine
from .config import GRAB_RADIUS, PINCH_THRESHOLD, ROTATION_DEADZONE
from .geometry import Ray
from .grabbable import Grabbable
from .hand import HandController
from .mapping import AxisMode
from .message import Command, InboundMessage

logger = logging.getLogger(__name__)


class HandPhase(enum.Enum):
    IDLE = "idle"
    TRACKING = "tracking"
    GRABBING = "grabbing"


class HandGesture:
    """
    Gesture state for one hand.

    Attributes:
        controller: The hand avatar this state drives
        ray: Ray the hand follows, None when inactive
        ray_active: Whether the last gesture produced a usable ray
        baseline_ray: Most recent ray seen, including re-baselining STARTs
        axis_mode: Current coordinate mapping strategy
        last_axis_token: Raw axis token of the previous datagram
        pending_axis_switch: Set on axis change, cleared by the next START
        rotation_delta: Last received twist in degrees
        grabbed: Object currently held, if any
    """

    def __init__(
        self,
        controller: HandController,
        physics: PhysicsEngine,
        pinch_threshold: float = PINCH_THRESHOLD,
        grab_radius: float = GRAB_RADIUS,
        rotation_deadzone: float = ROTATION_DEADZONE,
    ):
        self.controller = controller
        self.physics = physics
        self.pinch_threshold = pinch_threshold
        self.grab_radius = grab_radius
        self.rotation_deadzone = rotation_deadzone

        self.ray: Optional[Ray] = None
        self.ray_active = False
        self.baseline_ray: Optional[Ray] = None

        self.axis_mode = AxisMode.SCREEN_RAY
        self.last_axis_token = "Y"
        self.pending_axis_switch = False

        self.rotation_delta = 0.0
        self._rotation_fresh = False

        self.grabbed: Optional[Grabbable] = None

    @property
    def hand_id(self):
        return self.controller.hand_id

    @property
    def phase(self) -> HandPhase:
        if self.grabbed is not None:
            return HandPhase.GRABBING
        if self.ray_active:
            return HandPhase.TRACKING
        return HandPhase.IDLE

    # ------------------------------------------------------------------
    # Datagram handling
    # ------------------------------------------------------------------

    def observe_axis(self, axis_token: str) -> AxisMode:
        """
        Update the axis mode from a datagram's token.

        A token different from the previous one arms the START debounce.
        """
        self.axis_mode = AxisMode.for_token(axis_token)
        if axis_token != self.last_axis_token:
            self.pending_axis_switch = True
            self.last_axis_token = axis_token
            logger.debug(f"{self.hand_id.value} axis switched to {axis_token!r} ({self.axis_mode.value})")
        return self.axis_mode

    def handle(self, msg: InboundMessage, ray_for: Callable[[InboundMessage, AxisMode], Ray]) -> None:
        """
        Apply one parsed datagram.

        Args:
            msg: Parsed gesture message for this hand
            ray_for: Maps the message to a world ray under an axis mode
        """
        mode = self.observe_axis(msg.axis_token)
        ray = ray_for(msg, mode)
        self.apply(msg.command, ray, msg.pinch_distance, msg.rotation_delta)

    def apply(self, command: Command, ray: Ray, pinch_distance: float, rotation_delta: float) -> None:
        """Run the state transition for one command."""
        self.baseline_ray = ray

        if command is Command.START and self.pending_axis_switch:
            # First START after a mode switch only re-baselines
            self.pending_axis_switch = False
            logger.debug(f"{self.hand_id.value} START absorbed after axis switch")
            return

        if command is Command.STOP:
            self.release()
            return

        if pinch_distance < self.pinch_threshold:
            if not self.ray_active:
                logger.debug(f"{self.hand_id.value} tracking")
            self.ray = ray
            self.ray_active = True
            self.rotation_delta = rotation_delta
            self._rotation_fresh = True
        else:
            self.release()

    def release(self) -> None:
        """Drop whatever is held and deactivate the ray."""
        if self.grabbed is not None:
            self.grabbed.end_drag(self.controller)
            self.grabbed = None

        self.ray_active = False
        self.ray = None
        self._rotation_fresh = False

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------

    def fixed_update(self) -> None:
        """
        Physics-rate update: follow the ray, twist, look for something to grab.
        """
        if not self.ray_active or self.ray is None:
            return

        self.controller.follow_ray(self.ray, self.axis_mode)

        rotated = False
        if self._rotation_fresh:
            rotated = self.controller.rotate(self.rotation_delta, self.rotation_deadzone)
            self._rotation_fresh = False

        if self.grabbed is None:
            target = self._find_target()
            if target is not None:
                self.grabbed = target
                target.start_drag(self.controller)

        if self.grabbed is None and not rotated:
            self.controller.play_idle()

    def _find_target(self) -> Optional[Grabbable]:
        """First grabbable collider within the grab radius of the anchor."""
        nearby: Iterable = self.physics.query_overlapping(self.controller.position, self.grab_radius)
        for collider in nearby:
            if isinstance(collider.owner, Grabbable):
                return collider.owner
        return None

    def describe(self) -> dict:
        """Snapshot for status reporting."""
        return {
            "phase": self.phase.value,
            "axis_mode": self.axis_mode.value,
            "ray_active": self.ray_active,
            "pending_axis_switch": self.pending_axis_switch,
            "anchor": [float(v) for v in self.controller.position],
            "grabbed": self.grabbed.name if self.grabbed is not None else None,
        }
