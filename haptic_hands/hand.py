"""
Hand avatar - the virtual manipulator a phone drives.

Owns the grab anchor pose, places it along incoming rays, applies twist
rotations, and swaps animation/collider state between idle and grabbing.
"""

import logging
from typing import Any, List, Optional

import numpy as np
from scipy.spatial.transform import Rotation

from .collaborators import HAND_TAG, Animator, Collider
from .config import (
    FOLLOW_DISTANCE,
    FOLLOW_FALLBACK_DISTANCE,
    GROUND_HAND_HEIGHT,
    GROUND_RAY_LENGTH,
    MIN_HAND_HEIGHT,
    ROTATION_DEADZONE,
)
from .geometry import FORWARD, UP, Pose, Ray, rotation_about
from .mapping import AxisMode
from .message import HandId

logger = logging.getLogger(__name__)

IDLE_CLIP = "Idle"
GRAB_CLIP = "Grab"
RELEASE_CLIP = "Release"


class HandController:
    """
    One virtual hand.

    The grab anchor is the point held objects attach to; `position` and
    `rotation` refer to it. Two colliders are swapped depending on state:
    the grab collider is active while holding, the idle collider otherwise.
    """

    def __init__(
        self,
        hand_id: HandId,
        animator: Optional[Animator] = None,
        collider_radius: float = 0.1,
        anchor: Optional[Pose] = None,
    ):
        """
        Args:
            hand_id: Which phone hand this avatar belongs to
            animator: Animation player, or None for no animation
            collider_radius: Radius of the grab and idle colliders
            anchor: Starting anchor pose
        """
        self.hand_id = hand_id
        self.animator = animator
        self.anchor = anchor.copy() if anchor is not None else Pose()

        self.is_grabbing = False
        self.in_contact = False

        # Rotation bookkeeping
        self._base_rotation = self.anchor.rotation
        self._accumulated_rotation = Rotation.identity()
        self._rotation_initialized = False

        name = hand_id.value.lower()
        self.grab_collider = Collider(f"{name}_grab", self, HAND_TAG, collider_radius, active=False)
        self.idle_collider = Collider(f"{name}_idle", self, HAND_TAG, collider_radius, active=True)

    @property
    def position(self) -> np.ndarray:
        return self.anchor.position

    @property
    def rotation(self) -> Rotation:
        return self.anchor.rotation

    @property
    def colliders(self) -> List[Collider]:
        return [self.grab_collider, self.idle_collider]

    def _play(self, clip: str) -> None:
        if self.animator is not None:
            self.animator.play(clip)

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    def follow_ray(self, ray: Ray, mode: AxisMode) -> np.ndarray:
        """
        Move the anchor to where the ray places the hand.

        Screen rays put the hand on the vertical plane FOLLOW_DISTANCE along
        the ray's depth; ground rays keep a fixed hand height. The anchor
        never goes below MIN_HAND_HEIGHT.

        Returns:
            The new anchor position
        """
        fixed_z = ray.origin[2] + ray.direction[2] * FOLLOW_DISTANCE

        if mode is AxisMode.SCREEN_RAY:
            distance = ray.intersect_plane(FORWARD, (0.0, 0.0, fixed_z))
            if distance is None:
                distance = FOLLOW_FALLBACK_DISTANCE
            target = ray.point_at(distance)
        else:
            target = ray.point_at(GROUND_RAY_LENGTH * 0.5)
            target[1] = GROUND_HAND_HEIGHT
        target[2] = fixed_z

        if not self._rotation_initialized and not self.is_grabbing:
            self._capture_base_rotation()
            self._rotation_initialized = True

        target[1] = max(target[1], MIN_HAND_HEIGHT)
        self.anchor.position = target
        return target

    def rotate(self, rotation_delta: float, deadzone: float = ROTATION_DEADZONE) -> bool:
        """
        Twist the hand around its local up axis.

        Deltas accumulate on top of the base rotation so many small
        increments do not drift.

        Returns:
            True if the hand rotated
        """
        if abs(rotation_delta) <= deadzone:
            return False

        delta = rotation_about(UP, rotation_delta)
        self._accumulated_rotation = self._accumulated_rotation * delta
        self.anchor.rotation = self._base_rotation * self._accumulated_rotation
        logger.debug(f"{self.hand_id.value} rotated by {rotation_delta:.2f} deg")
        return True

    def _capture_base_rotation(self) -> None:
        self._base_rotation = self.anchor.rotation

    # ------------------------------------------------------------------
    # Grab state
    # ------------------------------------------------------------------

    def on_start_grabbing(self, target: Any = None) -> None:
        """Switch to the grabbing animation and colliders."""
        if self.is_grabbing:
            return

        self._play(GRAB_CLIP)
        self.is_grabbing = True
        self.update_colliders()

        self._capture_base_rotation()
        self._rotation_initialized = True
        self._accumulated_rotation = Rotation.identity()
        logger.info(f"{self.hand_id.value} grabbed {getattr(target, 'name', target)}")

    def on_release(self, target: Any = None) -> None:
        """Switch back to the idle colliders after letting go."""
        if not self.is_grabbing:
            return

        self._play(RELEASE_CLIP)
        self.is_grabbing = False
        self.update_colliders()
        logger.info(f"{self.hand_id.value} released {getattr(target, 'name', target)}")

    def play_idle(self) -> None:
        if not self.is_grabbing:
            self._play(IDLE_CLIP)
            self.update_colliders()

    def update_colliders(self) -> None:
        self.grab_collider.active = self.is_grabbing
        self.idle_collider.active = not self.is_grabbing

    # ------------------------------------------------------------------
    # Contact events
    # ------------------------------------------------------------------

    def on_contact_begin(self, other: Collider) -> None:
        from .grabbable import Grabbable

        if isinstance(other.owner, Grabbable):
            self.in_contact = True

    def on_contact_end(self, other: Collider) -> None:
        from .grabbable import Grabbable

        if isinstance(other.owner, Grabbable):
            self.in_contact = False
