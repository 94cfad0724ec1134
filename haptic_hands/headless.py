"""
In-process stand-ins for the scene collaborators.

Lets the gateway run (and be tested) without a game engine: a pinhole
camera, sphere-overlap physics with contact events, and animation/audio
players that only log what they would do.
"""

import logging
import math
from typing import Dict, FrozenSet, List, Optional, Sequence, Set, Tuple

import numpy as np
from scipy.spatial.transform import Rotation

from .collaborators import Animator, Body, Camera, Collider, FeedbackAudio, PhysicsEngine
from .config import DISPLAY_HEIGHT, DISPLAY_WIDTH
from .geometry import Ray, vec3

logger = logging.getLogger(__name__)


class PinholeCamera(Camera):
    """
    Perspective camera looking down its local +Z axis.

    Args:
        position: Camera position in world space
        rotation: Camera orientation
        fov_deg: Vertical field of view in degrees
        width: Display width in pixels
        height: Display height in pixels
    """

    def __init__(
        self,
        position: Sequence[float] = (0.0, 1.0, -10.0),
        rotation: Optional[Rotation] = None,
        fov_deg: float = 60.0,
        width: int = DISPLAY_WIDTH,
        height: int = DISPLAY_HEIGHT,
    ):
        self._position = vec3(position)
        self.rotation = Rotation.identity() if rotation is None else rotation
        self.fov_deg = fov_deg
        self.width = width
        self.height = height

    @property
    def position(self) -> np.ndarray:
        return self._position

    def display_size(self) -> Tuple[int, int]:
        return self.width, self.height

    def screen_point_to_ray(self, px: float, py: float) -> Ray:
        tan_half = math.tan(math.radians(self.fov_deg) / 2.0)
        aspect = self.width / self.height
        x = (2.0 * px / self.width - 1.0) * tan_half * aspect
        y = (2.0 * py / self.height - 1.0) * tan_half
        direction = self.rotation.apply([x, y, 1.0])
        return Ray(self._position, direction)


class HeadlessPhysics(PhysicsEngine):
    """
    Sphere-overlap physics without integration.

    Tracks the flags the grab logic toggles, answers overlap queries and,
    on step(), raises contact begin/end events on collider owners for
    pairs that touch and are allowed to collide.
    """

    def __init__(self):
        self._colliders: List[Collider] = []
        self._ignored: Set[FrozenSet[int]] = set()
        self._contacts: Dict[FrozenSet[int], Tuple[Collider, Collider]] = {}

    def add_colliders(self, colliders: Sequence[Collider]) -> None:
        for collider in colliders:
            if collider not in self._colliders:
                self._colliders.append(collider)

    def remove_colliders(self, colliders: Sequence[Collider]) -> None:
        for collider in colliders:
            if collider in self._colliders:
                self._colliders.remove(collider)

    @staticmethod
    def _pair(a: Collider, b: Collider) -> FrozenSet[int]:
        return frozenset((id(a), id(b)))

    def set_gravity_enabled(self, body: Body, enabled: bool) -> None:
        body.use_gravity = enabled

    def set_kinematic(self, body: Body, kinematic: bool) -> None:
        body.is_kinematic = kinematic

    def set_collision_enabled(self, a: Collider, b: Collider, enabled: bool) -> None:
        if enabled:
            self._ignored.discard(self._pair(a, b))
        else:
            self._ignored.add(self._pair(a, b))

    def is_collision_enabled(self, a: Collider, b: Collider) -> bool:
        return self._pair(a, b) not in self._ignored

    def query_overlapping(self, point: Sequence[float], radius: float) -> List[Collider]:
        point = vec3(point)
        return [
            c for c in self._colliders
            if c.active and np.linalg.norm(c.position - point) <= radius + c.radius
        ]

    def _touching(self, a: Collider, b: Collider) -> bool:
        if not (a.active and b.active) or a.owner is b.owner:
            return False
        if not self.is_collision_enabled(a, b):
            return False
        return float(np.linalg.norm(a.position - b.position)) <= a.radius + b.radius

    def step(self) -> None:
        """Detect contact changes and notify owners."""
        current: Dict[FrozenSet[int], Tuple[Collider, Collider]] = {}
        for i, a in enumerate(self._colliders):
            for b in self._colliders[i + 1:]:
                if self._touching(a, b):
                    current[self._pair(a, b)] = (a, b)

        for key, (a, b) in current.items():
            if key not in self._contacts:
                self._notify(a, b, "on_contact_begin")
        for key, (a, b) in self._contacts.items():
            if key not in current:
                self._notify(a, b, "on_contact_end")
        self._contacts = current

    @staticmethod
    def _notify(a: Collider, b: Collider, event: str) -> None:
        for own, other in ((a, b), (b, a)):
            handler = getattr(own.owner, event, None)
            if handler is not None:
                handler(other)


class LoggingAnimator(Animator):
    """Records and logs requested clips."""

    def __init__(self, name: str):
        self.name = name
        self.current_clip: Optional[str] = None

    def play(self, clip: str) -> None:
        if clip != self.current_clip:
            logger.debug(f"{self.name}: play {clip}")
        self.current_clip = clip


class HeadlessAudio(FeedbackAudio):
    """Tracks whether the contact loop would be playing."""

    def __init__(self, name: str = "audio"):
        self.name = name
        self._playing = False

    def play_loop(self) -> None:
        self._playing = True
        logger.debug(f"{self.name}: play loop")

    def stop(self) -> None:
        self._playing = False
        logger.debug(f"{self.name}: stop")

    def is_playing(self) -> bool:
        return self._playing
