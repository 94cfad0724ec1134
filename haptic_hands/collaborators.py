"""
Interfaces to the scene the gateway drives.

Rendering, animation playback, audio and rigid-body simulation live
outside this package. The gateway only toggles flags and triggers named
actions through the classes below; headless.py has in-process versions.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Sequence, Tuple

import numpy as np
from scipy.spatial.transform import Rotation

from .geometry import Ray, vec3

HAND_TAG = "Hand"


@dataclass(eq=False)
class Body:
    """Rigid body state toggled by the grab logic."""
    name: str
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    rotation: Rotation = field(default_factory=Rotation.identity)
    use_gravity: bool = True
    is_kinematic: bool = False

    def __post_init__(self):
        self.position = vec3(self.position)


@dataclass(eq=False)
class Collider:
    """
    Sphere collider attached to an owner.

    The owner is the component that handles contact events and answers
    `position` (a HandController or a Grabbable).
    """
    name: str
    owner: Any
    tag: str = ""
    radius: float = 0.1
    active: bool = True

    @property
    def position(self) -> np.ndarray:
        return self.owner.position


class Animator(ABC):
    """Plays named animation clips ("Idle", "Grab", "Release")."""

    @abstractmethod
    def play(self, clip: str) -> None:
        ...


class FeedbackAudio(ABC):
    """Looping contact sound."""

    @abstractmethod
    def play_loop(self) -> None:
        ...

    @abstractmethod
    def stop(self) -> None:
        ...

    @abstractmethod
    def is_playing(self) -> bool:
        ...


class PhysicsEngine(ABC):
    """The subset of the physics engine the grab logic needs."""

    def add_colliders(self, colliders: Sequence[Collider]) -> None:
        """Hook for engines that need colliders registered; no-op by default."""

    def remove_colliders(self, colliders: Sequence[Collider]) -> None:
        """Hook for engines that need colliders unregistered; no-op by default."""

    def step(self) -> None:
        """Called once per fixed tick after the hands moved; no-op by default."""

    @abstractmethod
    def set_gravity_enabled(self, body: Body, enabled: bool) -> None:
        ...

    @abstractmethod
    def set_kinematic(self, body: Body, kinematic: bool) -> None:
        ...

    @abstractmethod
    def set_collision_enabled(self, a: Collider, b: Collider, enabled: bool) -> None:
        ...

    @abstractmethod
    def query_overlapping(self, point: Sequence[float], radius: float) -> List[Collider]:
        ...


class Camera(ABC):
    """Active camera and display."""

    @property
    @abstractmethod
    def position(self) -> np.ndarray:
        ...

    @abstractmethod
    def screen_point_to_ray(self, px: float, py: float) -> Ray:
        """Ray through a pixel (origin bottom-left)."""

    @abstractmethod
    def display_size(self) -> Tuple[int, int]:
        ...
