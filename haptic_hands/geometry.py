"""
Geometry helpers - vectors, rotations, rays and poses.

Orientations are scipy Rotation objects. World space is Y-up with +Z
forward, matching the scene the hands live in.
"""

import math
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np
from scipy.spatial.transform import Rotation

UP = np.array([0.0, 1.0, 0.0])
DOWN = np.array([0.0, -1.0, 0.0])
FORWARD = np.array([0.0, 0.0, 1.0])


# ============================================================================
# Utility Functions
# ============================================================================

def clamp(v: float, lo: float, hi: float) -> float:
    """Clamp value between lo and hi."""
    return max(lo, min(hi, v))


def lerp(a: float, b: float, t: float) -> float:
    """Linear interpolation between a and b with t clamped to [0, 1]."""
    t = clamp(t, 0.0, 1.0)
    return a + (b - a) * t


def vec3(v: Sequence[float]) -> np.ndarray:
    """Copy a 3-sequence into a float vector."""
    return np.array(v, dtype=np.float64).reshape(3)


def _norm(v: np.ndarray) -> np.ndarray:
    """Normalize vector."""
    n = np.linalg.norm(v)
    return v / (n + 1e-12)


def rotation_about(axis: Sequence[float], degrees: float) -> Rotation:
    """Rotation of `degrees` around `axis`."""
    return Rotation.from_rotvec(_norm(vec3(axis)) * math.radians(degrees))


# ============================================================================
# Rays and Poses
# ============================================================================

@dataclass
class Ray:
    """Half-line with a normalized direction."""
    origin: np.ndarray
    direction: np.ndarray

    def __post_init__(self):
        self.origin = vec3(self.origin)
        self.direction = _norm(vec3(self.direction))

    def point_at(self, distance: float) -> np.ndarray:
        return self.origin + self.direction * distance

    def intersect_plane(self, normal: Sequence[float], point: Sequence[float]) -> Optional[float]:
        """
        Distance along the ray to a plane.

        Returns None if the ray is parallel to the plane or the plane is
        behind the origin.
        """
        normal = vec3(normal)
        denom = float(np.dot(normal, self.direction))
        if abs(denom) < 1e-9:
            return None
        distance = float(np.dot(normal, vec3(point) - self.origin)) / denom
        if distance < 0.0:
            return None
        return distance


@dataclass
class Pose:
    """Position and rotation of a transform in world space."""
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    rotation: Rotation = field(default_factory=Rotation.identity)

    def __post_init__(self):
        self.position = vec3(self.position)

    @property
    def up(self) -> np.ndarray:
        return self.rotation.apply(UP)

    def transform_point(self, local: Sequence[float]) -> np.ndarray:
        """Local-space point to world space."""
        return self.position + self.rotation.apply(vec3(local))

    def inverse_transform_point(self, world: Sequence[float]) -> np.ndarray:
        """World-space point to this pose's local space."""
        return self.rotation.inv().apply(vec3(world) - self.position)

    def copy(self) -> 'Pose':
        # rotations are replaced, never modified in place
        return Pose(self.position.copy(), self.rotation)
