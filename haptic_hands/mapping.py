"""
Coordinate Mapper - phone touch coordinates to world rays.

Two strategies, chosen per hand by the axis token of each datagram:

- SCREEN_RAY: scale the touch point to the local display and cast a ray
  through the camera.
- GROUND_PROJECTED: map the touch point onto a fixed world rectangle and
  cast a vertical ray down onto it; the camera only supplies the height.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from .collaborators import Camera
from .config import (
    GROUND_MAX_X,
    GROUND_MAX_Z,
    GROUND_MIN_X,
    GROUND_MIN_Z,
    GROUND_RAY_LIFT,
)
from .geometry import DOWN, Ray, lerp
from .message import InboundMessage

logger = logging.getLogger(__name__)

SCREEN_AXIS_TOKEN = "Y"


class AxisMode(enum.Enum):
    SCREEN_RAY = "screen_ray"
    GROUND_PROJECTED = "ground_projected"

    @classmethod
    def for_token(cls, token: str) -> 'AxisMode':
        """Token "Y" selects screen rays, anything else the ground projection."""
        if token.strip().upper() == SCREEN_AXIS_TOKEN:
            return cls.SCREEN_RAY
        return cls.GROUND_PROJECTED


@dataclass
class GroundBounds:
    """World rectangle the phone screen maps onto in ground mode."""
    min_x: float = GROUND_MIN_X
    max_x: float = GROUND_MAX_X
    min_z: float = GROUND_MIN_Z
    max_z: float = GROUND_MAX_Z


class CoordinateMapper:
    """Builds world rays from phone coordinates."""

    def __init__(
        self,
        camera: Camera,
        bounds: Optional[GroundBounds] = None,
        ray_lift: float = GROUND_RAY_LIFT,
    ):
        """
        Args:
            camera: Active camera, also provides the display size
            bounds: Ground rectangle for GROUND_PROJECTED mode
            ray_lift: Height of the ground ray origin above the camera
        """
        self.camera = camera
        self.bounds = bounds or GroundBounds()
        self.ray_lift = ray_lift

    def _phone_size(
        self,
        phone_width: Optional[float],
        phone_height: Optional[float],
    ) -> Tuple[float, float]:
        display_w, display_h = self.camera.display_size()
        width = float(display_w) if phone_width is None else phone_width
        height = float(display_h) if phone_height is None else phone_height
        return width, height

    def to_pixel(
        self,
        norm_x: float,
        norm_y: float,
        phone_width: Optional[float] = None,
        phone_height: Optional[float] = None,
    ) -> Tuple[float, float]:
        """
        Convert phone coordinates to display pixels.

        The phone origin is top-left and the display origin bottom-left,
        so Y is flipped. A non-positive phone dimension leaves that axis
        unscaled.
        """
        display_w, display_h = self.camera.display_size()
        width, height = self._phone_size(phone_width, phone_height)
        px = (norm_x / width) * display_w if width > 0 else norm_x
        py = (1.0 - norm_y / height) * display_h if height > 0 else norm_y
        return px, py

    def screen_ray(
        self,
        norm_x: float,
        norm_y: float,
        phone_width: Optional[float] = None,
        phone_height: Optional[float] = None,
    ) -> Ray:
        px, py = self.to_pixel(norm_x, norm_y, phone_width, phone_height)
        return self.camera.screen_point_to_ray(px, py)

    def ground_ray(
        self,
        norm_x: float,
        norm_y: float,
        phone_width: Optional[float] = None,
        phone_height: Optional[float] = None,
    ) -> Ray:
        width, height = self._phone_size(phone_width, phone_height)
        xr = norm_x / width if width > 0 else 0.5
        yr = 1.0 - norm_y / height if height > 0 else 0.5

        x_world = lerp(self.bounds.min_x, self.bounds.max_x, xr)
        z_world = lerp(self.bounds.min_z, self.bounds.max_z, yr)
        origin = (x_world, float(self.camera.position[1]) + self.ray_lift, z_world)
        return Ray(origin, DOWN)

    def map(self, msg: InboundMessage, mode: AxisMode) -> Ray:
        """Ray for a parsed message under the given axis mode."""
        if mode is AxisMode.SCREEN_RAY:
            return self.screen_ray(msg.norm_x, msg.norm_y, msg.phone_width, msg.phone_height)
        return self.ground_ray(msg.norm_x, msg.norm_y, msg.phone_width, msg.phone_height)
