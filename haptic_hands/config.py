"""
Configuration for the haptic hands gateway.

Module constants hold the tuned numbers; GatewayConfig gathers the runtime
settings and can be loaded from the environment.

Environment Variables:
    UDP_HOST: Bind address for the gesture listener (default: 0.0.0.0)
    UDP_PORT: Gesture listener port (default: 7777)
    FEEDBACK_PORT: Port phones listen on for feedback (default: 7777)
    PINCH_THRESHOLD: Pinch distance at or above which a gesture releases (default: 200)
    GRAB_RADIUS: Proximity radius for grabbing objects (default: 0.3)
    ROTATION_DEADZONE: Smallest twist delta that rotates a hand (default: 0.01)
    MIN_OBJECT_HEIGHT: Floor for held object height (default: 0.01)
    FRAME_RATE: Variable-rate tick frequency in Hz (default: 60)
    PHYSICS_RATE: Fixed-rate tick frequency in Hz (default: 50)
    DISPLAY_WIDTH / DISPLAY_HEIGHT: Local display size in pixels (default: 1920x1080)
    STATUS_PORT: Port for the HTTP status endpoint (default: disabled)
    LOG_LEVEL: Logging level name (default: INFO)
"""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

# ---------------------------------------------------------------------------
# Network
# ---------------------------------------------------------------------------
UDP_PORT = 7777

# ---------------------------------------------------------------------------
# Gestures
# ---------------------------------------------------------------------------
PINCH_THRESHOLD = 200.0
ROTATION_DEADZONE = 0.01
DEFAULT_AXIS_TOKEN = "Y"

# ---------------------------------------------------------------------------
# Grabbing
# ---------------------------------------------------------------------------
GRAB_RADIUS = 0.3
MIN_OBJECT_HEIGHT = 0.01

# ---------------------------------------------------------------------------
# Hand placement
# ---------------------------------------------------------------------------
FOLLOW_DISTANCE = 5.0          # distance along a screen ray to the hand plane
FOLLOW_FALLBACK_DISTANCE = 4.5  # used when the ray never crosses that plane
GROUND_RAY_LENGTH = 9.5
GROUND_HAND_HEIGHT = 1.5
MIN_HAND_HEIGHT = 0.8

# ---------------------------------------------------------------------------
# Ground projection rectangle (world units)
# ---------------------------------------------------------------------------
GROUND_MIN_X = -5.25
GROUND_MAX_X = 5.05
GROUND_MIN_Z = -4.8
GROUND_MAX_Z = 5.08
GROUND_RAY_LIFT = 5.0          # ray origin height above the camera

# ---------------------------------------------------------------------------
# Display / loop
# ---------------------------------------------------------------------------
DISPLAY_WIDTH = 1920
DISPLAY_HEIGHT = 1080
FRAME_RATE = 60.0
PHYSICS_RATE = 50.0

# Datagram sent by --send-test
TEST_DATAGRAM = "HAND_A:MOVE:300,300,50,0,1,1080,1920"


@dataclass
class GatewayConfig:
    """Runtime settings for the gateway."""
    host: str = "0.0.0.0"
    port: int = UDP_PORT
    feedback_port: int = UDP_PORT
    pinch_threshold: float = PINCH_THRESHOLD
    grab_radius: float = GRAB_RADIUS
    rotation_deadzone: float = ROTATION_DEADZONE
    min_object_height: float = MIN_OBJECT_HEIGHT
    frame_rate: float = FRAME_RATE
    physics_rate: float = PHYSICS_RATE
    display_width: int = DISPLAY_WIDTH
    display_height: int = DISPLAY_HEIGHT
    status_port: Optional[int] = None
    log_level: str = "INFO"
    ground_x: Tuple[float, float] = field(default=(GROUND_MIN_X, GROUND_MAX_X))
    ground_z: Tuple[float, float] = field(default=(GROUND_MIN_Z, GROUND_MAX_Z))

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'GatewayConfig':
        """
        Load configuration from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            GatewayConfig with defaults for unset variables

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        env = os.environ if environ is None else environ
        status_port = env.get("STATUS_PORT")
        return cls(
            host=env.get("UDP_HOST", "0.0.0.0"),
            port=int(env.get("UDP_PORT", str(UDP_PORT))),
            feedback_port=int(env.get("FEEDBACK_PORT", str(UDP_PORT))),
            pinch_threshold=float(env.get("PINCH_THRESHOLD", str(PINCH_THRESHOLD))),
            grab_radius=float(env.get("GRAB_RADIUS", str(GRAB_RADIUS))),
            rotation_deadzone=float(env.get("ROTATION_DEADZONE", str(ROTATION_DEADZONE))),
            min_object_height=float(env.get("MIN_OBJECT_HEIGHT", str(MIN_OBJECT_HEIGHT))),
            frame_rate=float(env.get("FRAME_RATE", str(FRAME_RATE))),
            physics_rate=float(env.get("PHYSICS_RATE", str(PHYSICS_RATE))),
            display_width=int(env.get("DISPLAY_WIDTH", str(DISPLAY_WIDTH))),
            display_height=int(env.get("DISPLAY_HEIGHT", str(DISPLAY_HEIGHT))),
            status_port=int(status_port) if status_port else None,
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )
