import math

import pytest

from haptic_hands.collaborators import Animator
from haptic_hands.config import GatewayConfig
from haptic_hands.feedback import FeedbackDispatcher
from haptic_hands.gateway import HandGateway
from haptic_hands.headless import HeadlessAudio, HeadlessPhysics, PinholeCamera
from haptic_hands.message import HandId
from haptic_hands.registry import PhoneRegistry


class RecordingTransport:
    """Stands in for send_datagram; addresses in fail_for raise OSError."""

    def __init__(self):
        self.sent = []
        self.fail_for = set()

    def __call__(self, address, port, message):
        if address in self.fail_for:
            raise OSError(f"{address} unreachable")
        self.sent.append((address, port, message))

    @property
    def messages(self):
        return [(address, message) for address, _, message in self.sent]


class RecordingAnimator(Animator):
    def __init__(self):
        self.clips = []

    def play(self, clip):
        self.clips.append(clip)


def angle_between(a, b):
    """Angle in degrees of the rotation taking `a` to `b`."""
    return math.degrees((a.inv() * b).magnitude())


@pytest.fixture
def camera():
    return PinholeCamera(position=(0.0, 1.0, -10.0), width=1920, height=1080)


@pytest.fixture
def physics():
    return HeadlessPhysics()


@pytest.fixture
def registry():
    return PhoneRegistry()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def dispatcher(registry, transport):
    return FeedbackDispatcher(registry, port=7777, transport=transport)


@pytest.fixture
def audio():
    return HeadlessAudio("cube")


@pytest.fixture
def animators():
    return {hand_id: RecordingAnimator() for hand_id in HandId}


@pytest.fixture
def gateway(camera, physics, registry, dispatcher, animators):
    return HandGateway(
        GatewayConfig(),
        camera,
        physics,
        animators=animators,
        registry=registry,
        dispatcher=dispatcher,
    )
