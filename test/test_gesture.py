import numpy as np
import pytest

from conftest import RecordingAnimator, angle_between
from haptic_hands.collaborators import Body
from haptic_hands.geometry import DOWN, UP, Ray, rotation_about
from haptic_hands.gesture import HandGesture, HandPhase
from haptic_hands.grabbable import Grabbable
from haptic_hands.hand import HandController
from haptic_hands.mapping import AxisMode, CoordinateMapper
from haptic_hands.message import Command, HandId, parse_datagram

FORWARD_RAY = Ray((0.0, 1.0, -10.0), (0.0, 0.0, 1.0))


@pytest.fixture
def animator():
    return RecordingAnimator()


@pytest.fixture
def gesture(physics, animator):
    controller = HandController(HandId.HAND_A, animator)
    physics.add_colliders(controller.colliders)
    return HandGesture(controller, physics)


@pytest.fixture
def mapper(camera):
    return CoordinateMapper(camera)


def handle(gesture, mapper, text):
    msg, reason = parse_datagram(text)
    assert reason == "ok"
    gesture.handle(msg, mapper.map)


class TestPinch:
    def test_start_with_small_pinch_tracks(self, gesture):
        gesture.apply(Command.START, FORWARD_RAY, 50.0, 0.0)

        assert gesture.phase is HandPhase.TRACKING
        assert gesture.ray is FORWARD_RAY

    def test_just_below_threshold_tracks(self, gesture):
        gesture.apply(Command.MOVE, FORWARD_RAY, 199.999, 0.0)
        assert gesture.ray_active

    def test_threshold_releases(self, gesture):
        gesture.apply(Command.MOVE, FORWARD_RAY, 50.0, 0.0)
        gesture.apply(Command.MOVE, FORWARD_RAY, 200.0, 0.0)

        assert gesture.phase is HandPhase.IDLE
        assert gesture.ray is None

    def test_stop_releases(self, gesture):
        gesture.apply(Command.START, FORWARD_RAY, 50.0, 0.0)
        gesture.apply(Command.STOP, FORWARD_RAY, 0.0, 0.0)

        assert gesture.phase is HandPhase.IDLE
        assert gesture.baseline_ray is FORWARD_RAY


class TestAxisSwitch:
    def test_start_after_switch_only_rebaselines(self, gesture, mapper):
        handle(gesture, mapper, "HAND_A:MOVE:540,960,50,0,1,1080,1920,Y")
        followed = gesture.ray
        assert not gesture.pending_axis_switch

        handle(gesture, mapper, "HAND_A:START:100,200,50,0,1,1080,1920,X")
        assert gesture.ray is followed
        assert gesture.axis_mode is AxisMode.GROUND_PROJECTED
        assert np.allclose(gesture.baseline_ray.direction, DOWN)
        assert not gesture.pending_axis_switch

        handle(gesture, mapper, "HAND_A:MOVE:100,200,50,0,1,1080,1920,X")
        assert gesture.ray is not followed
        assert np.allclose(gesture.ray.direction, DOWN)

    def test_move_keeps_switch_pending(self, gesture, mapper):
        handle(gesture, mapper, "HAND_A:MOVE:540,960,50,0,1,1080,1920,Y")
        handle(gesture, mapper, "HAND_A:MOVE:540,960,50,0,1,1080,1920,Z")

        assert gesture.pending_axis_switch
        assert np.allclose(gesture.ray.direction, DOWN)

        handle(gesture, mapper, "HAND_A:START:540,960,50,0,1,1080,1920,Z")
        assert not gesture.pending_axis_switch

    def test_first_start_in_ground_mode_is_absorbed(self, gesture, mapper):
        handle(gesture, mapper, "HAND_A:START:540,960,50,0,1,1080,1920,Z")

        assert gesture.phase is HandPhase.IDLE
        assert gesture.baseline_ray is not None


class TestFixedUpdate:
    def test_inactive_hand_does_not_move(self, gesture):
        gesture.fixed_update()
        assert np.allclose(gesture.controller.position, [0.0, 0.0, 0.0])

    def test_follows_ray_and_idles(self, gesture, animator):
        gesture.apply(Command.MOVE, FORWARD_RAY, 50.0, 0.0)
        gesture.fixed_update()

        assert np.allclose(gesture.controller.position, [0.0, 1.0, -5.0])
        assert animator.clips == ["Idle"]

    def test_rotation_is_applied_once(self, gesture, animator):
        gesture.apply(Command.MOVE, FORWARD_RAY, 50.0, 10.0)
        gesture.fixed_update()
        gesture.fixed_update()

        expected = rotation_about(UP, 10.0)
        assert angle_between(gesture.controller.rotation, expected) == pytest.approx(0.0, abs=1e-6)
        # no idle clip on the tick that rotated
        assert animator.clips == ["Idle"]

    def test_grabs_nearby_object_and_releases_on_stop(self, gesture, physics):
        cube = Grabbable("Cube", Body("Cube", (0.0, 1.0, -4.8)), physics)
        physics.add_colliders(cube.colliders)

        gesture.apply(Command.MOVE, FORWARD_RAY, 50.0, 0.0)
        gesture.fixed_update()

        assert gesture.phase is HandPhase.GRABBING
        assert gesture.grabbed is cube
        assert cube.grabbing_hands == [HandId.HAND_A]

        gesture.apply(Command.STOP, FORWARD_RAY, 0.0, 0.0)

        assert gesture.grabbed is None
        assert not cube.is_held
        assert cube.body.use_gravity is True

    def test_far_object_is_not_grabbed(self, gesture, physics):
        cube = Grabbable("Cube", Body("Cube", (0.0, 1.0, 5.0)), physics)
        physics.add_colliders(cube.colliders)

        gesture.apply(Command.MOVE, FORWARD_RAY, 50.0, 0.0)
        gesture.fixed_update()

        assert gesture.grabbed is None
        assert gesture.phase is HandPhase.TRACKING

    def test_describe(self, gesture):
        gesture.apply(Command.MOVE, FORWARD_RAY, 50.0, 0.0)
        gesture.fixed_update()

        state = gesture.describe()
        assert state["phase"] == "tracking"
        assert state["axis_mode"] == "screen_ray"
        assert state["anchor"] == pytest.approx([0.0, 1.0, -5.0])
        assert state["grabbed"] is None
