from types import SimpleNamespace

import numpy as np
import pytest

from conftest import RecordingAnimator, angle_between
from haptic_hands.collaborators import HAND_TAG, Body, Collider
from haptic_hands.geometry import UP, Pose, rotation_about
from haptic_hands.grabbable import Grabbable
from haptic_hands.hand import HandController
from haptic_hands.message import HandId


def make_hand(hand_id, position, physics):
    hand = HandController(hand_id, RecordingAnimator(), anchor=Pose(position))
    physics.add_colliders(hand.colliders)
    return hand


@pytest.fixture
def hand_a(physics):
    return make_hand(HandId.HAND_A, (0.0, 1.0, 0.0), physics)


@pytest.fixture
def hand_b(physics):
    return make_hand(HandId.HAND_B, (1.0, 1.0, 0.0), physics)


@pytest.fixture
def cube(physics, dispatcher, audio):
    cube = Grabbable("Cube", Body("Cube", (0.0, 1.0, 0.2)), physics, dispatcher, audio)
    physics.add_colliders(cube.colliders)
    return cube


class TestDrag:
    def test_start_drag_disables_physics(self, cube, hand_a, physics):
        assert cube.start_drag(hand_a) is True

        assert cube.grabbing_hands == [HandId.HAND_A]
        assert cube.body.use_gravity is False
        assert cube.body.is_kinematic is True
        assert hand_a.is_grabbing
        for other in hand_a.colliders:
            assert not physics.is_collision_enabled(cube.colliders[0], other)

    def test_second_start_by_same_hand_is_noop(self, cube, hand_a):
        cube.start_drag(hand_a)
        assert cube.start_drag(hand_a) is False
        assert cube.grabbing_hands == [HandId.HAND_A]

    def test_end_drag_restores_physics(self, cube, hand_a, physics):
        cube.start_drag(hand_a)
        assert cube.end_drag(hand_a) is True

        assert cube.grabbing_hands == []
        assert cube.body.use_gravity is True
        assert cube.body.is_kinematic is False
        assert not hand_a.is_grabbing
        for other in hand_a.colliders:
            assert physics.is_collision_enabled(cube.colliders[0], other)

    def test_end_drag_by_non_holder_is_noop(self, cube, hand_a, hand_b):
        cube.start_drag(hand_a)

        assert cube.end_drag(hand_b) is False
        assert hand_b.animator.clips == []
        assert cube.grabbing_hands == [HandId.HAND_A]
        assert cube.body.use_gravity is False

    def test_physics_stays_off_until_last_holder_leaves(self, cube, hand_a, hand_b):
        cube.start_drag(hand_a)
        cube.start_drag(hand_b)
        assert cube.grabbing_hands == [HandId.HAND_A, HandId.HAND_B]

        cube.end_drag(hand_a)
        assert cube.is_held
        assert cube.body.use_gravity is False
        assert cube.body.is_kinematic is True

        cube.end_drag(hand_b)
        assert not cube.is_held
        assert cube.body.use_gravity is True
        assert cube.body.is_kinematic is False

    def test_release_all(self, cube, hand_a, hand_b):
        cube.start_drag(hand_a)
        cube.start_drag(hand_b)
        cube.release_all()

        assert not cube.is_held
        assert not hand_a.is_grabbing
        assert not hand_b.is_grabbing


class TestFollow:
    def test_follows_latest_holder(self, cube, hand_a, hand_b):
        cube.start_drag(hand_a)
        cube.start_drag(hand_b)

        hand_b.anchor.position = np.array([2.0, 1.0, 0.0])
        cube.late_update()

        assert np.allclose(cube.position, [1.0, 1.0, 0.2])

    def test_authority_falls_back_when_latest_leaves(self, cube, hand_a, hand_b):
        cube.start_drag(hand_a)
        cube.start_drag(hand_b)
        cube.end_drag(hand_b)

        hand_a.anchor.position = np.array([0.0, 2.0, 0.0])
        cube.late_update()

        assert np.allclose(cube.position, [0.0, 2.0, 0.2])

    def test_follows_holder_rotation(self, cube, hand_b):
        cube.start_drag(hand_b)
        hand_b.rotate(90.0)
        hand_b.anchor.position = np.array([2.0, 1.0, 0.0])
        cube.late_update()

        assert angle_between(cube.rotation, rotation_about(UP, 90.0)) == pytest.approx(0.0, abs=1e-6)
        assert np.allclose(cube.position, [2.2, 1.0, 1.0])

    def test_height_is_floored(self, cube, hand_a):
        cube.start_drag(hand_a)
        hand_a.anchor.position = np.array([0.0, -1.0, 0.0])
        cube.late_update()

        assert cube.position[1] == pytest.approx(0.01)

    def test_free_object_does_not_move(self, cube):
        cube.late_update()
        assert np.allclose(cube.position, [0.0, 1.0, 0.2])


class TestContactFeedback:
    def test_vibrate_and_stop_for_registered_hand(self, cube, hand_a, registry, transport, audio):
        registry.register("HAND_A", "10.0.0.5")

        cube.on_contact_begin(hand_a.idle_collider)
        assert transport.messages == [("10.0.0.5", "VIBRATE:A")]
        assert cube.vibrating_hands == {HandId.HAND_A}
        assert audio.is_playing()

        cube.on_contact_begin(hand_a.idle_collider)
        assert len(transport.sent) == 1

        cube.on_contact_end(hand_a.idle_collider)
        assert transport.messages[-1] == ("10.0.0.5", "STOP:A")
        assert not audio.is_playing()

    def test_audio_keeps_playing_while_another_hand_touches(self, cube, hand_a, hand_b, registry, audio):
        registry.register("HAND_A", "10.0.0.5")
        registry.register("HAND_B", "10.0.0.6")

        cube.on_contact_begin(hand_a.idle_collider)
        cube.on_contact_begin(hand_b.idle_collider)
        cube.on_contact_end(hand_a.idle_collider)
        assert audio.is_playing()

        cube.on_contact_end(hand_b.idle_collider)
        assert not audio.is_playing()

    def test_unattributed_hand_broadcasts(self, cube, registry, transport):
        registry.register("HAND_A", "10.0.0.5")
        registry.register("HAND_B", "10.0.0.6")
        stray = Collider("stray", SimpleNamespace(position=np.zeros(3)), HAND_TAG)

        cube.on_contact_begin(stray)

        assert sorted(transport.messages) == [("10.0.0.5", "VIBRATE"), ("10.0.0.6", "VIBRATE")]

    def test_non_hand_contacts_are_ignored(self, cube, registry, transport, audio):
        registry.register("HAND_A", "10.0.0.5")
        floor = Collider("floor", SimpleNamespace(position=np.zeros(3)), "Ground")

        cube.on_contact_begin(floor)
        cube.on_contact_end(floor)

        assert transport.sent == []
        assert not audio.is_playing()

    def test_hand_tracks_contact_flag(self, cube, hand_a, physics):
        hand_a.anchor.position = np.array([0.0, 1.0, 0.1])
        physics.step()
        assert hand_a.in_contact

        hand_a.anchor.position = np.array([0.0, 5.0, 0.0])
        physics.step()
        assert not hand_a.in_contact
