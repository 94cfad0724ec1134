"""
Grab/Drag state machine for objects the hands can pick up.

An object is free while nobody holds it and obeys physics. Once held,
gravity is off, the body is kinematic, and each frame its pose follows
the most recently added holder. Every holder stays registered so that
releases from any hand are bookkept correctly.

Contact feedback (vibration while a hand touches the object) is tracked
separately from holding.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Set

import numpy as np
from scipy.spatial.transform import Rotation

from .collaborators import HAND_TAG, Body, Collider, FeedbackAudio, PhysicsEngine
from .config import MIN_OBJECT_HEIGHT
from .feedback import FeedbackDispatcher
from .hand import HandController
from .message import HandId

logger = logging.getLogger(__name__)


@dataclass
class Grip:
    """Pose data captured when a hand grabs the object."""
    initial_hand_rotation: Rotation
    initial_object_rotation: Rotation
    local_offset: np.ndarray


class Grabbable:
    """
    An object that hands can grab and drag.

    Attributes:
        name: Object name, used in logs
        body: Rigid body whose flags and pose are driven here
        colliders: Colliders belonging to this object
    """

    def __init__(
        self,
        name: str,
        body: Body,
        physics: PhysicsEngine,
        dispatcher: Optional[FeedbackDispatcher] = None,
        audio: Optional[FeedbackAudio] = None,
        collider_radius: float = 0.15,
        min_height: float = MIN_OBJECT_HEIGHT,
    ):
        self.name = name
        self.body = body
        self.physics = physics
        self.dispatcher = dispatcher
        self.audio = audio
        self.min_height = min_height
        self.colliders: List[Collider] = [Collider(f"{name}_collider", self, radius=collider_radius)]

        self._holders: List[HandController] = []
        self._grips: Dict[HandId, Grip] = {}
        self.vibrating_hands: Set[HandId] = set()

    @property
    def position(self) -> np.ndarray:
        return self.body.position

    @property
    def rotation(self) -> Rotation:
        return self.body.rotation

    @property
    def grabbing_hands(self) -> List[HandId]:
        """Current holders, oldest first."""
        return [hand.hand_id for hand in self._holders]

    @property
    def is_held(self) -> bool:
        return bool(self._holders)

    @property
    def latest_holder(self) -> Optional[HandController]:
        return self._holders[-1] if self._holders else None

    def _holder(self, hand_id: HandId) -> Optional[HandController]:
        for hand in self._holders:
            if hand.hand_id is hand_id:
                return hand
        return None

    def _set_collision_with(self, hand: HandController, enabled: bool) -> None:
        for own in self.colliders:
            for other in hand.colliders:
                self.physics.set_collision_enabled(own, other, enabled)

    # ------------------------------------------------------------------
    # Grab / release
    # ------------------------------------------------------------------

    def start_drag(self, hand: HandController) -> bool:
        """
        Attach to a hand's grab anchor.

        Returns:
            False if the hand already holds this object
        """
        if self._holder(hand.hand_id) is not None:
            return False

        if not self._holders:
            self.physics.set_gravity_enabled(self.body, False)
            self.physics.set_kinematic(self.body, True)

        self._holders.append(hand)
        self._grips[hand.hand_id] = Grip(
            initial_hand_rotation=hand.rotation,
            initial_object_rotation=self.body.rotation,
            local_offset=hand.anchor.inverse_transform_point(self.body.position),
        )
        self._set_collision_with(hand, False)

        hand.on_start_grabbing(self)
        logger.debug(f"{self.name} held by {[h.value for h in self.grabbing_hands]}")
        return True

    def end_drag(self, hand: HandController) -> bool:
        """
        Detach from a hand.

        Returns:
            False if the hand was not holding this object
        """
        holder = self._holder(hand.hand_id)
        if holder is None:
            return False

        self._set_collision_with(holder, True)
        self._holders.remove(holder)
        self._grips.pop(holder.hand_id, None)
        holder.on_release(self)

        if not self._holders:
            self.physics.set_gravity_enabled(self.body, True)
            self.physics.set_kinematic(self.body, False)
            logger.info(f"{self.name} released")
        return True

    def release_all(self) -> None:
        for hand in list(self._holders):
            self.end_drag(hand)

    def late_update(self) -> None:
        """Move the object with its most recent holder."""
        hand = self.latest_holder
        if hand is None:
            return
        grip = self._grips.get(hand.hand_id)
        if grip is None:
            return

        delta = hand.rotation * grip.initial_hand_rotation.inv()
        self.body.rotation = delta * grip.initial_object_rotation

        target = hand.anchor.transform_point(grip.local_offset)
        if target[1] < self.min_height:
            target[1] = self.min_height
        self.body.position = target

    # ------------------------------------------------------------------
    # Contact feedback
    # ------------------------------------------------------------------

    @staticmethod
    def _hand_key(other: Collider) -> Optional[HandId]:
        if isinstance(other.owner, HandController):
            return other.owner.hand_id
        return None

    def on_contact_begin(self, other: Collider) -> None:
        if other.tag != HAND_TAG:
            return

        hand_key = self._hand_key(other)
        logger.debug(f"{self.name} contact start: hand={hand_key.value if hand_key else None}")

        if hand_key is not None:
            if hand_key not in self.vibrating_hands:
                self.vibrating_hands.add(hand_key)
                self._dispatch(hand_key, vibrate=True)
        else:
            self._dispatch(None, vibrate=True)

        if self.audio is not None and not self.audio.is_playing():
            self.audio.play_loop()

    def on_contact_end(self, other: Collider) -> None:
        if other.tag != HAND_TAG:
            return

        hand_key = self._hand_key(other)
        logger.debug(f"{self.name} contact end: hand={hand_key.value if hand_key else None}")

        if hand_key is not None:
            if hand_key in self.vibrating_hands:
                self.vibrating_hands.discard(hand_key)
                self._dispatch(hand_key, vibrate=False)
        else:
            self._dispatch(None, vibrate=False)

        if not self.vibrating_hands and self.audio is not None and self.audio.is_playing():
            self.audio.stop()

    def _dispatch(self, hand_key: Optional[HandId], vibrate: bool) -> None:
        if self.dispatcher is not None:
            self.dispatcher.dispatch(hand_key, vibrate)
