"""
Hand Gateway - wires ingestion, gestures, grabbing and feedback together.

Architecture:
    Phone -> UDP -> UdpReceiver (thread) -> WorkQueue
          -> tick(): drain -> PhoneRegistry / DatagramParser -> HandGesture
          -> fixed_update(): follow ray, twist, proximity grab, contacts
          -> late_update(): held objects follow their latest holder
          -> FeedbackDispatcher -> UDP -> Phone
"""

import logging
from typing import Dict, List, Optional, Sequence

from .collaborators import Animator, Body, Camera, FeedbackAudio, PhysicsEngine
from .config import GatewayConfig
from .feedback import FeedbackDispatcher
from .gesture import HandGesture
from .grabbable import Grabbable
from .hand import HandController
from .mapping import CoordinateMapper, GroundBounds
from .message import DatagramParser, HandId, decode, sender_token
from .receiver import UdpReceiver, WorkQueue
from .registry import PhoneRegistry

logger = logging.getLogger(__name__)


class HandGateway:
    """
    Owns the per-process interaction state.

    All gesture, registry and object mutation happens inside tick() on
    the thread that calls it; the UDP receiver only posts work.
    """

    def __init__(
        self,
        config: GatewayConfig,
        camera: Camera,
        physics: PhysicsEngine,
        animators: Optional[Dict[HandId, Animator]] = None,
        registry: Optional[PhoneRegistry] = None,
        dispatcher: Optional[FeedbackDispatcher] = None,
    ):
        """
        Args:
            config: Gateway settings
            camera: Camera used for screen rays and display size
            physics: Physics engine the grab logic toggles
            animators: Animation player per hand
            registry: Phone registry (a new one if omitted)
            dispatcher: Feedback dispatcher (built on the registry if omitted)
        """
        self.config = config
        self.camera = camera
        self.physics = physics

        self.registry = registry or PhoneRegistry()
        self.dispatcher = dispatcher or FeedbackDispatcher(self.registry, port=config.feedback_port)
        self.parser = DatagramParser()
        self.mapper = CoordinateMapper(
            camera,
            GroundBounds(config.ground_x[0], config.ground_x[1], config.ground_z[0], config.ground_z[1]),
        )
        self.work_queue = WorkQueue()
        self.receiver: Optional[UdpReceiver] = None

        animators = animators or {}
        self.hands: Dict[HandId, HandGesture] = {}
        for hand_id in HandId:
            controller = HandController(hand_id, animators.get(hand_id))
            self.hands[hand_id] = HandGesture(
                controller,
                physics,
                pinch_threshold=config.pinch_threshold,
                grab_radius=config.grab_radius,
                rotation_deadzone=config.rotation_deadzone,
            )
            physics.add_colliders(controller.colliders)

        self.grabbables: List[Grabbable] = []
        self._ticks = 0
        self._fixed_ticks = 0

    # ------------------------------------------------------------------
    # Scene setup
    # ------------------------------------------------------------------

    def add_grabbable(
        self,
        name: str,
        position: Sequence[float],
        audio: Optional[FeedbackAudio] = None,
        collider_radius: float = 0.15,
    ) -> Grabbable:
        """Create a grabbable object at a position and add it to the scene."""
        body = Body(name, position)
        grabbable = Grabbable(
            name,
            body,
            self.physics,
            dispatcher=self.dispatcher,
            audio=audio,
            collider_radius=collider_radius,
            min_height=self.config.min_object_height,
        )
        self.grabbables.append(grabbable)
        self.physics.add_colliders(grabbable.colliders)
        logger.info(f"Added grabbable {name} at {list(body.position)}")
        return grabbable

    def remove_grabbable(self, grabbable: Grabbable) -> None:
        """Take an object out of the scene; holding hands keep tracking."""
        for gesture in self.hands.values():
            if gesture.grabbed is grabbable:
                grabbable.end_drag(gesture.controller)
                gesture.grabbed = None
        grabbable.release_all()
        if grabbable in self.grabbables:
            self.grabbables.remove(grabbable)
        self.physics.remove_colliders(grabbable.colliders)

    def hand(self, hand_id: HandId) -> HandGesture:
        return self.hands[hand_id]

    # ------------------------------------------------------------------
    # Network
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start listening for phone datagrams."""
        if self.receiver is None:
            self.receiver = UdpReceiver(self.enqueue_datagram, self.config.host, self.config.port)
        self.receiver.start()

    def stop(self) -> None:
        """Stop listening and let go of everything."""
        if self.receiver is not None:
            self.receiver.stop()
        # Process whatever already arrived before dropping grabs
        self.work_queue.drain()
        for gesture in self.hands.values():
            gesture.release()
        logger.info("Hand gateway stopped")

    def enqueue_datagram(self, payload: bytes, address: str) -> None:
        """Receiver-thread entry point: defer all handling to the tick."""
        self.work_queue.post(lambda: self.handle_datagram(payload, address))

    def handle_datagram(self, payload: bytes, address: str) -> None:
        """
        Register the sending phone and apply the gesture.

        Must run on the gameplay thread.
        """
        text = decode(payload)
        logger.debug(f"[UDP] from {address}: {text if text is not None else payload!r}")

        self.registry.note_sender(address)
        if text is not None:
            token = sender_token(text)
            if token is not None:
                self.registry.register(token, address)

        msg = self.parser.parse(payload)
        if msg is None:
            return

        hand_id = msg.hand
        if hand_id is None:
            logger.debug(f"Ignoring gesture from unknown sender {msg.sender!r}")
            return

        logger.debug(f"{hand_id.value} {msg.command.value} pinch={msg.pinch_distance} rot={msg.rotation_delta}")
        self.hands[hand_id].handle(msg, self.mapper.map)

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------

    def update(self) -> int:
        """Variable-rate tick: apply every queued datagram."""
        self._ticks += 1
        return self.work_queue.drain()

    def fixed_update(self) -> None:
        """Physics-rate tick."""
        self._fixed_ticks += 1
        for gesture in self.hands.values():
            gesture.fixed_update()
        self.physics.step()

    def late_update(self) -> None:
        """End of frame: move held objects with their holders."""
        for grabbable in self.grabbables:
            grabbable.late_update()

    def tick(self, fixed_steps: int = 1) -> None:
        """One frame: drain the queue, run fixed steps, then late update."""
        self.update()
        for _ in range(fixed_steps):
            self.fixed_update()
        self.late_update()

    def get_stats(self) -> dict:
        """Get gateway statistics."""
        return {
            "ticks": self._ticks,
            "fixed_ticks": self._fixed_ticks,
            "parser": self.parser.get_stats(),
            "registry": self.registry.get_stats(),
            "feedback": self.dispatcher.get_stats(),
            "work_queue": self.work_queue.get_stats(),
            "receiver": self.receiver.get_stats() if self.receiver else {},
        }
