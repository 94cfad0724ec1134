#!/usr/bin/env python3
"""
Haptic Hands Gateway - Main Entry Point

Listens for phone gesture datagrams, drives two virtual hands in a
headless scene, and sends vibration feedback back to the phones.

Configuration comes from the environment (see config.py) and can be
overridden on the command line.

Usage:
    python -m haptic_hands.main --object Cube:0,1.5,-5 --object Ball:1,1.5,-5
    python -m haptic_hands.main --status-port 8080 --log-level DEBUG
    python -m haptic_hands.main --send-test
"""

import argparse
import asyncio
import logging
import signal
import sys
import time
from typing import List, Optional, Tuple

import uvicorn

from .config import TEST_DATAGRAM, GatewayConfig
from .feedback import send_datagram
from .gateway import HandGateway
from .headless import HeadlessAudio, HeadlessPhysics, LoggingAnimator, PinholeCamera
from .message import HandId
from .status_server import create_status_app

logger = logging.getLogger(__name__)

DEFAULT_OBJECTS = ["Cube:0,1.5,-5"]


def parse_object(value: str) -> Tuple[str, Tuple[float, float, float]]:
    """
    Parse an object description of the form NAME:X,Y,Z.

    Raises:
        argparse.ArgumentTypeError: If the value is malformed
    """
    name, sep, coords = value.partition(":")
    parts = coords.split(",")
    if not name or not sep or len(parts) != 3:
        raise argparse.ArgumentTypeError(f"expected NAME:X,Y,Z, got {value!r}")
    try:
        x, y, z = (float(p) for p in parts)
    except ValueError:
        raise argparse.ArgumentTypeError(f"non-numeric position in {value!r}")
    return name, (x, y, z)


class GatewayApp:
    """
    Runs a HandGateway against the headless scene.

    Frame loop at frame_rate; physics-rate ticks are run from a fixed-step
    accumulator inside each frame.
    """

    def __init__(self, config: GatewayConfig, objects: List[Tuple[str, Tuple[float, float, float]]]):
        self.config = config
        self.camera = PinholeCamera(width=config.display_width, height=config.display_height)
        self.physics = HeadlessPhysics()
        self.gateway = HandGateway(
            config,
            self.camera,
            self.physics,
            animators={hand_id: LoggingAnimator(hand_id.value) for hand_id in HandId},
        )
        for name, position in objects:
            self.gateway.add_grabbable(name, position, audio=HeadlessAudio(name))

        self._running = False
        self._accumulator = 0.0

    def start(self) -> None:
        self.gateway.start()
        self._running = True
        logger.info("Haptic hands gateway started")

    def stop(self) -> None:
        self._running = False
        self.gateway.stop()

    def request_stop(self) -> None:
        self._running = False

    async def run(self) -> None:
        """Main frame loop."""
        frame_dt = 1.0 / self.config.frame_rate
        fixed_dt = 1.0 / self.config.physics_rate
        prev = time.monotonic()

        while self._running:
            loop_start = time.monotonic()
            self._accumulator += loop_start - prev
            prev = loop_start

            steps = 0
            while self._accumulator >= fixed_dt:
                self._accumulator -= fixed_dt
                steps += 1

            try:
                self.gateway.tick(fixed_steps=steps)
            except Exception as e:
                logger.error(f"Error in frame loop: {e}", exc_info=True)

            elapsed = time.monotonic() - loop_start
            await asyncio.sleep(max(0.0, frame_dt - elapsed))


async def run_status_server(app: GatewayApp, port: int) -> None:
    """Serve the status endpoint with uvicorn."""
    config = uvicorn.Config(
        create_status_app(app.gateway),
        host=app.config.host,
        port=port,
        log_level="warning",
        access_log=False,
    )
    server = uvicorn.Server(config)
    await server.serve()


async def main_async(config: GatewayConfig, objects) -> None:
    """Async main entry point."""
    app = GatewayApp(config, objects)

    loop = asyncio.get_running_loop()

    def signal_handler():
        logger.info("Shutdown signal received")
        app.request_stop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, signal_handler)
        except NotImplementedError:
            # add_signal_handler is unavailable on Windows event loops
            pass

    app.start()
    tasks = [asyncio.create_task(app.run())]
    if config.status_port:
        tasks.append(asyncio.create_task(run_status_server(app, config.status_port)))
        logger.info(f"Status endpoint on http://{config.host}:{config.status_port}/health")

    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
    finally:
        app.stop()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Phone-driven virtual hands gateway")
    parser.add_argument("--host", help="UDP bind address")
    parser.add_argument("--port", type=int, help="UDP listen port")
    parser.add_argument("--feedback-port", type=int, help="Port phones listen on for feedback")
    parser.add_argument("--status-port", type=int, help="Serve /health on this port")
    parser.add_argument("--frame-rate", type=float, help="Frame loop rate (Hz)")
    parser.add_argument("--physics-rate", type=float, help="Fixed tick rate (Hz)")
    parser.add_argument(
        "--object",
        dest="objects",
        action="append",
        type=parse_object,
        help="Grabbable object NAME:X,Y,Z (repeatable)",
    )
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, ...)")
    parser.add_argument(
        "--send-test",
        action="store_true",
        help="Send a test gesture datagram to the local listener and exit",
    )
    return parser


def config_from_args(args: argparse.Namespace, base: Optional[GatewayConfig] = None) -> GatewayConfig:
    """Apply command-line overrides on top of the environment config."""
    config = base or GatewayConfig.from_env()
    overrides = {
        "host": args.host,
        "port": args.port,
        "feedback_port": args.feedback_port,
        "status_port": args.status_port,
        "frame_rate": args.frame_rate,
        "physics_rate": args.physics_rate,
        "log_level": args.log_level.upper() if args.log_level else None,
    }
    for key, value in overrides.items():
        if value is not None:
            setattr(config, key, value)
    return config


def main() -> None:
    """Main entry point."""
    args = build_parser().parse_args()
    config = config_from_args(args)

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if args.send_test:
        send_datagram("127.0.0.1", config.port, TEST_DATAGRAM)
        logger.info(f"Sent test datagram to 127.0.0.1:{config.port}: {TEST_DATAGRAM}")
        return

    objects = args.objects or [parse_object(value) for value in DEFAULT_OBJECTS]

    try:
        asyncio.run(main_async(config, objects))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)


if __name__ == "__main__":
    main()
