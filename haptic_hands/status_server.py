"""
HTTP status endpoint for the gateway.

Handles:
- GET /health: liveness, registered phones and counters
- GET /hands: per-hand gesture state

Served by uvicorn on the same event loop as the tick loop, so handlers
read gateway state from the gameplay thread.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .gateway import HandGateway

logger = logging.getLogger(__name__)


def create_status_app(gateway: HandGateway) -> FastAPI:
    """
    Create the FastAPI status application.

    Args:
        gateway: Gateway whose state is reported

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(title="Haptic Hands Gateway")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "ok",
            "registered_phones": gateway.registry.snapshot(),
            "hands": {hand_id.value: gesture.phase.value for hand_id, gesture in gateway.hands.items()},
            "stats": gateway.get_stats(),
        }

    @app.get("/hands")
    async def hands():
        """Detailed per-hand state."""
        return {hand_id.value: gesture.describe() for hand_id, gesture in gateway.hands.items()}

    return app
