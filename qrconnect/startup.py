"""
Application startup and shutdown lifecycle management.

Handles:
- Environment validation
- Shared Evolution gateway client
- Graceful shutdown of the HTTP session
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from qrconnect.config import EVOLUTION_API_URL
from qrconnect.evolution_api import EvolutionAPIClient
from qrconnect.startup_validation import validate_environment

logger = logging.getLogger(__name__)


async def init_evolution_client(app: FastAPI):
    """Create the shared gateway client unless one was injected already."""
    if getattr(app.state, "evolution_client", None) is None:
        client = EvolutionAPIClient()
        await client.initialize()
        app.state.evolution_client = client
    logger.info(f"Evolution gateway: {EVOLUTION_API_URL}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle manager."""
    # === STARTUP ===
    logger.info("Starting QR Connect proxy...")

    if not validate_environment():
        logger.warning(
            "Environment validation failed - gateway calls will likely fail. "
            "See logs above for details."
        )

    await init_evolution_client(app)

    yield

    # === SHUTDOWN ===
    logger.info("Shutting down QR Connect proxy...")
    client = getattr(app.state, "evolution_client", None)
    if client is not None:
        await client.close()
        app.state.evolution_client = None
