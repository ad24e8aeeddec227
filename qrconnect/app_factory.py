"""
FastAPI application factory.

Creates and configures the FastAPI application with:
- CORS middleware
- Instance proxy routes
- Health check
- Static front end with client-side routing fallback (when built)
"""
import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from qrconnect import __version__
from qrconnect.config import CORS_ORIGINS, STATIC_DIR
from qrconnect.startup import lifespan

logger = logging.getLogger(__name__)


def configure_cors(app: FastAPI):
    """Configure CORS middleware for the front end."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )


def register_routers(app: FastAPI):
    """Register API routers."""
    from qrconnect.api import instance

    app.include_router(instance.router)

    @app.get("/health", tags=["health"])
    async def health():
        return {"status": "ok", "version": __version__}


def configure_static(app: FastAPI, static_dir: Optional[str]):
    """Serve the built front end; unknown paths fall back to index.html."""
    if not static_dir:
        return
    dist = Path(static_dir).resolve()
    index = dist / "index.html"
    if not index.is_file():
        logger.info(f"No front end build at {dist}, serving API only")
        return

    assets = dist / "assets"
    if assets.is_dir():
        app.mount("/assets", StaticFiles(directory=assets), name="assets")

    @app.get("/{full_path:path}", include_in_schema=False)
    async def spa_fallback(full_path: str):
        candidate = (dist / full_path).resolve()
        if full_path and candidate.is_file() and dist in candidate.parents:
            return FileResponse(candidate)
        return FileResponse(index)


def create_app(static_dir: Optional[str] = STATIC_DIR) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title="QR Connect",
        description="Onboarding proxy for an Evolution API WhatsApp gateway.",
        version=__version__,
        lifespan=lifespan,
        redirect_slashes=False,
    )

    configure_cors(app)
    register_routers(app)
    configure_static(app, static_dir)

    return app
