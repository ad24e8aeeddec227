"""Main entry point for the QR Connect proxy server"""
import logging
import sys
import os

from qrconnect.utils.logging_config import configure_logging

configure_logging()
logger = logging.getLogger(__name__)

logger.info("Starting QR Connect proxy...")
logger.info(f"Python version: {sys.version}")
if os.getenv('MASTER_API_KEY'):
    logger.info("MASTER_API_KEY is configured")
else:
    logger.warning("MASTER_API_KEY is not set")

from qrconnect.main import app  # noqa: E402

# Expose the app for uvicorn
__all__ = ['app']

if __name__ == "__main__":
    import uvicorn
    from qrconnect.config import PORT

    logger.info(f"Starting server on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
