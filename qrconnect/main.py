"""
QR Connect - Main Application
Proxy between the onboarding UI and the Evolution gateway
"""
import logging

from qrconnect.app_factory import create_app
from qrconnect.utils.logging_config import configure_logging

configure_logging()
logger = logging.getLogger(__name__)

app = create_app()
