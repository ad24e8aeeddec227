"""
Startup validation for required environment variables.
Reports a missing gateway location or master key at startup.

Uses Pydantic Settings for centralized, testable validation.
"""
import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class ProxySettings(BaseSettings):
    """Validated proxy configuration."""

    EVOLUTION_API_URL: str
    MASTER_API_KEY: str
    PORT: int = 3001

    @field_validator("EVOLUTION_API_URL")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("EVOLUTION_API_URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("MASTER_API_KEY")
    @classmethod
    def validate_master_key(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("MASTER_API_KEY cannot be empty")
        return v

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


def validate_environment() -> bool:
    """
    Validate environment configuration at startup.
    Returns True if valid, logs errors and returns False otherwise.

    Note: Never log actual secret values, only variable names.
    """
    try:
        ProxySettings()
        logger.info("Environment validation passed")
        return True
    except Exception as e:
        logger.error(f"Startup validation failed: {e}")
        return False
