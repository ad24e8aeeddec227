"""
Application Configuration
Centralized configuration for the proxy, the onboarding client and state storage
"""
import os

from dotenv import load_dotenv

load_dotenv()

# Evolution gateway (proxy side)
EVOLUTION_API_URL = os.getenv("EVOLUTION_API_URL", "http://localhost:8080").rstrip("/")
MASTER_API_KEY = os.getenv("MASTER_API_KEY", "")
EVOLUTION_HTTP_TIMEOUT = float(os.getenv("EVOLUTION_HTTP_TIMEOUT", "15.0"))  # seconds

# HTTP server
PORT = int(os.getenv("PORT", "3001"))
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
STATIC_DIR = os.getenv("STATIC_DIR", "dist")

# Onboarding client: where the local proxy lives
QRCONNECT_API_URL = os.getenv("QRCONNECT_API_URL", f"http://localhost:{PORT}").rstrip("/")

# Pairing timings (seconds)
PAIR_MAX_RETRIES = 10
PAIR_RETRY_DELAY = 3.0
QR_SETTLE_DELAY = 1.5
AUTO_REFRESH_INTERVAL = 30.0
CONNECTED_GRACE_PERIOD = 2.0

# Status polling intervals (seconds)
ONBOARDING_POLL_INTERVAL = 1.0
DASHBOARD_POLL_INTERVAL = 5.0

# Phone rules
MIN_PHONE_DIGITS = 10
MAX_PHONE_DIGITS = 11

# Persisted client state
ONBOARDING_STATE_KEY = "onboarding_state"
SESSION_TOKEN_KEY = "instance-token"
SESSION_PHONE_KEY = "instance-phone"

# "file", "redis" or "memory"
STATE_BACKEND = os.getenv("QRCONNECT_STATE_BACKEND", "file").lower()
STATE_FILE = os.getenv(
    "QRCONNECT_STATE_FILE",
    os.path.join(os.path.expanduser("~"), ".qrconnect", "state.json"),
)
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379")
REDIS_KEY_PREFIX = os.getenv("QRCONNECT_REDIS_PREFIX", "qrconnect:")
