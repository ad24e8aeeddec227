"""
Pytest configuration and shared fixtures for QR Connect tests
"""

import os
from unittest.mock import AsyncMock, MagicMock

import pytest

# Set test environment variables before qrconnect.config is imported
os.environ.setdefault("EVOLUTION_API_URL", "http://evolution.test")
os.environ.setdefault("MASTER_API_KEY", "test-master-key")
os.environ.setdefault("QRCONNECT_STATE_BACKEND", "memory")

from qrconnect.onboarding import (  # noqa: E402
    MemoryStorage,
    OnboardingStore,
    SessionStore,
    WizardTimings,
)
from tests.helpers import QR_PAYLOAD  # noqa: E402


@pytest.fixture
def api():
    """Mock proxy client with a disconnected instance and a working pairing"""
    client = MagicMock()
    client.create_instance = AsyncMock(
        return_value={"instance": {"instanceName": "Clinic-One"}, "token": "tok-123"}
    )
    client.get_instance_status = AsyncMock(return_value="disconnected")
    client.get_instance_qr = AsyncMock(return_value={"data": {"Qrcode": QR_PAYLOAD, "Code": "2@raw"}})
    client.pair_instance = AsyncMock(return_value={"data": {"PairingCode": "ABCD-1234"}})
    client.disconnect_instance = AsyncMock(return_value={"success": True})
    client.logout_instance = AsyncMock(return_value=None)
    return client


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage):
    return OnboardingStore(storage)


@pytest.fixture
def session(storage):
    return SessionStore(storage)


@pytest.fixture
def notifier():
    return MagicMock()


@pytest.fixture
def navigate():
    return MagicMock()


@pytest.fixture
def fast_timings():
    """Wizard timings shrunk so background loops finish within a test"""
    return WizardTimings(
        poll_interval=0.01,
        auto_refresh_interval=0.05,
        grace_period=0.02,
        settle_delay=0,
        retry_delay=0,
        max_pair_rounds=3,
    )
