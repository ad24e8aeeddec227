"""
Onboarding Package

Client-side orchestration of instance creation and phone pairing.

Exports:
- OnboardingStep: Enum of wizard steps
- VALID_TRANSITIONS: Step transition rules dictionary
- OnboardingState: Pydantic model for the persisted wizard record
- WizardEntry: Credential and phone supplied from outside the wizard
- OnboardingStore / SessionStore: Persistence of wizard progress and credential
- create_storage: Storage backend factory (memory, file, redis)
- PairingRetryEngine: Bounded pairing-code retries with phone variants
- PairingRefreshCycle: QR fetch followed by pairing-code acquisition
- StatusPoller: Periodic connection status queries
- OnboardingWizard: Three-step wizard state machine
- DashboardController / login: Authenticated session views
"""

from .constants import (
    DASHBOARD_ROUTE,
    LOGIN_ROUTE,
    ONBOARDING_ROUTE,
    VALID_TRANSITIONS,
    OnboardingStep,
)
from .dashboard import DashboardController, login
from .notifications import LoggingNotifier, Notifier
from .pairing import (
    PairingRefreshCycle,
    PairingResult,
    PairingRetryEngine,
    extract_pairing_code,
    extract_qr_payload,
)
from .phone import alternate_phone, clamp_phone_input, is_valid_phone, normalize_phone
from .poller import StatusPoller
from .state import OnboardingState, WizardEntry
from .store import (
    JSONFileStorage,
    MemoryStorage,
    OnboardingStore,
    RedisStorage,
    SessionStore,
    Storage,
    create_storage,
)
from .wizard import OnboardingWizard, WizardTimings, sanitize_instance_name

__all__ = [
    "DASHBOARD_ROUTE",
    "LOGIN_ROUTE",
    "ONBOARDING_ROUTE",
    "VALID_TRANSITIONS",
    "OnboardingStep",
    "DashboardController",
    "login",
    "LoggingNotifier",
    "Notifier",
    "PairingRefreshCycle",
    "PairingResult",
    "PairingRetryEngine",
    "extract_pairing_code",
    "extract_qr_payload",
    "alternate_phone",
    "clamp_phone_input",
    "is_valid_phone",
    "normalize_phone",
    "StatusPoller",
    "OnboardingState",
    "WizardEntry",
    "JSONFileStorage",
    "MemoryStorage",
    "OnboardingStore",
    "RedisStorage",
    "SessionStore",
    "Storage",
    "create_storage",
    "OnboardingWizard",
    "WizardTimings",
    "sanitize_instance_name",
]
