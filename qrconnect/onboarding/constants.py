"""
Onboarding Constants Module

Wizard steps and the transitions allowed between them.
"""

from enum import IntEnum


class OnboardingStep(IntEnum):
    """
    Wizard positions.

    NAMING_INSTANCE -> ENTERING_PHONE -> AWAITING_CONNECTION

    Any step may go back to NAMING_INSTANCE through an explicit reset.
    """
    NAMING_INSTANCE = 1
    ENTERING_PHONE = 2
    AWAITING_CONNECTION = 3


VALID_TRANSITIONS = {
    OnboardingStep.NAMING_INSTANCE: [OnboardingStep.ENTERING_PHONE],
    OnboardingStep.ENTERING_PHONE: [OnboardingStep.AWAITING_CONNECTION],
    OnboardingStep.AWAITING_CONNECTION: [],
}

# Route the wizard hands control to once the instance is connected
DASHBOARD_ROUTE = "/dashboard"
LOGIN_ROUTE = "/"
ONBOARDING_ROUTE = "/onboarding"
