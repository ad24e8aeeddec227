"""
Onboarding Pydantic Models

OnboardingState is the persisted wizard record. It is stored as a single JSON
document whose keys are camelCase; Python code uses the snake_case
attributes.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaError

from .constants import OnboardingStep

logger = logging.getLogger(__name__)


class OnboardingState(BaseModel):
    """
    Wizard progress.

    Attributes:
        step: Current wizard position (1-3)
        instance_name: Name as typed, before sanitization
        token: Instance credential issued at creation, "" until step 2
        phone: National digits without country code
        qr_base64: Last QR payload fetched
        pairing_code: Last pairing code extracted, "" if none yet
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    step: OnboardingStep = OnboardingStep.NAMING_INSTANCE
    instance_name: str = Field(default="", alias="instanceName")
    token: str = ""
    phone: str = ""
    qr_base64: str = Field(default="", alias="qrBase64")
    pairing_code: str = Field(default="", alias="pairingCode")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, raw: Optional[str]) -> Optional["OnboardingState"]:
        """
        Parse a stored record.

        Returns None for an empty slot or a record that is not valid JSON or
        does not validate; a damaged record is never an error.
        """
        if not raw:
            return None
        try:
            return cls.model_validate_json(raw)
        except (SchemaError, ValueError) as e:
            logger.warning(f"Discarding unreadable onboarding state: {e.__class__.__name__}")
            return None


@dataclass(frozen=True)
class WizardEntry:
    """Credential and phone handed to the wizard from outside (reconnect flow)."""
    token: str = ""
    phone: str = ""
