"""
Phone number helpers for pairing.

Numbers are handled in national format: a 2-digit area code followed by the
subscriber number, no country code. Mobile numbers in this numbering plan
gained a leading 9, and the gateway does not always agree with the user on
whether it is present, so pairing tries both forms.
"""
import re

from qrconnect.config import MAX_PHONE_DIGITS, MIN_PHONE_DIGITS

AREA_CODE_LENGTH = 2
MOBILE_PREFIX = "9"
MODERN_SUBSCRIBER_LENGTH = 9

_NON_DIGITS = re.compile(r"\D")


def normalize_phone(raw: str) -> str:
    """Strip every non-digit character."""
    return _NON_DIGITS.sub("", raw or "")


def is_valid_phone(phone: str) -> bool:
    """At least area code plus an 8-digit number."""
    return len(normalize_phone(phone)) >= MIN_PHONE_DIGITS


def clamp_phone_input(raw: str) -> str:
    """Digits only, cut to the longest national number."""
    return normalize_phone(raw)[:MAX_PHONE_DIGITS]


def alternate_phone(phone: str) -> str:
    """
    Toggle the mobile 9 right after the area code.

    Callers must pass a normalized number of at least 10 digits.

    Example:
        >>> alternate_phone("41999999999")
        '4199999999'
        >>> alternate_phone("4199999999")
        '41999999999'
    """
    area = phone[:AREA_CODE_LENGTH]
    rest = phone[AREA_CODE_LENGTH:]
    if rest.startswith(MOBILE_PREFIX) and len(rest) == MODERN_SUBSCRIBER_LENGTH:
        return f"{area}{rest[1:]}"
    return f"{area}{MOBILE_PREFIX}{rest}"
