"""
Validation utilities for M-Pesa payment operations.
"""

import re

from ..constants import KENYA_COUNTRY_CODE, CANONICAL_PHONE_PATTERN
from ..exceptions import InvalidPhoneNumberError

_CANONICAL_PHONE_RE = re.compile(CANONICAL_PHONE_PATTERN, re.ASCII)


def validate_phone_number(phone: str) -> str:
    """
    Validate and format a Kenyan mobile number as an MSISDN.

    Accepted shapes, with surrounding or internal whitespace and an optional
    leading ``+``::

        0712345678    -> 254712345678
        712345678     -> 254712345678
        254712345678  -> 254712345678

    Args:
        phone: Phone number to validate

    Returns:
        Validated phone number in format: 2547XXXXXXXX

    Raises:
        InvalidPhoneNumberError: If phone number is missing or malformed
    """
    if phone is None or not str(phone).strip():
        raise InvalidPhoneNumberError("Phone number cannot be null or empty.")

    normalized = re.sub(r'\s+', '', str(phone))
    if normalized.startswith('+'):
        normalized = normalized[1:]

    if normalized.startswith('07'):
        formatted = KENYA_COUNTRY_CODE + normalized[1:]
    elif normalized.startswith('7'):
        formatted = KENYA_COUNTRY_CODE + normalized
    elif normalized.startswith(KENYA_COUNTRY_CODE):
        formatted = normalized
    else:
        raise InvalidPhoneNumberError(f"Invalid phone number format: {phone}")

    if not _CANONICAL_PHONE_RE.match(formatted):
        raise InvalidPhoneNumberError(f"Invalid Kenyan phone number: {phone}")

    return formatted


def mask_phone_number(phone: str) -> str:
    """Hide the middle digits of a phone number for logging, e.g. 254712***678."""
    phone = str(phone or '')
    if len(phone) <= 6:
        return '***'
    return f"{phone[:6]}***{phone[-3:]}"
