"""
Request signing utilities: Daraja timestamps, STK passwords and Basic auth.
"""

import base64
from datetime import datetime, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from ..constants import GATEWAY_TIMEZONE, TIMESTAMP_FORMAT


def generate_timestamp(now: Optional[datetime] = None, zone: str = GATEWAY_TIMEZONE) -> str:
    """
    Format an instant as a Daraja timestamp.

    Args:
        now: Instant to format. Naive datetimes are taken as UTC.
            Defaults to the current time.
        zone: IANA zone the gateway expects timestamps in

    Returns:
        14 digit ``yyyyMMddHHmmss`` string in the given zone
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    return now.astimezone(ZoneInfo(zone)).strftime(TIMESTAMP_FORMAT)


def generate_password(short_code: str, pass_key: str, timestamp: str) -> str:
    """
    Derive the STK push password.

    The gateway expects base64(short_code + pass_key + timestamp) with no
    separators. The timestamp must be the one sent alongside the password.
    """
    raw = f"{short_code}{pass_key}{timestamp}".encode('utf-8')
    return base64.b64encode(raw).decode('ascii')


def signed_fields(short_code: str, pass_key: str, now: Optional[datetime] = None) -> Tuple[str, str]:
    """Return a fresh ``(timestamp, password)`` pair."""
    timestamp = generate_timestamp(now)
    return timestamp, generate_password(short_code, pass_key, timestamp)


def basic_auth_header(consumer_key: str, consumer_secret: str) -> str:
    credentials = f"{consumer_key}:{consumer_secret}".encode('utf-8')
    return f"Basic {base64.b64encode(credentials).decode('ascii')}"
