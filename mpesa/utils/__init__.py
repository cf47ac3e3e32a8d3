"""
Utility modules for M-Pesa Daraja operations.
"""

from .http_client import HTTPClient
from .validators import validate_phone_number, mask_phone_number
from .signing import (
    generate_timestamp,
    generate_password,
    signed_fields,
    basic_auth_header
)
from .callbacks import parse_stk_callback, parse_c2b_transaction, verify_webhook_ip

__all__ = [
    'HTTPClient',
    'validate_phone_number',
    'mask_phone_number',
    'generate_timestamp',
    'generate_password',
    'signed_fields',
    'basic_auth_header',
    'parse_stk_callback',
    'parse_c2b_transaction',
    'verify_webhook_ip',
]
