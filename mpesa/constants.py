"""
Constants and enums for M-Pesa Daraja API operations.
"""

from enum import Enum


class Environment(str, Enum):
    """Daraja environments and their base URLs."""
    SANDBOX = "sandbox"
    PRODUCTION = "production"

    @property
    def base_url(self):
        return BASE_URLS[self]


BASE_URLS = {
    Environment.SANDBOX: "https://sandbox.safaricom.co.ke",
    Environment.PRODUCTION: "https://api.safaricom.co.ke",
}


class TransactionType(str, Enum):
    """STK push transaction types."""
    PAY_BILL = "CustomerPayBillOnline"
    BUY_GOODS = "CustomerBuyGoodsOnline"


class ResponseType(str, Enum):
    """Action M-Pesa takes when the C2B validation URL is unreachable."""
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


# API Endpoints
class APIEndpoints:
    """Daraja API endpoints."""
    GENERATE_TOKEN = "/oauth/v1/generate?grant_type=client_credentials"

    # Lipa na M-Pesa Online
    STK_PUSH = "/mpesa/stkpush/v1/processrequest"
    STK_PUSH_QUERY = "/mpesa/stkpushquery/v1/query"

    # Customer to business
    C2B_REGISTER_URL = "/mpesa/c2b/v1/registerurl"


# Token settings
TOKEN_EXPIRY_BUFFER_SECONDS = 60  # Treat tokens as expired a minute early

# Request signing
GATEWAY_TIMEZONE = "Africa/Nairobi"
TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"

# Phone number settings
KENYA_COUNTRY_CODE = "254"
CANONICAL_PHONE_PATTERN = r"^2547[0-9]{8}$"

# Callback acknowledgement expected by Safaricom
CALLBACK_ACCEPTED = {"ResultCode": 0, "ResultDesc": "Accepted"}

# Default settings
DEFAULT_ENVIRONMENT = Environment.SANDBOX
DEFAULT_TIMEOUT = 30  # seconds
