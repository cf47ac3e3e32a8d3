"""
Configuration management for the M-Pesa Daraja client.
"""

import os

from .constants import (
    APIEndpoints, DEFAULT_ENVIRONMENT, DEFAULT_TIMEOUT, Environment
)
from .exceptions import ConfigurationError


def _parse_environment(value, strict=True):
    if isinstance(value, Environment):
        return value
    if not value:
        return DEFAULT_ENVIRONMENT
    try:
        return Environment(str(value).strip().lower())
    except ValueError:
        if not strict:
            return DEFAULT_ENVIRONMENT
        raise ConfigurationError(
            f"Unknown M-Pesa environment: {value}. "
            f"Expected one of: {', '.join(e.value for e in Environment)}"
        )


class MpesaConfig:
    """
    Immutable holder of the credentials and settings used to talk to Daraja.

    Values are validated lazily: a missing credential raises
    ConfigurationError when it is first needed, so a config that only
    registers C2B URLs does not need a passkey.
    """

    def __init__(
        self,
        consumer_key,
        consumer_secret,
        business_short_code,
        pass_key='',
        environment=DEFAULT_ENVIRONMENT,
        party_b=None,
        timeout=DEFAULT_TIMEOUT
    ):
        self._consumer_key = consumer_key or ''
        self._consumer_secret = consumer_secret or ''
        self._business_short_code = str(business_short_code or '')
        self._pass_key = pass_key or ''
        self._environment = _parse_environment(environment)
        self._party_b = str(party_b) if party_b else None
        self._timeout = timeout

    @classmethod
    def from_settings(cls):
        """
        Build a config from Django settings.

        Reads MPESA_CONSUMER_KEY, MPESA_CONSUMER_SECRET, MPESA_SHORTCODE,
        MPESA_PASSKEY, MPESA_ENVIRONMENT, MPESA_PARTY_B and MPESA_TIMEOUT.
        """
        from django.conf import settings

        return cls(
            consumer_key=getattr(settings, 'MPESA_CONSUMER_KEY', ''),
            consumer_secret=getattr(settings, 'MPESA_CONSUMER_SECRET', ''),
            business_short_code=getattr(settings, 'MPESA_SHORTCODE', ''),
            pass_key=getattr(settings, 'MPESA_PASSKEY', ''),
            environment=getattr(settings, 'MPESA_ENVIRONMENT', DEFAULT_ENVIRONMENT),
            party_b=getattr(settings, 'MPESA_PARTY_B', None),
            timeout=getattr(settings, 'MPESA_TIMEOUT', DEFAULT_TIMEOUT),
        )

    @classmethod
    def from_env(cls, environ=None):
        """
        Build a config from environment variables.

        Uses the same names as the Django settings. MPESA_ENVIRONMENT selects
        production only when it says so; anything else means sandbox.
        """
        environ = os.environ if environ is None else environ
        return cls(
            consumer_key=environ.get('MPESA_CONSUMER_KEY', ''),
            consumer_secret=environ.get('MPESA_CONSUMER_SECRET', ''),
            business_short_code=environ.get('MPESA_SHORTCODE', ''),
            pass_key=environ.get('MPESA_PASSKEY', ''),
            environment=_parse_environment(environ.get('MPESA_ENVIRONMENT'), strict=False),
            party_b=environ.get('MPESA_PARTY_B'),
            timeout=float(environ.get('MPESA_TIMEOUT', DEFAULT_TIMEOUT)),
        )

    @property
    def consumer_key(self):
        """Get Daraja consumer key."""
        if not self._consumer_key:
            raise ConfigurationError(
                "MPESA_CONSUMER_KEY is not configured. "
                "Please add it to your settings.py or .env file."
            )
        return self._consumer_key

    @property
    def consumer_secret(self):
        """Get Daraja consumer secret."""
        if not self._consumer_secret:
            raise ConfigurationError(
                "MPESA_CONSUMER_SECRET is not configured. "
                "Please add it to your settings.py or .env file."
            )
        return self._consumer_secret

    @property
    def business_short_code(self):
        """Get PayBill or till number."""
        if not self._business_short_code:
            raise ConfigurationError(
                "MPESA_SHORTCODE is not configured. "
                "Please add it to your settings.py or .env file."
            )
        return self._business_short_code

    @property
    def pass_key(self):
        """Get Lipa na M-Pesa Online passkey."""
        if not self._pass_key:
            raise ConfigurationError(
                "MPESA_PASSKEY is not configured. "
                "It is required for STK push requests."
            )
        return self._pass_key

    @property
    def party_b(self):
        """Receiving party for STK push, the business short code unless overridden."""
        return self._party_b or self.business_short_code

    @property
    def environment(self):
        return self._environment

    @property
    def timeout(self):
        return self._timeout

    @property
    def api_base_url(self):
        """Get Daraja API base URL for the configured environment."""
        return self._environment.base_url

    @property
    def auth_url(self):
        return self.get_full_url(APIEndpoints.GENERATE_TOKEN)

    def get_full_url(self, endpoint):
        """
        Get full URL for an API endpoint.

        Args:
            endpoint: API endpoint path

        Returns:
            Full URL combining base URL and endpoint
        """
        base = self.api_base_url.rstrip('/')
        endpoint = endpoint.lstrip('/')
        return f"{base}/{endpoint}"

    def __repr__(self):
        return (
            f"MpesaConfig(business_short_code={self._business_short_code!r}, "
            f"environment={self._environment.value!r})"
        )
