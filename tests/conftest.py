"""
Pytest Configuration and Fixtures
"""
import json
from unittest.mock import Mock

import django
import pytest
import requests
from django.conf import settings

from mpesa.config import MpesaConfig
from mpesa.constants import Environment
from mpesa.utils.http_client import HTTPClient

SHORTCODE = "174379"
PASSKEY = "bfb279f9aa9bdbcf158e97dd71a467cd2e0c893059b10f78e6b72ada1ed2c919"


def pytest_configure():
    if not settings.configured:
        settings.configure(
            DEBUG=True,
            SECRET_KEY="mpesa-tests",
            ALLOWED_HOSTS=["*"],
            INSTALLED_APPS=[
                "django.contrib.contenttypes",
                "mpesa",
            ],
            DATABASES={},
            ROOT_URLCONF="mpesa.urls",
            USE_TZ=True,
            MPESA_CONSUMER_KEY="settings_key",
            MPESA_CONSUMER_SECRET="settings_secret",
            MPESA_SHORTCODE=SHORTCODE,
            MPESA_PASSKEY=PASSKEY,
            MPESA_ENVIRONMENT="sandbox",
        )
        django.setup()


def mock_http_response(json_data=None, status_code=200, text=None):
    """Return a mock requests.Response whose .json() returns json_data."""
    resp = Mock(spec=requests.Response)
    resp.status_code = status_code
    resp.ok = 200 <= status_code < 400
    if text is None:
        text = json.dumps(json_data) if json_data is not None else ""
    resp.text = text
    if json_data is not None:
        resp.json.return_value = json_data
    else:
        resp.json.side_effect = ValueError("Expecting value: line 1 column 1 (char 0)")
    resp.headers = {"Content-Type": "application/json"}
    return resp


def token_response(token="daraja_tok_abc", expires_in="3599"):
    """Valid Daraja OAuth token response (expires in ~1 hour)."""
    return mock_http_response({"access_token": token, "expires_in": expires_in})


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def config():
    return MpesaConfig(
        consumer_key="test_consumer_key",
        consumer_secret="test_consumer_secret",
        business_short_code=SHORTCODE,
        pass_key=PASSKEY,
        environment=Environment.SANDBOX,
    )


@pytest.fixture
def session():
    return Mock(spec=requests.Session)


@pytest.fixture
def http_client(session):
    return HTTPClient(session=session, timeout=5)


@pytest.fixture
def clock():
    return FakeClock()
