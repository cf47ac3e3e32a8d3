"""
Entry point for calling the Daraja API.
"""

from typing import Callable, Optional

import requests

from .config import MpesaConfig
from .payloads import (
    C2bRegisterUrlRequest, C2bRegisterUrlResponse,
    StkPushRequest, StkPushResponse, StkStatusQueryResponse
)
from .services.auth_service import AuthService
from .services.c2b_service import C2bService
from .services.stk_push_service import StkPushService
from .utils.http_client import HTTPClient


class MpesaClient:
    """
    Client for the Daraja STK push and C2B APIs.

    One client owns one HTTP session and one token cache, shared by all of
    its services. It is safe to use from several threads.

    Example::

        client = MpesaClient()  # reads MPESA_* from Django settings
        response = client.stk_push(StkPushRequest.pay_bill(
            amount=1,
            phone_number="0712345678",
            account_reference="INV-001",
            transaction_desc="Invoice payment",
            callback_url="https://example.com/mpesa/callback/stk/",
        ))
        status = client.query_stk_status(response.checkout_request_id)
    """

    def __init__(
        self,
        config: Optional[MpesaConfig] = None,
        session: Optional[requests.Session] = None,
        clock: Optional[Callable[[], float]] = None
    ):
        self.config = config or MpesaConfig.from_settings()
        self.http_client = HTTPClient(session=session, timeout=self.config.timeout)

        auth_kwargs = {'clock': clock} if clock is not None else {}
        self.auth_service = AuthService(self.config, http_client=self.http_client, **auth_kwargs)
        self.stk_push_service = StkPushService(self.config, self.auth_service, self.http_client)
        self.c2b_service = C2bService(self.config, self.auth_service, self.http_client)

    def get_access_token(self, force_refresh: bool = False) -> str:
        return self.auth_service.get_valid_token(force_refresh=force_refresh)

    def stk_push(self, request: StkPushRequest) -> StkPushResponse:
        return self.stk_push_service.stk_push(request)

    def query_stk_status(self, checkout_request_id: str) -> StkStatusQueryResponse:
        return self.stk_push_service.query_stk_status(checkout_request_id)

    def register_c2b_url(self, request: C2bRegisterUrlRequest) -> C2bRegisterUrlResponse:
        return self.c2b_service.register_url(request)

    def close(self):
        self.http_client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
