"""
STK push (Lipa na M-Pesa Online) service.
Handles payment prompts and their status queries.
"""

import logging
from dataclasses import replace

from ..constants import APIEndpoints
from ..exceptions import ValidationError
from ..payloads import (
    StkPushRequest, StkPushResponse,
    StkStatusQueryRequest, StkStatusQueryResponse
)
from ..utils.signing import signed_fields
from ..utils.validators import mask_phone_number, validate_phone_number
from .base import BaseService

logger = logging.getLogger(__name__)


class StkPushService(BaseService):
    """
    Service for STK push operations.
    Handles initiation and status queries.
    """

    def _signed_fields(self):
        return signed_fields(self.config.business_short_code, self.config.pass_key)

    def stk_push(self, request: StkPushRequest) -> StkPushResponse:
        """
        Send an STK push prompt to the customer's phone.

        The caller's request is not modified. The sent copy carries the
        configured BusinessShortCode and PartyB, a fresh Timestamp and
        Password, and PartyA/PhoneNumber in MSISDN form. Amount, reference,
        description, callback URL and transaction type are sent as given.

        Args:
            request: STK push request

        Returns:
            StkPushResponse; its checkout_request_id identifies the
            payment in status queries and in the callback

        Raises:
            InvalidPhoneNumberError: If a phone number is malformed
            AuthenticationError: If no access token could be obtained
            APIError: If Daraja rejects the request
            NetworkError: If Daraja could not be reached
        """
        phone_number = validate_phone_number(request.phone_number)
        party_a = validate_phone_number(request.party_a)

        timestamp, password = self._signed_fields()
        api_request = replace(
            request,
            business_short_code=self.config.business_short_code,
            party_b=self.config.party_b,
            password=password,
            timestamp=timestamp,
            party_a=party_a,
            phone_number=phone_number,
        )

        logger.info(
            f"Initiating STK push. Reference: {request.account_reference}, "
            f"Phone: {mask_phone_number(phone_number)}"
        )
        response = self.execute(APIEndpoints.STK_PUSH, api_request, StkPushResponse)

        logger.info(
            f"STK push sent. Reference: {request.account_reference}, "
            f"CheckoutRequestID: {response.checkout_request_id}, "
            f"ResponseCode: {response.response_code}"
        )
        return response

    def query_stk_status(self, checkout_request_id: str) -> StkStatusQueryResponse:
        """
        Query the status of an STK push.

        Args:
            checkout_request_id: CheckoutRequestID returned by stk_push()

        Returns:
            StkStatusQueryResponse; result_code "0" means the customer paid
        """
        if not checkout_request_id or not str(checkout_request_id).strip():
            raise ValidationError("CheckoutRequestID is required")

        logger.info(f"Querying STK push status for: {checkout_request_id}")

        timestamp, password = self._signed_fields()
        query = StkStatusQueryRequest(
            business_short_code=self.config.business_short_code,
            password=password,
            timestamp=timestamp,
            checkout_request_id=str(checkout_request_id).strip(),
        )
        response = self.execute(APIEndpoints.STK_PUSH_QUERY, query, StkStatusQueryResponse)

        logger.info(
            f"STK push status retrieved. CheckoutRequestID: {checkout_request_id}, "
            f"ResultCode: {response.result_code}"
        )
        return response
