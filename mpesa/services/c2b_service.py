"""
Customer to business (C2B) service for Daraja.
"""

import logging
from dataclasses import replace

from ..constants import APIEndpoints
from ..payloads import C2bRegisterUrlRequest, C2bRegisterUrlResponse
from .base import BaseService

logger = logging.getLogger(__name__)


class C2bService(BaseService):
    """
    Service for C2B URL registration.
    """

    def register_url(self, request: C2bRegisterUrlRequest) -> C2bRegisterUrlResponse:
        """
        Register the confirmation and validation URLs for the short code.

        ShortCode is always the configured business short code. No password
        is needed for this endpoint.

        Args:
            request: Registration request

        Returns:
            C2bRegisterUrlResponse
        """
        api_request = replace(request, short_code=self.config.business_short_code)

        logger.info(
            f"Registering C2B URLs for short code {api_request.short_code}. "
            f"Confirmation: {request.confirmation_url}, Validation: {request.validation_url}"
        )
        response = self.execute(APIEndpoints.C2B_REGISTER_URL, api_request, C2bRegisterUrlResponse)

        logger.info(f"C2B URLs registered: {response.response_description}")
        return response
