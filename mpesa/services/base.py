"""
Authenticated request execution shared by the Daraja business services.
"""

import logging
from typing import Any, Dict, Optional, Type, TypeVar, Union

import requests

from ..config import MpesaConfig
from ..exceptions import APIError, NetworkError
from ..payloads import DarajaPayload
from ..utils.http_client import HTTPClient
from .auth_service import AuthService

logger = logging.getLogger(__name__)

ResponseT = TypeVar('ResponseT', bound=DarajaPayload)


class BaseService:
    """
    Base class for services calling bearer-authenticated Daraja endpoints.
    """

    def __init__(
        self,
        config: MpesaConfig,
        auth_service: Optional[AuthService] = None,
        http_client: Optional[HTTPClient] = None
    ):
        self.config = config
        self.http_client = http_client or HTTPClient(timeout=config.timeout)
        self.auth_service = auth_service or AuthService(config, http_client=self.http_client)

    def execute(
        self,
        endpoint: str,
        payload: Union[DarajaPayload, Dict[str, Any]],
        response_class: Optional[Type[ResponseT]] = None
    ) -> Union[ResponseT, Dict[str, Any]]:
        """
        POST a payload to a Daraja endpoint with a bearer token.

        Sends exactly one request. A token refresh, when needed, is a
        separate request made by the auth service beforehand.

        Args:
            endpoint: API endpoint path
            payload: Request payload, a DarajaPayload or a plain dict
            response_class: Payload class to decode the response into;
                the decoded dict is returned when omitted

        Returns:
            Decoded response

        Raises:
            AuthenticationError: If no access token could be obtained
            APIError: If the endpoint answers with a non-2xx status
            NetworkError: If the request fails in transit or the success
                body cannot be decoded
        """
        token = self.auth_service.get_valid_token()

        url = self.config.get_full_url(endpoint)
        data = payload.to_dict() if isinstance(payload, DarajaPayload) else payload
        headers = {
            'Authorization': f'Bearer {token}',
            'Content-Type': 'application/json',
        }

        try:
            response = self.http_client.post(url, data=data, headers=headers)
        except requests.RequestException as e:
            raise NetworkError(f"Request to {endpoint} failed: {str(e)}") from e

        if not 200 <= response.status_code < 300:
            if response.status_code == 401:
                # Let the next call fetch a new token
                self.auth_service.invalidate_token(token)
            raise APIError(
                "API call failed",
                status_code=response.status_code,
                response_body=response.text
            )

        try:
            body = response.json()
            if response_class is None:
                if not isinstance(body, dict):
                    raise ValueError(f"Expected a JSON object, got {type(body).__name__}")
                return body
            return response_class.from_dict(body)
        except ValueError as e:
            raise NetworkError(
                f"Failed to parse API response: {str(e)}",
                error_code=response.status_code,
                response_data=response.text
            ) from e
