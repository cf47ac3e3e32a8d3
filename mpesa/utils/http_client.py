"""
HTTP client for Daraja API communication.
"""

import logging
from typing import Any, Dict, Optional

import requests

from mpesa.constants import DEFAULT_TIMEOUT
from mpesa.utils.validators import mask_phone_number

logger = logging.getLogger(__name__)


class HTTPClient:
    """
    Thin wrapper around a requests session used for every Daraja call.

    It sends the request and logs it; classifying the response is left to
    the caller, since a failed token fetch and a failed business call map
    to different errors. Transport exceptions from requests propagate.
    """

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = DEFAULT_TIMEOUT):
        """
        Initialize HTTP client.

        Args:
            session: Session to send requests through; a new one by default
            timeout: Request timeout in seconds
        """
        self.session = session or requests.Session()
        self.timeout = timeout

    def _log_request(self, method: str, url: str, headers: Dict, data: Optional[Dict] = None):
        """Log API request details."""
        logger.info(f"M-Pesa API Request: {method} {url}")
        logger.debug(f"Headers: {self._sanitize_headers(headers)}")
        if data:
            logger.debug(f"Payload: {self._sanitize_payload(data)}")

    def _log_response(self, response: requests.Response):
        """Log API response details."""
        logger.info(f"M-Pesa API Response: {response.status_code}")
        logger.debug(f"Response: {response.text}")

    def _sanitize_headers(self, headers: Dict) -> Dict:
        """Remove sensitive data from headers for logging."""
        sanitized = dict(headers)
        auth = sanitized.get('Authorization')
        if auth:
            scheme = auth.split(' ', 1)[0]
            sanitized['Authorization'] = f'{scheme} ***'
        return sanitized

    def _sanitize_payload(self, data: Dict) -> Dict:
        sanitized = dict(data)
        if sanitized.get('Password'):
            sanitized['Password'] = '***'
        for key in ('PartyA', 'PhoneNumber'):
            if sanitized.get(key):
                sanitized[key] = mask_phone_number(sanitized[key])
        return sanitized

    def post(
        self,
        url: str,
        data: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> requests.Response:
        """
        Make POST request with a JSON body.

        Args:
            url: Absolute request URL
            data: Request payload
            headers: Request headers

        Returns:
            The raw response
        """
        headers = dict(headers or {})
        headers.setdefault('Content-Type', 'application/json')

        self._log_request('POST', url, headers, data)
        response = self.session.post(
            url,
            json=data,
            headers=headers,
            timeout=self.timeout
        )
        self._log_response(response)
        return response

    def get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> requests.Response:
        """
        Make GET request.

        Args:
            url: Absolute request URL
            params: Query parameters
            headers: Request headers

        Returns:
            The raw response
        """
        headers = dict(headers or {})

        self._log_request('GET', url, headers)
        response = self.session.get(
            url,
            params=params,
            headers=headers,
            timeout=self.timeout
        )
        self._log_response(response)
        return response

    def close(self):
        """Close the session."""
        self.session.close()
