"""
Authentication service for the Daraja API.
Handles access token generation and in-memory caching.
"""

import logging
import threading
import time
from typing import Callable, Optional

import requests

from ..config import MpesaConfig
from ..constants import TOKEN_EXPIRY_BUFFER_SECONDS
from ..exceptions import AuthenticationError
from ..payloads import AccessTokenResponse
from ..utils.http_client import HTTPClient
from ..utils.signing import basic_auth_header

logger = logging.getLogger(__name__)


class AccessToken:
    """A bearer token and the clock reading at which it expires."""

    __slots__ = ('token', 'expires_at')

    def __init__(self, token: str, expires_at: float):
        self.token = token
        self.expires_at = expires_at

    def is_fresh(self, now: float, buffer_seconds: float) -> bool:
        return now < self.expires_at - buffer_seconds

    def __repr__(self):
        return f"AccessToken(expires_at={self.expires_at})"


class AuthService:
    """
    Service for managing Daraja OAuth access tokens.

    The token is cached in memory and shared by every thread using this
    service. A single lock covers the freshness check, the fetch and the
    store, so callers racing on an empty or stale cache trigger one token
    request between them. Callers that were waiting on a refresh which
    failed receive that failure instead of repeating the request.
    """

    def __init__(
        self,
        config: MpesaConfig,
        http_client: Optional[HTTPClient] = None,
        clock: Callable[[], float] = time.monotonic,
        buffer_seconds: float = TOKEN_EXPIRY_BUFFER_SECONDS
    ):
        self.config = config
        self.http_client = http_client or HTTPClient(timeout=config.timeout)
        self.clock = clock
        self.buffer_seconds = buffer_seconds

        self._lock = threading.Lock()
        self._cached: Optional[AccessToken] = None
        self._completed_refreshes = 0
        self._last_failure: Optional[AuthenticationError] = None

    def generate_token(self) -> AccessToken:
        """
        Fetch a new access token from Daraja.

        Does not touch the cache; get_valid_token() stores the result.

        Returns:
            AccessToken with its expiry on this service's clock

        Raises:
            AuthenticationError: If the token endpoint fails or is unreachable
        """
        logger.info("Generating new M-Pesa access token")

        headers = {
            'Authorization': basic_auth_header(
                self.config.consumer_key, self.config.consumer_secret
            ),
        }

        try:
            response = self.http_client.get(self.config.auth_url, headers=headers)
        except requests.RequestException as e:
            raise AuthenticationError(
                f"Network error while fetching access token: {str(e)}"
            ) from e

        if not 200 <= response.status_code < 300:
            raise AuthenticationError(
                f"Failed to get access token. Status: {response.status_code}, Body: {response.text}",
                error_code=response.status_code,
                response_data=response.text
            )

        try:
            token_response = AccessTokenResponse.from_dict(response.json())
            expires_in = float(token_response.expires_in)
        except (TypeError, ValueError) as e:
            raise AuthenticationError(
                f"Failed to parse access token response: {str(e)}",
                error_code=response.status_code,
                response_data=response.text
            ) from e

        if not token_response.access_token:
            raise AuthenticationError(
                "Token generation failed: No access_token in response",
                error_code=response.status_code,
                response_data=response.text
            )

        return AccessToken(token_response.access_token, self.clock() + expires_in)

    def get_valid_token(self, force_refresh: bool = False) -> str:
        """
        Get a valid access token.
        Returns cached token if it is still fresh, otherwise generates new one.

        Args:
            force_refresh: Force generation of new token even if cached token exists

        Returns:
            Access token string, without the Bearer prefix

        Raises:
            AuthenticationError: If a new token had to be fetched and that failed
        """
        seen_refreshes = self._completed_refreshes

        with self._lock:
            cached = self._cached
            if not force_refresh and cached and cached.is_fresh(self.clock(), self.buffer_seconds):
                logger.debug("Using cached token")
                return cached.token

            if self._completed_refreshes != seen_refreshes and self._last_failure is not None:
                # A refresh that was in flight when we arrived has failed
                raise self._last_failure

            if force_refresh:
                logger.info("Force refresh requested, generating new token")
            elif cached:
                logger.info("Cached token close to expiry, refreshing")
            else:
                logger.info("No cached token found")

            self._last_failure = None
            try:
                fresh = self.generate_token()
            except AuthenticationError as e:
                self._last_failure = e
                raise
            finally:
                self._completed_refreshes += 1

            self._cached = fresh
            logger.info("Successfully generated and cached new token")
            return fresh.token

    def invalidate_token(self, token: Optional[str] = None):
        """
        Drop the cached token.
        Useful when you know a token is invalid.

        Args:
            token: The token that was rejected. When given, the cache is only
                cleared if it still holds that token, so a token refreshed
                meanwhile by another caller is kept.
        """
        with self._lock:
            if token is not None and (self._cached is None or self._cached.token != token):
                logger.debug("Rejected token already replaced, keeping cache")
                return
            logger.info("Invalidating cached token")
            self._cached = None

    def get_auth_header(self, force_refresh: bool = False) -> dict:
        """
        Get authorization header for API requests.

        Args:
            force_refresh: Force generation of new token

        Returns:
            Dictionary with Authorization header
        """
        token = self.get_valid_token(force_refresh=force_refresh)
        return {'Authorization': f'Bearer {token}'}
