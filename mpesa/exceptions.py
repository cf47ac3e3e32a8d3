"""
Custom exceptions for M-Pesa Daraja operations.
"""


class MpesaException(Exception):
    """Base exception for all M-Pesa related errors."""

    def __init__(self, message, error_code=None, response_data=None):
        self.message = message
        self.error_code = error_code
        self.response_data = response_data
        super().__init__(self.message)


class ValidationError(MpesaException):
    """Raised when caller supplied input is rejected before any network activity."""
    pass


class InvalidPhoneNumberError(ValidationError):
    """Raised when phone number format is invalid."""
    pass


class CallbackError(ValidationError):
    """Raised when an inbound callback payload cannot be parsed."""
    pass


class AuthenticationError(MpesaException):
    """
    Raised when an access token cannot be obtained.

    Carries the HTTP status and body when the token endpoint answered with an
    error, or the transport error as ``__cause__`` when it could not be reached.
    """

    @property
    def status_code(self):
        return self.error_code

    @property
    def response_body(self):
        return self.response_data


class APIError(MpesaException):
    """Raised when a Daraja business endpoint returns a non-2xx status."""

    def __init__(self, message, status_code=None, response_body=None):
        super().__init__(
            f"{message} (Status: {status_code}, Body: {response_body})",
            error_code=status_code,
            response_data=response_body
        )

    @property
    def status_code(self):
        return self.error_code

    @property
    def response_body(self):
        return self.response_data


class NetworkError(MpesaException):
    """Raised on transport failures or unreadable success responses."""
    pass


class ConfigurationError(MpesaException):
    """Raised when there's a configuration issue."""
    pass
