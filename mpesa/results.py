"""
Result wrapper for callers that prefer branching over exception handling.
"""

from typing import Any, Callable, Generic, Optional, TypeVar

from .exceptions import (
    APIError, AuthenticationError, MpesaException, NetworkError, ValidationError
)

T = TypeVar('T')


class ApiResult(Generic[T]):
    """
    Either a decoded payload or the MpesaException that prevented it.

    Inspect ``error`` with isinstance against ValidationError,
    AuthenticationError, APIError and NetworkError, or use ``kind``.
    """

    __slots__ = ('value', 'error')

    def __init__(self, value: Optional[T] = None, error: Optional[MpesaException] = None):
        if value is not None and error is not None:
            raise ValueError("ApiResult holds either a value or an error, not both")
        self.value = value
        self.error = error

    @classmethod
    def success(cls, value: T) -> 'ApiResult[T]':
        return cls(value=value)

    @classmethod
    def failure(cls, error: MpesaException) -> 'ApiResult[T]':
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[str]:
        """Error category: validation, auth, api, network or config."""
        if self.error is None:
            return None
        if isinstance(self.error, ValidationError):
            return 'validation'
        if isinstance(self.error, AuthenticationError):
            return 'auth'
        if isinstance(self.error, APIError):
            return 'api'
        if isinstance(self.error, NetworkError):
            return 'network'
        return 'config'

    def unwrap(self) -> T:
        """Return the value or raise the stored error."""
        if self.error is not None:
            raise self.error
        return self.value

    def __repr__(self):
        if self.ok:
            return f"ApiResult(value={self.value!r})"
        return f"ApiResult(error={self.error!r})"


def capture(func: Callable[..., T], *args: Any, **kwargs: Any) -> ApiResult[T]:
    """Call func and wrap its return value or MpesaException in an ApiResult."""
    try:
        return ApiResult.success(func(*args, **kwargs))
    except MpesaException as e:
        return ApiResult.failure(e)
