"""
Service modules for M-Pesa Daraja operations.
"""

from .auth_service import AuthService
from .base import BaseService
from .stk_push_service import StkPushService
from .c2b_service import C2bService

__all__ = [
    'AuthService',
    'BaseService',
    'StkPushService',
    'C2bService',
]
