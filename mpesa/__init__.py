"""
M-Pesa Daraja Utility for Django

A modular, reusable utility for M-Pesa STK push payments, status queries
and C2B callbacks.
"""

__version__ = "0.1.0"
