"""
Signals for M-Pesa callback events.
"""
from django.dispatch import Signal

# Sent when Safaricom posts the result of an STK push.
# Provides arguments:
# - callback: The parsed StkCallback
# - payload: The raw request body
stk_callback_received = Signal()

# Sent when Safaricom asks whether to accept a C2B payment.
# Provides arguments: transaction (C2bTransaction), payload (raw body).
# Receivers may return a C2bValidationResult; the first rejection wins.
c2b_validation_requested = Signal()

# Sent when Safaricom confirms a completed C2B payment.
# Provides arguments: transaction (C2bTransaction), payload (raw body).
c2b_confirmation_received = Signal()
