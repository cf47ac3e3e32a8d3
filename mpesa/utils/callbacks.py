"""
Parsing and source verification for callbacks Safaricom sends to the
merchant's own endpoints.
"""

import json
from typing import Any, Dict, Union

from ..exceptions import CallbackError
from ..payloads import C2bTransaction, CallbackItem, StkCallback

CallbackBody = Union[bytes, str, Dict[str, Any]]


def _load(body: CallbackBody) -> Dict[str, Any]:
    if isinstance(body, dict):
        return body
    try:
        data = json.loads(body)
    except (TypeError, ValueError) as e:
        raise CallbackError(f"Callback body is not valid JSON: {str(e)}", response_data=body) from e
    if not isinstance(data, dict):
        raise CallbackError("Callback body must be a JSON object", response_data=body)
    return data


def parse_stk_callback(body: CallbackBody) -> StkCallback:
    """
    Parse the JSON Safaricom POSTs to an STK push CallBackURL.

    CallbackMetadata is only present for completed payments, so a missing
    item list yields an empty one. Unknown keys are ignored.

    Raises:
        CallbackError: If the body is not JSON or lacks Body.stkCallback
    """
    data = _load(body)

    envelope = data.get('Body')
    stk = envelope.get('stkCallback') if isinstance(envelope, dict) else None
    if not isinstance(stk, dict):
        raise CallbackError("Missing stkCallback in Body", response_data=data)

    try:
        result_code = int(stk.get('ResultCode'))
    except (TypeError, ValueError) as e:
        raise CallbackError(
            f"Invalid ResultCode in callback: {stk.get('ResultCode')!r}",
            response_data=data
        ) from e

    metadata = stk.get('CallbackMetadata')
    raw_items = (metadata.get('Item') if isinstance(metadata, dict) else None) or []
    if not isinstance(raw_items, list):
        raise CallbackError("CallbackMetadata.Item must be a list", response_data=data)
    items = [
        CallbackItem(name=item.get('Name'), value=item.get('Value'))
        for item in raw_items
        if isinstance(item, dict)
    ]

    return StkCallback(
        merchant_request_id=stk.get('MerchantRequestID'),
        checkout_request_id=stk.get('CheckoutRequestID'),
        result_code=result_code,
        result_desc=stk.get('ResultDesc'),
        items=items,
    )


def parse_c2b_transaction(body: CallbackBody) -> C2bTransaction:
    """
    Parse the flat payload sent to the C2B validation and confirmation URLs.

    Raises:
        CallbackError: If the body is not JSON or carries no TransID
    """
    data = _load(body)
    if not data.get('TransID'):
        raise CallbackError("Missing TransID in C2B payload", response_data=data)
    return C2bTransaction.from_dict(data)


def verify_webhook_ip(request_ip: str, allowed_ips: list) -> bool:
    """
    Verify that a callback comes from an allowed IP address.

    Args:
        request_ip: IP address of the request
        allowed_ips: List of allowed IP addresses

    Returns:
        True if IP is allowed, False otherwise
    """
    if not allowed_ips:
        # If no IPs configured, allow all
        return True

    return request_ip in allowed_ips
