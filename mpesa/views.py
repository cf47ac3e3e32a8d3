"""
Views receiving M-Pesa callbacks.
"""

import logging
from django.conf import settings
from django.http import JsonResponse, HttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from .constants import CALLBACK_ACCEPTED
from .exceptions import CallbackError
from .payloads import C2bValidationResult
from .signals import (
    stk_callback_received, c2b_validation_requested, c2b_confirmation_received
)
from .utils.callbacks import parse_stk_callback, parse_c2b_transaction, verify_webhook_ip

logger = logging.getLogger(__name__)


def _get_client_ip(request):
    remote_addr = request.META.get('REMOTE_ADDR')
    trusted_proxies = getattr(settings, 'MPESA_TRUSTED_PROXIES', [])
    if not trusted_proxies or remote_addr not in trusted_proxies:
        return remote_addr

    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR', '')
    hops = [hop.strip() for hop in x_forwarded_for.split(',') if hop.strip()]
    # Nearest hop first; entries left of the first untrusted one are client-controlled
    for hop in reversed(hops):
        if hop not in trusted_proxies:
            return hop
    return remote_addr


def _is_allowed_source(request):
    allowed_ips = getattr(settings, 'MPESA_WEBHOOK_VERIFY_IPS', [])
    if not allowed_ips:
        return True
    client_ip = _get_client_ip(request)
    if not verify_webhook_ip(client_ip, allowed_ips):
        logger.warning(f"Unauthorized M-Pesa callback IP: {client_ip}")
        return False
    return True


def _bad_request(error):
    logger.warning(f"Rejected malformed M-Pesa callback: {error.message}")
    return JsonResponse({'ResultCode': 1, 'ResultDesc': error.message}, status=400)


@csrf_exempt
@require_POST
def stk_callback(request):
    """
    Handle STK push result callbacks.
    """
    if not _is_allowed_source(request):
        return HttpResponse(status=403)

    try:
        callback = parse_stk_callback(request.body)
    except CallbackError as e:
        return _bad_request(e)

    logger.info(
        f"Received STK callback. CheckoutRequestID: {callback.checkout_request_id}, "
        f"ResultCode: {callback.result_code}"
    )
    stk_callback_received.send(sender=callback.__class__, callback=callback, payload=request.body)
    return JsonResponse(CALLBACK_ACCEPTED)


@csrf_exempt
@require_POST
def c2b_validation(request):
    """
    Handle C2B validation requests.
    Accepts the payment unless a signal receiver rejects it.
    """
    if not _is_allowed_source(request):
        return HttpResponse(status=403)

    try:
        transaction = parse_c2b_transaction(request.body)
    except CallbackError as e:
        return _bad_request(e)

    logger.info(
        f"Received C2B validation. TransID: {transaction.transaction_id}, "
        f"BillRefNumber: {transaction.bill_ref_number}"
    )

    result = C2bValidationResult.accept()
    responses = c2b_validation_requested.send(
        sender=transaction.__class__, transaction=transaction, payload=request.body
    )
    for _receiver, response in responses:
        if isinstance(response, C2bValidationResult) and not response.accepted:
            logger.info(f"C2B payment {transaction.transaction_id} rejected: {response.result_desc}")
            result = response
            break

    return JsonResponse(result.to_dict())


@csrf_exempt
@require_POST
def c2b_confirmation(request):
    """
    Handle C2B payment confirmations.
    """
    if not _is_allowed_source(request):
        return HttpResponse(status=403)

    try:
        transaction = parse_c2b_transaction(request.body)
    except CallbackError as e:
        return _bad_request(e)

    logger.info(
        f"Received C2B confirmation. TransID: {transaction.transaction_id}, "
        f"Amount: {transaction.transaction_amount}"
    )
    c2b_confirmation_received.send(
        sender=transaction.__class__, transaction=transaction, payload=request.body
    )
    return JsonResponse(CALLBACK_ACCEPTED)
