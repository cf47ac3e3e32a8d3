"""
Unit Tests for the authenticated request pipeline and the Daraja services
"""
import base64
import logging
from datetime import datetime, timezone
from unittest.mock import patch

import pytest
import requests

from conftest import SHORTCODE, mock_http_response, token_response
from mpesa.client import MpesaClient
from mpesa.config import MpesaConfig
from mpesa.constants import APIEndpoints, ResponseType, TransactionType
from mpesa.exceptions import (
    APIError, AuthenticationError, InvalidPhoneNumberError, NetworkError, ValidationError
)
from mpesa.payloads import (
    C2bRegisterUrlRequest, C2bRegisterUrlResponse, StkPushRequest,
    StkPushResponse, StkStatusQueryResponse
)
from mpesa.services.auth_service import AuthService
from mpesa.services.base import BaseService
from mpesa.services.c2b_service import C2bService
from mpesa.services.stk_push_service import StkPushService

STK_PUSH_URL = "https://sandbox.safaricom.co.ke/mpesa/stkpush/v1/processrequest"

STK_ACCEPTED = {
    "MerchantRequestID": "29115-34620561-1",
    "CheckoutRequestID": "ws_CO_191220191020363925",
    "ResponseCode": "0",
    "ResponseDescription": "Success. Request accepted for processing",
    "CustomerMessage": "Success. Request accepted for processing",
}


def _sent_json(session):
    return session.post.call_args.kwargs["json"]


@pytest.fixture
def auth_service(config, http_client):
    return AuthService(config, http_client=http_client)


@pytest.fixture
def logged_in(session):
    session.get.return_value = token_response("bearer_tok")
    return session


class TestExecute:

    @pytest.fixture
    def service(self, config, auth_service, http_client):
        return BaseService(config, auth_service, http_client)

    def test_posts_json_with_bearer_token(self, service, logged_in):
        logged_in.post.return_value = mock_http_response({"ok": True})

        result = service.execute(APIEndpoints.STK_PUSH, {"Amount": 1})

        assert result == {"ok": True}
        logged_in.post.assert_called_once()
        call = logged_in.post.call_args
        assert call.args[0] == STK_PUSH_URL
        assert call.kwargs["json"] == {"Amount": 1}
        assert call.kwargs["headers"]["Authorization"] == "Bearer bearer_tok"
        assert call.kwargs["headers"]["Content-Type"] == "application/json"

    def test_decodes_into_response_class(self, service, logged_in):
        logged_in.post.return_value = mock_http_response(dict(STK_ACCEPTED, Extra="ignored"))

        response = service.execute(APIEndpoints.STK_PUSH, {}, StkPushResponse)

        assert isinstance(response, StkPushResponse)
        assert response.checkout_request_id == "ws_CO_191220191020363925"
        assert response.accepted

    def test_400_raises_api_error_with_verbatim_body(self, service, logged_in):
        body = '{"requestId":"1-2","errorCode":"400.002.02","errorMessage":"Bad Request - Invalid Amount"}'
        logged_in.post.return_value = mock_http_response(status_code=400, text=body)

        with pytest.raises(APIError) as exc_info:
            service.execute(APIEndpoints.STK_PUSH, {})

        assert exc_info.value.status_code == 400
        assert exc_info.value.response_body == body

    def test_500_raises_api_error(self, service, logged_in):
        logged_in.post.return_value = mock_http_response(status_code=500, text="Internal Server Error")

        with pytest.raises(APIError) as exc_info:
            service.execute(APIEndpoints.STK_PUSH, {})

        assert exc_info.value.status_code == 500

    def test_401_drops_cached_token(self, service, logged_in):
        logged_in.post.return_value = mock_http_response(status_code=401, text="Invalid Access Token")

        with pytest.raises(APIError):
            service.execute(APIEndpoints.STK_PUSH, {})
        with pytest.raises(APIError):
            service.execute(APIEndpoints.STK_PUSH, {})

        assert logged_in.get.call_count == 2
        assert logged_in.post.call_count == 2

    def test_late_401_keeps_token_refreshed_meanwhile(self, service, auth_service, session):
        session.get.side_effect = [token_response("stale"), token_response("fresh")]

        def slow_rejection(url, **kwargs):
            # another caller refreshes while this request is in flight
            auth_service.get_valid_token(force_refresh=True)
            return mock_http_response(status_code=401, text="Invalid Access Token")

        session.post.side_effect = slow_rejection

        with pytest.raises(APIError):
            service.execute(APIEndpoints.STK_PUSH, {})

        assert auth_service.get_valid_token() == "fresh"
        assert session.get.call_count == 2

    def test_disconnect_raises_network_error(self, service, logged_in):
        cause = requests.ConnectionError("Connection aborted")
        logged_in.post.side_effect = cause

        with pytest.raises(NetworkError) as exc_info:
            service.execute(APIEndpoints.STK_PUSH, {})

        assert exc_info.value.__cause__ is cause
        assert not isinstance(exc_info.value, APIError)

    def test_timeout_raises_network_error(self, service, logged_in):
        logged_in.post.side_effect = requests.Timeout("read timed out")

        with pytest.raises(NetworkError):
            service.execute(APIEndpoints.STK_PUSH, {})

    def test_unparseable_success_body_is_network_error(self, service, logged_in):
        logged_in.post.return_value = mock_http_response(text="<html>gateway</html>")

        with pytest.raises(NetworkError, match="Failed to parse API response") as exc_info:
            service.execute(APIEndpoints.STK_PUSH, {}, StkPushResponse)

        assert exc_info.value.response_data == "<html>gateway</html>"

    def test_non_object_success_body_is_network_error(self, service, logged_in):
        logged_in.post.return_value = mock_http_response(["not", "an", "object"])

        with pytest.raises(NetworkError):
            service.execute(APIEndpoints.STK_PUSH, {}, StkPushResponse)

    def test_auth_failure_propagates_unchanged(self, service, session):
        session.get.return_value = mock_http_response({"errorMessage": "bad"}, status_code=400)

        with pytest.raises(AuthenticationError):
            service.execute(APIEndpoints.STK_PUSH, {})

        session.post.assert_not_called()

    def test_token_is_fetched_once_across_calls(self, service, logged_in):
        logged_in.post.return_value = mock_http_response({"ok": True})

        service.execute(APIEndpoints.STK_PUSH, {})
        service.execute(APIEndpoints.STK_PUSH_QUERY, {})

        assert logged_in.get.call_count == 1
        assert logged_in.post.call_count == 2


class TestStkPush:

    @pytest.fixture
    def service(self, config, auth_service, http_client):
        return StkPushService(config, auth_service, http_client)

    @pytest.fixture
    def request_(self):
        return StkPushRequest.pay_bill(
            amount="10",
            phone_number="0712345678",
            account_reference="INV-001",
            transaction_desc="Invoice payment",
            callback_url="https://example.com/mpesa/callback/stk/",
        )

    def test_injects_signed_fields(self, service, logged_in, request_):
        logged_in.post.return_value = mock_http_response(STK_ACCEPTED)

        response = service.stk_push(request_)

        sent = _sent_json(logged_in)
        assert response.checkout_request_id == STK_ACCEPTED["CheckoutRequestID"]
        assert sent["BusinessShortCode"] == SHORTCODE
        assert sent["PartyB"] == SHORTCODE
        assert sent["PartyA"] == "254712345678"
        assert sent["PhoneNumber"] == "254712345678"
        assert len(sent["Timestamp"]) == 14 and sent["Timestamp"].isdigit()
        decoded = base64.b64decode(sent["Password"]).decode("utf-8")
        assert decoded == SHORTCODE + service.config.pass_key + sent["Timestamp"]

    def test_phone_number_is_masked_in_logs(self, service, logged_in, request_, caplog):
        logged_in.post.return_value = mock_http_response(STK_ACCEPTED)

        with caplog.at_level(logging.DEBUG, logger="mpesa"):
            service.stk_push(request_)

        assert "254712***678" in caplog.text
        assert "254712345678" not in caplog.text

    def test_caller_fields_pass_through(self, service, logged_in, request_):
        logged_in.post.return_value = mock_http_response(STK_ACCEPTED)

        service.stk_push(request_)

        sent = _sent_json(logged_in)
        assert sent["Amount"] == "10"
        assert sent["AccountReference"] == "INV-001"
        assert sent["TransactionDesc"] == "Invoice payment"
        assert sent["CallBackURL"] == "https://example.com/mpesa/callback/stk/"
        assert sent["TransactionType"] == "CustomerPayBillOnline"

    def test_password_matches_configured_passkey(self, http_client, logged_in):
        config = MpesaConfig("k", "s", "174379", pass_key="X")
        service = StkPushService(config, AuthService(config, http_client=http_client), http_client)
        logged_in.post.return_value = mock_http_response(STK_ACCEPTED)
        fixed = datetime(2025, 10, 21, 7, 59, 21, tzinfo=timezone.utc)

        with patch("mpesa.utils.signing.datetime") as mock_datetime:
            mock_datetime.now.return_value = fixed
            service.stk_push(StkPushRequest.pay_bill(
                amount=1,
                phone_number="254712345678",
                account_reference="ref",
                transaction_desc="desc",
                callback_url="https://example.com/cb",
            ))

        sent = _sent_json(logged_in)
        assert sent["Timestamp"] == "20251021105921"
        assert sent["Password"] == base64.b64encode(b"174379X20251021105921").decode("ascii")

    def test_caller_shortcode_and_party_b_are_replaced(self, service, logged_in, request_):
        from dataclasses import replace
        logged_in.post.return_value = mock_http_response(STK_ACCEPTED)

        service.stk_push(replace(request_, business_short_code="999999", party_b="888888", password="x"))

        sent = _sent_json(logged_in)
        assert sent["BusinessShortCode"] == SHORTCODE
        assert sent["PartyB"] == SHORTCODE
        assert sent["Password"] != "x"

    def test_configured_party_b_is_used_for_till(self, http_client, logged_in):
        config = MpesaConfig("k", "s", "174379", pass_key="X", party_b="600000")
        service = StkPushService(config, AuthService(config, http_client=http_client), http_client)
        logged_in.post.return_value = mock_http_response(STK_ACCEPTED)

        service.stk_push(StkPushRequest.buy_goods(
            amount=1,
            phone_number="0712345678",
            account_reference="ref",
            transaction_desc="desc",
            callback_url="https://example.com/cb",
        ))

        sent = _sent_json(logged_in)
        assert sent["BusinessShortCode"] == "174379"
        assert sent["PartyB"] == "600000"
        assert sent["TransactionType"] == TransactionType.BUY_GOODS.value

    def test_caller_request_is_not_mutated(self, service, logged_in, request_):
        logged_in.post.return_value = mock_http_response(STK_ACCEPTED)

        service.stk_push(request_)

        assert request_.phone_number == "0712345678"
        assert request_.password is None
        assert request_.business_short_code is None

    def test_each_call_is_signed_afresh(self, service, logged_in, request_):
        logged_in.post.return_value = mock_http_response(STK_ACCEPTED)

        with patch("mpesa.services.stk_push_service.signed_fields") as mock_signed:
            mock_signed.side_effect = [("20250101000000", "p1"), ("20250101000001", "p2")]
            service.stk_push(request_)
            service.stk_push(request_)

        passwords = [c.kwargs["json"]["Password"] for c in logged_in.post.call_args_list]
        assert passwords == ["p1", "p2"]

    def test_invalid_phone_fails_before_network(self, service, session, request_):
        from dataclasses import replace

        with pytest.raises(InvalidPhoneNumberError):
            service.stk_push(replace(request_, phone_number="0812345678", party_a="0812345678"))

        session.get.assert_not_called()
        session.post.assert_not_called()

    def test_rejected_push_raises_api_error(self, service, logged_in, request_):
        body = '{"errorCode":"400.002.02","errorMessage":"Bad Request - Invalid PhoneNumber"}'
        logged_in.post.return_value = mock_http_response(status_code=400, text=body)

        with pytest.raises(APIError) as exc_info:
            service.stk_push(request_)

        assert exc_info.value.response_body == body


class TestStkQuery:

    @pytest.fixture
    def service(self, config, auth_service, http_client):
        return StkPushService(config, auth_service, http_client)

    def test_query_is_signed(self, service, logged_in):
        logged_in.post.return_value = mock_http_response({
            "ResponseCode": "0",
            "ResponseDescription": "The service request has been accepted successsfully",
            "MerchantRequestID": "22205-34066-1",
            "CheckoutRequestID": "ws_CO_13012021093521236557",
            "ResultCode": "0",
            "ResultDesc": "The service request is processed successfully.",
        })

        response = service.query_stk_status("ws_CO_13012021093521236557")

        call = logged_in.post.call_args
        sent = call.kwargs["json"]
        assert call.args[0] == "https://sandbox.safaricom.co.ke/mpesa/stkpushquery/v1/query"
        assert set(sent) == {"BusinessShortCode", "Password", "Timestamp", "CheckoutRequestID"}
        assert sent["BusinessShortCode"] == SHORTCODE
        assert sent["CheckoutRequestID"] == "ws_CO_13012021093521236557"
        assert isinstance(response, StkStatusQueryResponse)
        assert response.is_successful
        assert response.result_desc == "The service request is processed successfully."

    def test_cancelled_payment_is_not_successful(self, service, logged_in):
        logged_in.post.return_value = mock_http_response({
            "ResponseCode": "0",
            "ResultCode": "1032",
            "ResultDesc": "Request cancelled by user",
        })

        assert not service.query_stk_status("ws_CO_1").is_successful

    def test_blank_checkout_id_is_rejected(self, service, session):
        with pytest.raises(ValidationError):
            service.query_stk_status("  ")

        session.post.assert_not_called()


class TestC2bRegistration:

    @pytest.fixture
    def service(self, config, auth_service, http_client):
        return C2bService(config, auth_service, http_client)

    def test_injects_short_code_without_signing(self, service, logged_in):
        logged_in.post.return_value = mock_http_response({
            "OriginatorCoversationID": "6e86-45dd-91ac-fd5d4178ab523408729",
            "ConversationID": "AG_20200120_0000417d5bb1ae4b5e7a",
            "ResponseDescription": "success",
        })

        response = service.register_url(C2bRegisterUrlRequest(
            confirmation_url="https://example.com/mpesa/c2b/confirmation/",
            validation_url="https://example.com/mpesa/c2b/validation/",
            response_type=ResponseType.CANCELLED,
            short_code="999999",
        ))

        sent = _sent_json(logged_in)
        assert logged_in.post.call_args.args[0] == "https://sandbox.safaricom.co.ke/mpesa/c2b/v1/registerurl"
        assert sent == {
            "ShortCode": SHORTCODE,
            "ResponseType": "Cancelled",
            "ConfirmationURL": "https://example.com/mpesa/c2b/confirmation/",
            "ValidationURL": "https://example.com/mpesa/c2b/validation/",
        }
        assert isinstance(response, C2bRegisterUrlResponse)
        assert response.originator_conversation_id == "6e86-45dd-91ac-fd5d4178ab523408729"
        assert response.response_description == "success"

    def test_registration_does_not_need_passkey(self, http_client, logged_in):
        config = MpesaConfig("k", "s", "600000")
        service = C2bService(config, AuthService(config, http_client=http_client), http_client)
        logged_in.post.return_value = mock_http_response({"ResponseDescription": "success"})

        service.register_url(C2bRegisterUrlRequest(
            confirmation_url="https://example.com/c", validation_url="https://example.com/v"
        ))

        assert _sent_json(logged_in)["ResponseType"] == "Completed"

    def test_unknown_response_type_is_rejected(self):
        with pytest.raises(ValidationError, match="Invalid ResponseType"):
            C2bRegisterUrlRequest(
                confirmation_url="https://example.com/c",
                validation_url="https://example.com/v",
                response_type="Maybe",
            )


class TestMpesaClient:

    def test_services_share_session_and_token(self, config, logged_in):
        logged_in.post.side_effect = [
            mock_http_response(STK_ACCEPTED),
            mock_http_response({"ResponseCode": "0", "ResultCode": "0"}),
        ]
        client = MpesaClient(config, session=logged_in)

        push = client.stk_push(StkPushRequest.pay_bill(
            amount=1,
            phone_number="712345678",
            account_reference="ref",
            transaction_desc="desc",
            callback_url="https://example.com/cb",
        ))
        status = client.query_stk_status(push.checkout_request_id)

        assert status.is_successful
        assert logged_in.get.call_count == 1
        assert client.stk_push_service.auth_service is client.c2b_service.auth_service

    def test_defaults_to_django_settings(self, session):
        client = MpesaClient(session=session)

        assert client.config.consumer_key == "settings_key"
        assert client.config.business_short_code == SHORTCODE

    def test_close_closes_session(self, config, session):
        with MpesaClient(config, session=session):
            pass

        session.close.assert_called_once()
