"""
Request, response and callback payloads exchanged with the Daraja API.

Each payload maps its Python attributes onto the PascalCase keys Daraja
uses on the wire. Responses tolerate unknown keys and missing ones.
"""

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional

from .constants import ResponseType, TransactionType
from .exceptions import ValidationError


def _coerce(enum_class, value):
    try:
        return enum_class(value)
    except ValueError:
        allowed = ', '.join(member.value for member in enum_class)
        raise ValidationError(f"Invalid {enum_class.__name__}: {value}. Expected one of: {allowed}")


class DarajaPayload:
    """Mixin converting dataclass payloads to and from Daraja JSON objects."""

    # attribute name -> JSON key
    json_keys: ClassVar[Dict[str, str]] = {}

    def to_dict(self) -> Dict[str, Any]:
        data = {}
        for f in fields(self):
            key = self.json_keys.get(f.name)
            if key is None:
                continue
            value = getattr(self, f.name)
            if value is None:
                continue
            data[key] = value.value if isinstance(value, Enum) else value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object for {cls.__name__}, got {type(data).__name__}")
        kwargs = {
            name: data.get(key)
            for name, key in cls.json_keys.items()
        }
        return cls(**kwargs)


@dataclass(frozen=True)
class AccessTokenResponse(DarajaPayload):
    access_token: Optional[str] = None
    expires_in: Optional[Any] = None

    json_keys: ClassVar[Dict[str, str]] = {
        'access_token': 'access_token',
        'expires_in': 'expires_in',
    }


@dataclass(frozen=True)
class StkPushRequest(DarajaPayload):
    """
    STK push (Lipa na M-Pesa Online) request.

    Build it with pay_bill() or buy_goods(). BusinessShortCode, PartyB,
    Password and Timestamp are filled in by the client when the request is
    sent; values supplied here for them are replaced.
    """
    amount: Any
    phone_number: str
    account_reference: str
    transaction_desc: str
    callback_url: str
    party_a: Optional[str] = None
    transaction_type: TransactionType = TransactionType.PAY_BILL
    party_b: Optional[str] = None
    business_short_code: Optional[str] = None
    password: Optional[str] = None
    timestamp: Optional[str] = None

    json_keys: ClassVar[Dict[str, str]] = {
        'business_short_code': 'BusinessShortCode',
        'password': 'Password',
        'timestamp': 'Timestamp',
        'transaction_type': 'TransactionType',
        'amount': 'Amount',
        'party_a': 'PartyA',
        'party_b': 'PartyB',
        'phone_number': 'PhoneNumber',
        'callback_url': 'CallBackURL',
        'account_reference': 'AccountReference',
        'transaction_desc': 'TransactionDesc',
    }

    def __post_init__(self):
        if self.party_a is None:
            object.__setattr__(self, 'party_a', self.phone_number)
        object.__setattr__(self, 'transaction_type', _coerce(TransactionType, self.transaction_type))

    @classmethod
    def pay_bill(cls, amount, phone_number, account_reference, transaction_desc, callback_url):
        """Standard PayBill request; the customer pays the configured short code."""
        return cls(
            amount=amount,
            phone_number=phone_number,
            account_reference=account_reference,
            transaction_desc=transaction_desc,
            callback_url=callback_url,
            transaction_type=TransactionType.PAY_BILL,
        )

    @classmethod
    def buy_goods(cls, amount, phone_number, account_reference, transaction_desc, callback_url):
        """Buy Goods (till) request. Set MPESA_PARTY_B to the till number."""
        return cls(
            amount=amount,
            phone_number=phone_number,
            account_reference=account_reference,
            transaction_desc=transaction_desc,
            callback_url=callback_url,
            transaction_type=TransactionType.BUY_GOODS,
        )


@dataclass(frozen=True)
class StkPushResponse(DarajaPayload):
    merchant_request_id: Optional[str] = None
    checkout_request_id: Optional[str] = None
    response_code: Optional[str] = None
    response_description: Optional[str] = None
    customer_message: Optional[str] = None

    json_keys: ClassVar[Dict[str, str]] = {
        'merchant_request_id': 'MerchantRequestID',
        'checkout_request_id': 'CheckoutRequestID',
        'response_code': 'ResponseCode',
        'response_description': 'ResponseDescription',
        'customer_message': 'CustomerMessage',
    }

    @property
    def accepted(self) -> bool:
        """Whether Safaricom accepted the request for processing."""
        return str(self.response_code) == '0'


@dataclass(frozen=True)
class StkStatusQueryRequest(DarajaPayload):
    business_short_code: str
    password: str
    timestamp: str
    checkout_request_id: str

    json_keys: ClassVar[Dict[str, str]] = {
        'business_short_code': 'BusinessShortCode',
        'password': 'Password',
        'timestamp': 'Timestamp',
        'checkout_request_id': 'CheckoutRequestID',
    }


@dataclass(frozen=True)
class StkStatusQueryResponse(DarajaPayload):
    response_code: Optional[str] = None
    response_description: Optional[str] = None
    merchant_request_id: Optional[str] = None
    checkout_request_id: Optional[str] = None
    result_code: Optional[str] = None
    result_desc: Optional[str] = None

    json_keys: ClassVar[Dict[str, str]] = {
        'response_code': 'ResponseCode',
        'response_description': 'ResponseDescription',
        'merchant_request_id': 'MerchantRequestID',
        'checkout_request_id': 'CheckoutRequestID',
        'result_code': 'ResultCode',
        'result_desc': 'ResultDesc',
    }

    @property
    def is_successful(self) -> bool:
        """Whether the customer completed the payment."""
        return str(self.result_code) == '0'


@dataclass(frozen=True)
class C2bRegisterUrlRequest(DarajaPayload):
    confirmation_url: str
    validation_url: str
    response_type: ResponseType = ResponseType.COMPLETED
    short_code: Optional[str] = None

    json_keys: ClassVar[Dict[str, str]] = {
        'short_code': 'ShortCode',
        'response_type': 'ResponseType',
        'confirmation_url': 'ConfirmationURL',
        'validation_url': 'ValidationURL',
    }

    def __post_init__(self):
        object.__setattr__(self, 'response_type', _coerce(ResponseType, self.response_type))


@dataclass(frozen=True)
class C2bRegisterUrlResponse(DarajaPayload):
    originator_conversation_id: Optional[str] = None
    conversation_id: Optional[str] = None
    response_description: Optional[str] = None
    response_code: Optional[str] = None

    json_keys: ClassVar[Dict[str, str]] = {
        'originator_conversation_id': 'OriginatorConversationID',
        'conversation_id': 'ConversationID',
        'response_description': 'ResponseDescription',
        'response_code': 'ResponseCode',
    }

    # Daraja has shipped this key misspelt
    _ORIGINATOR_ALIASES: ClassVar[tuple] = (
        'OriginatorConversationID',
        'OriginatorCoversationID',
        'OriginatorConverstionID',
    )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        response = super().from_dict(data)
        if response.originator_conversation_id is None:
            for key in cls._ORIGINATOR_ALIASES:
                if data.get(key) is not None:
                    return replace(response, originator_conversation_id=data[key])
        return response


@dataclass(frozen=True)
class CallbackItem:
    """A name/value pair from the STK callback metadata. Values are numbers or strings."""
    name: str
    value: Any = None


@dataclass(frozen=True)
class StkCallback:
    """Result of an STK push, as POSTed by Safaricom to the CallBackURL."""
    merchant_request_id: Optional[str]
    checkout_request_id: Optional[str]
    result_code: int
    result_desc: Optional[str]
    items: List[CallbackItem] = field(default_factory=list)

    @property
    def is_successful(self) -> bool:
        return self.result_code == 0

    @property
    def metadata(self) -> Dict[str, Any]:
        return {item.name: item.value for item in self.items}

    def get(self, name: str, default: Any = None) -> Any:
        return self.metadata.get(name, default)

    @property
    def amount(self):
        return self.get('Amount')

    @property
    def mpesa_receipt_number(self):
        return self.get('MpesaReceiptNumber')

    @property
    def transaction_date(self):
        return self.get('TransactionDate')

    @property
    def phone_number(self):
        return self.get('PhoneNumber')


@dataclass(frozen=True)
class C2bTransaction(DarajaPayload):
    """Payload Safaricom sends to the C2B validation and confirmation URLs."""
    transaction_type: Optional[str] = None
    transaction_id: Optional[str] = None
    transaction_time: Optional[str] = None
    transaction_amount: Optional[str] = None
    business_short_code: Optional[str] = None
    bill_ref_number: Optional[str] = None
    invoice_number: Optional[str] = None
    org_account_balance: Optional[str] = None
    third_party_trans_id: Optional[str] = None
    msisdn: Optional[str] = None
    first_name: Optional[str] = None
    middle_name: Optional[str] = None
    last_name: Optional[str] = None

    json_keys: ClassVar[Dict[str, str]] = {
        'transaction_type': 'TransactionType',
        'transaction_id': 'TransID',
        'transaction_time': 'TransTime',
        'transaction_amount': 'TransAmount',
        'business_short_code': 'BusinessShortCode',
        'bill_ref_number': 'BillRefNumber',
        'invoice_number': 'InvoiceNumber',
        'org_account_balance': 'OrgAccountBalance',
        'third_party_trans_id': 'ThirdPartyTransID',
        'msisdn': 'MSISDN',
        'first_name': 'FirstName',
        'middle_name': 'MiddleName',
        'last_name': 'LastName',
    }


@dataclass(frozen=True)
class C2bValidationResult(DarajaPayload):
    """Answer returned to Safaricom from the C2B validation URL."""
    result_code: Any
    result_desc: str

    json_keys: ClassVar[Dict[str, str]] = {
        'result_code': 'ResultCode',
        'result_desc': 'ResultDesc',
    }

    @classmethod
    def accept(cls, message: str = 'Accepted'):
        return cls(result_code=0, result_desc=message)

    @classmethod
    def reject(cls, message: str = 'Rejected', result_code: Any = 1):
        return cls(result_code=result_code, result_desc=message)

    @property
    def accepted(self) -> bool:
        return self.result_code == 0
