"""
Payment confirmation verification.

A confirmation is trusted only when its HMAC signature checks out and the
provider itself reports the payment as captured, in the store currency, for
the amount the server computed.
"""
import hashlib
import hmac
import logging
from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings

from apps.common.errors import AmountMismatchError, PaymentVerificationError, SignatureError
from apps.common.money import from_minor_units, to_minor_units
from .provider_client import STATUS_CAPTURED, ProviderPayment, get_payment_provider_client

security_logger = logging.getLogger('security')


@dataclass(frozen=True)
class PaymentConfirmation:
    """Client-supplied proof of payment, untrusted until verified"""
    provider_order_id: str
    provider_payment_id: str
    provider_signature: str

    @classmethod
    def from_dict(cls, data: dict):
        return cls(
            provider_order_id=data.get('provider_order_id', ''),
            provider_payment_id=data.get('provider_payment_id', ''),
            provider_signature=data.get('provider_signature', ''),
        )


def compute_signature(provider_order_id: str, provider_payment_id: str, shared_secret: str) -> str:
    message = f"{provider_order_id}|{provider_payment_id}"
    return hmac.new(shared_secret.encode('utf-8'), message.encode('utf-8'), hashlib.sha256).hexdigest()


def verify_signature(provider_order_id, provider_payment_id, provider_signature, shared_secret) -> bool:
    """Constant-time check of HMAC-SHA256(order_id|payment_id)"""
    if not all(isinstance(value, str) and value for value in
               (provider_order_id, provider_payment_id, provider_signature, shared_secret)):
        return False
    expected = compute_signature(provider_order_id, provider_payment_id, shared_secret)
    return hmac.compare_digest(expected, provider_signature.strip().lower())


def is_captured(provider_payment: ProviderPayment) -> bool:
    return provider_payment is not None and provider_payment.status == STATUS_CAPTURED


def verify_captured_amount(provider_amount_minor: int, computed_total: Decimal, tolerance_minor_units: int) -> bool:
    return abs(int(provider_amount_minor) - to_minor_units(computed_total)) <= tolerance_minor_units


class PaymentVerifier:

    def __init__(self, provider_client=None, shared_secret=None, currency=None, tolerance_minor_units=None):
        self.provider_client = provider_client or get_payment_provider_client()
        self.shared_secret = shared_secret or settings.RAZORPAY_KEY_SECRET
        self.currency = (currency or settings.STORE_CURRENCY).upper()
        if tolerance_minor_units is None:
            tolerance_minor_units = settings.SETTLEMENT_AMOUNT_TOLERANCE_MINOR_UNITS
        self.tolerance_minor_units = tolerance_minor_units

    def verify(self, confirmation: PaymentConfirmation, computed_total: Decimal) -> ProviderPayment:
        """Return the provider's payment record or raise a PaymentVerificationError"""
        payment_id = confirmation.provider_payment_id

        if not verify_signature(confirmation.provider_order_id, payment_id,
                                confirmation.provider_signature, self.shared_secret):
            security_logger.warning(f"Invalid payment signature for payment {payment_id} "
                                    f"(provider order {confirmation.provider_order_id})")
            raise SignatureError(detail={'payment_id': payment_id})

        provider_payment = self.provider_client.fetch_payment(payment_id)

        if provider_payment.payment_id != payment_id:
            security_logger.warning(f"Provider returned payment {provider_payment.payment_id} for {payment_id}")
            raise PaymentVerificationError('Provider payment mismatch', detail={'payment_id': payment_id})

        if provider_payment.order_id and provider_payment.order_id != confirmation.provider_order_id:
            security_logger.warning(f"Payment {payment_id} belongs to provider order {provider_payment.order_id}, "
                                    f"not {confirmation.provider_order_id}")
            raise PaymentVerificationError('Provider order mismatch', detail={'payment_id': payment_id})

        if not is_captured(provider_payment):
            security_logger.warning(f"Payment {payment_id} not captured (status: {provider_payment.status})")
            raise PaymentVerificationError('Payment not captured',
                                           detail={'payment_id': payment_id, 'status': provider_payment.status})

        if provider_payment.currency != self.currency:
            security_logger.warning(f"Payment {payment_id} currency {provider_payment.currency} != {self.currency}")
            raise PaymentVerificationError('Currency mismatch',
                                           detail={'payment_id': payment_id, 'currency': provider_payment.currency})

        if not verify_captured_amount(provider_payment.amount, computed_total, self.tolerance_minor_units):
            actual = from_minor_units(provider_payment.amount)
            security_logger.warning(f"Payment {payment_id} amount mismatch: expected {computed_total}, captured {actual}")
            raise AmountMismatchError('Payment amount mismatch', expected=computed_total, actual=actual, source='provider')

        return provider_payment
