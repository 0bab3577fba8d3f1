"""
Settlement error taxonomy.

Every error carries a machine-readable ``kind`` and the HTTP status the API
layer maps it to. ``public_message`` is what the caller sees; for payment
verification failures it is deliberately generic while ``detail`` keeps the
diagnostic data for server-side logs.
"""
from rest_framework import status


class SettlementError(Exception):
    """Base class for every failure raised by the settlement engine"""

    kind = 'settlement_error'
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Order could not be settled'

    def __init__(self, message=None, detail=None):
        self.message = message or self.default_message
        self.detail = detail or {}
        super().__init__(self.message)

    @property
    def public_message(self):
        return self.message

    def public_payload(self):
        """Data safe to return to the caller"""
        return {'kind': self.kind}


class ValidationError(SettlementError):
    """Malformed settlement input (shipping address, missing confirmation fields)"""

    kind = 'validation_error'
    default_message = 'Validation failed'

    def __init__(self, message=None, errors=None):
        super().__init__(message, detail={'errors': errors or []})
        self.errors = errors or []

    def public_payload(self):
        return {'kind': self.kind, 'errors': self.errors}


class EmptyCartError(SettlementError):
    """The source cart is empty or gone, usually because it was already settled"""

    kind = 'empty_cart'
    default_message = 'Cart is empty. Cannot proceed with order.'


class StockError(SettlementError):
    kind = 'out_of_stock'
    status_code = status.HTTP_409_CONFLICT
    default_message = 'One or more products are out of stock'

    def __init__(self, message=None, product_id=None, product_name=None):
        super().__init__(message, detail={'product_id': product_id, 'product_name': product_name})
        self.product_id = product_id
        self.product_name = product_name

    def public_payload(self):
        return {'kind': self.kind, 'product_id': self.product_id}


class CouponError(SettlementError):
    kind = 'coupon_error'
    default_message = 'Coupon is not applicable'

    def __init__(self, message=None, code=None, reason_code=None):
        super().__init__(message, detail={'code': code, 'reason_code': reason_code})
        self.code = code
        self.reason_code = reason_code

    def public_payload(self):
        return {'kind': self.kind, 'code': self.code, 'reason': self.reason_code}


class CouponInUseError(CouponError):
    """Raised when deleting a coupon that already has redemption history"""

    kind = 'coupon_in_use'
    default_message = 'Cannot delete coupon as it has been used in orders. Consider deactivating it instead.'


class PaymentVerificationError(SettlementError):
    """
    The payment confirmation could not be trusted.

    The caller only ever sees the generic message; ``detail`` is for logs.
    Provider timeouts and uncaptured payments raise this class directly.
    """

    kind = 'payment_unverified'
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    default_message = 'Payment could not be verified'

    @property
    def public_message(self):
        return PaymentVerificationError.default_message

    def public_payload(self):
        return {'kind': PaymentVerificationError.kind}


class SignatureError(PaymentVerificationError):
    kind = 'signature_error'
    default_message = 'Payment signature mismatch'


class AmountMismatchError(PaymentVerificationError):
    kind = 'amount_mismatch'
    default_message = 'Payment amount mismatch'

    def __init__(self, message=None, expected=None, actual=None, source=None):
        super().__init__(message, detail={'expected': str(expected), 'actual': str(actual), 'source': source})
        self.expected = expected
        self.actual = actual
        self.source = source

    def __str__(self):
        return f"{self.message}: expected {self.expected}, got {self.actual} ({self.source})"


class ProviderUnavailableError(PaymentVerificationError):
    """The provider could not be reached in time; treated as unverified"""

    kind = 'provider_unavailable'
    default_message = 'Payment provider unavailable'


class DuplicateSettlementError(SettlementError):
    """Idempotency guard hit: the payment was already settled into ``order``"""

    kind = 'duplicate_settlement'
    status_code = status.HTTP_200_OK
    default_message = 'Payment already settled'

    def __init__(self, order, message=None):
        super().__init__(message, detail={'order_number': order.order_number})
        self.order = order


class TransientStoreError(SettlementError):
    """Persistence hiccup, safe to retry"""

    kind = 'transient_store_error'
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = 'Order could not be saved, please retry'
