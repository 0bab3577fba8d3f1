"""
Test doubles for the payment provider boundary.
"""
from apps.common.errors import ProviderUnavailableError
from apps.payments.services.payment_verifier import compute_signature
from apps.payments.services.provider_client import ProviderOrder, ProviderPayment

TEST_SECRET = 'test_shared_secret'
TEST_PROVIDER_ORDER_ID = 'order_TEST0001'


def build_confirmation(payment_id, provider_order_id=TEST_PROVIDER_ORDER_ID, secret=TEST_SECRET):
    """A correctly signed payment confirmation"""
    return {
        'provider_order_id': provider_order_id,
        'provider_payment_id': payment_id,
        'provider_signature': compute_signature(provider_order_id, payment_id, secret),
    }


class FakeProviderClient:
    """
    Stand-in for RazorpayClient.

    State lives on the class so instances built from the
    PAYMENT_PROVIDER_CLIENT setting see the payments a test registered.
    ``on_fetch`` runs before the lookup, to simulate a concurrent writer.
    """
    payments = {}
    orders = []
    calls = []
    on_fetch = None

    @classmethod
    def reset(cls):
        cls.payments = {}
        cls.orders = []
        cls.calls = []
        cls.on_fetch = None

    @classmethod
    def add_payment(cls, payment_id, amount, status='captured', currency='INR',
                    order_id=TEST_PROVIDER_ORDER_ID, method='upi'):
        cls.payments[payment_id] = ProviderPayment(
            payment_id=payment_id,
            status=status,
            amount=amount,
            currency=currency,
            method=method,
            order_id=order_id,
        )
        return cls.payments[payment_id]

    def fetch_payment(self, payment_id):
        cls = type(self)
        cls.calls.append(payment_id)
        if cls.on_fetch is not None:
            cls.on_fetch(payment_id)
        try:
            return cls.payments[payment_id]
        except KeyError:
            raise ProviderUnavailableError('Unknown payment', detail={'payment_id': payment_id})

    def create_order(self, amount_minor_units, currency, receipt, notes=None):
        cls = type(self)
        provider_order = ProviderOrder(
            order_id=f"order_FAKE{len(cls.orders) + 1:04d}",
            amount=int(amount_minor_units),
            currency=currency,
            receipt=receipt,
            status='created',
        )
        cls.orders.append((provider_order, notes or {}))
        return provider_order
