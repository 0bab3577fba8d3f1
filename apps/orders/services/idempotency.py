"""
Duplicate settlement protection.

The unique index on ``Order.payment_confirmation_ref`` is the real guard;
these helpers give the early, friendly answers around it. A replay only
returns the settled order to the caller who placed it, and only for a
correctly signed confirmation.
"""
import logging
from typing import Optional

from django.conf import settings

from apps.carts.models import Cart
from apps.common.errors import EmptyCartError, SignatureError, TransientStoreError
from apps.payments.services.payment_verifier import verify_signature
from ..models import Order

logger = logging.getLogger('settlement')
security_logger = logging.getLogger('security')


class IdempotencyGuard:

    @staticmethod
    def existing_order(payment_ref: str) -> Optional[Order]:
        """Order already settled for this payment, if any"""
        if not payment_ref:
            return None
        return Order.objects.filter(payment_confirmation_ref=payment_ref).first()

    @staticmethod
    def ensure_cart_not_empty(cart) -> None:
        """A missing or empty cart usually means the payment was settled by another request"""
        if cart is None or not cart.items.exists():
            raise EmptyCartError()

    @staticmethod
    def claim_cart(cart, priced_items, payment_ref: str) -> None:
        """
        Lock the cart row and confirm it still holds exactly the priced items.

        Must run inside the settlement transaction. A cart emptied or changed
        by an overlapping settlement raises EmptyCartError, so one cart never
        becomes two orders.
        """
        locked = Cart.objects.select_for_update().filter(pk=cart.pk).first()
        current = sorted(locked.items.values_list('pk', 'product_id', 'quantity', 'size', 'color')) if locked else []
        expected = sorted((item.pk, item.product_id, item.quantity, item.size, item.color) for item in priced_items)
        if current != expected:
            logger.error(f"[{payment_ref}] cart {cart.pk} was settled or changed while the payment was verified; "
                         f"captured payment needs a refund")
            raise EmptyCartError('Cart changed during checkout. Please review your cart and try again.')

    @staticmethod
    def is_owned_by(order: Order, owner) -> bool:
        if owner.user is not None:
            return order.user_id == owner.user.pk
        return order.user_id is None and bool(owner.session_key) and order.guest_session_key == owner.session_key

    @staticmethod
    def authorize_replay(order: Order, owner, confirmation, shared_secret=None) -> Order:
        """
        Return ``order`` for a replayed confirmation.

        The signature is checked locally, without a provider call, and the
        caller must own the order; anything else is a SignatureError.
        """
        shared_secret = shared_secret or settings.RAZORPAY_KEY_SECRET
        payment_id = confirmation.provider_payment_id
        if not verify_signature(confirmation.provider_order_id, payment_id,
                                confirmation.provider_signature, shared_secret):
            security_logger.warning(f"Invalid payment signature on replay of payment {payment_id}")
            raise SignatureError(detail={'payment_id': payment_id})
        if not IdempotencyGuard.is_owned_by(order, owner):
            security_logger.warning(f"Replay of payment {payment_id} by {owner}, "
                                    f"order {order.order_number} belongs to someone else")
            raise SignatureError(detail={'payment_id': payment_id, 'order_number': order.order_number})
        return order

    @staticmethod
    def resolve_conflict(payment_ref: str, owner=None) -> Order:
        """
        Return the order a concurrent writer committed for ``payment_ref``.

        Called after an IntegrityError on the unique key; if the row is not
        visible the conflict came from elsewhere and the attempt is retried.
        """
        order = IdempotencyGuard.existing_order(payment_ref)
        if order is None:
            raise TransientStoreError(detail={'payment_ref': payment_ref})
        if owner is not None and not IdempotencyGuard.is_owned_by(order, owner):
            security_logger.warning(f"[{payment_ref}] concurrent settlement by another owner, "
                                    f"order {order.order_number} not returned to {owner}")
            raise SignatureError(detail={'payment_id': payment_ref, 'order_number': order.order_number})
        logger.info(f"[{payment_ref}] concurrent settlement won, returning order {order.order_number}")
        return order
