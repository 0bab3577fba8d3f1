"""
Cart store used by checkout: load a cart and clear it once settled.
"""
import logging
from decimal import Decimal
from typing import Optional

from ..models import Cart

logger = logging.getLogger(__name__)


class CartService:

    @staticmethod
    def load(user=None, session_key: Optional[str] = None) -> Optional[Cart]:
        """Load the user's cart (or the guest cart for a session) with its products"""
        queryset = Cart.objects.prefetch_related('items__product')
        if user is not None and getattr(user, 'is_authenticated', False):
            return queryset.filter(user=user).first()
        if session_key:
            return queryset.filter(session_key=session_key).first()
        return None

    @staticmethod
    def clear(cart: Cart) -> None:
        """Remove every item; safe to call repeatedly"""
        deleted, _ = cart.items.all().delete()
        Cart.objects.filter(pk=cart.pk).update(total=Decimal('0.00'))
        logger.debug(f"Cleared cart {cart.pk} ({deleted} items)")
