"""
Order models module.
"""
from .order import Order
from .order_item import OrderItem
from .applied_coupon import AppliedCoupon

__all__ = [
    'Order',
    'OrderItem',
    'AppliedCoupon',
]
