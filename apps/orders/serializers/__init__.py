"""
Order serializers module.
"""
from .order_serializers import (
    OrderItemSerializer,
    AppliedCouponSerializer,
    OrderSerializer,
    OrderListSerializer,
    AdminOrderListSerializer,
    UpdateOrderStatusSerializer,
)
from .checkout_serializers import (
    ShippingAddressSerializer,
    PaymentConfirmationSerializer,
    CheckoutPreviewSerializer,
    SettleOrderSerializer,
    CancelOrderSerializer,
)

__all__ = [
    'OrderItemSerializer',
    'AppliedCouponSerializer',
    'OrderSerializer',
    'OrderListSerializer',
    'AdminOrderListSerializer',
    'UpdateOrderStatusSerializer',
    'ShippingAddressSerializer',
    'PaymentConfirmationSerializer',
    'CheckoutPreviewSerializer',
    'SettleOrderSerializer',
    'CancelOrderSerializer',
]
