"""
Order views module.
"""
from .checkout_views import CheckoutPreviewView, CreatePaymentOrderView, SettleOrderView, PaymentStatusView
from .order_views import GetMyOrdersView, GetOrderDetailView, CancelOrderView
from .admin_order_views import AdminOrderListView, order_stats, update_order_status

__all__ = [
    'CheckoutPreviewView',
    'CreatePaymentOrderView',
    'SettleOrderView',
    'PaymentStatusView',
    'GetMyOrdersView',
    'GetOrderDetailView',
    'CancelOrderView',
    'AdminOrderListView',
    'order_stats',
    'update_order_status',
]
