from django.urls import path
from . import views

urlpatterns = [
    path('checkout/preview', views.CheckoutPreviewView.as_view(), name='checkout-preview'),
    path('checkout/payment-order', views.CreatePaymentOrderView.as_view(), name='checkout-payment-order'),
    path('settle', views.SettleOrderView.as_view(), name='settle-order'),
    path('payments/<str:payment_id>/status', views.PaymentStatusView.as_view(), name='payment-status'),
    # Admin endpoints, ahead of the order-number routes
    path('admin/', views.AdminOrderListView.as_view(), name='admin-orders'),
    path('admin/stats', views.order_stats, name='admin-order-stats'),
    path('admin/<str:order_number>/status', views.update_order_status, name='admin-order-status'),
    path('', views.GetMyOrdersView.as_view(), name='my-orders'),
    path('<str:order_number>', views.GetOrderDetailView.as_view(), name='order-detail'),
    path('<str:order_number>/cancel', views.CancelOrderView.as_view(), name='cancel-order'),
]
