from django.urls import path
from . import views

urlpatterns = [
    path('validate', views.validate_coupon, name='validate-coupon'),
    path('available', views.available_coupons, name='available-coupons'),

    # Admin endpoints
    path('admin/', views.AdminCouponListCreateView.as_view(), name='admin-coupon-list'),
    path('admin/<int:coupon_id>', views.AdminCouponDetailView.as_view(), name='admin-coupon-detail'),
    path('admin/<int:coupon_id>/toggle', views.toggle_coupon_status, name='admin-coupon-toggle'),
    path('admin/<int:coupon_id>/stats', views.coupon_stats, name='admin-coupon-stats'),
]
