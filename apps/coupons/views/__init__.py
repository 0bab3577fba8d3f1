"""
Coupon views module.
"""
from .coupon_views import validate_coupon, available_coupons
from .admin_coupon_views import (
    AdminCouponListCreateView,
    AdminCouponDetailView,
    toggle_coupon_status,
    coupon_stats,
)

__all__ = [
    'validate_coupon',
    'available_coupons',
    'AdminCouponListCreateView',
    'AdminCouponDetailView',
    'toggle_coupon_status',
    'coupon_stats',
]
