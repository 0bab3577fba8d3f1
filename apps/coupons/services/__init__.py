"""
Coupon services module.
"""
from .coupon_service import CouponService
from .coupon_evaluator import CouponTerms, CouponVerdict

__all__ = [
    'CouponService',
    'CouponTerms',
    'CouponVerdict',
]
