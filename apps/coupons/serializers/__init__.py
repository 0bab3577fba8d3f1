"""
Coupon serializers module.
"""
from .coupon_serializers import (
    CouponSerializer,
    CouponPublicSerializer,
    CouponValidateSerializer,
)

__all__ = [
    'CouponSerializer',
    'CouponPublicSerializer',
    'CouponValidateSerializer',
]
