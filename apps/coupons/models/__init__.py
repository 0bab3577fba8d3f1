"""
Coupon models module.
"""
from .coupon import Coupon

__all__ = [
    'Coupon',
]
