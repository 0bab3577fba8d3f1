"""
Order services module.

All services are exported from this module to maintain backward compatibility.
"""
from .order_service import OrderService
from .idempotency import IdempotencyGuard
from .settlement_service import CheckoutOwner, SettlementService, SettlementState

__all__ = [
    'OrderService',
    'IdempotencyGuard',
    'CheckoutOwner',
    'SettlementService',
    'SettlementState',
]
