"""
Coupon applicability and discount rules.

Everything here is a pure function of a ``CouponTerms`` snapshot, a subtotal
and the caller's redemption history: no database access, no usage counters.
Usage is only recorded by the settlement transaction after it commits.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import FrozenSet, List, Optional, Sequence

from django.utils import timezone

from apps.common.errors import CouponError
from apps.common.money import ZERO, quantize_money, to_decimal

KIND_FLAT = 'flat'
KIND_PERCENTAGE = 'percentage'

AUDIENCE_PUBLIC = 'public'
AUDIENCE_ALLOW_LIST = 'allow_list'
AUDIENCE_DENY_LIST = 'deny_list'

POLICY_STACK = 'stack'
POLICY_SINGLE = 'single'

# Machine-readable rejection reasons
REASON_INACTIVE = 'inactive'
REASON_EXPIRED = 'expired'
REASON_USAGE_LIMIT = 'usage_limit_reached'
REASON_MIN_PURCHASE = 'min_purchase_not_met'
REASON_DENIED = 'user_denied'
REASON_NOT_ALLOWED = 'user_not_allowed'
REASON_USER_LIMIT = 'user_limit_reached'
REASON_NOT_FOUND = 'not_found'
REASON_STACKING = 'stacking_not_allowed'


@dataclass(frozen=True)
class CouponTerms:
    """Immutable view of a coupon definition at evaluation time"""
    code: str
    kind: str
    value: Decimal
    expiry_date: datetime
    coupon_id: Optional[int] = None
    min_purchase_amount: Decimal = ZERO
    max_discount_amount: Optional[Decimal] = None
    usage_limit: Optional[int] = None
    usage_count: int = 0
    user_usage_limit: int = 1
    is_active: bool = True
    audience: str = AUDIENCE_PUBLIC
    audience_user_ids: FrozenSet[int] = field(default_factory=frozenset)

    @classmethod
    def from_coupon(cls, coupon, audience_user_ids=None):
        """Snapshot a Coupon model; loads the audience list unless it is supplied"""
        if audience_user_ids is None:
            if coupon.audience == AUDIENCE_PUBLIC:
                audience_user_ids = ()
            else:
                audience_user_ids = coupon.audience_users.values_list('id', flat=True)
        return cls(
            coupon_id=coupon.pk,
            code=coupon.code,
            kind=coupon.kind,
            value=to_decimal(coupon.value),
            expiry_date=coupon.expiry_date,
            min_purchase_amount=to_decimal(coupon.min_purchase_amount or ZERO),
            max_discount_amount=None if coupon.max_discount_amount is None else to_decimal(coupon.max_discount_amount),
            usage_limit=coupon.usage_limit,
            usage_count=coupon.usage_count,
            user_usage_limit=coupon.user_usage_limit,
            is_active=coupon.is_active,
            audience=coupon.audience,
            audience_user_ids=frozenset(audience_user_ids),
        )


@dataclass(frozen=True)
class CouponVerdict:
    applicable: bool
    discount_amount: Decimal = ZERO
    reason: str = ''
    reason_code: str = ''

    def raise_for_rejection(self, code=None):
        if not self.applicable:
            raise CouponError(self.reason, code=code, reason_code=self.reason_code)


def _reject(reason_code: str, reason: str) -> CouponVerdict:
    return CouponVerdict(applicable=False, discount_amount=ZERO, reason=reason, reason_code=reason_code)


def check_audience(terms: CouponTerms, user_id) -> Optional[CouponVerdict]:
    if terms.audience == AUDIENCE_DENY_LIST and user_id in terms.audience_user_ids:
        return _reject(REASON_DENIED, 'You are not eligible for this coupon')
    if terms.audience == AUDIENCE_ALLOW_LIST and (user_id is None or user_id not in terms.audience_user_ids):
        return _reject(REASON_NOT_ALLOWED, 'This coupon is not available for your account')
    return None


def calculate_discount(terms: CouponTerms, subtotal) -> Decimal:
    """
    Discount for a subtotal, ignoring applicability.

    flat -> value; percentage -> subtotal * value / 100 capped at
    max_discount_amount. The result never exceeds the subtotal and is never
    negative.
    """
    subtotal = quantize_money(subtotal)
    if subtotal <= ZERO:
        return ZERO

    if terms.kind == KIND_FLAT:
        discount = to_decimal(terms.value)
    elif terms.kind == KIND_PERCENTAGE:
        discount = subtotal * to_decimal(terms.value) / Decimal(100)
        if terms.max_discount_amount is not None:
            discount = min(discount, to_decimal(terms.max_discount_amount))
    else:
        raise ValueError(f"Unknown coupon kind: {terms.kind}")

    discount = quantize_money(discount)
    return max(ZERO, min(discount, subtotal))


def evaluate(terms: CouponTerms, subtotal, user_id, user_prior_redemptions: int, now: datetime = None) -> CouponVerdict:
    """Decide whether a coupon applies to this subtotal for this user"""
    now = now or timezone.now()
    subtotal = quantize_money(subtotal)

    if not terms.is_active:
        return _reject(REASON_INACTIVE, 'Coupon is not available')

    # Valid up to and including the expiry instant
    if now > terms.expiry_date:
        return _reject(REASON_EXPIRED, 'Coupon has expired')

    if terms.usage_limit is not None and terms.usage_count >= terms.usage_limit:
        return _reject(REASON_USAGE_LIMIT, 'Coupon usage limit has been reached')

    if subtotal < to_decimal(terms.min_purchase_amount or ZERO):
        return _reject(REASON_MIN_PURCHASE, f"Minimum purchase amount of {quantize_money(terms.min_purchase_amount)} required")

    audience_verdict = check_audience(terms, user_id)
    if audience_verdict is not None:
        return audience_verdict

    if user_prior_redemptions >= terms.user_usage_limit:
        return _reject(REASON_USER_LIMIT, 'You have reached the usage limit for this coupon')

    return CouponVerdict(applicable=True, discount_amount=calculate_discount(terms, subtotal), reason='Coupon is applicable')


def apportion_discounts(discounts: Sequence[Decimal], subtotal) -> List[Decimal]:
    """
    Clamp stacked discounts so their sum never exceeds the subtotal.

    Coupons keep their individual amount in order until the subtotal is used
    up; later coupons absorb the clamp.
    """
    remaining = max(ZERO, quantize_money(subtotal))
    apportioned = []
    for discount in discounts:
        amount = min(quantize_money(discount), remaining)
        apportioned.append(amount)
        remaining -= amount
    return apportioned


def check_stacking_policy(coupon_count: int, policy: str = POLICY_STACK) -> None:
    if policy == POLICY_SINGLE and coupon_count > 1:
        raise CouponError('Only one coupon can be applied per order', reason_code=REASON_STACKING)
    if policy not in (POLICY_STACK, POLICY_SINGLE):
        raise ValueError(f"Unknown coupon stacking policy: {policy}")


def combine_discounts(discounts: Sequence[Decimal], subtotal, policy: str = POLICY_STACK) -> Decimal:
    """Total discount for an order under the stacking policy, clamped to the subtotal"""
    check_stacking_policy(len(discounts), policy)
    return sum(apportion_discounts(discounts, subtotal), ZERO)
