"""
Coupon store: lookups, redemption counting and the conditional usage increment.
"""
import logging
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from django.db import transaction
from django.db.models import Count, F, Q, Sum
from django.utils import timezone

from apps.common.errors import CouponError, CouponInUseError
from apps.orders.models import AppliedCoupon
from ..models import Coupon
from . import coupon_evaluator
from .coupon_evaluator import CouponTerms, CouponVerdict

logger = logging.getLogger(__name__)


class CouponService:
    """Service class for coupon persistence and previews"""

    @staticmethod
    def normalize_code(code: str) -> str:
        return (code or '').strip().upper()

    @staticmethod
    def find_by_code(code: str) -> Optional[Coupon]:
        normalized = CouponService.normalize_code(code)
        if not normalized:
            return None
        return Coupon.objects.filter(code=normalized).first()

    @staticmethod
    def count_user_redemptions(user, coupon: Coupon) -> int:
        """How many settled orders of this user carry the coupon"""
        if user is None or not getattr(user, 'is_authenticated', False):
            return 0
        return AppliedCoupon.objects.filter(order__user=user, coupon=coupon).count()

    @staticmethod
    def atomic_increment_usage(coupon_id) -> bool:
        """
        Record one redemption if, and only if, the global limit still allows it.

        Check and increment are a single conditional UPDATE, so two concurrent
        checkouts cannot both take the last redemption.
        """
        updated = Coupon.objects.filter(pk=coupon_id, is_active=True).filter(
            Q(usage_limit__isnull=True) | Q(usage_count__lt=F('usage_limit'))
        ).update(usage_count=F('usage_count') + 1, updated_at=timezone.now())
        return updated == 1

    @staticmethod
    def get_terms(coupon: Coupon) -> CouponTerms:
        return CouponTerms.from_coupon(coupon)

    @staticmethod
    def preview(code: str, subtotal: Decimal, user) -> Tuple[Coupon, CouponVerdict]:
        """Evaluate a coupon for display; raises CouponError for unknown or inactive codes"""
        coupon = CouponService.find_by_code(code)
        if coupon is None or not coupon.is_active:
            raise CouponError('Invalid coupon code', code=CouponService.normalize_code(code),
                              reason_code=coupon_evaluator.REASON_NOT_FOUND)

        user_id = user.pk if user is not None and user.is_authenticated else None
        verdict = coupon_evaluator.evaluate(
            CouponService.get_terms(coupon),
            subtotal,
            user_id,
            CouponService.count_user_redemptions(user, coupon),
        )
        return coupon, verdict

    @staticmethod
    def get_available_coupons(user, order_amount: Optional[Decimal] = None) -> List[Dict]:
        """Active, unexpired coupons the user could use, with discount previews when an amount is given"""
        now = timezone.now()
        queryset = Coupon.objects.filter(is_active=True, expiry_date__gte=now).filter(
            Q(usage_limit__isnull=True) | Q(usage_count__lt=F('usage_limit'))
        )

        if user is not None and user.is_authenticated:
            queryset = queryset.filter(
                Q(audience=Coupon.AUDIENCE_PUBLIC)
                | Q(audience=Coupon.AUDIENCE_ALLOW_LIST, audience_users=user)
                | Q(audience=Coupon.AUDIENCE_DENY_LIST)
            ).exclude(audience=Coupon.AUDIENCE_DENY_LIST, audience_users=user)
        else:
            queryset = queryset.filter(audience=Coupon.AUDIENCE_PUBLIC)

        results = []
        for coupon in queryset.distinct().order_by('-created_at'):
            entry = {'coupon': coupon, 'discount_amount': None}
            if order_amount is not None:
                verdict = coupon_evaluator.evaluate(
                    CouponService.get_terms(coupon),
                    order_amount,
                    user.pk if user is not None and user.is_authenticated else None,
                    CouponService.count_user_redemptions(user, coupon),
                    now=now,
                )
                if not verdict.applicable:
                    continue
                entry['discount_amount'] = verdict.discount_amount
            results.append(entry)
        return results

    @staticmethod
    @transaction.atomic
    def delete_coupon(coupon: Coupon, deleted_by=None) -> None:
        """Delete a coupon that has never been redeemed"""
        if AppliedCoupon.objects.filter(coupon=coupon).exists():
            raise CouponInUseError(code=coupon.code, reason_code='in_use')
        logger.info(f"Coupon deleted: {coupon.code} by {deleted_by}")
        coupon.delete()

    @staticmethod
    def toggle_status(coupon: Coupon, changed_by=None) -> Coupon:
        coupon.is_active = not coupon.is_active
        coupon.save(update_fields=['is_active', 'updated_at'])
        logger.info(f"Coupon status toggled: {coupon.code} - "
                    f"{'activated' if coupon.is_active else 'deactivated'} by {changed_by}")
        return coupon

    @staticmethod
    def get_usage_stats(coupon: Coupon, recent_limit: int = 10) -> Dict:
        """Redemption statistics built from AppliedCoupon history"""
        history = AppliedCoupon.objects.filter(coupon=coupon)
        aggregates = history.aggregate(total_orders=Count('order', distinct=True), total_discount=Sum('discount_amount'))
        total_orders = aggregates['total_orders'] or 0
        total_discount = aggregates['total_discount'] or Decimal('0.00')

        recent = history.select_related('order', 'order__user').order_by('-applied_at')[:recent_limit]
        return {
            'coupon': {
                'code': coupon.code,
                'name': coupon.name,
                'kind': coupon.kind,
                'value': coupon.value,
                'usage_count': coupon.usage_count,
                'usage_limit': coupon.usage_limit,
                'remaining_uses': coupon.remaining_uses,
                'is_active': coupon.is_active,
                'is_expired': coupon.is_expired,
            },
            'usage': {
                'total_orders': total_orders,
                'total_discount': total_discount,
                'average_discount': (total_discount / total_orders).quantize(Decimal('0.01')) if total_orders else Decimal('0.00'),
            },
            'recent_orders': [
                {
                    'order_number': applied.order.order_number,
                    'user': applied.order.user.username if applied.order.user else None,
                    'total': applied.order.total,
                    'discount_amount': applied.discount_amount,
                    'created_at': applied.order.created_at,
                }
                for applied in recent
            ],
        }
