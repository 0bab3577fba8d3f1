"""
Tests for the coupon store and coupon admin rules.
"""
from datetime import timedelta
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError as DjangoValidationError
from django.utils import timezone

from apps.common.errors import CouponError, CouponInUseError
from apps.coupons.models import Coupon
from apps.coupons.services import CouponService
from tests.factories import (
    AllowListCouponFactory,
    AppliedCouponFactory,
    CouponFactory,
    OrderFactory,
    PercentageCouponFactory,
    UserFactory,
)

pytestmark = pytest.mark.django_db


class TestAtomicIncrement:

    def test_increments_until_limit(self):
        coupon = CouponFactory(usage_limit=2)

        assert CouponService.atomic_increment_usage(coupon.pk) is True
        assert CouponService.atomic_increment_usage(coupon.pk) is True
        assert CouponService.atomic_increment_usage(coupon.pk) is False

        coupon.refresh_from_db()
        assert coupon.usage_count == 2
        assert coupon.remaining_uses == 0

    def test_unlimited_coupon(self):
        coupon = CouponFactory(usage_limit=None, usage_count=41)

        assert CouponService.atomic_increment_usage(coupon.pk)
        coupon.refresh_from_db()
        assert coupon.usage_count == 42
        assert coupon.remaining_uses is None

    def test_inactive_coupon_not_incremented(self):
        coupon = CouponFactory(is_active=False)

        assert CouponService.atomic_increment_usage(coupon.pk) is False


class TestLookups:

    def test_find_by_code_is_case_insensitive(self):
        coupon = CouponFactory(code='WELCOME10')

        assert CouponService.find_by_code(' welcome10 ') == coupon
        assert CouponService.find_by_code('') is None
        assert CouponService.find_by_code('MISSING') is None

    def test_count_user_redemptions(self):
        user = UserFactory()
        coupon = CouponFactory()
        AppliedCouponFactory(order=OrderFactory(user=user), coupon=coupon)
        AppliedCouponFactory(order=OrderFactory(), coupon=coupon)

        assert CouponService.count_user_redemptions(user, coupon) == 1
        assert CouponService.count_user_redemptions(None, coupon) == 0

    def test_preview_unknown_code(self):
        with pytest.raises(CouponError) as exc_info:
            CouponService.preview('NOPE', Decimal('100.00'), UserFactory())

        assert exc_info.value.reason_code == 'not_found'

    def test_preview_applicable(self):
        user = UserFactory()
        CouponFactory(code='FLAT150')

        coupon, verdict = CouponService.preview('flat150', Decimal('1000.00'), user)

        assert coupon.code == 'FLAT150'
        assert verdict.applicable
        assert verdict.discount_amount == Decimal('150.00')
        coupon.refresh_from_db()
        assert coupon.usage_count == 0

    def test_available_coupons_respect_audience(self):
        member = UserFactory()
        outsider = UserFactory()
        public = CouponFactory(code='PUBLIC1')
        vip = AllowListCouponFactory(code='VIP1', audience_users=[member])
        denied = CouponFactory(code='DENY1', audience='deny_list')
        denied.audience_users.set([member])
        CouponFactory(code='EXPIRED1', expiry_date=timezone.now() - timedelta(days=1))
        CouponFactory(code='USEDUP1', usage_limit=1, usage_count=1)

        member_codes = {entry['coupon'].code for entry in CouponService.get_available_coupons(member)}
        outsider_codes = {entry['coupon'].code for entry in CouponService.get_available_coupons(outsider)}

        assert member_codes == {public.code, vip.code}
        assert outsider_codes == {public.code, denied.code}

    def test_available_coupons_with_amount_preview(self):
        user = UserFactory()
        CouponFactory(code='FLAT150', min_purchase_amount=Decimal('500.00'))
        PercentageCouponFactory(code='PCT20')

        entries = CouponService.get_available_coupons(user, Decimal('200.00'))

        assert [(e['coupon'].code, e['discount_amount']) for e in entries] == [('PCT20', Decimal('40.00'))]


class TestCouponAdministration:

    def test_delete_unused_coupon(self):
        coupon = CouponFactory()

        CouponService.delete_coupon(coupon, deleted_by='admin')

        assert not Coupon.objects.filter(code=coupon.code).exists()

    def test_delete_refused_with_history(self):
        applied = AppliedCouponFactory()

        with pytest.raises(CouponInUseError):
            CouponService.delete_coupon(applied.coupon, deleted_by='admin')

        assert Coupon.objects.filter(pk=applied.coupon.pk).exists()

    def test_toggle_status(self):
        coupon = CouponFactory(is_active=True)

        assert CouponService.toggle_status(coupon).is_active is False
        assert CouponService.toggle_status(coupon).is_active is True

    def test_usage_stats(self):
        coupon = CouponFactory(usage_count=2)
        AppliedCouponFactory(coupon=coupon, discount_amount=Decimal('150.00'))
        AppliedCouponFactory(coupon=coupon, discount_amount=Decimal('100.00'))

        stats = CouponService.get_usage_stats(coupon)

        assert stats['usage']['total_orders'] == 2
        assert stats['usage']['total_discount'] == Decimal('250.00')
        assert stats['usage']['average_discount'] == Decimal('125.00')
        assert len(stats['recent_orders']) == 2


class TestCouponModel:

    def test_code_stored_uppercase(self):
        coupon = CouponFactory(code='summer25')

        assert coupon.code == 'SUMMER25'

    def test_flat_coupon_drops_cap(self):
        coupon = CouponFactory(max_discount_amount=Decimal('10.00'))

        assert coupon.max_discount_amount is None

    def test_percentage_requires_cap(self):
        coupon = Coupon(code='PCT30', name='Thirty', kind='percentage', value=Decimal('30'),
                        expiry_date=timezone.now() + timedelta(days=1))

        with pytest.raises(DjangoValidationError):
            coupon.clean()

    def test_percentage_over_hundred_rejected(self):
        coupon = Coupon(code='PCT150', name='Too much', kind='percentage', value=Decimal('150'),
                        max_discount_amount=Decimal('10'), expiry_date=timezone.now() + timedelta(days=1))

        with pytest.raises(DjangoValidationError):
            coupon.clean()
