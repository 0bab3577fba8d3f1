"""
Property-based tests for order total computation.
"""
from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from hypothesis import given, settings, strategies as st

from apps.common.errors import AmountMismatchError
from apps.coupons.services import coupon_evaluator
from apps.coupons.services.coupon_evaluator import CouponTerms
from apps.orders.services.order_total_calculator import (
    LineItem,
    ShippingRule,
    TaxRule,
    compute_total,
    reconcile_expected_total,
)

SHIPPING = ShippingRule(free_threshold=Decimal('1000.00'), flat_fee=Decimal('50.00'))
GST = TaxRule(rate=Decimal('0.18'))

prices = st.decimals(min_value=Decimal('0.01'), max_value=Decimal('50000.00'), places=2,
                     allow_nan=False, allow_infinity=False)
line_items = st.lists(
    st.builds(LineItem, product_id=st.integers(min_value=1, max_value=10000),
              quantity=st.integers(min_value=1, max_value=20), unit_price=prices),
    min_size=1, max_size=8,
)
discounts = st.lists(
    st.decimals(min_value=Decimal('0.00'), max_value=Decimal('100000.00'), places=2,
                allow_nan=False, allow_infinity=False),
    max_size=3,
)


class TestOrderTotalProperties:

    @given(items=line_items, amounts=discounts)
    @settings(max_examples=200, deadline=None)
    def test_total_equals_sum_of_components(self, items, amounts):
        totals = compute_total(items, SHIPPING, GST, amounts)

        assert totals.total == totals.subtotal + totals.shipping_cost + totals.tax - totals.total_discount
        assert totals.total >= Decimal('0.00')
        assert Decimal('0.00') <= totals.total_discount <= totals.subtotal

    @given(items=line_items)
    @settings(max_examples=100, deadline=None)
    def test_components_are_quantized(self, items):
        totals = compute_total(items, SHIPPING, GST, [])

        for value in totals.as_dict().values():
            assert value == value.quantize(Decimal('0.01'))


def _evaluate(terms, subtotal):
    return coupon_evaluator.evaluate(terms, subtotal, user_id=1, user_prior_redemptions=0).discount_amount


class TestOrderTotalScenarios:

    def test_flat_coupon_on_free_shipping_order(self):
        items = [LineItem(product_id=1, quantity=1, unit_price=Decimal('1000.00'))]
        terms = CouponTerms(code='FLAT150', kind='flat', value=Decimal('150'),
                            expiry_date=timezone.now() + timedelta(days=1))

        totals = compute_total(items, SHIPPING, GST, [_evaluate(terms, Decimal('1000.00'))])

        assert totals.subtotal == Decimal('1000.00')
        assert totals.shipping_cost == Decimal('0.00')
        assert totals.tax == Decimal('180.00')
        assert totals.total_discount == Decimal('150.00')
        assert totals.total == Decimal('1030.00')

    def test_capped_percentage_coupon_with_shipping(self):
        items = [LineItem(product_id=1, quantity=2, unit_price=Decimal('250.00'))]
        terms = CouponTerms(code='PCT20', kind='percentage', value=Decimal('20'),
                            max_discount_amount=Decimal('50'), expiry_date=timezone.now() + timedelta(days=1))

        totals = compute_total(items, SHIPPING, GST, [_evaluate(terms, Decimal('500.00'))])

        assert totals.shipping_cost == Decimal('50.00')
        assert totals.tax == Decimal('90.00')
        assert totals.total_discount == Decimal('50.00')
        assert totals.total == Decimal('590.00')

    def test_stacked_coupons(self):
        items = [LineItem(product_id=1, quantity=1, unit_price=Decimal('1000.00'))]
        combined = coupon_evaluator.combine_discounts([Decimal('150.00'), Decimal('50.00')], Decimal('1000.00'))

        totals = compute_total(items, SHIPPING, GST, [combined])

        assert totals.total == Decimal('980.00')

    @pytest.mark.parametrize('subtotal, shipping', [
        ('999.99', '50.00'),
        ('1000.00', '0.00'),
        ('1000.01', '0.00'),
    ])
    def test_free_shipping_threshold(self, subtotal, shipping):
        items = [LineItem(product_id=1, quantity=1, unit_price=Decimal(subtotal))]

        assert compute_total(items, SHIPPING, GST).shipping_cost == Decimal(shipping)

    def test_discount_larger_than_subtotal_is_clamped(self):
        items = [LineItem(product_id=1, quantity=1, unit_price=Decimal('100.00'))]

        totals = compute_total(items, SHIPPING, GST, [Decimal('500.00')])

        assert totals.total_discount == Decimal('100.00')
        assert totals.total == Decimal('68.00')


class TestReconcileExpectedTotal:

    def _totals(self):
        return compute_total([LineItem(product_id=1, quantity=1, unit_price=Decimal('1000.00'))], SHIPPING, GST)

    def test_matching_total_passes(self):
        reconcile_expected_total(self._totals(), Decimal('1180.00'), tolerance_minor_units=1)

    def test_missing_expected_total_is_skipped(self):
        reconcile_expected_total(self._totals(), None, tolerance_minor_units=1)

    def test_one_paisa_difference_within_default_tolerance(self):
        reconcile_expected_total(self._totals(), Decimal('1179.99'), tolerance_minor_units=1)

    def test_mismatch_carries_both_figures(self):
        with pytest.raises(AmountMismatchError) as exc_info:
            reconcile_expected_total(self._totals(), Decimal('1000.00'), tolerance_minor_units=1)

        assert exc_info.value.expected == Decimal('1180.00')
        assert exc_info.value.actual == Decimal('1000.00')
        assert exc_info.value.source == 'client'
