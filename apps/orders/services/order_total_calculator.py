"""
Order total computation.

Totals are always recomputed from catalog prices on the server; the
client's expected total is only ever compared against them. Each component
is quantized to the minor unit before the total is summed, so
``total == subtotal + shipping_cost + tax - total_discount`` holds exactly.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, Optional, Sequence

from django.conf import settings

from apps.common.errors import AmountMismatchError
from apps.common.money import ZERO, quantize_money, to_decimal, to_minor_units


@dataclass(frozen=True)
class LineItem:
    product_id: int
    quantity: int
    unit_price: Decimal
    variant: Optional[Dict] = None

    @property
    def line_total(self) -> Decimal:
        return quantize_money(to_decimal(self.unit_price) * self.quantity)


@dataclass(frozen=True)
class ShippingRule:
    """Free shipping at or above ``free_threshold``, flat fee below it"""
    free_threshold: Decimal
    flat_fee: Decimal

    @classmethod
    def from_settings(cls):
        return cls(
            free_threshold=to_decimal(getattr(settings, 'SHIPPING_FREE_THRESHOLD', Decimal('1000'))),
            flat_fee=to_decimal(getattr(settings, 'SHIPPING_FLAT_FEE', Decimal('50'))),
        )

    def cost_for(self, subtotal) -> Decimal:
        if subtotal <= ZERO or subtotal >= self.free_threshold:
            return ZERO
        return quantize_money(self.flat_fee)


@dataclass(frozen=True)
class TaxRule:
    rate: Decimal

    @classmethod
    def from_settings(cls):
        return cls(rate=to_decimal(getattr(settings, 'TAX_RATE', Decimal('0.18'))))

    def tax_for(self, subtotal) -> Decimal:
        return quantize_money(to_decimal(subtotal) * self.rate)


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    shipping_cost: Decimal
    tax: Decimal
    total_discount: Decimal
    total: Decimal

    def as_dict(self):
        return {
            'subtotal': self.subtotal,
            'shipping_cost': self.shipping_cost,
            'tax': self.tax,
            'total_discount': self.total_discount,
            'total': self.total,
        }


def compute_subtotal(line_items: Iterable[LineItem]) -> Decimal:
    return quantize_money(sum((item.line_total for item in line_items), ZERO))


def compute_total(line_items: Sequence[LineItem], shipping_rule: ShippingRule = None,
                  tax_rule: TaxRule = None, discounts: Sequence[Decimal] = ()) -> OrderTotals:
    """
    Compute order totals.

    Shipping and tax are based on the undiscounted subtotal. ``discounts``
    are per-coupon amounts already combined under the stacking policy; their
    sum is clamped to the subtotal here as well, so the total never goes
    negative.
    """
    shipping_rule = shipping_rule or ShippingRule.from_settings()
    tax_rule = tax_rule or TaxRule.from_settings()

    subtotal = compute_subtotal(line_items)
    shipping_cost = shipping_rule.cost_for(subtotal)
    tax = tax_rule.tax_for(subtotal)
    total_discount = quantize_money(sum((to_decimal(d) for d in discounts), ZERO))
    total_discount = max(ZERO, min(total_discount, subtotal))

    total = subtotal + shipping_cost + tax - total_discount
    if total < ZERO:
        # Only reachable with a negative shipping or tax configuration
        total_discount = subtotal + shipping_cost + tax
        total = ZERO

    return OrderTotals(
        subtotal=subtotal,
        shipping_cost=shipping_cost,
        tax=tax,
        total_discount=total_discount,
        total=total,
    )


def reconcile_expected_total(totals: OrderTotals, expected_total, tolerance_minor_units: int = None) -> None:
    """Raise AmountMismatchError when the client's figure is off by more than the tolerance"""
    if expected_total is None:
        return
    if tolerance_minor_units is None:
        tolerance_minor_units = getattr(settings, 'SETTLEMENT_AMOUNT_TOLERANCE_MINOR_UNITS', 1)

    difference = abs(to_minor_units(totals.total) - to_minor_units(expected_total))
    if difference > tolerance_minor_units:
        raise AmountMismatchError(
            'Order total mismatch',
            expected=totals.total,
            actual=quantize_money(expected_total),
            source='client',
        )
