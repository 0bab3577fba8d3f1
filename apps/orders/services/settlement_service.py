"""
Order settlement.

Turns a cart plus a client-submitted payment confirmation into exactly one
Order. Prices, discounts and totals are recomputed from server data, the
payment is verified with the provider, and the order, its items, the coupon
redemptions, the cart clear and the user's order counter are committed in a
single database transaction keyed by the provider payment id.
"""
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from django.conf import settings
from django.db import IntegrityError, OperationalError, transaction
from django.db.models import F
from django.utils import timezone

from apps.carts.services import CartService
from apps.common.errors import (
    CouponError,
    DuplicateSettlementError,
    SettlementError,
    StockError,
    TransientStoreError,
    ValidationError,
)
from apps.common.money import from_minor_units, to_minor_units
from apps.coupons.services import CouponService, coupon_evaluator
from apps.payments.services import PaymentConfirmation, PaymentVerifier, ProviderOrder, get_payment_provider_client
from apps.products.services import CatalogService
from apps.users.models import User
from ..models import AppliedCoupon, Order, OrderItem
from .idempotency import IdempotencyGuard
from .order_total_calculator import LineItem, OrderTotals, ShippingRule, TaxRule, compute_total, reconcile_expected_total

logger = logging.getLogger('settlement')


class SettlementState:
    START = 'START'
    CART_LOADED = 'CART_LOADED'
    STOCK_VALIDATED = 'STOCK_VALIDATED'
    COUPONS_EVALUATED = 'COUPONS_EVALUATED'
    TOTALS_COMPUTED = 'TOTALS_COMPUTED'
    PAYMENT_VERIFIED = 'PAYMENT_VERIFIED'
    ORDER_PERSISTED = 'ORDER_PERSISTED'
    CART_CLEARED = 'CART_CLEARED'
    DONE = 'DONE'
    FAILED = 'FAILED'


# (min, max) lengths of the required shipping address fields
SHIPPING_ADDRESS_RULES = {
    'street': (5, 200),
    'city': (2, 100),
    'state': (2, 100),
    'zip_code': (3, 20),
    'country': (2, 100),
}
OPTIONAL_ADDRESS_FIELDS = ('full_name', 'phone')
CONFIRMATION_FIELDS = ('provider_order_id', 'provider_payment_id', 'provider_signature')


@dataclass(frozen=True)
class CheckoutOwner:
    """Who is checking out: an authenticated user or a guest session"""
    user: Optional[User] = None
    session_key: Optional[str] = None

    @classmethod
    def coerce(cls, owner):
        if isinstance(owner, cls):
            return owner
        if isinstance(owner, str):
            return cls(session_key=owner)
        if owner is not None and getattr(owner, 'is_authenticated', False):
            return cls(user=owner)
        return cls()

    @classmethod
    def for_request(cls, request):
        if request.user is not None and request.user.is_authenticated:
            return cls(user=request.user)
        return cls(session_key=request.session.session_key)

    @property
    def user_id(self):
        return self.user.pk if self.user is not None else None

    def __str__(self):
        if self.user is not None:
            return f"user {self.user.pk}"
        return f"guest {self.session_key}"


@dataclass
class AppliedDiscount:
    coupon: object
    terms: coupon_evaluator.CouponTerms
    discount_amount: Decimal


@dataclass
class PricedCart:
    """Everything needed to create an order, computed before payment verification"""
    cart: object
    line_items: List[LineItem]
    cart_items: List[object]
    discounts: List[AppliedDiscount] = field(default_factory=list)
    totals: Optional[OrderTotals] = None


def validate_shipping_address(shipping_address) -> List[Dict]:
    if not isinstance(shipping_address, dict):
        return [{'field': 'shipping_address', 'message': 'Shipping address is required'}]

    errors = []
    for name, (min_length, max_length) in SHIPPING_ADDRESS_RULES.items():
        value = shipping_address.get(name)
        if not isinstance(value, str) or not value.strip():
            errors.append({'field': f'shipping_address.{name}', 'message': f'{name} is required'})
        elif not min_length <= len(value.strip()) <= max_length:
            errors.append({
                'field': f'shipping_address.{name}',
                'message': f'{name} must be between {min_length} and {max_length} characters',
            })
    return errors


def validate_confirmation(payment_confirmation) -> List[Dict]:
    if not isinstance(payment_confirmation, dict):
        return [{'field': 'payment_confirmation', 'message': 'Payment confirmation is required'}]
    return [
        {'field': f'payment_confirmation.{name}', 'message': f'{name} is required'}
        for name in CONFIRMATION_FIELDS
        if not isinstance(payment_confirmation.get(name), str) or not payment_confirmation.get(name).strip()
    ]


def normalize_address(shipping_address: Dict) -> Dict:
    address = {name: shipping_address[name].strip() for name in SHIPPING_ADDRESS_RULES}
    for name in OPTIONAL_ADDRESS_FIELDS:
        if shipping_address.get(name):
            address[name] = str(shipping_address[name]).strip()
    return address


def unique_codes(requested_coupon_codes: Optional[Sequence[str]]) -> List[str]:
    """Normalized codes in request order, duplicates dropped"""
    codes = []
    for code in requested_coupon_codes or ():
        normalized = CouponService.normalize_code(code)
        if normalized and normalized not in codes:
            codes.append(normalized)
    return codes


class SettlementService:
    """Service class for checkout pricing and order settlement"""

    @staticmethod
    def _transition(ref: str, state: str, message: str = '') -> None:
        logger.info(f"[{ref}] {state}{': ' + message if message else ''}")

    @staticmethod
    def price_cart(owner: CheckoutOwner, requested_coupon_codes: Sequence[str] = (), ref: str = 'preview') -> PricedCart:
        """
        Load the owner's cart, check stock, evaluate coupons and compute totals.

        Raises EmptyCartError, StockError or CouponError.
        """
        cart = CartService.load(user=owner.user, session_key=owner.session_key)
        IdempotencyGuard.ensure_cart_not_empty(cart)
        cart_items = list(cart.items.all())
        SettlementService._transition(ref, SettlementState.CART_LOADED, f"{len(cart_items)} lines for {owner}")

        line_items = []
        for item in cart_items:
            product = item.product
            if not CatalogService.product_is_available(product, item.variant):
                raise StockError(f"{product.name} is out of stock", product_id=product.pk, product_name=product.name)
            line_items.append(LineItem(
                product_id=product.pk,
                quantity=item.quantity,
                unit_price=product.price,
                variant=item.variant,
            ))
        SettlementService._transition(ref, SettlementState.STOCK_VALIDATED)

        priced = PricedCart(cart=cart, line_items=line_items, cart_items=cart_items)
        subtotal = sum((line.line_total for line in line_items), Decimal('0.00'))

        codes = unique_codes(requested_coupon_codes)
        policy = getattr(settings, 'COUPON_STACKING_POLICY', coupon_evaluator.POLICY_STACK)
        coupon_evaluator.check_stacking_policy(len(codes), policy)

        for code in codes:
            coupon = CouponService.find_by_code(code)
            if coupon is None:
                raise CouponError('Invalid coupon code', code=code, reason_code=coupon_evaluator.REASON_NOT_FOUND)
            terms = CouponService.get_terms(coupon)
            verdict = coupon_evaluator.evaluate(
                terms, subtotal, owner.user_id, CouponService.count_user_redemptions(owner.user, coupon)
            )
            verdict.raise_for_rejection(code)
            priced.discounts.append(AppliedDiscount(coupon=coupon, terms=terms, discount_amount=verdict.discount_amount))

        evaluated = [d.discount_amount for d in priced.discounts]
        total_discount = coupon_evaluator.combine_discounts(evaluated, subtotal, policy)
        # Later coupons absorb the clamp when stacked discounts exceed the subtotal
        amounts = coupon_evaluator.apportion_discounts(evaluated, subtotal)
        for discount, amount in zip(priced.discounts, amounts):
            discount.discount_amount = amount
        SettlementService._transition(ref, SettlementState.COUPONS_EVALUATED, ', '.join(codes) or 'no coupons')

        priced.totals = compute_total(line_items, ShippingRule.from_settings(), TaxRule.from_settings(), [total_discount])
        SettlementService._transition(ref, SettlementState.TOTALS_COMPUTED, f"total {priced.totals.total}")
        return priced

    @staticmethod
    def preview(owner, requested_coupon_codes: Sequence[str] = ()) -> PricedCart:
        """Server-computed totals the client should pay; nothing is persisted"""
        return SettlementService.price_cart(CheckoutOwner.coerce(owner), requested_coupon_codes)

    @staticmethod
    def create_payment_order(owner, requested_coupon_codes: Sequence[str] = (),
                             provider_client=None) -> Tuple[PricedCart, ProviderOrder]:
        """
        Price the cart and open a provider order for exactly that total.

        The customer pays against the returned provider order; settlement
        later checks the captured amount against a fresh computation.
        """
        owner = CheckoutOwner.coerce(owner)
        priced = SettlementService.price_cart(owner, requested_coupon_codes)
        client = provider_client or get_payment_provider_client()
        provider_order = client.create_order(
            to_minor_units(priced.totals.total),
            settings.STORE_CURRENCY,
            receipt=f"rcpt_{uuid.uuid4().hex[:20]}",
            notes={'owner': str(owner), 'total': str(priced.totals.total)},
        )
        return priced, provider_order

    @staticmethod
    def payment_status(owner, payment_id: str, provider_client=None) -> Dict:
        """Provider status of a payment, plus the order it settled into when the caller owns it"""
        owner = CheckoutOwner.coerce(owner)
        client = provider_client or get_payment_provider_client()
        provider_payment = client.fetch_payment(payment_id)
        order = IdempotencyGuard.existing_order(payment_id)
        return {
            'payment_id': provider_payment.payment_id,
            'status': provider_payment.status,
            'amount': str(from_minor_units(provider_payment.amount)),
            'currency': provider_payment.currency,
            'method': provider_payment.method,
            'order_number': order.order_number if order is not None and IdempotencyGuard.is_owned_by(order, owner) else None,
        }

    @staticmethod
    def settle(owner, payment_confirmation: Dict, shipping_address: Dict,
               requested_coupon_codes: Sequence[str] = (), expected_total=None, notes: str = '',
               provider_client=None) -> Tuple[Order, bool]:
        """
        Settle the owner's cart against a payment confirmation.

        Returns ``(order, created)``; ``created`` is False when the payment
        was already settled, by an earlier call or a concurrent one.
        """
        owner = CheckoutOwner.coerce(owner)
        ref = (payment_confirmation or {}).get('provider_payment_id') or '-'
        SettlementService._transition(ref, SettlementState.START, str(owner))

        try:
            order = SettlementService._settle(
                owner, ref, payment_confirmation, shipping_address,
                requested_coupon_codes, expected_total, notes, provider_client,
            )
        except DuplicateSettlementError as e:
            SettlementService._transition(ref, SettlementState.DONE, f"replay of order {e.order.order_number}")
            return e.order, False
        except SettlementError as e:
            SettlementService._transition(ref, SettlementState.FAILED, f"{e.kind}: {e}")
            raise

        SettlementService._transition(ref, SettlementState.DONE, f"order {order.order_number}")
        return order, True

    @staticmethod
    def _settle(owner, ref, payment_confirmation, shipping_address, requested_coupon_codes,
                expected_total, notes, provider_client) -> Order:
        errors = validate_confirmation(payment_confirmation) + validate_shipping_address(shipping_address)
        if errors:
            raise ValidationError('Validation failed', errors=errors)

        confirmation = PaymentConfirmation.from_dict(payment_confirmation)
        existing = IdempotencyGuard.existing_order(ref)
        if existing is not None:
            raise DuplicateSettlementError(IdempotencyGuard.authorize_replay(existing, owner, confirmation))

        priced = SettlementService.price_cart(owner, requested_coupon_codes, ref=ref)
        reconcile_expected_total(priced.totals, expected_total)

        provider_payment = PaymentVerifier(provider_client=provider_client).verify(confirmation, priced.totals.total)
        SettlementService._transition(ref, SettlementState.PAYMENT_VERIFIED, f"{provider_payment.amount} {provider_payment.currency}")

        payment_details = {
            'provider_order_id': confirmation.provider_order_id,
            'provider_payment_id': provider_payment.payment_id,
            'amount_minor_units': provider_payment.amount,
            'currency': provider_payment.currency,
            'method': provider_payment.method,
            'captured': True,
        }

        max_attempts = getattr(settings, 'SETTLEMENT_MAX_ATTEMPTS', 3)
        backoff = getattr(settings, 'SETTLEMENT_RETRY_BACKOFF', 0.05)
        attempt = 1
        while True:
            try:
                return SettlementService._commit(
                    owner, ref, priced, normalize_address(shipping_address), payment_details, notes
                )
            except IntegrityError as e:
                try:
                    winner = IdempotencyGuard.resolve_conflict(ref, owner)
                except TransientStoreError:
                    failure = e
                else:
                    raise DuplicateSettlementError(winner)
            except (OperationalError, TransientStoreError) as e:
                failure = e

            # The payment is already captured: keep trying to record it
            if attempt >= max_attempts:
                logger.error(f"[{ref}] commit failed after {attempt} attempts: {failure}")
                raise TransientStoreError(detail={'payment_ref': ref, 'attempts': attempt}) from failure
            logger.warning(f"[{ref}] commit attempt {attempt} failed, retrying: {failure}")
            time.sleep(backoff * attempt)
            attempt += 1

    @staticmethod
    def _commit(owner, ref, priced: PricedCart, shipping_address, payment_details, notes) -> Order:
        totals = priced.totals
        with transaction.atomic():
            # Cart row first, then the user row: the same lock order for every settlement
            IdempotencyGuard.claim_cart(priced.cart, priced.cart_items, ref)
            if owner.user is not None:
                User.objects.select_for_update().filter(pk=owner.user.pk).first()
                for discount in priced.discounts:
                    if CouponService.count_user_redemptions(owner.user, discount.coupon) >= discount.terms.user_usage_limit:
                        raise CouponError('You have reached the usage limit for this coupon', code=discount.terms.code,
                                          reason_code=coupon_evaluator.REASON_USER_LIMIT)

            order = Order.objects.create(
                user=owner.user,
                guest_session_key='' if owner.user is not None else (owner.session_key or ''),
                shipping_address=shipping_address,
                subtotal=totals.subtotal,
                shipping_cost=totals.shipping_cost,
                tax=totals.tax,
                total_discount=totals.total_discount,
                total=totals.total,
                currency=payment_details['currency'],
                payment_method=payment_details['method'] or 'razorpay',
                payment_status=Order.PAYMENT_PAID,
                order_status=Order.STATUS_CONFIRMED,
                payment_confirmation_ref=ref,
                payment_details=payment_details,
                notes=notes or '',
                estimated_delivery=timezone.now() + timedelta(days=getattr(settings, 'ORDER_ESTIMATED_DELIVERY_DAYS', 7)),
            )

            OrderItem.objects.bulk_create([
                OrderItem(
                    order=order,
                    product_id=line.product_id,
                    name=cart_item.product.name,
                    image=cart_item.product.image or '',
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    line_total=line.line_total,
                    size=cart_item.size,
                    color=cart_item.color,
                )
                for line, cart_item in zip(priced.line_items, priced.cart_items)
            ])

            for discount in priced.discounts:
                AppliedCoupon.objects.create(
                    order=order,
                    coupon=discount.coupon,
                    code_snapshot=discount.terms.code,
                    kind_snapshot=discount.terms.kind,
                    value_snapshot=discount.terms.value,
                    discount_amount=discount.discount_amount,
                )
                if not CouponService.atomic_increment_usage(discount.coupon.pk):
                    raise CouponError('Coupon usage limit has been reached', code=discount.terms.code,
                                      reason_code=coupon_evaluator.REASON_USAGE_LIMIT)
            SettlementService._transition(ref, SettlementState.ORDER_PERSISTED, order.order_number)

            CartService.clear(priced.cart)
            SettlementService._transition(ref, SettlementState.CART_CLEARED)

            if owner.user is not None:
                User.objects.filter(pk=owner.user.pk).update(orders_count=F('orders_count') + 1)

        return order
