"""
Checkout preview and settlement views.

Settlement errors are not caught here: they propagate to
``custom_exception_handler``, which maps each kind to its HTTP status.
"""
import logging

from django.conf import settings
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.views import APIView

from apps.common.utils import success_response, error_response
from ..serializers import CheckoutPreviewSerializer, SettleOrderSerializer, OrderSerializer
from ..services import CheckoutOwner, SettlementService

logger = logging.getLogger(__name__)


class CheckoutPreviewView(APIView):
    """Server-computed totals for the current cart; the client pays exactly this"""
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = CheckoutPreviewSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response("Invalid checkout data", serializer.errors)

        priced = SettlementService.preview(
            CheckoutOwner.for_request(request), serializer.validated_data['coupon_codes']
        )
        data = {
            'items': [
                {
                    'product_id': line.product_id,
                    'name': cart_item.product.name,
                    'quantity': line.quantity,
                    'unit_price': str(line.unit_price),
                    'line_total': str(line.line_total),
                    'size': cart_item.size,
                    'color': cart_item.color,
                }
                for line, cart_item in zip(priced.line_items, priced.cart_items)
            ],
            'coupons': [
                {'code': discount.terms.code, 'discount_amount': str(discount.discount_amount)}
                for discount in priced.discounts
            ],
            **{name: str(value) for name, value in priced.totals.as_dict().items()},
        }
        return success_response(data, 'Checkout totals calculated')


class SettleOrderView(APIView):
    """Settle the cart against a verified payment; replays return the original order"""
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = SettleOrderSerializer(data=request.data)
        if not serializer.is_valid():
            logger.warning(f"Settlement request rejected: {serializer.errors}")
            return error_response("Invalid order data", serializer.errors)

        data = serializer.validated_data
        order, created = SettlementService.settle(
            CheckoutOwner.for_request(request),
            payment_confirmation=dict(data['payment_confirmation']),
            shipping_address=dict(data['shipping_address']),
            requested_coupon_codes=data['coupon_codes'],
            expected_total=data.get('expected_total'),
            notes=data.get('notes', ''),
        )

        if created:
            return success_response(OrderSerializer(order).data, 'Order placed successfully',
                                    status_code=status.HTTP_201_CREATED)
        return success_response(OrderSerializer(order).data, 'Order already placed for this payment')


class CreatePaymentOrderView(APIView):
    """Open a provider order for the server-computed total before the customer pays"""
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = CheckoutPreviewSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response("Invalid checkout data", serializer.errors)

        priced, provider_order = SettlementService.create_payment_order(
            CheckoutOwner.for_request(request), serializer.validated_data['coupon_codes']
        )
        data = {
            'provider_order_id': provider_order.order_id,
            'amount': provider_order.amount,
            'currency': provider_order.currency,
            'receipt': provider_order.receipt,
            'key_id': settings.RAZORPAY_KEY_ID,
            'total': str(priced.totals.total),
        }
        return success_response(data, 'Payment order created', status_code=status.HTTP_201_CREATED)


class PaymentStatusView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, payment_id):
        data = SettlementService.payment_status(CheckoutOwner.for_request(request), payment_id)
        return success_response(data, 'Payment status retrieved successfully')
